"""
Hosting adapters: both wire the shared app to the Media Services provider.
"""

import azure.functions as func

from protectflow.app import app, registry
from providers.aws import handler as aws_handler
from providers.azure import config as azure_config
from providers.azure.media_services import MediaServicesClient


class TestAzureHandler:
    def test_function_app_wraps_shared_app(self):
        from providers.azure.handler import app as function_app

        assert isinstance(function_app, func.AsgiFunctionApp)
        assert registry.platform_factory == MediaServicesClient.from_settings
        assert registry._settings_fn is azure_config.get_settings


class TestAwsHandler:
    def test_lazy_initialization_configures_registry(self, monkeypatch):
        monkeypatch.setattr(aws_handler, "_initialized", False)

        aws_handler._ensure_initialized()

        from providers.aws.config import get_settings
        assert registry._settings_fn is get_settings
        assert registry.platform_factory == MediaServicesClient.from_settings
        assert aws_handler.app is app
