"""
AWS-specific configuration loading.

Lambda passes configuration as environment variables; the service principal
secret is expected to be injected by the deployment (e.g. from Secrets
Manager through the Lambda environment).
"""
import os
from functools import lru_cache

from protectflow.config import Settings


@lru_cache()
def get_settings() -> Settings:
    """Load settings from the Lambda environment."""
    settings = Settings()
    if os.environ.get('AWS_LAMBDA_FUNCTION_NAME') and not settings.ams_client_secret:
        print("DEBUG: WARNING - AMS_CLIENT_SECRET not set", flush=True)
    return settings
