"""
Azure Functions handler for protectflow.

Azure Functions (Python v2 programming model) serves the shared FastAPI app
through an ASGI function app. Routes are protected by function keys on top
of the optional shared webhook token.
"""
import azure.functions as func

from protectflow.app import app as fastapi_app, registry
from providers.azure.config import get_settings
from providers.azure.media_services import MediaServicesClient

print("DEBUG: Starting providers.azure.handler module load...", flush=True)

registry.configure(
    settings_fn=get_settings,
    platform_factory=MediaServicesClient.from_settings,
)

app = func.AsgiFunctionApp(app=fastapi_app, http_auth_level=func.AuthLevel.FUNCTION)

print("DEBUG: Module load complete, handler ready", flush=True)
