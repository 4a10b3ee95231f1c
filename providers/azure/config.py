"""
Azure-specific configuration loading.

Azure Functions resolves Key Vault references in app settings, so the
service principal secret can be stored in Key Vault and still arrive as a
plain environment variable:

    AMS_CLIENT_SECRET=@Microsoft.KeyVault(SecretUri=https://myvault.vault.azure.net/secrets/ams-client-secret/)

No SDK calls are needed here; pydantic-settings reads the environment.
"""
import os
from functools import lru_cache

from protectflow.config import Settings


@lru_cache()
def get_settings() -> Settings:
    """Load settings from Function App settings (environment variables)."""
    settings = Settings()
    if os.environ.get('FUNCTIONS_WORKER_RUNTIME') and not settings.ams_rest_api_endpoint:
        print("DEBUG: WARNING - AMS_REST_API_ENDPOINT not set", flush=True)
    return settings
