"""
Base configuration model for protectflow.
Provider-specific config loading is handled by each provider.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Media Services account (REST v2 API + Azure AD service principal)
    ams_account_name: str = ""
    ams_rest_api_endpoint: str = ""  # e.g. https://myaccount.restv2.westus.media.azure.net/api/
    ams_aad_tenant_domain: str = ""
    ams_client_id: str = ""
    ams_client_secret: str = ""
    ams_aad_resource: str = "https://rest.media.azure.net"
    ams_api_version: str = "2.19"

    # Playback
    default_streaming_endpoint_name: str = "default"
    default_locator_duration_minutes: int = 365 * 24 * 60

    # Optional shared token for webhook callers (Logic Apps, pipelines)
    webhook_token: str = ""

    class Config:
        env_file = ".env"
