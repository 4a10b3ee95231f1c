"""
Azure AD service principal authentication for the Media Services REST API.

Uses the OAuth2 client-credentials flow:
1. POST /{tenant}/oauth2/token with client id/secret -> bearer token (~1 hour)
2. Use bearer token for subsequent REST calls

Tokens are cached per (tenant, client, resource) for the life of the process
and refreshed shortly before they expire.
"""
from __future__ import annotations

import time

import httpx

from protectflow.platform import PlatformError


AAD_AUTHORITY = "https://login.microsoftonline.com"
# Refresh 5 minutes before expiry
TOKEN_REFRESH_MARGIN_SECONDS = 300

# Token cache: (tenant, client_id, resource) -> (token, expires_at)
_tokens: dict[tuple[str, str, str], tuple[str, float]] = {}


def clear_token_cache():
    _tokens.clear()


class AzureADTokenProvider:
    """Client-credentials token source for one service principal."""

    def __init__(
        self,
        tenant_domain: str,
        client_id: str,
        client_secret: str,
        resource: str,
        authority: str = AAD_AUTHORITY,
        http_client: httpx.Client | None = None,
    ):
        if not tenant_domain or not client_id or not client_secret:
            raise ValueError("Azure AD tenant, client id and client secret are required")
        self.tenant_domain = tenant_domain
        self.client_id = client_id
        self._client_secret = client_secret
        self.resource = resource
        self.authority = authority.rstrip("/")
        self._client = http_client

    @property
    def _cache_key(self) -> tuple[str, str, str]:
        return (self.tenant_domain, self.client_id, self.resource)

    def get_token(self) -> str:
        """Get a valid bearer token, refreshing if needed."""
        cached = _tokens.get(self._cache_key)
        if cached and time.time() < cached[1] - TOKEN_REFRESH_MARGIN_SECONDS:
            return cached[0]
        return self._login()

    def _login(self) -> str:
        url = f"{self.authority}/{self.tenant_domain}/oauth2/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "resource": self.resource,
        }

        try:
            if self._client is not None:
                response = self._client.post(url, data=data, timeout=10.0)
            else:
                with httpx.Client() as client:
                    response = client.post(url, data=data, timeout=10.0)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            print(f"PLATFORM: Azure AD login failed: {e.response.status_code}", flush=True)
            raise PlatformError(e.response.status_code, "AuthenticationFailed", "Azure AD token request was rejected") from e
        except httpx.HTTPError as e:
            print(f"PLATFORM: Azure AD login failed: {e}", flush=True)
            raise PlatformError(None, "AuthenticationFailed", str(e)) from e

        payload = response.json()
        token = payload.get("access_token")
        if not token:
            raise PlatformError(response.status_code, "AuthenticationFailed", "Azure AD response has no access_token")

        expires_in = int(payload.get("expires_in", 3600))
        _tokens[self._cache_key] = (token, time.time() + expires_in)
        print(f"DEBUG: Azure AD token acquired for client {self.client_id} (expires in {expires_in}s)", flush=True)
        return token
