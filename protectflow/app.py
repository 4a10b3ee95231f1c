"""
Core FastAPI application for protectflow.

This module defines all webhook routes. It is hosting-provider agnostic.
The settings loader and the media platform factory are registered via the
`registry` before the app starts handling requests; every request then gets
its own platform client through the `get_platform` dependency.
"""
from fastapi import FastAPI, HTTPException, Depends, Request, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from datetime import timedelta
import secrets
import time

from protectflow.platform import PlatformError
from protectflow.provisioning import ProvisioningError, ProvisioningStatus, provision_asset
from protectflow.publishing import publish_asset
from protectflow.schemas import (
    PlaybackUrlsRequest,
    PlaybackUrlsResponse,
    ProvisionRequest,
    ProvisionResponse,
    PublishAssetRequest,
    PublishAssetResponse,
)
from protectflow.urls import resolve_playback_urls


# =============================================================================
# Provider Registry
# =============================================================================
# Hosting providers (Azure Functions, AWS Lambda) register their
# implementations here before the app starts handling requests. This avoids
# importing provider-specific code in the shared layer.

class _ProviderRegistry:
    """Registry for provider-specific implementations."""

    def __init__(self):
        self._settings_fn = None        # callable() -> Settings
        self._platform_factory = None   # callable(Settings) -> MediaPlatform

    def configure(self, settings_fn=None, platform_factory=None):
        """Register provider implementations. Only sets non-None values."""
        if settings_fn is not None:
            self._settings_fn = settings_fn
        if platform_factory is not None:
            self._platform_factory = platform_factory

    @property
    def settings(self):
        if self._settings_fn is None:
            raise RuntimeError("Settings provider not configured")
        return self._settings_fn()

    @property
    def platform_factory(self):
        if self._platform_factory is None:
            raise RuntimeError("Media platform provider not configured")
        return self._platform_factory


registry = _ProviderRegistry()


def get_settings():
    return registry.settings


def get_platform():
    """Open a media platform client scoped to the current request."""
    platform = registry.platform_factory(get_settings())
    try:
        yield platform
    finally:
        platform.close()


def verify_webhook_token(token: str | None = Query(None, alias="token")):
    """Verify the shared webhook token, if one is configured."""
    settings = get_settings()
    if not settings.webhook_token:
        return True

    if not token:
        raise HTTPException(
            status_code=401,
            detail="Webhook token required. Add ?token=YOUR_TOKEN to the URL."
        )

    if not secrets.compare_digest(token, settings.webhook_token):
        raise HTTPException(status_code=401, detail="Invalid webhook token")

    return True


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="protectflow",
    description="Webhooks for DRM provisioning and playback URLs of media assets",
    version="1.0.0",
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    print(f"DEBUG: REQUEST START - {request.method} {request.url.path}", flush=True)
    try:
        response = await call_next(request)
        duration = time.time() - start_time
        print(f"DEBUG: REQUEST END - {request.method} {request.url.path} - Status: {response.status_code} - Duration: {duration:.2f}s", flush=True)
        return response
    except Exception as e:
        duration = time.time() - start_time
        print(f"DEBUG: REQUEST ERROR - {request.method} {request.url.path} - Error: {type(e).__name__}: {e} - Duration: {duration:.2f}s", flush=True)
        if request.url.path == "/api/provision-drm":
            print(f"PROVISION: Unexpected failure: {type(e).__name__}: {e}", flush=True)
        # Webhook callers get a client error with an {"error"} body for any failure
        return JSONResponse(status_code=400, content={"error": f"Unexpected error: {type(e).__name__}: {e}"})


# =============================================================================
# Error Handlers
# =============================================================================
# Every error body has the shape {"error": "..."}.

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg", ""))
    message = "Invalid request: " + "; ".join(problems)
    print(f"REQUEST: {message}", flush=True)
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(ProvisioningError)
async def provisioning_exception_handler(request: Request, exc: ProvisioningError):
    return JSONResponse(
        status_code=400,
        content={
            "error": str(exc),
            "stage": exc.stage.value,
            "contentKeyId": exc.content_key_id,
        },
    )


@app.exception_handler(PlatformError)
async def platform_exception_handler(request: Request, exc: PlatformError):
    print(f"PLATFORM: Unhandled platform error on {request.url.path}: {exc}", flush=True)
    return JSONResponse(status_code=400, content={"error": f"Media platform error: {exc}"})


# =============================================================================
# Provisioning
# =============================================================================

@app.post("/api/provision-drm", response_model=ProvisionResponse)
def provision_drm(
    data: ProvisionRequest,
    _: bool = Depends(verify_webhook_token),
    platform=Depends(get_platform),
):
    """Create the content key and PlayReady/Widevine policies of an asset."""
    print(f"PROVISION: Request for asset '{data.asset_id}'", flush=True)

    result = provision_asset(platform, data.asset_id, data.ingest_asset_config.to_options())
    if result.status == ProvisioningStatus.ASSET_NOT_FOUND:
        raise HTTPException(status_code=400, detail=f"Asset not found: {data.asset_id}")

    return ProvisionResponse(asset_id=result.asset_id)


# =============================================================================
# Playback
# =============================================================================

def _playback_urls(platform, asset, manifest_format) -> dict:
    settings = get_settings()
    manifest_urls, base_urls = resolve_playback_urls(
        platform,
        asset,
        manifest_format=manifest_format,
        default_endpoint_name=settings.default_streaming_endpoint_name,
    )
    return {
        "asset_id": asset.id,
        "manifest_available": manifest_urls is not None,
        "playback_url": manifest_urls[0] if manifest_urls else None,
        "manifest_urls": manifest_urls or [],
        "base_urls": base_urls,
    }


@app.post("/api/playback-urls", response_model=PlaybackUrlsResponse)
def playback_urls(
    data: PlaybackUrlsRequest,
    _: bool = Depends(verify_webhook_token),
    platform=Depends(get_platform),
):
    """Resolve the current playback URLs of an asset."""
    asset = platform.get_asset(data.asset_id)
    if asset is None:
        raise HTTPException(status_code=400, detail=f"Asset not found: {data.asset_id}")

    return PlaybackUrlsResponse(**_playback_urls(platform, asset, data.manifest_format))


@app.post("/api/publish-asset", response_model=PublishAssetResponse)
def publish(
    data: PublishAssetRequest,
    _: bool = Depends(verify_webhook_token),
    platform=Depends(get_platform),
):
    """Create a streaming locator for an asset and return its playback URLs."""
    settings = get_settings()
    asset = platform.get_asset(data.asset_id)
    if asset is None:
        raise HTTPException(status_code=400, detail=f"Asset not found: {data.asset_id}")

    minutes = data.locator_duration_minutes or settings.default_locator_duration_minutes
    locator = publish_asset(platform, asset, timedelta(minutes=minutes))

    return PublishAssetResponse(
        locator_id=locator.id,
        expiration=locator.expiration,
        **_playback_urls(platform, asset, data.manifest_format),
    )


# =============================================================================
# Health Check
# =============================================================================

@app.get("/api/health")
def health_check():
    """Health check endpoint - no dependencies, fastest possible response."""
    return {"status": "healthy", "service": "protectflow"}
