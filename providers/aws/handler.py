"""
AWS Lambda handler for protectflow.

This is the entry point for AWS Lambda. It configures the shared app with
the Media Services provider and wraps the FastAPI app with Mangum for
Lambda compatibility.
"""
from mangum import Mangum

from protectflow.app import app

print("DEBUG: Starting providers.aws.handler module load...", flush=True)

# =============================================================================
# Lazy initialization for cold start optimization
# =============================================================================

_initialized = False
_adapter = None


def _ensure_initialized():
    """Lazy-initialize providers on first invocation."""
    global _initialized
    if _initialized:
        return
    _initialized = True

    print("DEBUG: Initializing AWS providers...", flush=True)

    from protectflow.app import registry
    from providers.aws.config import get_settings
    from providers.azure.media_services import MediaServicesClient

    registry.configure(
        settings_fn=get_settings,
        platform_factory=MediaServicesClient.from_settings,
    )

    print("DEBUG: AWS providers initialized", flush=True)


def handler(event, context):
    """Lambda handler - lifespan="off" since we handle init lazily."""
    global _adapter
    _ensure_initialized()
    if _adapter is None:
        _adapter = Mangum(app, lifespan="off")
    return _adapter(event, context)


print("DEBUG: Module load complete, handler ready", flush=True)
