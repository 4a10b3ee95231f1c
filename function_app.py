"""Azure Functions entry point (the worker looks for `app` in function_app.py)."""
from providers.azure.handler import app  # noqa: F401
