"""
Streaming endpoint selection.

Only Standard and Premium endpoints can repackage content on the fly, so
playback URLs are built against running endpoints of those tiers, CDN-enabled
ones first. Accounts that only have a Classic endpoint fall back to the
endpoint named "default".
"""
from __future__ import annotations

from typing import Iterable

from protectflow.models import STREAMING_ENDPOINT_RUNNING, EndpointTier, StreamingEndpoint


CLASSIC_ENDPOINT_VERSION = "1.0"
DEFAULT_ENDPOINT_NAME = "default"


def classify_endpoint(endpoint: StreamingEndpoint) -> EndpointTier:
    """Classify an endpoint as Classic, Standard or Premium."""
    if endpoint.scale_units and endpoint.scale_units > 0:
        return EndpointTier.PREMIUM
    if endpoint.version == CLASSIC_ENDPOINT_VERSION:
        return EndpointTier.CLASSIC
    return EndpointTier.STANDARD


def supports_dynamic_packaging(endpoint: StreamingEndpoint) -> bool:
    return classify_endpoint(endpoint) != EndpointTier.CLASSIC


def _cdn_first(endpoints: list[StreamingEndpoint]) -> list[StreamingEndpoint]:
    # sorted() is stable, so input order breaks ties
    return sorted(endpoints, key=lambda e: not e.cdn_enabled)


def select_candidate_endpoints(
    endpoints: Iterable[StreamingEndpoint],
    default_name: str = DEFAULT_ENDPOINT_NAME,
) -> list[StreamingEndpoint]:
    """
    Pick the endpoints playback URLs should be built against, best first.

    Returns an empty list when nothing is playable; callers treat that as
    "no playable endpoint", not as an error.
    """
    endpoints = list(endpoints)

    capable = [
        e for e in endpoints
        if e.state == STREAMING_ENDPOINT_RUNNING and supports_dynamic_packaging(e)
    ]
    if capable:
        return _cdn_first(capable)

    return _cdn_first([e for e in endpoints if e.name == default_name])
