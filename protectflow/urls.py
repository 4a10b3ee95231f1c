"""
Playback URL resolution.

URLs are the cross product of an asset's valid on-demand locators (longest
lived first) and the candidate streaming endpoints (see endpoints.py):

    https://{endpoint host}/{locator content access component}/
    https://{endpoint host}/{locator content access component}/{name}.ism/manifest

"No manifest available" (the asset has no .ism file) is reported as None and
"no valid URL" as an empty list. Neither is an error.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from protectflow.endpoints import DEFAULT_ENDPOINT_NAME, select_candidate_endpoints
from protectflow.models import Asset, AssetFile, Locator, LocatorType
from protectflow.platform import MediaPlatform


URL_SCHEME = "https"
MANIFEST_FILE_SUFFIX = ".ism"
MANIFEST_PATH_SUFFIX = "/manifest"


class ManifestFormat(str, Enum):
    SMOOTH = "smooth"
    HLS = "hls"
    HLS_V3 = "hls-v3"
    DASH = "dash"


_FORMAT_SUFFIXES = {
    ManifestFormat.SMOOTH: "",
    ManifestFormat.HLS: "(format=m3u8-aapl)",
    ManifestFormat.HLS_V3: "(format=m3u8-aapl-v3)",
    ManifestFormat.DASH: "(format=mpd-time-csf)",
}


def valid_locators(locators: Iterable[Locator], now: datetime | None = None) -> list[Locator]:
    """Unexpired on-demand-origin locators, longest lived first."""
    now = now or datetime.now(timezone.utc)
    valid = [
        loc for loc in locators
        if loc.type == LocatorType.ON_DEMAND_ORIGIN and loc.expiration > now
    ]
    return sorted(valid, key=lambda loc: loc.expiration, reverse=True)


def find_manifest_file(files: Iterable[AssetFile]) -> Optional[AssetFile]:
    """Find the .ism manifest of an asset, preferring the primary file."""
    manifests = [f for f in files if f.name.lower().endswith(MANIFEST_FILE_SUFFIX)]
    if not manifests:
        return None
    return sorted(manifests, key=lambda f: not f.is_primary)[0]


def build_url(host_name: str, content_access_component: str, path: str = "") -> str:
    return f"{URL_SCHEME}://{host_name}/{content_access_component.strip('/')}/{path}"


def _manifest_path(manifest: AssetFile, manifest_format: ManifestFormat) -> str:
    return f"{manifest.name}{MANIFEST_PATH_SUFFIX}{_FORMAT_SUFFIXES[manifest_format]}"


def _candidate_pairs(platform: MediaPlatform, asset: Asset, now, default_endpoint_name):
    locators = valid_locators(platform.list_locators(asset.id), now)
    if not locators:
        return []
    endpoints = select_candidate_endpoints(
        platform.list_streaming_endpoints(), default_name=default_endpoint_name
    )
    return [(loc, ep) for loc in locators for ep in endpoints]


def resolve_base_urls(
    platform: MediaPlatform,
    asset: Asset,
    now: datetime | None = None,
    default_endpoint_name: str = DEFAULT_ENDPOINT_NAME,
) -> list[str]:
    """All base URLs of an asset, ordered by preference."""
    return [
        build_url(ep.host_name, loc.content_access_component)
        for loc, ep in _candidate_pairs(platform, asset, now, default_endpoint_name)
    ]


def resolve_manifest_urls(
    platform: MediaPlatform,
    asset: Asset,
    now: datetime | None = None,
    manifest_format: ManifestFormat = ManifestFormat.SMOOTH,
    default_endpoint_name: str = DEFAULT_ENDPOINT_NAME,
) -> list[str] | None:
    """
    All manifest URLs of an asset, ordered by preference.

    Returns None if the asset has no manifest file, [] if it has one but no
    valid locator/endpoint combination.
    """
    manifest = find_manifest_file(platform.list_files(asset.id))
    if manifest is None:
        return None

    path = _manifest_path(manifest, manifest_format)
    return [
        build_url(ep.host_name, loc.content_access_component, path)
        for loc, ep in _candidate_pairs(platform, asset, now, default_endpoint_name)
    ]


def resolve_playback_urls(
    platform: MediaPlatform,
    asset: Asset,
    now: datetime | None = None,
    manifest_format: ManifestFormat = ManifestFormat.SMOOTH,
    default_endpoint_name: str = DEFAULT_ENDPOINT_NAME,
) -> tuple[list[str] | None, list[str]]:
    """
    Manifest and base URLs of an asset from a single locator/endpoint lookup.

    Returns (manifest_urls, base_urls) with the same meaning as
    resolve_manifest_urls() and resolve_base_urls().
    """
    pairs = _candidate_pairs(platform, asset, now, default_endpoint_name)
    base_urls = [build_url(ep.host_name, loc.content_access_component) for loc, ep in pairs]

    manifest = find_manifest_file(platform.list_files(asset.id))
    if manifest is None:
        return None, base_urls

    path = _manifest_path(manifest, manifest_format)
    return [build_url(ep.host_name, loc.content_access_component, path) for loc, ep in pairs], base_urls


def first_manifest_url(
    platform: MediaPlatform,
    asset: Asset,
    now: datetime | None = None,
    manifest_format: ManifestFormat = ManifestFormat.SMOOTH,
    default_endpoint_name: str = DEFAULT_ENDPOINT_NAME,
) -> str | None:
    urls = resolve_manifest_urls(platform, asset, now, manifest_format, default_endpoint_name)
    return urls[0] if urls else None


def first_base_url(
    platform: MediaPlatform,
    asset: Asset,
    now: datetime | None = None,
    default_endpoint_name: str = DEFAULT_ENDPOINT_NAME,
) -> str | None:
    urls = resolve_base_urls(platform, asset, now, default_endpoint_name)
    return urls[0] if urls else None
