"""
Asset delivery policy for dynamic common encryption (DASH).
"""
from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from protectflow.models import (
    Asset,
    AssetDeliveryPolicyConfigurationKey,
    AssetDeliveryPolicyType,
    AssetDeliveryProtocol,
    ContentKey,
    DeliveryPolicy,
    KeyDeliveryType,
)
from protectflow.platform import MediaPlatform, PlatformError


DEFAULT_DELIVERY_POLICY_NAME = "Dynamic Common Encryption Policy"


def strip_query(url: str) -> str:
    """Drop the query string (and fragment) from a URL."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def build_delivery_policy(
    platform: MediaPlatform,
    asset: Asset,
    key: ContentKey,
    name: str = DEFAULT_DELIVERY_POLICY_NAME,
) -> DeliveryPolicy:
    """Create a DASH common-encryption delivery policy for the key and attach it to the asset."""
    playready_url = platform.get_key_delivery_url(key.id, KeyDeliveryType.PLAYREADY_LICENSE)
    widevine_url = platform.get_key_delivery_url(key.id, KeyDeliveryType.WIDEVINE)

    # The manifest generator appends ?KID=... to the Widevine base URL itself
    widevine_base_url = strip_query(widevine_url)

    configuration = {
        AssetDeliveryPolicyConfigurationKey.PLAYREADY_LICENSE_ACQUISITION_URL: playready_url,
        AssetDeliveryPolicyConfigurationKey.WIDEVINE_BASE_LICENSE_ACQUISITION_URL: widevine_base_url,
    }

    policy = platform.create_delivery_policy(
        name=name,
        protocol=AssetDeliveryProtocol.DASH,
        policy_type=AssetDeliveryPolicyType.DYNAMIC_COMMON_ENCRYPTION,
        configuration=configuration,
    )
    try:
        platform.link_delivery_policy(asset.id, policy.id)
    except PlatformError:
        _discard_delivery_policy(platform, policy)
        raise

    print(f"PROVISION: Attached delivery policy {policy.id} to asset '{asset.id}'", flush=True)
    return policy


def _discard_delivery_policy(platform: MediaPlatform, policy: DeliveryPolicy) -> None:
    try:
        platform.delete_delivery_policy(policy.id)
        print(f"PROVISION: Deleted unlinked delivery policy {policy.id}", flush=True)
    except PlatformError as e:
        print(f"PROVISION: Failed to delete unlinked delivery policy {policy.id}: {e}", flush=True)
