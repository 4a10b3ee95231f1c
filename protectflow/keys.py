"""
Content key provisioning.

An asset gets exactly one common-encryption key, created on its first
protection request. The guard below is check-then-act: concurrent requests
for the same asset must be serialized by the caller.
"""
from __future__ import annotations

from protectflow.crypto import generate_content_key, generate_key_identifier
from protectflow.models import Asset, ContentKey, ContentKeyType
from protectflow.platform import MediaPlatform, PlatformError


DEFAULT_CONTENT_KEY_NAME = "CommonEncryption ContentKey"


def provision_key_if_absent(
    platform: MediaPlatform,
    asset: Asset,
    name: str = DEFAULT_CONTENT_KEY_NAME,
) -> ContentKey | None:
    """
    Create and attach a common-encryption key unless the asset is already protected.

    Returns the new key, or None when the asset already has a content key or
    a delivery policy (nothing is created in that case).
    """
    keys = platform.list_content_keys(asset.id)
    policies = platform.list_delivery_policies(asset.id)
    if keys or policies:
        print(f"PROVISION: Asset '{asset.id}' already has {len(keys)} key(s) and {len(policies)} delivery policy(ies), skipping key creation", flush=True)
        return None

    return create_common_encryption_key(platform, asset, name)


def create_common_encryption_key(platform: MediaPlatform, asset: Asset, name: str) -> ContentKey:
    """Generate a random key, register it and link it to the asset."""
    key_identifier = generate_key_identifier()
    key = platform.create_content_key(
        key_identifier=key_identifier,
        key_value=generate_content_key(),
        key_type=ContentKeyType.COMMON_ENCRYPTION,
        name=name,
    )
    print(f"PROVISION: Created content key {key.id}", flush=True)

    try:
        platform.link_content_key(asset.id, key.id)
    except PlatformError:
        _discard_key(platform, key)
        raise

    print(f"PROVISION: Linked content key {key.id} to asset '{asset.id}'", flush=True)
    return key


def _discard_key(platform: MediaPlatform, key: ContentKey) -> None:
    try:
        platform.delete_content_key(key.id)
        print(f"PROVISION: Deleted unlinked content key {key.id}", flush=True)
    except PlatformError as e:
        print(f"PROVISION: Failed to delete unlinked content key {key.id}: {e}", flush=True)
