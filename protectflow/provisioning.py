"""
DRM provisioning flow for one asset.

    content key -> open authorization policy -> DASH delivery policy

Each stage is recorded as it completes. A failure is raised as
ProvisioningError naming the stage that failed and the key created so far,
and a retried request picks up an asset that has its key but no delivery
policy from the first missing stage.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from protectflow.delivery import DEFAULT_DELIVERY_POLICY_NAME, build_delivery_policy
from protectflow.keys import DEFAULT_CONTENT_KEY_NAME, provision_key_if_absent
from protectflow.licenses import DEFAULT_AUTHORIZATION_POLICY_NAME, build_open_authorization_policy
from protectflow.models import (
    Asset,
    AuthorizationPolicy,
    ContentKey,
    ContentKeyType,
    DeliveryPolicy,
)
from protectflow.platform import MediaPlatform, PlatformError


class ProvisioningStage(str, Enum):
    CONTENT_KEY = "content_key"
    AUTHORIZATION_POLICY = "authorization_policy"
    DELIVERY_POLICY = "delivery_policy"


class ProvisioningStatus(str, Enum):
    PROVISIONED = "provisioned"
    RESUMED = "resumed"
    SKIPPED = "skipped"
    ASSET_NOT_FOUND = "asset_not_found"


class ProvisioningError(Exception):
    """A platform call failed part way through provisioning."""
    def __init__(self, stage: ProvisioningStage, asset_id: str, content_key_id: Optional[str], cause: PlatformError):
        self.stage = stage
        self.asset_id = asset_id
        self.content_key_id = content_key_id
        self.cause = cause
        super().__init__(f"Provisioning failed at stage '{stage.value}' for asset '{asset_id}': {cause}")


@dataclass
class ProvisioningOptions:
    content_key_name: str = DEFAULT_CONTENT_KEY_NAME
    authorization_policy_name: str = DEFAULT_AUTHORIZATION_POLICY_NAME
    delivery_policy_name: str = DEFAULT_DELIVERY_POLICY_NAME


@dataclass
class ProvisioningResult:
    asset_id: str
    status: ProvisioningStatus
    content_key: Optional[ContentKey] = None
    authorization_policy: Optional[AuthorizationPolicy] = None
    delivery_policy: Optional[DeliveryPolicy] = None
    completed_stages: list[ProvisioningStage] = field(default_factory=list)


def _resumable_key(platform: MediaPlatform, asset: Asset, key_name: str) -> ContentKey | None:
    """
    The key a previous, interrupted run of this flow left on the asset, if any.

    Only a common-encryption key carrying the configured key name counts.
    Keys put there by anything else are never given an open license policy.
    """
    if platform.list_delivery_policies(asset.id):
        return None
    for key in platform.list_content_keys(asset.id):
        if key.content_key_type == ContentKeyType.COMMON_ENCRYPTION and key.name == key_name:
            return key
    return None


def provision_asset(
    platform: MediaPlatform,
    asset_id: str,
    options: ProvisioningOptions | None = None,
) -> ProvisioningResult:
    """
    Set up PlayReady/Widevine dynamic common encryption for an asset.

    Returns a result whose status is ASSET_NOT_FOUND when the asset does not
    exist and SKIPPED when it is already protected. Platform failures are
    raised as ProvisioningError.
    """
    options = options or ProvisioningOptions()

    asset = platform.get_asset(asset_id)
    if asset is None:
        print(f"PROVISION: Asset '{asset_id}' not found", flush=True)
        return ProvisioningResult(asset_id=asset_id, status=ProvisioningStatus.ASSET_NOT_FOUND)

    result = ProvisioningResult(asset_id=asset.id, status=ProvisioningStatus.PROVISIONED)
    stage = ProvisioningStage.CONTENT_KEY
    key = None

    try:
        key = provision_key_if_absent(platform, asset, options.content_key_name)
        if key is None:
            key = _resumable_key(platform, asset, options.content_key_name)
            if key is None:
                result.status = ProvisioningStatus.SKIPPED
                print(f"PROVISION: Asset '{asset.id}' is already protected", flush=True)
                return result
            result.status = ProvisioningStatus.RESUMED
            print(f"PROVISION: Resuming asset '{asset.id}' with existing key {key.id}", flush=True)
        result.content_key = key
        result.completed_stages.append(stage)

        stage = ProvisioningStage.AUTHORIZATION_POLICY
        if key.authorization_policy_id is None:
            result.authorization_policy = build_open_authorization_policy(
                platform, key, options.authorization_policy_name
            )
        result.completed_stages.append(stage)

        stage = ProvisioningStage.DELIVERY_POLICY
        result.delivery_policy = build_delivery_policy(
            platform, asset, key, options.delivery_policy_name
        )
        result.completed_stages.append(stage)
    except PlatformError as e:
        key_id = key.id if key else None
        print(f"PROVISION: Failed at stage '{stage.value}' for asset '{asset.id}' (key={key_id}): {e}", flush=True)
        raise ProvisioningError(stage, asset.id, key_id, e) from e

    print(f"PROVISION: Complete - asset='{asset.id}' status='{result.status.value}' key={key.id}", flush=True)
    return result
