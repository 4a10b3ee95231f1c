"""
Media platform interface (Protocol) for protectflow.

All platform providers must implement these operations. Operations are
synchronous and blocking; a provider never retries. Lookups that can miss
return None, everything else raises PlatformError on failure.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, Protocol

from protectflow.models import (
    AccessPermissions,
    AccessPolicy,
    Asset,
    AssetDeliveryPolicyConfigurationKey,
    AssetDeliveryPolicyType,
    AssetDeliveryProtocol,
    AssetFile,
    AuthorizationPolicy,
    AuthorizationPolicyOption,
    ContentKey,
    ContentKeyType,
    DeliveryPolicy,
    KeyDeliveryType,
    KeyRestriction,
    Locator,
    LocatorType,
    StreamingEndpoint,
)


class PlatformError(Exception):
    """A call to the media platform failed."""
    def __init__(self, status_code: Optional[int], code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class MediaPlatform(Protocol):
    """Protocol defining the media platform operations used by protectflow."""

    def close(self) -> None:
        """Release any connection held by the provider."""
        ...

    # --- Reads ---

    def get_asset(self, asset_id: str) -> Asset | None:
        """Look up an asset. Returns None if it does not exist."""
        ...

    def list_content_keys(self, asset_id: str) -> list[ContentKey]:
        ...

    def list_delivery_policies(self, asset_id: str) -> list[DeliveryPolicy]:
        ...

    def list_locators(self, asset_id: str) -> list[Locator]:
        ...

    def list_files(self, asset_id: str) -> list[AssetFile]:
        ...

    def list_streaming_endpoints(self) -> list[StreamingEndpoint]:
        ...

    # --- Content keys ---

    def create_content_key(
        self,
        key_identifier: uuid.UUID,
        key_value: bytes,
        key_type: ContentKeyType,
        name: str,
    ) -> ContentKey:
        """Register a content key. The provider protects key_value in transit."""
        ...

    def link_content_key(self, asset_id: str, key_id: str) -> None:
        ...

    def delete_content_key(self, key_id: str) -> None:
        ...

    def update_content_key_authorization_policy(self, key_id: str, policy_id: str) -> None:
        """Point a content key at an authorization policy and persist the key."""
        ...

    def get_key_delivery_url(self, key_id: str, key_delivery_type: KeyDeliveryType) -> str:
        """Get the license/key acquisition URL of a key for one DRM system."""
        ...

    # --- Authorization policies ---

    def create_authorization_policy(self, name: str) -> AuthorizationPolicy:
        ...

    def delete_authorization_policy(self, policy_id: str) -> None:
        ...

    def create_authorization_policy_option(
        self,
        name: str,
        key_delivery_type: KeyDeliveryType,
        key_delivery_configuration: str,
        restrictions: list[KeyRestriction],
    ) -> AuthorizationPolicyOption:
        ...

    def delete_authorization_policy_option(self, option_id: str) -> None:
        ...

    def link_authorization_policy_option(self, policy_id: str, option_id: str) -> None:
        ...

    # --- Delivery policies ---

    def create_delivery_policy(
        self,
        name: str,
        protocol: AssetDeliveryProtocol,
        policy_type: AssetDeliveryPolicyType,
        configuration: dict[AssetDeliveryPolicyConfigurationKey, str],
    ) -> DeliveryPolicy:
        ...

    def link_delivery_policy(self, asset_id: str, policy_id: str) -> None:
        ...

    def delete_delivery_policy(self, policy_id: str) -> None:
        ...

    # --- Publishing ---

    def create_access_policy(
        self,
        name: str,
        duration_minutes: float,
        permissions: AccessPermissions,
    ) -> AccessPolicy:
        ...

    def create_locator(
        self,
        asset_id: str,
        access_policy_id: str,
        locator_type: LocatorType,
        start_time: datetime,
    ) -> Locator:
        ...
