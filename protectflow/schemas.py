"""
Request/response models for the webhook API.

Field names on the wire are PascalCase (Logic Apps convention); Python
attributes are snake_case through aliases. Unknown fields are rejected.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, Json

from protectflow.delivery import DEFAULT_DELIVERY_POLICY_NAME
from protectflow.keys import DEFAULT_CONTENT_KEY_NAME
from protectflow.licenses import DEFAULT_AUTHORIZATION_POLICY_NAME
from protectflow.provisioning import ProvisioningOptions
from protectflow.urls import ManifestFormat


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class IngestAssetConfig(_WireModel):
    content_key_name: str = Field(DEFAULT_CONTENT_KEY_NAME, alias="ContentKeyName", min_length=1)
    authorization_policy_name: str = Field(DEFAULT_AUTHORIZATION_POLICY_NAME, alias="AuthorizationPolicyName", min_length=1)
    delivery_policy_name: str = Field(DEFAULT_DELIVERY_POLICY_NAME, alias="DeliveryPolicyName", min_length=1)

    def to_options(self) -> ProvisioningOptions:
        return ProvisioningOptions(
            content_key_name=self.content_key_name,
            authorization_policy_name=self.authorization_policy_name,
            delivery_policy_name=self.delivery_policy_name,
        )


class ProvisionRequest(_WireModel):
    asset_id: str = Field(alias="AssetId", min_length=1)
    # A JSON document carried as a string
    ingest_asset_config: Json[IngestAssetConfig] = Field(alias="IngestAssetConfigJson")


class ProvisionResponse(_WireModel):
    asset_id: str = Field(alias="AssetId")


class PlaybackUrlsRequest(_WireModel):
    asset_id: str = Field(alias="AssetId", min_length=1)
    manifest_format: ManifestFormat = Field(ManifestFormat.SMOOTH, alias="ManifestFormat")


class PlaybackUrlsResponse(_WireModel):
    asset_id: str = Field(alias="AssetId")
    manifest_available: bool = Field(alias="ManifestAvailable")
    playback_url: Optional[str] = Field(None, alias="PlaybackUrl")
    manifest_urls: list[str] = Field(default_factory=list, alias="ManifestUrls")
    base_urls: list[str] = Field(default_factory=list, alias="BaseUrls")


class PublishAssetRequest(_WireModel):
    asset_id: str = Field(alias="AssetId", min_length=1)
    locator_duration_minutes: Optional[int] = Field(None, alias="LocatorDurationMinutes", gt=0)
    manifest_format: ManifestFormat = Field(ManifestFormat.SMOOTH, alias="ManifestFormat")


class PublishAssetResponse(PlaybackUrlsResponse):
    locator_id: str = Field(alias="LocatorId")
    expiration: datetime = Field(alias="ExpirationDateTime")
