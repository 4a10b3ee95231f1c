"""
Media platform records shared by the provisioning and playback code.

Integer enums carry the values the Media Services REST API uses on the wire,
so providers can serialize them with int() and nothing else.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum, IntFlag
from typing import Optional


STREAMING_ENDPOINT_RUNNING = "Running"


class EndpointTier(str, Enum):
    CLASSIC = "Classic"
    STANDARD = "Standard"
    PREMIUM = "Premium"


class ContentKeyType(IntEnum):
    COMMON_ENCRYPTION = 0
    STORAGE_ENCRYPTION = 1
    CONFIGURATION_ENCRYPTION = 2
    ENVELOPE_ENCRYPTION = 4
    COMMON_ENCRYPTION_CBCS = 5
    FAIRPLAY_ASK = 6
    FAIRPLAY_PFX_PASSWORD = 7


class KeyDeliveryType(IntEnum):
    PLAYREADY_LICENSE = 1
    BASELINE_HTTP = 2
    WIDEVINE = 3


class KeyRestrictionType(IntEnum):
    OPEN = 0
    TOKEN_RESTRICTED = 1
    IP_RESTRICTED = 2


class AssetDeliveryProtocol(IntFlag):
    # A policy may cover several protocols at once, e.g. 7 = Smooth|DASH|HLS
    NONE = 0
    SMOOTH_STREAMING = 1
    DASH = 2
    HLS = 4
    HDS = 8
    PROGRESSIVE_DOWNLOAD = 16
    ALL = 0xFFFF


class AssetDeliveryPolicyType(IntEnum):
    NONE = 0
    BLOCKED = 1
    NO_DYNAMIC_ENCRYPTION = 2
    DYNAMIC_ENVELOPE_ENCRYPTION = 3
    DYNAMIC_COMMON_ENCRYPTION = 4
    DYNAMIC_COMMON_ENCRYPTION_CBCS = 5


class AssetDeliveryPolicyConfigurationKey(IntEnum):
    PLAYREADY_LICENSE_ACQUISITION_URL = 4
    WIDEVINE_LICENSE_ACQUISITION_URL = 7
    WIDEVINE_BASE_LICENSE_ACQUISITION_URL = 8


class LocatorType(IntEnum):
    SAS = 1
    ON_DEMAND_ORIGIN = 2


class AccessPermissions(IntEnum):
    READ = 1


@dataclass
class Asset:
    id: str
    name: str = ""


@dataclass
class AssetFile:
    name: str
    is_primary: bool = False


@dataclass
class StreamingEndpoint:
    name: str
    host_name: str
    state: str = STREAMING_ENDPOINT_RUNNING
    cdn_enabled: bool = False
    scale_units: int = 0
    version: str = "2.0"
    id: Optional[str] = None


@dataclass
class Locator:
    """A time-bounded access grant exposing a base path to an asset's files."""
    id: str
    type: LocatorType
    expiration: datetime
    content_access_component: str
    path: Optional[str] = None


@dataclass
class ContentKey:
    id: str  # nb:kid:UUID:<guid>
    content_key_type: ContentKeyType = ContentKeyType.COMMON_ENCRYPTION
    name: str = ""
    authorization_policy_id: Optional[str] = None


@dataclass
class KeyRestriction:
    name: str
    restriction_type: KeyRestrictionType = KeyRestrictionType.OPEN
    requirements: Optional[str] = None


@dataclass
class AuthorizationPolicyOption:
    id: str
    name: str
    key_delivery_type: KeyDeliveryType
    key_delivery_configuration: str
    restrictions: list[KeyRestriction] = field(default_factory=list)


@dataclass
class AuthorizationPolicy:
    id: str
    name: str
    options: list[AuthorizationPolicyOption] = field(default_factory=list)


@dataclass
class DeliveryPolicy:
    id: str
    name: str
    protocol: AssetDeliveryProtocol
    policy_type: AssetDeliveryPolicyType
    configuration: dict[AssetDeliveryPolicyConfigurationKey, str] = field(default_factory=dict)


@dataclass
class AccessPolicy:
    id: str
    name: str
    duration_minutes: float
    permissions: AccessPermissions = AccessPermissions.READ
