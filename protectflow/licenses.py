"""
License response templates and the open authorization policy.

The policy carries one option per DRM system. Both options use an "Open"
restriction, so any player that asks gets a license.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field

from protectflow.models import (
    AuthorizationPolicy,
    AuthorizationPolicyOption,
    ContentKey,
    KeyDeliveryType,
    KeyRestriction,
    KeyRestrictionType,
)
from protectflow.platform import MediaPlatform, PlatformError


DEFAULT_AUTHORIZATION_POLICY_NAME = "Open Authorization Policy"
PLAYREADY_OPTION_NAME = "PlayReady Open Option"
WIDEVINE_OPTION_NAME = "Widevine Open Option"
OPEN_RESTRICTION_NAME = "Open"

PLAYREADY_TEMPLATE_NS = "http://schemas.microsoft.com/Azure/MediaServices/KeyDelivery/PlayReadyTemplate/v1"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"


# =============================================================================
# PlayReady
# =============================================================================

class PlayReadyLicenseType(str, Enum):
    NONPERSISTENT = "Nonpersistent"
    PERSISTENT = "Persistent"


@dataclass
class PlayReadyLicenseOptions:
    license_type: PlayReadyLicenseType = PlayReadyLicenseType.NONPERSISTENT
    allow_test_devices: bool = True
    # PlayRight settings such as {"DigitalVideoOnlyContentRestriction": "true"}
    # or output protection levels. Empty means no output restrictions.
    play_right: dict[str, str] = field(default_factory=dict)


def _pr(tag: str) -> str:
    return f"{{{PLAYREADY_TEMPLATE_NS}}}{tag}"


def playready_license_template(options: PlayReadyLicenseOptions | None = None) -> str:
    """
    Serialize a PlayReady license response template.

    The key delivery service reads this with a data contract serializer,
    which expects child elements in alphabetical order.
    """
    options = options or PlayReadyLicenseOptions()

    ET.register_namespace("", PLAYREADY_TEMPLATE_NS)
    ET.register_namespace("i", XSI_NS)

    root = ET.Element(_pr("PlayReadyLicenseResponseTemplate"))
    templates = ET.SubElement(root, _pr("LicenseTemplates"))
    template = ET.SubElement(templates, _pr("PlayReadyLicenseTemplate"))

    ET.SubElement(template, _pr("AllowTestDevices")).text = str(options.allow_test_devices).lower()
    content_key = ET.SubElement(template, _pr("ContentKey"))
    content_key.set(f"{{{XSI_NS}}}type", "ContentEncryptionKeyFromHeader")
    ET.SubElement(template, _pr("LicenseType")).text = options.license_type.value

    play_right = ET.SubElement(template, _pr("PlayRight"))
    for name in sorted(options.play_right):
        ET.SubElement(play_right, _pr(name)).text = options.play_right[name]

    return ET.tostring(root, encoding="unicode")


# =============================================================================
# Widevine
# =============================================================================

class RequiredOutputProtection(BaseModel):
    hdcp: str = "HDCP_NONE"


class ContentKeySpec(BaseModel):
    track_type: str = "SD"
    security_level: int = 1
    required_output_protection: RequiredOutputProtection = Field(default_factory=RequiredOutputProtection)


class PolicyOverrides(BaseModel):
    can_play: bool = True
    can_persist: bool = True
    can_renew: bool = False


class WidevineMessage(BaseModel):
    allowed_track_types: str = "SD_HD"
    content_key_specs: list[ContentKeySpec] = Field(default_factory=lambda: [ContentKeySpec()])
    policy_overrides: PolicyOverrides = Field(default_factory=PolicyOverrides)


def widevine_license_template(message: WidevineMessage | None = None) -> str:
    """Serialize a Widevine license template as JSON."""
    return (message or WidevineMessage()).model_dump_json()


# =============================================================================
# Authorization policy
# =============================================================================

def open_restrictions() -> list[KeyRestriction]:
    return [KeyRestriction(name=OPEN_RESTRICTION_NAME, restriction_type=KeyRestrictionType.OPEN)]


def build_open_authorization_policy(
    platform: MediaPlatform,
    key: ContentKey,
    name: str = DEFAULT_AUTHORIZATION_POLICY_NAME,
    playready: PlayReadyLicenseOptions | None = None,
    widevine: WidevineMessage | None = None,
) -> AuthorizationPolicy:
    """
    Create an open PlayReady + Widevine authorization policy and attach it to the key.

    All or nothing: if any step fails, the policy and options created so far
    are deleted and the PlatformError propagates.
    """
    option_specs = [
        (PLAYREADY_OPTION_NAME, KeyDeliveryType.PLAYREADY_LICENSE, playready_license_template(playready)),
        (WIDEVINE_OPTION_NAME, KeyDeliveryType.WIDEVINE, widevine_license_template(widevine)),
    ]

    policy = platform.create_authorization_policy(name)
    print(f"PROVISION: Created authorization policy {policy.id} '{name}'", flush=True)

    options: list[AuthorizationPolicyOption] = []
    try:
        for option_name, delivery_type, template in option_specs:
            option = platform.create_authorization_policy_option(
                name=option_name,
                key_delivery_type=delivery_type,
                key_delivery_configuration=template,
                restrictions=open_restrictions(),
            )
            options.append(option)
            platform.link_authorization_policy_option(policy.id, option.id)

        platform.update_content_key_authorization_policy(key.id, policy.id)
    except PlatformError:
        _discard_policy(platform, policy, options)
        raise

    policy.options = options
    key.authorization_policy_id = policy.id
    print(f"PROVISION: Attached authorization policy {policy.id} to key {key.id}", flush=True)
    return policy


def _discard_policy(
    platform: MediaPlatform,
    policy: AuthorizationPolicy,
    options: list[AuthorizationPolicyOption],
) -> None:
    for option in options:
        try:
            platform.delete_authorization_policy_option(option.id)
        except PlatformError as e:
            print(f"PROVISION: Failed to delete policy option {option.id}: {e}", flush=True)
    try:
        platform.delete_authorization_policy(policy.id)
        print(f"PROVISION: Rolled back authorization policy {policy.id}", flush=True)
    except PlatformError as e:
        print(f"PROVISION: Failed to delete authorization policy {policy.id}: {e}", flush=True)
