"""
Shared fixtures: an in-memory media platform and a configured app client.
"""

import base64
import itertools
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from fastapi.testclient import TestClient

from protectflow.config import Settings
from protectflow.crypto import content_key_id
from protectflow.models import (
    AccessPolicy,
    Asset,
    AssetFile,
    AuthorizationPolicy,
    AuthorizationPolicyOption,
    ContentKey,
    DeliveryPolicy,
    Locator,
    LocatorType,
    StreamingEndpoint,
)
from protectflow.platform import PlatformError


NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeMediaPlatform:
    """In-memory MediaPlatform with per-operation failure injection."""

    def __init__(self):
        self.assets: dict[str, Asset] = {}
        self.files: dict[str, list[AssetFile]] = {}
        self.locators: dict[str, list[Locator]] = {}
        self.asset_keys: dict[str, list[str]] = {}
        self.asset_delivery_policies: dict[str, list[str]] = {}
        self.endpoints: list[StreamingEndpoint] = []

        self.content_keys: dict[str, ContentKey] = {}
        self.key_values: dict[str, bytes] = {}
        self.authorization_policies: dict[str, AuthorizationPolicy] = {}
        self.policy_options: dict[str, AuthorizationPolicyOption] = {}
        self.policy_links: dict[str, list[str]] = {}
        self.delivery_policies: dict[str, DeliveryPolicy] = {}
        self.access_policies: dict[str, AccessPolicy] = {}

        self.key_delivery_urls = {
            1: "https://account.keydelivery.westus.media.azure.net/PlayReady/",
            3: "https://account.keydelivery.westus.media.azure.net/Widevine/?KID=11111111-2222-3333-4444-555555555555",
        }
        self.fail_on: set[str] = set()
        self.calls: list[str] = []
        self.closed = False
        self._ids = itertools.count(1)

    # --- test helpers ---

    def add_asset(self, asset_id="nb:cid:UUID:asset-1", files=("movie.ism",)):
        asset = Asset(id=asset_id, name="Movie")
        self.assets[asset_id] = asset
        self.files[asset_id] = [AssetFile(name=name, is_primary=False) for name in files]
        self.locators[asset_id] = []
        self.asset_keys[asset_id] = []
        self.asset_delivery_policies[asset_id] = []
        return asset

    def add_locator(self, asset_id, expiration, component=None, locator_type=LocatorType.ON_DEMAND_ORIGIN):
        locator = Locator(
            id=f"nb:lid:UUID:{next(self._ids)}",
            type=locator_type,
            expiration=expiration,
            content_access_component=component or f"loc-{next(self._ids)}",
        )
        self.locators[asset_id].append(locator)
        return locator

    def _next_id(self, prefix):
        return f"{prefix}{next(self._ids)}"

    def _call(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise PlatformError(500, "InternalError", f"{name} failed")

    # --- MediaPlatform ---

    def close(self):
        self.closed = True

    def get_asset(self, asset_id):
        self._call("get_asset")
        return self.assets.get(asset_id)

    def list_content_keys(self, asset_id):
        self._call("list_content_keys")
        return [self.content_keys[k] for k in self.asset_keys.get(asset_id, [])]

    def list_delivery_policies(self, asset_id):
        self._call("list_delivery_policies")
        return [self.delivery_policies[p] for p in self.asset_delivery_policies.get(asset_id, [])]

    def list_locators(self, asset_id):
        self._call("list_locators")
        return list(self.locators.get(asset_id, []))

    def list_files(self, asset_id):
        self._call("list_files")
        return list(self.files.get(asset_id, []))

    def list_streaming_endpoints(self):
        self._call("list_streaming_endpoints")
        return list(self.endpoints)

    def create_content_key(self, key_identifier, key_value, key_type, name):
        self._call("create_content_key")
        key = ContentKey(id=content_key_id(key_identifier), content_key_type=key_type, name=name)
        self.content_keys[key.id] = key
        self.key_values[key.id] = key_value
        return key

    def link_content_key(self, asset_id, key_id):
        self._call("link_content_key")
        self.asset_keys[asset_id].append(key_id)

    def delete_content_key(self, key_id):
        self._call("delete_content_key")
        del self.content_keys[key_id]
        for keys in self.asset_keys.values():
            if key_id in keys:
                keys.remove(key_id)

    def update_content_key_authorization_policy(self, key_id, policy_id):
        self._call("update_content_key_authorization_policy")
        self.content_keys[key_id].authorization_policy_id = policy_id

    def get_key_delivery_url(self, key_id, key_delivery_type):
        self._call("get_key_delivery_url")
        return self.key_delivery_urls[int(key_delivery_type)]

    def create_authorization_policy(self, name):
        self._call("create_authorization_policy")
        policy = AuthorizationPolicy(id=self._next_id("nb:ckpid:UUID:"), name=name)
        self.authorization_policies[policy.id] = policy
        self.policy_links[policy.id] = []
        return policy

    def delete_authorization_policy(self, policy_id):
        self._call("delete_authorization_policy")
        del self.authorization_policies[policy_id]
        del self.policy_links[policy_id]

    def create_authorization_policy_option(self, name, key_delivery_type, key_delivery_configuration, restrictions):
        self._call("create_authorization_policy_option")
        self.calls.append(f"create_option:{key_delivery_type.name}")
        if f"create_option:{key_delivery_type.name}" in self.fail_on:
            raise PlatformError(500, "InternalError", f"{key_delivery_type.name} option failed")
        option = AuthorizationPolicyOption(
            id=self._next_id("nb:ckpoid:UUID:"),
            name=name,
            key_delivery_type=key_delivery_type,
            key_delivery_configuration=key_delivery_configuration,
            restrictions=list(restrictions),
        )
        self.policy_options[option.id] = option
        return option

    def delete_authorization_policy_option(self, option_id):
        self._call("delete_authorization_policy_option")
        del self.policy_options[option_id]

    def link_authorization_policy_option(self, policy_id, option_id):
        self._call("link_authorization_policy_option")
        self.policy_links[policy_id].append(option_id)

    def create_delivery_policy(self, name, protocol, policy_type, configuration):
        self._call("create_delivery_policy")
        policy = DeliveryPolicy(
            id=self._next_id("nb:adpid:UUID:"),
            name=name,
            protocol=protocol,
            policy_type=policy_type,
            configuration=dict(configuration),
        )
        self.delivery_policies[policy.id] = policy
        return policy

    def link_delivery_policy(self, asset_id, policy_id):
        self._call("link_delivery_policy")
        self.asset_delivery_policies[asset_id].append(policy_id)

    def delete_delivery_policy(self, policy_id):
        self._call("delete_delivery_policy")
        del self.delivery_policies[policy_id]

    def create_access_policy(self, name, duration_minutes, permissions):
        self._call("create_access_policy")
        policy = AccessPolicy(id=self._next_id("nb:pid:UUID:"), name=name,
                              duration_minutes=duration_minutes, permissions=permissions)
        self.access_policies[policy.id] = policy
        return policy

    def create_locator(self, asset_id, access_policy_id, locator_type, start_time):
        self._call("create_locator")
        duration = self.access_policies[access_policy_id].duration_minutes
        locator = Locator(
            id=f"nb:lid:UUID:{uuid.uuid4()}",
            type=locator_type,
            expiration=start_time + timedelta(minutes=duration),
            content_access_component=f"published-{next(self._ids)}",
        )
        self.locators[asset_id].append(locator)
        return locator


@pytest.fixture
def platform():
    return FakeMediaPlatform()


@pytest.fixture
def premium_endpoint():
    return StreamingEndpoint(
        name="premium",
        host_name="premium-account.streaming.media.azure.net",
        cdn_enabled=False,
        scale_units=1,
        version="2.0",
    )


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ams_rest_api_endpoint="https://account.restv2.westus.media.azure.net/api/",
        webhook_token="",
    )


@pytest.fixture
def client(platform, settings):
    from protectflow.app import app, registry

    registry.configure(settings_fn=lambda: settings, platform_factory=lambda _settings: platform)
    return TestClient(app)


@pytest.fixture(scope="session")
def protection_key():
    """RSA key pair and a self-signed base64 DER certificate."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "protection-key")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    der = cert.public_bytes(serialization.Encoding.DER)
    return private_key, base64.b64encode(der).decode()
