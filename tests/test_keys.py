"""
Content key provisioning tests.
"""

import pytest

from protectflow.crypto import CONTENT_KEY_ID_PREFIX
from protectflow.keys import provision_key_if_absent
from protectflow.models import (
    AssetDeliveryPolicyType,
    AssetDeliveryProtocol,
    ContentKey,
    ContentKeyType,
    DeliveryPolicy,
)
from protectflow.platform import PlatformError


class TestProvisionKeyIfAbsent:
    """Idempotency guard and key creation"""

    def test_creates_linked_common_encryption_key(self, platform):
        asset = platform.add_asset()

        key = provision_key_if_absent(platform, asset)

        assert key is not None
        assert key.id.startswith(CONTENT_KEY_ID_PREFIX)
        assert key.content_key_type == ContentKeyType.COMMON_ENCRYPTION
        assert len(platform.key_values[key.id]) == 16
        assert platform.asset_keys[asset.id] == [key.id]

    def test_keys_are_random(self, platform):
        first = platform.add_asset(asset_id="nb:cid:UUID:a")
        second = platform.add_asset(asset_id="nb:cid:UUID:b")
        key_a = provision_key_if_absent(platform, first)
        key_b = provision_key_if_absent(platform, second)
        assert key_a.id != key_b.id
        assert platform.key_values[key_a.id] != platform.key_values[key_b.id]

    def test_noop_when_asset_has_a_key(self, platform):
        asset = platform.add_asset()
        existing = ContentKey(id="nb:kid:UUID:existing")
        platform.content_keys[existing.id] = existing
        platform.asset_keys[asset.id].append(existing.id)

        assert provision_key_if_absent(platform, asset) is None
        assert "create_content_key" not in platform.calls
        assert "create_authorization_policy" not in platform.calls
        assert platform.asset_keys[asset.id] == [existing.id]

    def test_noop_when_asset_has_a_delivery_policy(self, platform):
        asset = platform.add_asset()
        existing = DeliveryPolicy(
            id="nb:adpid:UUID:existing",
            name="Clear",
            protocol=AssetDeliveryProtocol.HLS,
            policy_type=AssetDeliveryPolicyType.NO_DYNAMIC_ENCRYPTION,
        )
        platform.delivery_policies[existing.id] = existing
        platform.asset_delivery_policies[asset.id].append(existing.id)

        assert provision_key_if_absent(platform, asset) is None
        assert "create_content_key" not in platform.calls

    def test_create_failure_propagates(self, platform):
        asset = platform.add_asset()
        platform.fail_on.add("create_content_key")

        with pytest.raises(PlatformError):
            provision_key_if_absent(platform, asset)
        assert platform.asset_keys[asset.id] == []

    def test_link_failure_deletes_created_key(self, platform):
        asset = platform.add_asset()
        platform.fail_on.add("link_content_key")

        with pytest.raises(PlatformError):
            provision_key_if_absent(platform, asset)

        assert platform.content_keys == {}
        assert "delete_content_key" in platform.calls
