"""
Asset publishing: grant streaming access through an on-demand-origin locator.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from protectflow.models import AccessPermissions, Asset, Locator, LocatorType
from protectflow.platform import MediaPlatform


# Locators start slightly in the past to tolerate clock skew with the origin
LOCATOR_START_OFFSET = timedelta(minutes=5)


def publish_asset(
    platform: MediaPlatform,
    asset: Asset,
    duration: timedelta,
    now: datetime | None = None,
) -> Locator:
    """
    Create a read access policy and an on-demand-origin locator for the asset.

    The locator expires `duration` after `now`; its access policy also
    covers the start offset.
    """
    if duration <= timedelta(0):
        raise ValueError("Locator duration must be positive")

    now = now or datetime.now(timezone.utc)
    access_policy = platform.create_access_policy(
        name=f"Streaming policy {asset.id}",
        duration_minutes=(duration + LOCATOR_START_OFFSET).total_seconds() / 60,
        permissions=AccessPermissions.READ,
    )
    locator = platform.create_locator(
        asset_id=asset.id,
        access_policy_id=access_policy.id,
        locator_type=LocatorType.ON_DEMAND_ORIGIN,
        start_time=now - LOCATOR_START_OFFSET,
    )
    print(f"PUBLISH: Created locator {locator.id} for asset '{asset.id}' (expires {locator.expiration.isoformat()})", flush=True)
    return locator
