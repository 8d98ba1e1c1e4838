"""
Subscription gate.

A shop may use the modules only while its profile carries the active
sentinel. Payment is simulated: a fixed delay, then the sentinel is written.
"""
import asyncio
import logging
from datetime import datetime, timezone

from repairdesk.database.documents import DocumentStore
from repairdesk.database.models import SubscriptionStatus
from repairdesk.schemas.records import ShopProfile
from repairdesk.services.paths import TenantPaths

SUBSCRIPTION_ACTIVE = SubscriptionStatus.active.value
MONTHLY_FEE = "R 179.00"
PLAN = "PRO"


def is_subscription_active(profile: ShopProfile | None) -> bool:
    if profile is None:
        return False
    return (profile.subscription_status or SubscriptionStatus.inactive.value) == SUBSCRIPTION_ACTIVE


async def activate_subscription(store: DocumentStore, paths: TenantPaths, delay: float = 3.0):
    """Mock payment processing, then unlock the shop"""
    logging.info(f"Processing mock subscription payment for tenant {paths.tenant_id}")
    await asyncio.sleep(delay)

    await store.update(paths.profile, {
        "subscription_status": SUBSCRIPTION_ACTIVE,
        "subscription_start": datetime.now(timezone.utc).isoformat(),
        "plan": PLAN,
    })
    logging.info(f"Subscription activated for tenant {paths.tenant_id}")
