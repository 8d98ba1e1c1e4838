"""
Shop Profile Service - per-tenant settings document
"""
import logging
from datetime import datetime, timezone

from repairdesk.database.documents import DocumentStore
from repairdesk.database.models import SubscriptionStatus
from repairdesk.schemas.records import ShopProfile
from repairdesk.schemas.validation import ShopProfileForm
from repairdesk.services.paths import TenantPaths


DEFAULT_PROFILE = {
    "company_name": "Digital Cafe",
    "address": "123 Main Street, Cape Town",
    "registration_no": "2023/123456/07",
    "vat_no": "4012345678",
    "email_phone": "+27 82 555 1234",
    "banking_details": "FNB, Account: 620XXXXXXX, Branch: 250655",
    "currency": "ZAR",
}


def default_profile() -> ShopProfile:
    # New shops start with full access
    return ShopProfile(
        **DEFAULT_PROFILE,
        subscription_status=SubscriptionStatus.active.value,
        subscription_start=datetime.now(timezone.utc).isoformat(),
    )


async def get_shop_profile(store: DocumentStore, paths: TenantPaths) -> ShopProfile | None:
    snapshot = await store.get(paths.profile)
    if snapshot is None:
        return None
    return ShopProfile.model_validate(snapshot.to_dict())


async def ensure_shop_profile(store: DocumentStore, paths: TenantPaths) -> ShopProfile:
    """
    Get or create the tenant's shop profile.

    Read and create are two separate calls; a concurrent first session
    for the same tenant may overwrite the other's default.
    """
    profile = await get_shop_profile(store, paths)
    if profile:
        return profile

    logging.info(f"Creating new shop profile for tenant {paths.tenant_id}")
    profile = default_profile()
    await store.set(paths.profile, profile.to_document())
    return profile


async def update_shop_profile(store: DocumentStore, paths: TenantPaths, form: ShopProfileForm) -> ShopProfile:
    """Write the settings fields; subscription fields are left untouched"""
    await store.update(paths.profile, form.model_dump())
    return await get_shop_profile(store, paths)


async def update_profile_field(store: DocumentStore, paths: TenantPaths, current: ShopProfile, field: str, value: str) -> ShopProfile:
    """Validate a single edited field against the full settings form"""
    if field not in ShopProfileForm.model_fields:
        raise ValueError(f"Unknown profile field: {field}")
    data = current.model_dump(include=set(ShopProfileForm.model_fields))
    data[field] = value
    form = ShopProfileForm.model_validate(data)
    return await update_shop_profile(store, paths, form)


def profile_snapshot(profile: ShopProfile | None, include_vat: bool = True) -> dict:
    """Immutable copy of the shop details embedded in invoices/quotations"""
    profile = profile or ShopProfile()
    snapshot = {
        "company_name": profile.company_name,
        "address": profile.address,
        "currency": profile.currency,
        "registration_no": profile.registration_no,
        "email_phone": profile.email_phone,
    }
    if include_vat:
        snapshot["vat_no"] = profile.vat_no
    return snapshot
