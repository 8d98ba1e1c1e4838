"""
Tenant path resolver.

Every tenant's data lives under artifacts/{app_id}/users/{tenant_id}/.
Repeatable collections sit directly below that root; the shop profile is
the fixed document profile/data.
"""
from dataclasses import dataclass

PROFILE_COLLECTION = "profile"
PROFILE_DOCUMENT = "data"

BOOKINGS = "bookings"
INVOICES = "invoices"
QUOTATIONS = "quotations"


def _check_segment(value: str, what: str) -> str:
    if not value or "/" in value:
        raise ValueError(f"Invalid {what}: {value!r}")
    return value


def tenant_root(app_id: str, tenant_id: str) -> str:
    return f"artifacts/{_check_segment(app_id, 'app id')}/users/{_check_segment(tenant_id, 'tenant id')}"


def tenant_collection_path(app_id: str, tenant_id: str, collection_name: str) -> str:
    """artifacts/{app_id}/users/{tenant_id}/{collection_name}"""
    _check_segment(collection_name, "collection name")
    if collection_name == PROFILE_COLLECTION:
        raise ValueError("'profile' is reserved for the shop profile document")
    return f"{tenant_root(app_id, tenant_id)}/{collection_name}"


def shop_profile_path(app_id: str, tenant_id: str) -> str:
    """artifacts/{app_id}/users/{tenant_id}/profile/data"""
    return f"{tenant_root(app_id, tenant_id)}/{PROFILE_COLLECTION}/{PROFILE_DOCUMENT}"


@dataclass(frozen=True)
class TenantPaths:
    app_id: str
    tenant_id: str

    def collection(self, name: str) -> str:
        return tenant_collection_path(self.app_id, self.tenant_id, name)

    def document(self, collection_name: str, doc_id: str) -> str:
        return f"{self.collection(collection_name)}/{_check_segment(doc_id, 'document id')}"

    @property
    def bookings(self) -> str:
        return self.collection(BOOKINGS)

    @property
    def invoices(self) -> str:
        return self.collection(INVOICES)

    @property
    def quotations(self) -> str:
        return self.collection(QUOTATIONS)

    @property
    def profile(self) -> str:
        return shop_profile_path(self.app_id, self.tenant_id)
