import pytest

from repairdesk.services.paths import (
    TenantPaths, tenant_collection_path, shop_profile_path
)
from repairdesk.database.documents import split_document_path, check_collection_path


def test_collection_path_layout():
    assert tenant_collection_path("app", "42", "bookings") == "artifacts/app/users/42/bookings"


def test_profile_path_is_fixed_document():
    path = shop_profile_path("app", "42")
    assert path == "artifacts/app/users/42/profile/data"
    # Even number of segments: a document, not a collection
    assert split_document_path(path) == ("artifacts/app/users/42/profile", "data")


def test_tenants_are_isolated():
    a = TenantPaths("app", "1")
    b = TenantPaths("app", "2")
    assert a.bookings != b.bookings
    assert not b.bookings.startswith(a.bookings)


def test_collection_paths_have_odd_segments():
    p = TenantPaths("app", "7")
    for path in (p.bookings, p.invoices, p.quotations):
        assert check_collection_path(path) == path


def test_document_path():
    p = TenantPaths("app", "7")
    assert p.document("invoices", "abc") == "artifacts/app/users/7/invoices/abc"


@pytest.mark.parametrize("app_id,tenant_id,name", [
    ("", "1", "bookings"),
    ("app", "", "bookings"),
    ("app", "a/b", "bookings"),
    ("app", "1", ""),
    ("app", "1", "profile"),
])
def test_invalid_segments_rejected(app_id, tenant_id, name):
    with pytest.raises(ValueError):
        tenant_collection_path(app_id, tenant_id, name)
