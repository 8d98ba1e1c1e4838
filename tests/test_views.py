import pytest

from repairdesk.database.documents import StoreError
from repairdesk.database.models import RepairStatus
from repairdesk.schemas.records import Booking, Invoice, ShopProfile
from repairdesk.services.dashboard import DashboardSession, Module, SessionRegistry, SUBSCRIPTION_GATE
from repairdesk.services.paths import TenantPaths
from repairdesk.services.views import CollectionView, DocumentView


def booking_doc(invoice_no, status="Confirmed"):
    return {
        "invoice_no": invoice_no, "booking_type": "Walk-in", "status": status,
        "created_at": "2026-01-01T00:00:00+00:00", "repair_details": {},
    }


@pytest.mark.asyncio
async def test_collection_view_follows_writes(store, paths):
    await store.add(paths.bookings, booking_doc("INV-1"))
    view = await CollectionView(store, paths.bookings, Booking).start()
    assert [b.invoice_no for b in view] == ["INV-1"]

    doc_id = await store.add(paths.bookings, booking_doc("INV-2"))
    await store.update(paths.document("bookings", doc_id), {"status": "Testing"})
    view.sync()

    assert len(view) == 2
    assert {b.invoice_no: b.status for b in view}["INV-2"] == RepairStatus.testing
    await view.stop()


@pytest.mark.asyncio
async def test_stopped_view_is_frozen(store, paths):
    async with CollectionView(store, paths.bookings, Booking) as view:
        assert view.active
    assert not view.active

    await store.add(paths.bookings, booking_doc("INV-1"))
    view.sync()
    assert view.items == []


@pytest.mark.asyncio
async def test_malformed_documents_are_skipped(store, paths):
    await store.add(paths.bookings, {"customer_name": "no status"})
    await store.add(paths.bookings, booking_doc("INV-1"))

    async with CollectionView(store, paths.bookings, Booking) as view:
        assert [b.invoice_no for b in view] == ["INV-1"]


@pytest.mark.asyncio
async def test_sorted_view(store, paths):
    for day in ("2026-01-02", "2026-01-03", "2026-01-01"):
        await store.add(paths.invoices, {"invoice_no": day, "date": day})

    async with CollectionView(store, paths.invoices, Invoice, sort_key=lambda i: i.date, reverse=True) as view:
        assert [i.date for i in view] == ["2026-01-03", "2026-01-02", "2026-01-01"]


@pytest.mark.asyncio
async def test_document_view(store, paths):
    async with DocumentView(store, paths.profile, ShopProfile) as view:
        assert view.value is None
        await store.set(paths.profile, {"company_name": "Fix-It"})
        view.sync()
        assert view.value.company_name == "Fix-It"


@pytest.mark.asyncio
async def test_dashboard_session_bootstraps_profile(store, paths):
    session = await DashboardSession(store, paths).open()

    assert session.profile.currency == "ZAR"
    assert session.screen() == Module.bookings.value
    session.switch(Module.invoices)
    assert session.screen() == "invoices"
    await session.close()


@pytest.mark.asyncio
async def test_dashboard_gated_when_inactive(store, paths):
    session = await DashboardSession(store, paths).open()

    await store.update(paths.profile, {"subscription_status": "inactive"})
    session.sync()

    assert session.is_gated
    assert session.screen() == SUBSCRIPTION_GATE
    await session.close()


@pytest.mark.asyncio
async def test_dashboard_board(store, paths):
    await store.add(paths.bookings, booking_doc("INV-1", "Testing"))
    session = await DashboardSession(store, paths).open()

    assert session.board().count(RepairStatus.testing) == 1
    assert session.find_booking(session.bookings[0].id).invoice_no == "INV-1"
    await session.close()


@pytest.mark.asyncio
async def test_registry_reuses_sessions(store):
    registry = SessionRegistry(store, "test-app")

    first = await registry.get(5)
    second = await registry.get("5")
    other = await registry.get(6)

    assert first is second
    assert other is not first
    assert first.paths.bookings != other.paths.bookings
    assert len(registry) == 2

    await registry.close_all()
    assert len(registry) == 0
    assert not first.bookings_view.active


def test_module_labels_round_trip():
    for module in Module:
        assert Module.from_label(module.label) is module
    assert Module.from_label("nope") is None


@pytest.mark.asyncio
async def test_failed_open_stops_started_views(store, monkeypatch):
    registry = SessionRegistry(store, "test-app")
    paths = TenantPaths("test-app", "7")
    list_documents = store.list

    async def failing_list(collection_path):
        if collection_path == paths.invoices:
            raise StoreError("Read failed")
        return await list_documents(collection_path)

    monkeypatch.setattr(store, "list", failing_list)

    for _ in range(2):
        with pytest.raises(StoreError):
            await registry.get(7)

    assert store.watcher_count(paths.profile) == 0
    assert store.watcher_count(paths.bookings) == 0
    assert store.watcher_count(paths.invoices) == 0
    assert 7 not in registry
