import pytest

from repairdesk.database.documents import CollectionSnapshot, DocumentNotFound

COLLECTION = "artifacts/app/users/1/bookings"


@pytest.mark.asyncio
async def test_set_get_update(store):
    path = f"{COLLECTION}/job1"
    assert await store.get(path) is None

    await store.set(path, {"status": "Confirmed", "customer_name": "Ann"})
    await store.update(path, {"status": "Testing"})

    snapshot = await store.get(path)
    assert snapshot.id == "job1"
    assert snapshot.data == {"status": "Testing", "customer_name": "Ann"}
    assert snapshot.to_dict()["id"] == "job1"


@pytest.mark.asyncio
async def test_update_missing_document(store):
    with pytest.raises(DocumentNotFound):
        await store.update(f"{COLLECTION}/nope", {"status": "Testing"})


@pytest.mark.asyncio
async def test_add_generates_ids(store):
    first = await store.add(COLLECTION, {"n": 1})
    second = await store.add(COLLECTION, {"n": 2})
    assert first != second

    docs = await store.list(COLLECTION)
    assert {d.id for d in docs} == {first, second}


@pytest.mark.asyncio
async def test_list_is_scoped_to_collection(store):
    await store.add(COLLECTION, {"n": 1})
    await store.add("artifacts/app/users/2/bookings", {"n": 2})
    assert len(await store.list(COLLECTION)) == 1


@pytest.mark.asyncio
async def test_invalid_paths(store):
    with pytest.raises(ValueError):
        await store.get(COLLECTION)
    with pytest.raises(ValueError):
        await store.list(f"{COLLECTION}/doc")


@pytest.mark.asyncio
async def test_collection_subscription_gets_snapshot_per_write(store):
    await store.add(COLLECTION, {"n": 1})

    sub = await store.watch_collection(COLLECTION).open()
    await store.add(COLLECTION, {"n": 2})
    await store.add(COLLECTION, {"n": 3})

    snapshots = sub.drain()
    assert all(isinstance(s, CollectionSnapshot) for s in snapshots)
    # Initial state, then one full snapshot per write
    assert [len(s) for s in snapshots] == [1, 2, 3]
    sub.close()


@pytest.mark.asyncio
async def test_document_subscription(store):
    path = f"{COLLECTION}/job1"
    async with store.watch_document(path) as sub:
        await store.set(path, {"status": "Confirmed"})
        await store.update(path, {"status": "Testing"})
        snapshots = sub.drain()

    assert snapshots[0] is None
    assert [s.data["status"] for s in snapshots[1:]] == ["Confirmed", "Testing"]


@pytest.mark.asyncio
async def test_closed_subscription_receives_nothing(store):
    sub = await store.watch_collection(COLLECTION).open()
    assert store.watcher_count(COLLECTION) == 1
    sub.close()
    assert store.watcher_count(COLLECTION) == 0

    await store.add(COLLECTION, {"n": 1})
    assert sub.drain() == []


@pytest.mark.asyncio
async def test_subscription_iteration_ends_on_close(store):
    sub = await store.watch_collection(COLLECTION).open()
    await store.add(COLLECTION, {"n": 1})

    received = []
    async for snapshot in sub:
        received.append(snapshot)
        if len(received) == 2:
            sub.close()
    assert [len(s) for s in received] == [0, 1]


@pytest.mark.asyncio
async def test_close_drops_unread_snapshots(store):
    sub = await store.watch_collection(COLLECTION).open()
    await store.add(COLLECTION, {"n": 1})
    sub.close()

    assert sub.drain() == []
    assert [snapshot async for snapshot in sub] == []


@pytest.mark.asyncio
async def test_other_collections_do_not_notify(store):
    sub = await store.watch_collection(COLLECTION).open()
    sub.drain()
    await store.add("artifacts/app/users/1/invoices", {"n": 1})
    assert sub.drain() == []
    sub.close()
