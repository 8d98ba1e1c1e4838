"""
Hierarchical document store with push-based change subscriptions.

Documents live under slash separated paths:
    artifacts/{app}/users/{tenant}/bookings/{doc_id}
A collection path has an odd number of segments, a document path an even
number. Every write publishes a fresh full snapshot to the subscriptions
watching the written document and its parent collection.

There is no cross-document transaction and no version check: two writes to
the same document simply apply in the order they arrive (last write wins).
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from repairdesk.database.models import StoredDocument


class DocumentNotFound(LookupError):
    pass


class StoreError(RuntimeError):
    """A read or write against the backing database failed"""


def split_document_path(path: str) -> tuple:
    """Return (collection_path, doc_id) for a document path"""
    segments = path.split("/")
    if len(segments) < 2 or len(segments) % 2 != 0 or not all(segments):
        raise ValueError(f"Invalid document path: {path!r}")
    return "/".join(segments[:-1]), segments[-1]


def check_collection_path(path: str) -> str:
    segments = path.split("/")
    if len(segments) % 2 != 1 or not all(segments):
        raise ValueError(f"Invalid collection path: {path!r}")
    return path


@dataclass
class DocumentSnapshot:
    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Document data with its id merged in"""
        return {**self.data, "id": self.id}


@dataclass
class CollectionSnapshot:
    path: str
    documents: List[DocumentSnapshot] = field(default_factory=list)

    def __len__(self):
        return len(self.documents)


Snapshot = Union[Optional[DocumentSnapshot], CollectionSnapshot]

_CLOSED = object()


class Subscription:
    """
    Cancellable handle over a stream of full snapshots.

    Usage:
        async with store.watch_collection(path) as sub:
            async for snapshot in sub:
                ...

    The first snapshot is the state at open time; afterwards one snapshot
    is delivered per write, in write order. Closing drops any snapshot
    not consumed yet.
    """

    def __init__(self, store: "DocumentStore", path: str, kind: str):
        self.store = store
        self.path = path
        self.kind = kind
        self._queue: asyncio.Queue = asyncio.Queue()
        self._last_sequence = -1
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> "Subscription":
        if self._opened:
            return self
        self._opened = True
        self.store._register(self)
        sequence = self.store.sequence
        try:
            snapshot = await self.store._load_snapshot(self)
        except Exception:
            self.close()
            raise
        self._deliver(snapshot, sequence)
        return self

    def close(self):
        if self._closed:
            return
        self._closed = True
        self.store._unregister(self)
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    def _deliver(self, snapshot: Snapshot, sequence: int):
        if self._closed:
            return
        # A slower initial load must not overwrite a newer write snapshot
        if sequence < self._last_sequence:
            return
        self._last_sequence = sequence
        self._queue.put_nowait(snapshot)

    def drain(self) -> List[Snapshot]:
        """Return snapshots already delivered, without waiting"""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                break
            items.append(item)
        return items

    async def __aenter__(self) -> "Subscription":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Snapshot:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item


class DocumentStore:
    """Async document store backed by the `documents` table"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._watchers: Dict[str, List[Subscription]] = {}
        self.sequence = 0

    # --- Reads ---

    async def get(self, doc_path: str) -> Optional[DocumentSnapshot]:
        split_document_path(doc_path)
        try:
            async with self.session_factory() as session:
                row = await session.get(StoredDocument, doc_path)
                if row is None:
                    return None
                return DocumentSnapshot(id=row.doc_id, path=row.path, data=dict(row.data or {}))
        except SQLAlchemyError as e:
            logging.error(f"Read failed for {doc_path}: {e}")
            raise StoreError(f"Failed to read {doc_path}") from e

    async def list(self, collection_path: str) -> List[DocumentSnapshot]:
        check_collection_path(collection_path)
        try:
            async with self.session_factory() as session:
                stmt = (
                    select(StoredDocument)
                    .where(StoredDocument.collection == collection_path)
                    .order_by(StoredDocument.doc_id)
                )
                result = await session.execute(stmt)
                return [
                    DocumentSnapshot(id=row.doc_id, path=row.path, data=dict(row.data or {}))
                    for row in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            logging.error(f"Read failed for {collection_path}: {e}")
            raise StoreError(f"Failed to read {collection_path}") from e

    # --- Writes ---

    async def add(self, collection_path: str, data: Dict[str, Any]) -> str:
        """Create a document with an auto-generated id"""
        check_collection_path(collection_path)
        doc_id = uuid.uuid4().hex[:20]
        await self.set(f"{collection_path}/{doc_id}", data)
        return doc_id

    async def set(self, doc_path: str, data: Dict[str, Any]):
        """Create or overwrite the document at a fixed path"""
        collection_path, doc_id = split_document_path(doc_path)
        try:
            async with self.session_factory() as session:
                row = await session.get(StoredDocument, doc_path)
                if row is None:
                    session.add(StoredDocument(
                        path=doc_path,
                        collection=collection_path,
                        doc_id=doc_id,
                        data=dict(data),
                    ))
                else:
                    row.data = dict(data)
                await session.commit()
        except SQLAlchemyError as e:
            logging.error(f"Write failed for {doc_path}: {e}")
            raise StoreError(f"Failed to write {doc_path}") from e

        logging.info(f"Document written: {doc_path}")
        await self._publish(doc_path, collection_path)

    async def update(self, doc_path: str, fields: Dict[str, Any]):
        """Shallow-merge fields into an existing document"""
        collection_path, _ = split_document_path(doc_path)
        try:
            async with self.session_factory() as session:
                row = await session.get(StoredDocument, doc_path)
                if row is None:
                    raise DocumentNotFound(doc_path)
                # Reassign so the JSON column is flagged dirty
                row.data = {**(row.data or {}), **fields}
                await session.commit()
        except SQLAlchemyError as e:
            logging.error(f"Update failed for {doc_path}: {e}")
            raise StoreError(f"Failed to update {doc_path}") from e

        logging.info(f"Document updated: {doc_path} ({', '.join(fields)})")
        await self._publish(doc_path, collection_path)

    # --- Subscriptions ---

    def watch_document(self, doc_path: str) -> Subscription:
        split_document_path(doc_path)
        return Subscription(self, doc_path, "document")

    def watch_collection(self, collection_path: str) -> Subscription:
        check_collection_path(collection_path)
        return Subscription(self, collection_path, "collection")

    def watcher_count(self, path: str) -> int:
        return len(self._watchers.get(path, []))

    def _register(self, subscription: Subscription):
        self._watchers.setdefault(subscription.path, []).append(subscription)

    def _unregister(self, subscription: Subscription):
        watchers = self._watchers.get(subscription.path, [])
        if subscription in watchers:
            watchers.remove(subscription)
        if not watchers:
            self._watchers.pop(subscription.path, None)

    async def _load_snapshot(self, subscription: Subscription) -> Snapshot:
        if subscription.kind == "document":
            return await self.get(subscription.path)
        return CollectionSnapshot(subscription.path, await self.list(subscription.path))

    async def _publish(self, doc_path: str, collection_path: str):
        self.sequence += 1
        sequence = self.sequence

        for path in (doc_path, collection_path):
            watchers = list(self._watchers.get(path, []))
            if not watchers:
                continue
            try:
                snapshot = await self._load_snapshot(watchers[0])
            except StoreError as e:
                # The write itself succeeded; listeners catch up on the next one
                logging.warning(f"Could not publish snapshot for {path}: {e}")
                continue
            for subscription in watchers:
                subscription._deliver(snapshot, sequence)
