"""
Live views over the document store.

A view opens a subscription, keeps the latest projected state and is
refreshed by a background task (or on demand with `sync()`). Stopping a
view closes its subscription; no further updates are applied.
"""
import asyncio
import logging
from typing import Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from repairdesk.database.documents import CollectionSnapshot, DocumentSnapshot, DocumentStore, Subscription

T = TypeVar("T", bound=BaseModel)


class _View(Generic[T]):
    def __init__(self, store: DocumentStore, path: str, model: Type[T]):
        self.store = store
        self.path = path
        self.model = model
        self.subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task] = None
        self.updates = 0

    @property
    def active(self) -> bool:
        return self.subscription is not None and not self.subscription.closed

    def _subscribe(self) -> Subscription:
        raise NotImplementedError

    def _apply(self, snapshot):
        raise NotImplementedError

    def _project(self, snapshot: DocumentSnapshot) -> Optional[T]:
        try:
            return self.model.model_validate(snapshot.to_dict())
        except ValidationError as e:
            logging.warning(f"Skipping malformed document {snapshot.path}: {e.error_count()} error(s)")
            return None

    async def start(self):
        if self.active:
            return self
        self.subscription = self._subscribe()
        await self.subscription.open()
        self.sync()
        self._task = asyncio.create_task(self._listen())
        return self

    async def _listen(self):
        async for snapshot in self.subscription:
            self._apply(snapshot)
            self.updates += 1

    def sync(self):
        """Apply every snapshot delivered so far"""
        if not self.subscription:
            return
        for snapshot in self.subscription.drain():
            self._apply(snapshot)
            self.updates += 1

    async def stop(self):
        if self.subscription:
            self.subscription.close()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def __aenter__(self):
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()


class CollectionView(_View[T]):
    """
    Every document of one collection, as validated records.

    Usage:
        view = CollectionView(store, paths.invoices, Invoice, sort_key=lambda i: i.date, reverse=True)
        await view.start()
        view.items
    """

    def __init__(
        self,
        store: DocumentStore,
        path: str,
        model: Type[T],
        sort_key: Callable[[T], object] = None,
        reverse: bool = False,
    ):
        super().__init__(store, path, model)
        self.sort_key = sort_key
        self.reverse = reverse
        self.items: List[T] = []

    def _subscribe(self) -> Subscription:
        return self.store.watch_collection(self.path)

    def _apply(self, snapshot: CollectionSnapshot):
        items = [record for record in map(self._project, snapshot.documents) if record is not None]
        if self.sort_key:
            items.sort(key=self.sort_key, reverse=self.reverse)
        self.items = items

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


class DocumentView(_View[T]):
    """Single document; `value` is None while it does not exist"""

    def __init__(self, store: DocumentStore, path: str, model: Type[T]):
        super().__init__(store, path, model)
        self.value: Optional[T] = None

    def _subscribe(self) -> Subscription:
        return self.store.watch_document(self.path)

    def _apply(self, snapshot: Optional[DocumentSnapshot]):
        self.value = self._project(snapshot) if snapshot is not None else None
