"""
Per-tenant dashboard session.

One session exists per signed-in shop. It owns the live views for the
profile and the three collections, the notification queue and the active
module selection.
"""
import asyncio
import enum
import logging
from typing import Dict, List, Optional

from repairdesk.database.documents import DocumentStore
from repairdesk.schemas.records import Booking, Invoice, Quotation, ShopProfile
from repairdesk.services.booking_service import StatusBoard, group_by_status
from repairdesk.services.notification_service import NotificationService
from repairdesk.services.paths import TenantPaths
from repairdesk.services.profile_service import ensure_shop_profile
from repairdesk.services.subscription_service import is_subscription_active
from repairdesk.services.views import CollectionView, DocumentView
from repairdesk.utils.ui import MENU_BOOKINGS, MENU_INVOICES, MENU_QUOTATIONS, MENU_SETTINGS

SUBSCRIPTION_GATE = "subscription_gate"


class Module(str, enum.Enum):
    bookings = "bookings"
    invoices = "invoices"
    quotations = "quotations"
    settings = "settings"

    @property
    def label(self) -> str:
        return {
            Module.bookings: MENU_BOOKINGS,
            Module.invoices: MENU_INVOICES,
            Module.quotations: MENU_QUOTATIONS,
            Module.settings: MENU_SETTINGS,
        }[self]

    @classmethod
    def from_label(cls, label: str) -> Optional["Module"]:
        for module in cls:
            if module.label == label:
                return module
        return None


class DashboardSession:
    def __init__(self, store: DocumentStore, paths: TenantPaths, notifier: NotificationService = None):
        self.store = store
        self.paths = paths
        self.notifier = notifier or NotificationService()
        self.module = Module.bookings

        self.profile_view = DocumentView(store, paths.profile, ShopProfile)
        self.bookings_view = CollectionView(store, paths.bookings, Booking)
        self.invoices_view = CollectionView(store, paths.invoices, Invoice, sort_key=lambda i: i.date, reverse=True)
        self.quotations_view = CollectionView(
            store, paths.quotations, Quotation, sort_key=lambda q: q.generated_date, reverse=True
        )
        self._opened = False

    @property
    def tenant_id(self) -> str:
        return self.paths.tenant_id

    @property
    def _views(self) -> list:
        return [self.profile_view, self.bookings_view, self.invoices_view, self.quotations_view]

    async def open(self) -> "DashboardSession":
        """Bootstrap the profile, then start every listener"""
        if self._opened:
            return self
        profile = await ensure_shop_profile(self.store, self.paths)
        self.notifier.shop_name = profile.company_name or self.notifier.shop_name

        try:
            for view in self._views:
                await view.start()
        except Exception:
            await self.close()
            raise
        self._opened = True
        logging.info(f"Dashboard session opened for tenant {self.tenant_id}")
        return self

    async def close(self):
        for view in self._views:
            await view.stop()
        self._opened = False
        logging.info(f"Dashboard session closed for tenant {self.tenant_id}")

    def sync(self):
        for view in self._views:
            view.sync()

    # --- State ---

    @property
    def profile(self) -> Optional[ShopProfile]:
        return self.profile_view.value

    @property
    def currency(self) -> str:
        return self.profile.currency if self.profile else "ZAR"

    @property
    def bookings(self) -> List[Booking]:
        return self.bookings_view.items

    @property
    def invoices(self) -> List[Invoice]:
        return self.invoices_view.items

    @property
    def quotations(self) -> List[Quotation]:
        return self.quotations_view.items

    def board(self) -> StatusBoard:
        return group_by_status(self.bookings)

    def find_booking(self, booking_id: str) -> Optional[Booking]:
        return next((b for b in self.bookings if b.id == booking_id), None)

    @property
    def is_gated(self) -> bool:
        return not is_subscription_active(self.profile)

    def switch(self, module: Module) -> Module:
        self.module = Module(module)
        return self.module

    def screen(self) -> str:
        """What the shell shows: the gate or the active module"""
        if self.is_gated:
            return SUBSCRIPTION_GATE
        return self.module.value


class SessionRegistry:
    """Open dashboard sessions keyed by tenant id"""

    def __init__(self, store: DocumentStore, app_id: str):
        self.store = store
        self.app_id = app_id
        self._sessions: Dict[str, DashboardSession] = {}
        self._lock = asyncio.Lock()

    async def get(self, tenant_id) -> DashboardSession:
        tenant_id = str(tenant_id)
        async with self._lock:
            session = self._sessions.get(tenant_id)
            if session is None:
                session = DashboardSession(self.store, TenantPaths(self.app_id, tenant_id))
                await session.open()
                self._sessions[tenant_id] = session
        return session

    def __contains__(self, tenant_id) -> bool:
        return str(tenant_id) in self._sessions

    def __len__(self):
        return len(self._sessions)

    async def close(self, tenant_id):
        session = self._sessions.pop(str(tenant_id), None)
        if session:
            await session.close()

    async def close_all(self):
        for tenant_id in list(self._sessions):
            await self.close(tenant_id)
