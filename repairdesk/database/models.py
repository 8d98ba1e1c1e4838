import enum
from datetime import datetime
from sqlalchemy import String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from repairdesk.database.core import Base


# Enums
class RepairStatus(str, enum.Enum):
    """Closed repair status vocabulary, in board order"""
    new_request = "New Request"
    confirmed = "Confirmed"
    in_progress = "In Progress"
    awaiting_parts = "Awaiting Parts"
    testing = "Testing"
    ready_for_collection = "Ready for Collection"
    collected = "Collected"
    unable_to_repair = "Unable To Repair"

    @classmethod
    def ordered(cls) -> list:
        return list(cls)

    @property
    def is_terminal(self) -> bool:
        return self in (RepairStatus.collected, RepairStatus.unable_to_repair)


class BookingType(str, enum.Enum):
    walk_in = "Walk-in"
    online = "Online"


class InvoiceStatus(str, enum.Enum):
    draft = "Draft"
    sent = "Sent"
    paid = "Paid"


class QuotationStatus(str, enum.Enum):
    quote_draft = "Quote Draft"
    ber_report = "BER Report"


class SubscriptionStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# Documents
class StoredDocument(Base):
    """
    One document of the hierarchical store.

    `path` is the full document path (even number of segments),
    `collection` is its parent collection path.
    """
    __tablename__ = "documents"

    path: Mapped[str] = mapped_column(String, primary_key=True)
    collection: Mapped[str] = mapped_column(String, index=True)
    doc_id: Mapped[str] = mapped_column(String)
    data: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('ix_documents_collection_doc', 'collection', 'doc_id'),
    )
