"""
Persisted record shapes.

Each model is the data of one document; the document id is merged in as
`id` when a snapshot is projected into a record.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from repairdesk.database.models import (
    RepairStatus, BookingType, InvoiceStatus, QuotationStatus, SubscriptionStatus
)
from repairdesk.schemas.validation import LenientFloat


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str = ""

    def to_document(self) -> dict:
        """JSON-ready document data (without id)"""
        return self.model_dump(mode="json", exclude={"id"})


# --- Shop profile ---

class ShopProfile(_Record):
    company_name: str = ""
    address: str = ""
    registration_no: str = ""
    vat_no: str = ""
    email_phone: str = ""
    banking_details: str = ""
    currency: str = "ZAR"
    subscription_status: str = SubscriptionStatus.inactive.value
    subscription_start: Optional[str] = None
    plan: Optional[str] = None


# --- Bookings ---

class RepairPart(BaseModel):
    name: str = ""
    cost: LenientFloat = 0


class RepairDetails(BaseModel):
    final_fault: str = ""
    diagnostic_notes: str = ""
    technician: str = ""
    parts_used: List[RepairPart] = []
    final_status: RepairStatus = RepairStatus.confirmed
    labor_cost: LenientFloat = 350

    @property
    def parts_cost(self) -> float:
        return sum(p.cost for p in self.parts_used)

    @property
    def estimated_cost(self) -> float:
        return self.parts_cost + self.labor_cost


class Booking(_Record):
    invoice_no: str
    consultant: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    customer_address: str = ""
    device_model: str = ""
    device_issue: str = ""
    imei: str = ""
    amount: LenientFloat = 0
    comments: str = ""
    preferred_date: str = ""
    urgency: str = ""
    booking_type: BookingType
    status: RepairStatus
    created_at: str
    updated_at: Optional[str] = None
    repair_details: Optional[RepairDetails] = None

    @field_validator('repair_details', mode='before')
    def empty_details(cls, v):
        # New bookings are written with an empty mapping
        return v or None


# --- Invoices ---

class LineItem(BaseModel):
    description: str = ""
    qty: LenientFloat = 1
    unit_price: LenientFloat = 0
    total: float = 0

    @model_validator(mode='after')
    def compute_total(self):
        self.total = self.qty * self.unit_price
        return self


class Invoice(_Record):
    invoice_no: str
    date: str
    customer_name: str = ""
    customer_address: str = ""
    customer_phone: str = ""
    bill_to: str = ""
    items: List[LineItem] = []
    subtotal: float = 0
    tax_rate: float = 15
    tax_amount: float = 0
    is_vat_exempt: bool = False
    total_amount: float = 0
    banking_details: str = ""
    status: InvoiceStatus = InvoiceStatus.draft
    related_booking_id: Optional[str] = None
    shop_profile: dict = {}


# --- Quotations ---

class Quotation(_Record):
    device_type: str = "Smartphone"
    device_model: str = ""
    customer_name: str = ""
    customer_email: str = ""
    imei: str = ""
    fault_description: str = ""
    repair_cost_estimate: LenientFloat = 0
    is_ber: bool = False
    calculated_premium: float = 0
    total_customer_cost: float = 0
    generated_date: str
    status: QuotationStatus
    shop_profile: dict = {}
