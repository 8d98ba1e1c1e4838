from typing import Annotated, Any, ClassVar, Dict, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class FormValidationError(ValueError):
    """A required form field is missing; raised before any write"""


def to_number(v: Any) -> float:
    """Lenient numeric input: anything unparseable becomes 0"""
    if v is None or isinstance(v, bool):
        return 0.0
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        # Replace common separators
        v = v.replace(',', '.').replace(' ', '')
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


LenientFloat = Annotated[float, BeforeValidator(to_number)]


CURRENCIES: Dict[str, Tuple[str, str]] = {
    "ZAR": ("South African Rand", "R"),
    "USD": ("US Dollar", "$"),
    "EUR": ("Euro", "€"),
}


class _Form(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    REQUIRED: ClassVar[Tuple[str, ...]] = ()
    REQUIRED_MESSAGE: ClassVar[str] = "Please fill in all required fields."

    def check_required(self):
        missing = [name for name in self.REQUIRED if not getattr(self, name)]
        if missing:
            raise FormValidationError(self.REQUIRED_MESSAGE)
        return self


class BookingForm(_Form):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("customer_name", "customer_phone", "device_model")
    REQUIRED_MESSAGE: ClassVar[str] = "Please fill in required customer name, phone, and device model."

    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    device_model: str = ""
    device_issue: str = ""
    imei: str = ""
    consultant: str = ""
    amount: LenientFloat = 0
    comments: str = ""
    preferred_date: str = ""
    urgency: str = "Standard"


class QuoteForm(_Form):
    REQUIRED: ClassVar[Tuple[str, ...]] = ("device_model", "customer_name", "fault_description")
    REQUIRED_MESSAGE: ClassVar[str] = "Please fill in Device Model, Customer Name, and Fault Description to generate a quote."

    device_type: str = "Smartphone"
    device_model: str = ""
    customer_name: str = ""
    customer_email: str = ""
    imei: str = ""
    fault_description: str = ""
    repair_cost_estimate: LenientFloat = 1200
    is_ber: bool = False


class ShopProfileForm(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    company_name: str = ""
    address: str = ""
    registration_no: str = ""
    vat_no: str = ""
    email_phone: str = ""
    banking_details: str = ""
    currency: str = Field(default="ZAR")

    @field_validator('currency', mode='before')
    def known_currency(cls, v):
        code = str(v or "ZAR").strip().upper()
        assert code in CURRENCIES, f"Unsupported currency {code}"
        return code