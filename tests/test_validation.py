import pytest
from pydantic import ValidationError

from repairdesk.schemas.validation import (
    BookingForm, QuoteForm, ShopProfileForm, FormValidationError, to_number
)


@pytest.mark.parametrize("value,expected", [
    ("12.5", 12.5),
    ("12,5", 12.5),
    ("1 200", 1200.0),
    (7, 7.0),
    ("", 0.0),
    ("abc", 0.0),
    (None, 0.0),
    (True, 0.0),
])
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_booking_form_required_fields():
    with pytest.raises(FormValidationError) as exc:
        BookingForm(customer_name="Ann", device_model="iPhone").check_required()
    assert "phone" in str(exc.value)


def test_booking_form_strips_and_defaults():
    form = BookingForm(customer_name="  Ann ", customer_phone="082", device_model="iPhone", amount="abc")
    assert form.check_required() is form
    assert form.customer_name == "Ann"
    assert form.amount == 0
    assert form.urgency == "Standard"


def test_quote_form_defaults():
    form = QuoteForm()
    assert form.repair_cost_estimate == 1200
    assert form.device_type == "Smartphone"
    assert not form.is_ber
    with pytest.raises(FormValidationError):
        form.check_required()


def test_profile_currency():
    assert ShopProfileForm(currency="usd").currency == "USD"
    with pytest.raises(ValidationError):
        ShopProfileForm(currency="GBP")
