import pytest

from repairdesk.database.models import QuotationStatus
from repairdesk.schemas.records import Quotation
from repairdesk.schemas.validation import QuoteForm, FormValidationError
from repairdesk.services.profile_service import ensure_shop_profile
from repairdesk.services.quotation_service import (
    calculate_quote, save_quotation, render_quotation, search_quotations
)


def test_premium_and_deductible():
    figures = calculate_quote(1200)
    assert figures.calculated_premium == pytest.approx(180)
    assert figures.total_customer_cost == 250


def test_deductible_ignores_estimate():
    assert calculate_quote(0).total_customer_cost == 250
    assert calculate_quote("not a number").calculated_premium == 0


@pytest.mark.asyncio
async def test_save_ber_report(store, paths, notifier):
    profile = await ensure_shop_profile(store, paths)
    form = QuoteForm(device_model="iPhone X", customer_name="Ann", fault_description="Water damage", is_ber=True)

    quote = await save_quotation(store, paths, notifier, form, profile)

    stored = Quotation.model_validate((await store.list(paths.quotations))[0].to_dict())
    assert stored.status == QuotationStatus.ber_report
    assert stored.calculated_premium == pytest.approx(180)
    assert stored.total_customer_cost == 250
    assert stored.generated_date
    assert "vat_no" not in stored.shop_profile
    assert quote.id == stored.id
    assert "BER Report" in notifier.drain()[0].text


@pytest.mark.asyncio
async def test_save_requires_fields(store, paths, notifier):
    with pytest.raises(FormValidationError):
        await save_quotation(store, paths, notifier, QuoteForm(device_model="iPhone X"), None)
    assert await store.list(paths.quotations) == []


@pytest.mark.asyncio
async def test_render_quote_and_report(store, paths):
    profile = await ensure_shop_profile(store, paths)
    form = QuoteForm(device_model="iPhone X", customer_name="Ann", fault_description="Cracked", imei="3569")

    quote_text = render_quotation(form, profile)
    assert "INSURANCE REPAIR QUOTATION" in quote_text
    assert "R 180.00" in quote_text
    assert "R 250.00" in quote_text

    form.is_ber = True
    report = render_quotation(form, profile, "USD")
    assert "BEYOND ECONOMICAL REPAIR REPORT" in report
    assert "$ 1200.00" in report


def test_search_quotations():
    quotes = [
        Quotation(customer_name="Ann", device_model="iPhone X", imei="111", generated_date="1", status="Quote Draft"),
        Quotation(customer_name="Bob", device_model="Galaxy", imei="222", generated_date="2", status="BER Report"),
    ]
    assert search_quotations(quotes, "galaxy") == [quotes[1]]
    assert search_quotations(quotes, "111") == [quotes[0]]
