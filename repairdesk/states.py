from aiogram.fsm.state import State, StatesGroup

class BookingFormState(StatesGroup):
    filling = State()  # walks the steps listed in handlers.forms
    confirm = State()

class StatusUpdateState(StatesGroup):
    waiting_for_invoice_no = State()
    waiting_for_status = State()

class BookingSearchState(StatesGroup):
    waiting_for_field = State()
    waiting_for_term = State()

class RepairDetailsState(StatesGroup):
    waiting_for_fault = State()
    waiting_for_notes = State()
    waiting_for_technician = State()
    waiting_for_labor = State()
    waiting_for_parts = State()
    waiting_for_status = State()

class InvoiceState(StatesGroup):
    filling = State()
    editing = State()
    waiting_for_item = State()
    waiting_for_tax_rate = State()

class InvoiceSearchState(StatesGroup):
    waiting_for_term = State()

class QuoteFormState(StatesGroup):
    filling = State()
    preview = State()

class QuoteSearchState(StatesGroup):
    waiting_for_term = State()

class SettingsState(StatesGroup):
    waiting_for_value = State()
