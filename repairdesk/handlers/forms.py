"""
Step-by-step form filling over FSM data.

A form is a list of steps; the current index and collected values live in
the FSM storage under `form_index` and `form_values`.
"""
from dataclasses import dataclass
from typing import List, Optional

from aiogram.fsm.context import FSMContext
from aiogram.types import Message

SKIP = "-"


@dataclass
class Step:
    field: str
    prompt: str
    optional: bool = False


WALK_IN_STEPS = [
    Step("customer_name", "Customer name:"),
    Step("customer_phone", "Customer phone:"),
    Step("customer_email", "Customer email (or - to skip):", optional=True),
    Step("device_model", "Device model:"),
    Step("imei", "IMEI / serial (or -):", optional=True),
    Step("device_issue", "Describe the issue:", optional=True),
    Step("consultant", "Consultant name (or -):", optional=True),
    Step("amount", "Deposit / quoted amount (or -):", optional=True),
    Step("comments", "Comments (or -):", optional=True),
]

ONLINE_STEPS = [
    Step("customer_name", "Customer name:"),
    Step("customer_phone", "Customer phone:"),
    Step("customer_email", "Customer email (or -):", optional=True),
    Step("device_model", "Device model:"),
    Step("device_issue", "Describe the issue:", optional=True),
    Step("preferred_date", "Preferred drop-off date, YYYY-MM-DD (or -):", optional=True),
    Step("urgency", "Urgency: Standard or Urgent (or -):", optional=True),
]

INVOICE_STEPS = [
    Step("customer_name", "Customer name:"),
    Step("customer_phone", "Customer phone (or -):", optional=True),
    Step("customer_address", "Customer address (or -):", optional=True),
    Step("bill_to", "Bill to / device (or -):", optional=True),
]

QUOTE_STEPS = [
    Step("device_type", "Device type, e.g. Smartphone (or -):", optional=True),
    Step("device_model", "Device model:"),
    Step("customer_name", "Customer name:"),
    Step("customer_email", "Customer email (or -):", optional=True),
    Step("imei", "IMEI (or -):", optional=True),
    Step("fault_description", "Fault description:"),
    Step("repair_cost_estimate", "Estimated repair cost excl. VAT (or - for 1200):", optional=True),
]


async def start_form(message: Message, state: FSMContext, steps: List[Step], **extra):
    await state.update_data(form_index=0, form_values={}, **extra)
    await message.answer(steps[0].prompt)


async def collect_step(message: Message, state: FSMContext, steps: List[Step]) -> Optional[dict]:
    """
    Store the answer to the current step and ask the next one.

    Returns the collected values once the last step is answered, else None.
    """
    data = await state.get_data()
    index = data.get("form_index", 0)
    values = dict(data.get("form_values", {}))
    step = steps[index]

    answer = (message.text or "").strip()
    if answer == SKIP and step.optional:
        answer = ""
    elif not answer and not step.optional:
        await message.answer(f"This field is required. {step.prompt}")
        return None
    if answer:
        values[step.field] = answer

    index += 1
    await state.update_data(form_index=index, form_values=values)
    if index < len(steps):
        await message.answer(steps[index].prompt)
        return None
    return values
