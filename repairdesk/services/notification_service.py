"""
Notification queue.

Workflow code pushes notices here; the interface layer drains the queue
and renders them. Customer status messages are mocked: they are formatted,
logged and recorded, but no message transport exists.
"""
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional


@dataclass
class Notice:
    kind: str  # success | error | warning | info | status
    title: str
    text: str
    recipient: Optional[str] = None
    invoice_no: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None


class NotificationService:
    def __init__(self, shop_name: str = "Digital Cafe"):
        self.shop_name = shop_name
        self._queue: deque = deque()
        self.history: List[Notice] = []

    def push(self, kind: str, title: str, text: str, **extra) -> Notice:
        notice = Notice(kind=kind, title=title, text=text, created_at=datetime.now(timezone.utc), **extra)
        self._queue.append(notice)
        return notice

    def success(self, text: str, title: str = "Success") -> Notice:
        return self.push("success", title, text)

    def error(self, text: str, title: str = "Error") -> Notice:
        return self.push("error", title, text)

    def warning(self, text: str, title: str = "Warning") -> Notice:
        return self.push("warning", title, text)

    def info(self, text: str, title: str = "Info") -> Notice:
        return self.push("info", title, text)

    def format_status_message(self, customer_name: str, invoice_no: str, status: str) -> str:
        return (
            f"Hello {customer_name}, your repair #{invoice_no} is now in status: {status}. "
            f"We will contact you upon completion. ({self.shop_name})"
        )

    def send_status_notification(self, customer_phone: str, customer_name: str, invoice_no: str, status: str) -> Notice:
        """Mock SMS/WhatsApp status update to the customer"""
        message = self.format_status_message(customer_name, invoice_no, status)
        logging.info(f"[MOCK NOTIFICATION SENT] To: {customer_phone} | Message: {message}")

        notice = self.push(
            "status",
            "Status Update Sent!",
            message,
            recipient=customer_phone,
            invoice_no=invoice_no,
            status=status,
        )
        self.history.append(notice)
        return notice

    def pending(self) -> int:
        return len(self._queue)

    def drain(self) -> List[Notice]:
        """Take every queued notice, oldest first"""
        notices = list(self._queue)
        self._queue.clear()
        return notices
