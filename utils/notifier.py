import logging

from flask import current_app

from utils.emailer import send_email
from utils.events import BOOKING_CREATED, PAYMENT_VERIFIED, subscribe

logger = logging.getLogger(__name__)


def _details(payload: dict) -> str:
    price = payload.get("price") or {}
    lines = [
        f"Therapist: {payload.get('employeeName') or 'N/A'} ({payload.get('employeeTitle') or 'N/A'})",
        f"Date: {payload.get('date')}",
        f"Time: {payload.get('time')}",
        f"Session type: {payload.get('channel')}",
        f"Amount: {price.get('currency', '')}{price.get('amount')}",
        f"Status: {payload.get('status')} / payment {payload.get('paymentStatus')}",
    ]
    if payload.get("discountCode"):
        lines.append(f"Discount: {payload['discountCode']} (-{payload.get('discountAmount')})")
    return "\n".join(lines)


def _send(to_email, subject, body, event_name):
    ok, error = send_email(to_email, subject, body)
    if not ok:
        logger.warning("%s email to %s not sent: %s", event_name, to_email, error)


def on_booking_created(payload: dict) -> None:
    name = payload.get("userName") or "there"
    _send(
        payload.get("userEmail"),
        f"Booking received - Session with {payload.get('employeeName') or 'your therapist'}",
        f"Dear {name},\n\nYour booking has been received and is awaiting payment.\n\n{_details(payload)}\n",
        BOOKING_CREATED,
    )
    admin_email = current_app.config.get("ADMIN_NOTIFICATION_EMAIL")
    if admin_email:
        _send(
            admin_email,
            f"New booking #{payload.get('id')}",
            f"User: {payload.get('userEmail')}\n\n{_details(payload)}\n",
            BOOKING_CREATED,
        )


def on_payment_verified(payload: dict) -> None:
    name = payload.get("userName") or "there"
    _send(
        payload.get("userEmail"),
        f"Booking confirmed - Session with {payload.get('employeeName') or 'your therapist'}",
        f"Dear {name},\n\nWe received your payment. Your booking is confirmed.\n\n{_details(payload)}\n",
        PAYMENT_VERIFIED,
    )
    admin_email = current_app.config.get("ADMIN_NOTIFICATION_EMAIL")
    if admin_email:
        _send(
            admin_email,
            f"Payment received for booking #{payload.get('id')}",
            f"User: {payload.get('userEmail')}\nPayment id: {payload.get('paymentId')}\n\n{_details(payload)}\n",
            PAYMENT_VERIFIED,
        )


def register_notifier() -> None:
    subscribe(BOOKING_CREATED, on_booking_created)
    subscribe(PAYMENT_VERIFIED, on_payment_verified)
