"""Booking lifecycle: creation, payment order, payment verification, cancellation.

This module is the only writer of ``Slot.is_booked`` outside of seeding.
Every operation commits its state change before publishing events, and
event subscribers cannot fail the operation.
"""
import logging
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.booking import (
    Booking,
    STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED,
    PAYMENT_PENDING, PAYMENT_PAID,
)
from models.provider import Provider
from models.user import User
from services.errors import (
    BookingNotFound, BookingStateError, Forbidden, ProviderNotFound,
    SignatureMismatch, SlotNotFound, SlotUnavailable, ValidationError,
)
from services.payment_gateway import build_receipt
from services.pricing import count_prior_bookings, quote_price
from services.slot_store import SlotStore
from utils.audit import log_event
from utils.events import BOOKING_CREATED, PAYMENT_VERIFIED, publish
from utils.serializers import provider_summary, serialize_booking

logger = logging.getLogger(__name__)

UNKNOWN_EMPLOYEE = {"name": "Unknown Employee", "title": "N/A", "image": None}


def _gateway():
    return current_app.extensions["payment_gateway"]


def _event_payload(booking: Booking, user) -> dict:
    payload = serialize_booking(booking)
    payload["userEmail"] = getattr(user, "email", None)
    payload["userName"] = getattr(user, "name", None)
    return payload


def _owned_booking(booking_id: int, user_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)
    if booking.user_id != user_id:
        raise Forbidden()
    return booking


def _release_slot(booking: Booking) -> bool:
    """Free the slot held by a cancelled booking. Failures are logged only."""
    if booking.provider_id is None:
        logger.warning("Booking %s has no provider; slot not released", booking.id)
        return False
    try:
        released = SlotStore(booking.provider_id).mark_available(
            booking.booking_date, booking.booking_time, booking.channel
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to release slot for booking %s", booking.id)
        return False

    if not released:
        logger.warning(
            "No slot %s %s %s on provider %s for booking %s",
            booking.booking_date, booking.booking_time, booking.channel, booking.provider_id, booking.id,
        )
    return released


def _lock_user(user_id: int):
    return User.query.filter_by(id=user_id).with_for_update().one()


def create_booking(user, provider_id: int, booking_date, booking_time: str, channel: str, notes=None) -> Booking:
    provider = db.session.get(Provider, provider_id)
    if provider is None or not provider.is_active:
        raise ProviderNotFound(provider_id)

    store = SlotStore(provider.id)
    if store.find_available(booking_date, booking_time, channel) is None:
        log_event("BOOKING_FAIL_SLOT_TAKEN", user_id=user.id, entity="provider", entity_id=provider.id,
                  metadata={"date": booking_date, "time": booking_time, "channel": channel})
        raise SlotUnavailable(provider.id, booking_date, booking_time, channel)

    # Held until commit so two first bookings of one user cannot both see zero prior bookings
    _lock_user(user.id)
    quote = quote_price(
        provider.price_amount,
        provider.price_currency,
        count_prior_bookings(user.id),
        discount_percent=current_app.config.get("NEW_USER_DISCOUNT_PERCENT", 20),
        discount_code=current_app.config.get("NEW_USER_DISCOUNT_CODE", "WELCOME20"),
    )

    booking = Booking(
        user_id=user.id,
        provider_id=provider.id,
        employee_name=provider.name,
        employee_title=provider.title,
        booking_date=booking_date,
        booking_time=booking_time,
        channel=channel,
        status=STATUS_PENDING,
        payment_status=PAYMENT_PENDING,
        price_amount=quote.amount,
        price_currency=quote.currency,
        original_amount=quote.original_amount,
        discount_code=quote.discount_code,
        discount_amount=quote.discount_amount,
        notes=notes,
    )
    db.session.add(booking)

    # Booking row and slot reservation commit together or not at all
    try:
        store.mark_booked(booking_date, booking_time, channel)
        user.bookings.append(booking)
        db.session.commit()
    except (SlotUnavailable, SlotNotFound, IntegrityError):
        db.session.rollback()
        log_event("BOOKING_FAIL_SLOT_TAKEN", user_id=user.id, entity="provider", entity_id=provider_id,
                  metadata={"date": booking_date, "time": booking_time, "channel": channel, "race": True})
        raise SlotUnavailable(provider_id, booking_date, booking_time, channel)

    log_event("BOOKING_CREATE", user_id=user.id, entity="booking", entity_id=booking.id,
              metadata={"provider_id": provider_id, "amount": booking.price_amount,
                        "discount_code": booking.discount_code})
    publish(BOOKING_CREATED, _event_payload(booking, user))
    return booking


def get_booking(booking_id: int, user_id: int) -> Booking:
    return _owned_booking(booking_id, user_id)


def resolve_employee(booking: Booking) -> dict:
    """Live provider data when available, else the snapshot stored on the booking."""
    if booking.provider_id is not None:
        provider = db.session.get(Provider, booking.provider_id)
        if provider is not None:
            return provider_summary(provider)

    if booking.employee_name:
        return {
            "id": booking.provider_id,
            "name": booking.employee_name,
            "title": booking.employee_title or "N/A",
            "image": None,
        }
    return dict(UNKNOWN_EMPLOYEE)


def list_user_bookings(user_id: int) -> list:
    rows = (
        Booking.query
        .filter_by(user_id=user_id)
        .order_by(Booking.booking_date.desc(), Booking.created_at.desc())
        .all()
    )
    return [serialize_booking(b, employee=resolve_employee(b)) for b in rows]


def create_payment_order(booking_id: int, user_id: int, amount=None) -> dict:
    booking = _owned_booking(booking_id, user_id)

    if booking.status == STATUS_CANCELLED:
        raise BookingStateError("Booking is cancelled")
    if booking.payment_status == PAYMENT_PAID:
        raise BookingStateError("Booking already paid")

    # The stored price is what gets charged; never re-derive the discount here
    if amount is not None and amount != booking.price_amount:
        raise ValidationError(
            "Amount does not match booking price",
            details={"amount": f"expected {booking.price_amount}"},
        )

    gateway = _gateway()
    order = gateway.create_order(
        booking.price_amount,
        current_app.config.get("PAYMENT_CURRENCY", "INR"),
        notes={
            "bookingId": str(booking.id),
            "userId": str(user_id),
            "employeeId": str(booking.provider_id or ""),
        },
        receipt=build_receipt(booking.id),
    )

    booking.payment_order_id = order.order_id
    db.session.commit()

    log_event("PAYMENT_ORDER_CREATED", user_id=user_id, entity="booking", entity_id=booking.id,
              metadata={"order_id": order.order_id, "amount": order.amount})
    return {
        "orderId": order.order_id,
        "amount": order.amount,
        "currency": order.currency,
        "key": gateway.key_id,
    }


def _confirmation_values(booking: Booking, order_id: str, payment_id: str, signature: str) -> dict:
    values = {
        Booking.payment_order_id: order_id,
        Booking.payment_id: payment_id,
        Booking.payment_signature: signature,
        Booking.status: STATUS_CONFIRMED,
        Booking.payment_status: PAYMENT_PAID,
        Booking.paid_at: datetime.utcnow(),
    }
    if not booking.employee_name and booking.provider is not None:
        values[Booking.employee_name] = booking.provider.name
        values[Booking.employee_title] = booking.provider.title
    return values


def _refuse_paid_cancellation(booking: Booking, user, order_id: str, payment_id: str):
    """The gateway captured money for a booking that is already cancelled; support has to refund it."""
    logger.warning(
        "Payment %s (order %s) captured for cancelled booking %s; refund required",
        payment_id, order_id, booking.id,
    )
    log_event("PAYMENT_AFTER_CANCEL", user_id=user.id, entity="booking", entity_id=booking.id,
              metadata={"order_id": order_id, "payment_id": payment_id,
                        "cancel_reason": booking.cancel_reason})
    raise BookingStateError("Booking is cancelled", details={"paymentId": payment_id})


def verify_payment(booking_id: int, user, order_id: str, payment_id: str, signature: str) -> Booking:
    booking = _owned_booking(booking_id, user.id)

    # Only the order issued for this booking can pay for it
    gateway = _gateway()
    order_matches = booking.payment_order_id is not None and booking.payment_order_id == order_id
    if not order_matches or not gateway.verify_signature(order_id, payment_id, signature):
        log_event("PAYMENT_VERIFY_FAIL", user_id=user.id, entity="booking", entity_id=booking.id,
                  metadata={"order_id": order_id, "payment_id": payment_id})
        raise SignatureMismatch(booking.id)

    if booking.status == STATUS_CANCELLED:
        _refuse_paid_cancellation(booking, user, order_id, payment_id)
    if booking.payment_status == PAYMENT_PAID:
        if booking.payment_id == payment_id:
            return booking
        raise BookingStateError("Booking already paid")

    # Conditional update: a cancel or expiry that lands after the checks above wins
    try:
        updated = (
            Booking.query
            .filter_by(id=booking.id, status=STATUS_PENDING, payment_status=PAYMENT_PENDING)
            .update(_confirmation_values(booking, order_id, payment_id, signature), synchronize_session="fetch")
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log_event("PAYMENT_VERIFY_FAIL", user_id=user.id, entity="booking", entity_id=booking.id,
                  metadata={"order_id": order_id, "payment_id": payment_id, "reason": "payment id reused"})
        raise SignatureMismatch(booking.id)

    if updated != 1:
        db.session.refresh(booking)
        if booking.status == STATUS_CANCELLED:
            _refuse_paid_cancellation(booking, user, order_id, payment_id)
        if booking.payment_status == PAYMENT_PAID and booking.payment_id == payment_id:
            return booking
        raise BookingStateError("Booking is no longer awaiting payment")

    log_event("PAYMENT_VERIFIED", user_id=user.id, entity="booking", entity_id=booking.id,
              metadata={"order_id": order_id, "payment_id": payment_id})
    publish(PAYMENT_VERIFIED, _event_payload(booking, user))
    return booking


def cancel_booking(booking_id: int, user_id: int, reason=None) -> Booking:
    booking = _owned_booking(booking_id, user_id)

    updated = (
        Booking.query
        .filter(Booking.id == booking.id, Booking.status != STATUS_CANCELLED)
        .update(
            {
                Booking.status: STATUS_CANCELLED,
                Booking.cancelled_at: datetime.utcnow(),
                Booking.cancel_reason: reason,
            },
            synchronize_session="fetch",
        )
    )
    db.session.commit()
    if updated != 1:
        # already cancelled, possibly by a concurrent request or the expiry sweep
        return booking

    log_event("BOOKING_CANCEL", user_id=user_id, entity="booking", entity_id=booking.id,
              metadata={"reason": reason})
    _release_slot(booking)
    return booking


def complete_booking(booking_id: int) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)

    updated = (
        Booking.query
        .filter_by(id=booking.id, status=STATUS_CONFIRMED)
        .update({Booking.status: STATUS_COMPLETED}, synchronize_session="fetch")
    )
    db.session.commit()
    if updated != 1:
        raise BookingStateError("Only confirmed bookings can be completed")
    return booking


def _expire_one(booking: Booking, now: datetime) -> bool:
    """Cancel one unpaid booking. False when it was paid or cancelled after the scan."""
    updated = (
        Booking.query
        .filter_by(id=booking.id, status=STATUS_PENDING, payment_status=PAYMENT_PENDING)
        .update(
            {
                Booking.status: STATUS_CANCELLED,
                Booking.cancelled_at: now,
                Booking.cancel_reason: "expired",
            },
            synchronize_session="fetch",
        )
    )
    db.session.commit()
    if updated != 1:
        return False

    _release_slot(booking)
    log_event("BOOKING_EXPIRED", entity="booking", entity_id=booking.id,
              metadata={"created_at": booking.created_at})
    return True


def expire_stale_bookings(now=None, ttl_minutes=None) -> int:
    """Cancel unpaid bookings older than the TTL and free their slots."""
    if ttl_minutes is None:
        ttl_minutes = current_app.config.get("PENDING_BOOKING_TTL_MINUTES", 10)
    if not ttl_minutes or ttl_minutes <= 0:
        return 0

    now = now or datetime.utcnow()
    cutoff = now - timedelta(minutes=ttl_minutes)
    stale = (
        Booking.query
        .filter(
            Booking.status == STATUS_PENDING,
            Booking.payment_status == PAYMENT_PENDING,
            Booking.created_at < cutoff,
        )
        .order_by(Booking.created_at.asc())
        .all()
    )

    expired = sum(1 for booking in stale if _expire_one(booking, now))
    if expired:
        logger.info("Expired %d unpaid bookings older than %d minutes", expired, ttl_minutes)
    return expired
