from datetime import datetime

from flask import Blueprint, request, jsonify, g

from models.slot import CHANNELS
from services import booking_service
from services.errors import ValidationError
from utils.auth_context import login_required
from utils.serializers import serialize_booking

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")

NOTES_MAX_LEN = 1000


def parse_booking_date(value):
    # Accept "2026-01-20" or a full ISO datetime; only the date part is used
    if not isinstance(value, str) or not value.strip():
        raise ValueError("empty date")
    return datetime.fromisoformat(value.strip().split("T")[0]).date()


def _validate_create(data: dict) -> dict:
    errors = {}

    provider_id = data.get("providerId")
    if provider_id in (None, ""):
        errors["providerId"] = "Employee ID is required"
    else:
        try:
            provider_id = int(provider_id)
        except (TypeError, ValueError):
            errors["providerId"] = "Employee ID must be an integer"

    booking_date = None
    if not data.get("date"):
        errors["date"] = "Booking date is required"
    else:
        try:
            booking_date = parse_booking_date(data.get("date"))
        except ValueError:
            errors["date"] = "Invalid date. Use YYYY-MM-DD"

    booking_time = (data.get("time") or "").strip() if isinstance(data.get("time"), str) else ""
    if not booking_time:
        errors["time"] = "Booking time is required"

    channel = data.get("channel")
    if channel not in CHANNELS:
        errors["channel"] = "Channel must be Online or In-person"

    notes = data.get("notes")
    if notes is not None:
        if not isinstance(notes, str) or len(notes) > NOTES_MAX_LEN:
            errors["notes"] = f"Notes must be text up to {NOTES_MAX_LEN} characters"
        else:
            notes = notes.strip() or None

    if errors:
        raise ValidationError("Validation failed", details=errors)

    return {
        "provider_id": provider_id,
        "booking_date": booking_date,
        "booking_time": booking_time,
        "channel": channel,
        "notes": notes,
    }


@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    fields = _validate_create(data)

    booking = booking_service.create_booking(g.user, **fields)
    return jsonify(
        message="Booking created successfully",
        booking=serialize_booking(booking, employee=booking_service.resolve_employee(booking)),
    ), 201


@booking_bp.get("/my-bookings")
@login_required
def my_bookings():
    return jsonify(booking_service.list_user_bookings(g.user.id)), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = booking_service.get_booking(booking_id, g.user.id)
    return jsonify(serialize_booking(booking, employee=booking_service.resolve_employee(booking))), 200


@booking_bp.patch("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = data.get("reason")
    if isinstance(reason, str):
        reason = reason.strip()[:120] or None
    else:
        reason = None

    booking = booking_service.cancel_booking(booking_id, g.user.id, reason=reason)
    return jsonify(message="Booking cancelled successfully", booking=serialize_booking(booking)), 200
