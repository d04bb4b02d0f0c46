from flask import Blueprint, request, jsonify, g

from services import booking_service
from services.errors import ValidationError
from utils.auth_context import login_required
from utils.serializers import serialize_booking

payments_bp = Blueprint("payments", __name__, url_prefix="/payments")


def _booking_id(data: dict) -> int:
    try:
        return int(data.get("bookingId"))
    except (TypeError, ValueError):
        raise ValidationError("Validation failed", details={"bookingId": "Booking ID is required"})


def _amount(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Validation failed", details={"amount": "Amount must be a number"})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Validation failed", details={"amount": "Amount must be a number"})
    if number <= 0 or number != int(number):
        raise ValidationError("Validation failed", details={"amount": "Amount must be a positive whole number"})
    return int(number)


@payments_bp.post("/create-order")
@login_required
def create_order():
    data = request.get_json(silent=True) or {}
    booking_id = _booking_id(data)
    amount = _amount(data.get("amount"))

    order = booking_service.create_payment_order(booking_id, g.user.id, amount=amount)
    return jsonify(order), 200


@payments_bp.post("/verify-payment")
@login_required
def verify_payment():
    data = request.get_json(silent=True) or {}

    required = ("gatewayOrderId", "gatewayPaymentId", "gatewaySignature", "bookingId")
    missing = {k: "required" for k in required if not data.get(k)}
    if missing:
        raise ValidationError("All payment details are required", details=missing)

    booking = booking_service.verify_payment(
        _booking_id(data),
        g.user,
        str(data["gatewayOrderId"]),
        str(data["gatewayPaymentId"]),
        str(data["gatewaySignature"]),
    )
    return jsonify(
        success=True,
        message="Payment verified and booking confirmed",
        booking=serialize_booking(booking, employee=booking_service.resolve_employee(booking)),
    ), 200
