from flask import Blueprint, jsonify, g, request

from models.booking import Booking, STATUSES
from services import booking_service
from utils.audit import log_event
from utils.auth_context import require_roles
from utils.serializers import serialize_booking

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_bookings():
    status = request.args.get("status")
    if status and status not in STATUSES:
        return jsonify(error="Invalid status"), 400

    q = Booking.query
    if status:
        q = q.filter_by(status=status)

    rows = q.order_by(Booking.created_at.desc()).limit(200).all()
    log_event("ADMIN_BOOKINGS_VIEW", user_id=g.user.id)
    return jsonify([serialize_booking(b) for b in rows]), 200


@admin_bp.patch("/bookings/<int:booking_id>/complete")
@require_roles("ADMIN")
def complete_booking(booking_id: int):
    booking = booking_service.complete_booking(booking_id)
    log_event("ADMIN_BOOKING_COMPLETE", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(message="Booking marked as completed", booking=serialize_booking(booking)), 200
