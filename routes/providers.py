from flask import Blueprint, request, jsonify, current_app

from models import db
from models.provider import Provider
from models.slot import CHANNELS, CHANNEL_ONLINE
from routes.booking import parse_booking_date
from services.availability import AvailabilityIndex, BusinessHours, business_now
from services.slot_store import SlotStore
from utils.serializers import provider_summary

providers_bp = Blueprint("providers", __name__, url_prefix="/providers")


def _active_provider(provider_id: int):
    provider = db.session.get(Provider, provider_id)
    if not provider or not provider.is_active:
        return None
    return provider


@providers_bp.get("/<int:provider_id>")
def get_provider(provider_id: int):
    provider = _active_provider(provider_id)
    if not provider:
        return jsonify(error="Employee not found"), 404
    return jsonify(provider_summary(provider)), 200


@providers_bp.get("/<int:provider_id>/availability")
def provider_availability(provider_id: int):
    # optional filters: channel (Online / In-person), date (YYYY-MM-DD)
    channel = request.args.get("channel") or CHANNEL_ONLINE
    if channel not in CHANNELS:
        return jsonify(error="Channel must be Online or In-person"), 400

    chosen = None
    date_str = request.args.get("date")
    if date_str:
        try:
            chosen = parse_booking_date(date_str)
        except ValueError:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    provider = _active_provider(provider_id)
    if not provider:
        return jsonify(error="Employee not found"), 404

    config = current_app.config
    index = AvailabilityIndex(
        SlotStore(provider.id).all(),
        channel,
        business_now(config.get("BUSINESS_TIMEZONE")),
        current_app.extensions.get("business_hours") or BusinessHours.from_config(config),
    )

    dates = index.candidate_dates(config.get("AVAILABILITY_DATE_COUNT", 7))
    if chosen is None and dates:
        chosen = dates[0]

    return jsonify(
        provider=provider_summary(provider),
        channel=channel,
        dates=[d.isoformat() for d in dates],
        date=chosen.isoformat() if chosen else None,
        times=index.times_for(chosen) if chosen else [],
    ), 200
