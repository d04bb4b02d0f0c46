from flask import Blueprint, jsonify, current_app

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    gateway = current_app.extensions.get("payment_gateway")
    return jsonify(
        status="OK",
        payments="configured" if gateway is not None and gateway.is_configured else "unavailable",
    ), 200
