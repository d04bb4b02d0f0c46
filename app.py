import logging
from datetime import timedelta

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from models import db
from models.user import User, Role
from routes import health_bp, auth_bp, admin_bp, booking_bp, payments_bp, providers_bp
from services.availability import BusinessHours, business_now
from services.booking_service import expire_stale_bookings
from services.errors import BookingError
from services.payment_gateway import PaymentGateway
from utils.auth_context import load_current_user
from utils.notifier import register_notifier
from utils.seed import seed_roles, seed_demo, reset_slots

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(providers_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    with app.app_context():
        if app.config.get("AUTO_CREATE_TABLES"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent)
        seed_roles()

    gateway = PaymentGateway.from_config(app.config)
    if not gateway.is_configured:
        logger.warning(
            "Payment gateway keys not configured (RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET); "
            "payment endpoints will answer 503"
        )
    app.extensions["payment_gateway"] = gateway
    app.extensions["business_hours"] = BusinessHours.from_config(app.config)

    register_notifier()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def _db_error(exc):
        db.session.rollback()
        logger.exception("Database error")
        return jsonify(error="Server error"), 500

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        admin_role = Role.query.filter_by(name="ADMIN").first()
        if not admin_role:
            admin_role = Role(name="ADMIN")
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        click.echo(f"{user.email} promoted to ADMIN")

    @app.cli.command("seed-demo")
    @click.option("--days", default=14, show_default=True, help="Days of slots to open from today.")
    def seed_demo_command(days):
        """Create demo providers and open their slots."""
        start = business_now(app.config.get("BUSINESS_TIMEZONE")).date()
        created = seed_demo(app.extensions["business_hours"], start, days)
        click.echo(f"{created} slots created")

    @app.cli.command("reset-slots")
    def reset_slots_command():
        """Free booked slots that no active booking holds."""
        click.echo(f"{reset_slots()} slots made available")

    @app.cli.command("expire-bookings")
    @click.option("--ttl-minutes", type=int, default=None, help="Override PENDING_BOOKING_TTL_MINUTES.")
    def expire_bookings_command(ttl_minutes):
        """Cancel unpaid bookings past their TTL and release their slots."""
        ttl = ttl_minutes if ttl_minutes is not None else app.config.get("PENDING_BOOKING_TTL_MINUTES", 10)
        count = expire_stale_bookings(ttl_minutes=ttl)
        click.echo(f"{count} bookings expired (ttl {timedelta(minutes=ttl)})")

#-------------------------


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
