from datetime import datetime
from models.db import db

STATUS_PENDING = "Pending"
STATUS_CONFIRMED = "Confirmed"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"
STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)

PAYMENT_PENDING = "Pending"
PAYMENT_PAID = "Paid"
PAYMENT_FAILED = "Failed"
PAYMENT_REFUNDED = "Refunded"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED, PAYMENT_REFUNDED)


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    provider_id = db.Column(
        db.Integer, db.ForeignKey("providers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Snapshot taken at creation, shown when the provider row is gone
    employee_name = db.Column(db.String(120), nullable=True)
    employee_title = db.Column(db.String(120), nullable=True)

    booking_date = db.Column(db.Date, nullable=False)
    booking_time = db.Column(db.String(16), nullable=False)
    channel = db.Column(db.String(16), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    payment_status = db.Column(db.String(20), nullable=False, default=PAYMENT_PENDING)

    price_amount = db.Column(db.Integer, nullable=False)
    price_currency = db.Column(db.String(10), nullable=False, default="₹")
    original_amount = db.Column(db.Integer, nullable=True)
    discount_code = db.Column(db.String(40), nullable=True)
    discount_amount = db.Column(db.Integer, nullable=True)

    payment_order_id = db.Column(db.String(64), nullable=True, index=True)
    payment_id = db.Column(db.String(64), nullable=True)
    payment_signature = db.Column(db.String(128), nullable=True)
    paid_at = db.Column(db.DateTime, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    __table_args__ = (
        # one captured payment confirms at most one booking
        db.UniqueConstraint("payment_id", name="uq_bookings_payment_id"),
    )

    provider = db.relationship("Provider", lazy=True)
