from datetime import datetime
from models.db import db


class Provider(db.Model):
    __tablename__ = "providers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    title = db.Column(db.String(120), nullable=False)
    experience = db.Column(db.String(80), nullable=True)
    image = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    price_amount = db.Column(db.Integer, nullable=False)  # major units
    price_currency = db.Column(db.String(10), nullable=False, default="₹")  # display symbol
    price_duration = db.Column(db.Integer, nullable=False, default=50)  # minutes, informational

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    slots = db.relationship(
        "Slot",
        backref="provider",
        lazy=True,
        order_by="Slot.date",
        cascade="all, delete-orphan",
    )
