from models.db import db

CHANNEL_ONLINE = "Online"
CHANNEL_IN_PERSON = "In-person"
CHANNELS = (CHANNEL_ONLINE, CHANNEL_IN_PERSON)


class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)
    time = db.Column(db.String(16), nullable=False)  # label, e.g. "10:00 AM"
    channel = db.Column(db.String(16), nullable=False, default=CHANNEL_ONLINE)

    is_booked = db.Column(db.Boolean, default=False, nullable=False)

    __table_args__ = (
        # One row per (provider, date, time, channel); reservations flip is_booked on this row
        db.UniqueConstraint("provider_id", "date", "time", "channel", name="uq_provider_slot_key"),
    )
