from datetime import date, timedelta

from models import db
from models.booking import Booking, STATUS_CANCELLED
from models.provider import Provider
from models.slot import Slot, CHANNELS
from models.user import Role
from services.availability import BusinessHours

DEFAULT_ROLES = ["USER", "ADMIN"]

DEMO_PROVIDERS = [
    {"name": "Dr. Ananya Rao", "title": "Clinical Psychologist", "experience": "8 years", "price_amount": 1100},
    {"name": "Rahul Mehta", "title": "Counselling Psychologist", "experience": "5 years", "price_amount": 1000},
    {"name": "Meera Iyer", "title": "Psychotherapist", "experience": "12 years", "price_amount": 1500},
]

def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()

def seed_slots(provider: Provider, hours: BusinessHours, start: date, days: int = 14) -> int:
    """Open every working hour on both channels for `days` days; existing keys are left alone."""
    existing = {
        (s.date, s.time, s.channel)
        for s in Slot.query.filter_by(provider_id=provider.id).all()
    }
    created = 0
    for offset in range(days):
        day = start + timedelta(days=offset)
        if not hours.is_open_on(day):
            continue
        for channel in CHANNELS:
            for label in hours.hours:
                if (day, label, channel) in existing:
                    continue
                db.session.add(Slot(provider_id=provider.id, date=day, time=label, channel=channel))
                created += 1
    db.session.commit()
    return created

def seed_demo(hours: BusinessHours, start: date, days: int = 14) -> int:
    created = 0
    for data in DEMO_PROVIDERS:
        provider = Provider.query.filter_by(name=data["name"]).first()
        if not provider:
            provider = Provider(price_currency="₹", **data)
            db.session.add(provider)
            db.session.commit()
        created += seed_slots(provider, hours, start, days)
    return created

def reset_slots() -> int:
    """Free slots that no Pending/Confirmed/Completed booking holds."""
    held = {
        (b.provider_id, b.booking_date, b.booking_time, b.channel)
        for b in Booking.query.filter(Booking.status != STATUS_CANCELLED).all()
    }
    freed = 0
    for slot in Slot.query.filter_by(is_booked=True).all():
        if (slot.provider_id, slot.date, slot.time, slot.channel) not in held:
            slot.is_booked = False
            freed += 1
    db.session.commit()
    return freed
