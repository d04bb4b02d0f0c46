import hashlib
import hmac
import unittest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from app import create_app
from config import TestConfig
from models import db
from models.provider import Provider
from models.session import Session
from models.slot import Slot
from models.user import User, Role
from security.session import _hash_token
from services.availability import business_now


def next_open_day(offset: int = 1):
    """A non-Sunday date `offset` or more days from today in the business timezone."""
    day = business_now(TestConfig.BUSINESS_TIMEZONE).date() + timedelta(days=offset)
    while day.weekday() == 6:
        day += timedelta(days=1)
    return day


def sign(order_id: str, payment_id: str, secret: str = TestConfig.RAZORPAY_KEY_SECRET) -> str:
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


class AppTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.client = self.app.test_client()
        self._token_seq = 0

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    # -- fixtures -----------------------------------------------------------

    def make_user(self, email: str = "user@example.com", admin: bool = False):
        user = User(email=email, password_hash="unused", name="Test User")
        role = Role.query.filter_by(name="ADMIN" if admin else "USER").first()
        user.roles.append(role)
        db.session.add(user)
        db.session.flush()

        self._token_seq += 1
        token = f"token-{self._token_seq}-{email}"
        db.session.add(Session(
            user_id=user.id,
            token_hash=_hash_token(token),
            expires_at=datetime.utcnow() + timedelta(hours=1),
        ))
        db.session.commit()
        return user, token

    def make_provider(self, price: int = 1000, name: str = "Dr. Test", currency: str = "₹"):
        provider = Provider(name=name, title="Psychologist", price_amount=price, price_currency=currency)
        db.session.add(provider)
        db.session.commit()
        return provider

    def add_slot(self, provider, day, time="11:00 AM", channel="Online", is_booked=False):
        slot = Slot(provider_id=provider.id, date=day, time=time, channel=channel, is_booked=is_booked)
        db.session.add(slot)
        db.session.commit()
        return slot

    def slot_row(self, provider, day, time="11:00 AM", channel="Online"):
        db.session.expire_all()
        return Slot.query.filter_by(provider_id=provider.id, date=day, time=time, channel=channel).first()

    @staticmethod
    def auth(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    def gateway_returns(self, order_id="order_TEST123", status_code=200, body=None):
        """Stub the gateway HTTP session; returns the mock `post`."""
        response = MagicMock()
        response.ok = 200 <= status_code < 300
        response.status_code = status_code
        response.text = "error"
        response.json.return_value = body if body is not None else {
            "id": order_id, "amount": 88000, "currency": "INR",
        }
        gateway = self.app.extensions["payment_gateway"]
        gateway.session = MagicMock()
        gateway.session.post.return_value = response
        return gateway.session.post

    def issue_order(self, booking, order_id="order_1"):
        """Record a gateway order on the booking the way create-order does."""
        booking.payment_order_id = order_id
        db.session.commit()
        return booking
