import unittest

from models import db
from models.provider import Provider
from models.slot import Slot
from models.user import User
from services import booking_service
from support import AppTestCase, next_open_day


class CliTests(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.runner = self.app.test_cli_runner()

    def test_seed_demo_is_idempotent(self) -> None:
        result = self.runner.invoke(args=["seed-demo", "--days", "7"])
        self.assertEqual(result.exit_code, 0, result.output)
        # 6 open days in any week, 8 hours, 2 channels, 3 providers
        self.assertIn("288 slots created", result.output)
        self.assertEqual(Provider.query.count(), 3)
        self.assertFalse(any(s.date.weekday() == 6 for s in Slot.query.all()))

        again = self.runner.invoke(args=["seed-demo", "--days", "7"])
        self.assertIn("0 slots created", again.output)

    def test_reset_slots_frees_orphaned_reservations(self) -> None:
        user, _ = self.make_user()
        provider = self.make_provider()
        day = next_open_day()
        self.add_slot(provider, day, "11:00 AM")
        self.add_slot(provider, day, "12:00 PM", is_booked=True)
        booking_service.create_booking(user, provider.id, day, "11:00 AM", "Online")

        result = self.runner.invoke(args=["reset-slots"])

        self.assertIn("1 slots made available", result.output)
        self.assertTrue(self.slot_row(provider, day, "11:00 AM").is_booked)
        self.assertFalse(self.slot_row(provider, day, "12:00 PM").is_booked)

    def test_expire_bookings_respects_ttl_option(self) -> None:
        user, _ = self.make_user()
        provider = self.make_provider()
        day = next_open_day()
        self.add_slot(provider, day)
        booking_service.create_booking(user, provider.id, day, "11:00 AM", "Online")

        result = self.runner.invoke(args=["expire-bookings", "--ttl-minutes", "0"])
        self.assertIn("0 bookings expired", result.output)
        self.assertTrue(self.slot_row(provider, day).is_booked)

    def test_make_admin(self) -> None:
        user, _ = self.make_user()

        result = self.runner.invoke(args=["make-admin", "USER@example.com"])

        self.assertIn("promoted to ADMIN", result.output)
        db.session.expire_all()
        self.assertIn("ADMIN", {r.name for r in db.session.get(User, user.id).roles})
        self.assertIn("User not found", self.runner.invoke(args=["make-admin", "ghost@example.com"]).output)


if __name__ == "__main__":
    unittest.main()
