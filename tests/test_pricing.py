import unittest

from models import db
from models.booking import Booking, STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PENDING
from services.pricing import count_prior_bookings, quote_price
from support import AppTestCase, next_open_day


class QuotePriceTests(unittest.TestCase):
    def test_new_user_gets_welcome_discount(self) -> None:
        quote = quote_price(1000, "₹", prior_bookings=0)

        self.assertEqual(quote.amount, 800)
        self.assertEqual(quote.original_amount, 1000)
        self.assertEqual(quote.discount_amount, 200)
        self.assertEqual(quote.discount_code, "WELCOME20")
        self.assertEqual(quote.currency, "₹")
        self.assertTrue(quote.discounted)

    def test_returning_user_pays_full_price(self) -> None:
        quote = quote_price(1000, "₹", prior_bookings=1)

        self.assertEqual(quote.amount, 1000)
        self.assertIsNone(quote.discount_code)
        self.assertIsNone(quote.discount_amount)
        self.assertIsNone(quote.original_amount)
        self.assertFalse(quote.discounted)

    def test_discount_rounds_to_nearest_unit(self) -> None:
        self.assertEqual(quote_price(1113, "₹", 0).discount_amount, 223)  # 222.6
        self.assertEqual(quote_price(1112, "₹", 0).discount_amount, 222)  # 222.4
        self.assertEqual(quote_price(1112, "₹", 0).amount, 890)

    def test_half_unit_rounds_up(self) -> None:
        quote = quote_price(1001, "₹", 0, discount_percent=50, discount_code="HALF")
        self.assertEqual(quote.discount_amount, 501)
        self.assertEqual(quote.amount, 500)
        self.assertEqual(quote.discount_code, "HALF")

    def test_same_inputs_same_quote(self) -> None:
        self.assertEqual(quote_price(1100, "₹", 0), quote_price(1100, "₹", 0))
        self.assertEqual(quote_price(1100, "₹", 0).amount, 880)


class PriorBookingCountTests(AppTestCase):
    def _booking(self, user, provider, status, time):
        db.session.add(Booking(
            user_id=user.id, provider_id=provider.id, booking_date=next_open_day(), booking_time=time,
            channel="Online", status=status, price_amount=1000,
        ))
        db.session.commit()

    def test_cancelled_bookings_do_not_count(self) -> None:
        user, _ = self.make_user()
        provider = self.make_provider()
        self.assertEqual(count_prior_bookings(user.id), 0)

        self._booking(user, provider, STATUS_CANCELLED, "10:00 AM")
        self.assertEqual(count_prior_bookings(user.id), 0)

        self._booking(user, provider, STATUS_PENDING, "11:00 AM")
        self._booking(user, provider, STATUS_CONFIRMED, "12:00 PM")
        self.assertEqual(count_prior_bookings(user.id), 2)


if __name__ == "__main__":
    unittest.main()
