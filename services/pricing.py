from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from models.booking import Booking, STATUS_CANCELLED

WELCOME_DISCOUNT_CODE = "WELCOME20"
WELCOME_DISCOUNT_PERCENT = 20


@dataclass(frozen=True)
class PriceQuote:
    amount: int
    currency: str
    original_amount: Optional[int] = None
    discount_code: Optional[str] = None
    discount_amount: Optional[int] = None

    @property
    def discounted(self) -> bool:
        return self.discount_code is not None


def count_prior_bookings(user_id: int) -> int:
    """Bookings of the user that still count towards the new-user check."""
    return Booking.query.filter(
        Booking.user_id == user_id,
        Booking.status != STATUS_CANCELLED,
    ).count()


def quote_price(
    base_amount: int,
    currency: str,
    prior_bookings: int,
    discount_percent: int = WELCOME_DISCOUNT_PERCENT,
    discount_code: str = WELCOME_DISCOUNT_CODE,
) -> PriceQuote:
    """Price for a new booking. First-time users get ``discount_percent`` off, rounded half up."""
    if prior_bookings > 0:
        return PriceQuote(amount=base_amount, currency=currency)

    discount = int(
        (Decimal(base_amount) * Decimal(discount_percent) / Decimal(100))
        .quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
    return PriceQuote(
        amount=base_amount - discount,
        currency=currency,
        original_amount=base_amount,
        discount_code=discount_code,
        discount_amount=discount,
    )
