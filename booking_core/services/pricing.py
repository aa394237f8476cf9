from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from booking_core.core.exceptions import InvalidAmountError
from booking_core.core.utils import quantize_money, rental_days, to_decimal
from booking_core.schemas import PriceQuote
from booking_core.services.availability import validate_range

DEFAULT_DEPOSIT_RATIO = Decimal("0.20")

Number = Union[Decimal, int, float, str]


def calculate_price(
    daily_rate: Number,
    start_date: datetime,
    end_date: datetime,
    deposit_ratio: Optional[Number] = None,
) -> PriceQuote:
    """Price a rental of ``daily_rate`` per started day.

    Any range shorter than a day is charged as one day. Only the returned
    amounts are rounded (half-up, cents); intermediate products keep full
    precision. Plain dates are accepted and count from UTC midnight.
    """
    rate = to_decimal(daily_rate)
    if rate < 0:
        raise InvalidAmountError(f"daily rate must be >= 0, got {daily_rate}")

    ratio = (
        DEFAULT_DEPOSIT_RATIO if deposit_ratio is None else to_decimal(deposit_ratio)
    )
    if not Decimal("0") <= ratio <= Decimal("1"):
        raise InvalidAmountError(
            f"deposit ratio must be in [0, 1], got {deposit_ratio}"
        )

    validate_range(start_date, end_date)

    days = max(1, rental_days(start_date, end_date))
    total = rate * days
    deposit = total * ratio

    return PriceQuote(
        days=days,
        total_price=quantize_money(total),
        suggested_deposit=quantize_money(deposit),
    )
