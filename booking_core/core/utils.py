from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union
from uuid import uuid4 as _uuid4

CENT = Decimal("0.01")
ONE_DAY = timedelta(days=1)


def uuid4() -> str:
    return str(_uuid4())


def as_utc(value: Union[date, datetime]) -> datetime:
    # plain dates mean UTC midnight; naive datetimes (sqlite, clients) are UTC
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_decimal(value: Optional[Union[Decimal, int, float, str]]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artefacts such as 0.1 -> 0.1000000000000000055
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def rental_days(start: datetime, end: datetime) -> int:
    """Whole rental days between two instants, partial days rounded up."""
    days, remainder = divmod(as_utc(end) - as_utc(start), ONE_DAY)
    return days + 1 if remainder else days


def booking_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"BK-{now:%Y%m%d}-{uuid4()[:6].upper()}"
