"""
Pricing calculator

A stay is charged per midnight it crosses: nights are the whole days
between the check-in date and the check-out date. A stay that starts and
ends on the same day but still has positive length is one night. All money
is Decimal, quantized to cents.
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple, Union

from hotel_booking.services.errors import InvalidRangeError

CENTS = Decimal("0.01")

DateLike = Union[date, datetime]


def _day(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _instant(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def stay_dates(check_in: DateLike, check_out: DateLike) -> Tuple[date, date]:
    """Normalize a stay to the half-open date range [first night, check-out day)"""
    if _instant(check_out) <= _instant(check_in):
        raise InvalidRangeError("Check-out date must be after check-in date")

    start, end = _day(check_in), _day(check_out)
    if end == start:
        # same-day stay of positive length
        end = start + timedelta(days=1)
    return start, end


def count_nights(check_in: DateLike, check_out: DateLike) -> int:
    start, end = stay_dates(check_in, check_out)
    return (end - start).days


def to_money(value: Union[Decimal, int, str]) -> Decimal:
    if isinstance(value, float):
        raise TypeError("Currency amounts must be Decimal, not float")
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_total(
    base_price_per_night: Union[Decimal, int, str],
    check_in: DateLike,
    check_out: DateLike,
) -> Decimal:
    """
    Total price of a stay.

    >>> compute_total(Decimal("100.00"), date(2024, 1, 1), date(2024, 1, 4))
    Decimal('300.00')
    """
    nights = count_nights(check_in, check_out)
    return to_money(to_money(base_price_per_night) * nights)
