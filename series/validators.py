"""
Core validators for canonical price records.
Pure functions - no IO, network, or side effects.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List

from series.models import PriceRecord, PRICE_FIELDS


class ValidationError(ValueError):
    """Raised when data validation fails."""
    pass


class OutOfOrderError(ValidationError):
    """Raised when a series is not strictly increasing by trade date."""
    pass


def validate_price_record(record: PriceRecord) -> None:
    """
    Validate a canonical price record.

    Zero prices are accepted (metrics degrade to None on zero
    denominators); negative prices are not.

    Args:
        record: PriceRecord to check

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(record.instrument_id, str) or not record.instrument_id:
        raise ValidationError(f"instrument_id must be non-empty string, got {record.instrument_id!r}")

    # datetime is a date subclass but carries a time component
    if not isinstance(record.trade_date, date) or isinstance(record.trade_date, datetime):
        raise ValidationError(f"trade_date must be date, got {type(record.trade_date)}")

    for field in PRICE_FIELDS:
        value = getattr(record, field)
        if not isinstance(value, Decimal):
            raise ValidationError(f"{field} must be Decimal, got {type(value)}")

        if not value.is_finite():
            raise ValidationError(f"{field} must be finite, got {value}")

        if value < 0:
            raise ValidationError(f"{field} must be non-negative, got {value}")

    # bool is an int subclass
    if not isinstance(record.volume, int) or isinstance(record.volume, bool):
        raise ValidationError(f"volume must be integer, got {type(record.volume)}")

    if record.volume < 0:
        raise ValidationError(f"volume must be non-negative, got {record.volume}")

    high = record.high
    low = record.low

    if high < low:
        raise ValidationError(f"high ({high}) must be >= low ({low})")

    if high < record.open:
        raise ValidationError(f"high ({high}) must be >= open ({record.open})")

    if high < record.close:
        raise ValidationError(f"high ({high}) must be >= close ({record.close})")

    if low > record.open:
        raise ValidationError(f"low ({low}) must be <= open ({record.open})")

    if low > record.close:
        raise ValidationError(f"low ({low}) must be <= close ({record.close})")


def check_date_monotonicity(instrument_id: str, dates: List[date]) -> None:
    """
    Check that dates for one instrument are strictly increasing.

    Args:
        instrument_id: Instrument the dates belong to (for error messages)
        dates: Trade dates in series order

    Raises:
        OutOfOrderError: If dates are not strictly increasing or repeat
    """
    for i in range(1, len(dates)):
        if dates[i] == dates[i-1]:
            raise OutOfOrderError(
                f"Duplicate trade_date {dates[i]} for instrument {instrument_id}"
            )
        if dates[i] < dates[i-1]:
            raise OutOfOrderError(
                f"Instrument {instrument_id} dates not increasing: "
                f"{dates[i-1]} >= {dates[i]}"
            )
