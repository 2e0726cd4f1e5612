"""
Normalizers for turning raw price rows into canonical PriceRecords.
Pure functions - no IO, network, or side effects.
Minimal normalization - only when necessary.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, Iterable, List

from series.models import PriceRecord
from series.validators import ValidationError, validate_price_record


# market_data table column -> canonical field
COLUMN_ALIASES = {
    'stock_id': 'instrument_id',
    'ticker': 'instrument_id',
    'date': 'trade_date',
    'open_price': 'open',
    'close_price': 'close',
    'high_price': 'high',
    'low_price': 'low',
}

REQUIRED_FIELDS = ('instrument_id', 'trade_date', 'open', 'close', 'high', 'low', 'volume')


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through str so 185.25 stays 185.25 rather than its
    binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    try:
        if isinstance(value, str):
            return Decimal(value.strip())
        return Decimal(str(float(value)))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Cannot convert {value!r} to Decimal")


def to_date(value: Any) -> date:
    """Convert ISO strings, datetimes and pandas Timestamps to date."""
    # datetime (and pandas Timestamp) must be checked before date
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise ValidationError(f"Invalid trade_date string: {value!r}")
    raise ValidationError(f"trade_date must be date or ISO string, got {type(value)}")


def to_volume(value: Any) -> int:
    """Convert volume to int, rejecting fractional values."""
    if isinstance(value, bool):
        raise ValidationError("volume must be integer, got bool")
    try:
        volume = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"volume must be integer, got {value!r}")
    if volume != value and not isinstance(value, str):
        raise ValidationError(f"volume must be whole number, got {value!r}")
    return volume


def canonical_keys(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Map market_data column names onto canonical field names."""
    return {COLUMN_ALIASES.get(key, key): value for key, value in raw.items()}


def normalize_price_row(raw: Dict[str, Any]) -> PriceRecord:
    """
    Transform one raw row to a validated PriceRecord.

    Args:
        raw: Mapping with canonical or market_data column names

    Returns:
        Validated PriceRecord

    Raises:
        ValidationError: If required fields are missing or invalid
    """
    row = canonical_keys(raw)

    missing = set(REQUIRED_FIELDS) - set(row.keys())
    if missing:
        raise ValidationError(f"Missing required keys: {sorted(missing)}")

    record = PriceRecord(
        instrument_id=str(row['instrument_id']).strip(),
        trade_date=to_date(row['trade_date']),
        open=to_decimal(row['open']),
        close=to_decimal(row['close']),
        high=to_decimal(row['high']),
        low=to_decimal(row['low']),
        volume=to_volume(row['volume']),
    )
    validate_price_record(record)
    return record


def normalize_price_rows(raw_rows: Iterable[Dict[str, Any]]) -> List[PriceRecord]:
    """
    Transform raw price rows to canonical PriceRecords.

    Rows are not deduplicated: a repeated (instrument_id, trade_date) is
    rejected when the series is built.

    Args:
        raw_rows: Provider or table rows

    Returns:
        List of PriceRecords in input order
    """
    return [normalize_price_row(raw) for raw in raw_rows]
