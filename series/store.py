"""
Series store - ordered, immutable per-instrument price series.
Thin container layer with focus on ordering integrity.
"""

import logging
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Any, Iterable, Iterator, List, Mapping, Optional, Tuple

from series.frames import frame_to_records
from series.models import PriceRecord, PRICE_FIELDS
from series.normalizers import normalize_price_rows
from series.validators import OutOfOrderError, check_date_monotonicity, validate_price_record


logger = logging.getLogger(__name__)


class UnknownInstrumentError(KeyError):
    """Raised when the store holds no series for an instrument."""
    pass


class Series:
    """
    Ordered price records for a single instrument.

    Dates are strictly increasing with no duplicates and every record
    passes validate_price_record; both are checked at construction
    because every lag and rolling computation silently depends on them.

    Raises:
        ValidationError: If a record is invalid
        OutOfOrderError: If a record belongs to another instrument or
            dates are not strictly increasing
    """

    __slots__ = ('_instrument_id', '_records')

    def __init__(self, instrument_id: str, records: Iterable[PriceRecord] = ()):
        records = tuple(records)

        for record in records:
            if record.instrument_id != instrument_id:
                raise OutOfOrderError(
                    f"Record for {record.instrument_id} on {record.trade_date} "
                    f"does not belong to series {instrument_id}"
                )
            validate_price_record(record)

        check_date_monotonicity(instrument_id, [r.trade_date for r in records])

        self._instrument_id = instrument_id
        self._records = records

    @property
    def instrument_id(self) -> str:
        return self._instrument_id

    @property
    def records(self) -> Tuple[PriceRecord, ...]:
        return self._records

    @property
    def dates(self) -> List[date]:
        return [r.trade_date for r in self._records]

    def values(self, field: str = 'close') -> List[Decimal]:
        """Column of one price field (open, close, high, low) or volume."""
        if field not in PRICE_FIELDS and field != 'volume':
            raise ValueError(f"Unknown price field: {field}")
        return [getattr(r, field) for r in self._records]

    def window(self, index: int, size: int) -> Tuple[PriceRecord, ...]:
        """Rows [max(0, index-size+1) .. index]."""
        if size < 1:
            raise ValueError("Window size must be positive")
        if not 0 <= index < len(self._records):
            raise IndexError(f"Row {index} out of range for {len(self._records)} rows")
        return self._records[max(0, index - size + 1):index + 1]

    def between(self, start: Optional[date] = None, end: Optional[date] = None) -> 'Series':
        """Sub-series with start <= trade_date <= end (either bound optional)."""
        kept = [
            r for r in self._records
            if (start is None or r.trade_date >= start)
            and (end is None or r.trade_date <= end)
        ]
        return Series(self._instrument_id, kept)

    def since(self, start: date) -> 'Series':
        """Sub-series of rows dated on or after start."""
        return self.between(start=start)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PriceRecord]:
        return iter(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, Series):
            return NotImplemented
        return self._instrument_id == other._instrument_id and self._records == other._records

    def __hash__(self) -> int:
        return hash((self._instrument_id, self._records))

    def __repr__(self) -> str:
        if not self._records:
            return f"Series({self._instrument_id!r}, empty)"
        return (
            f"Series({self._instrument_id!r}, {len(self._records)} rows, "
            f"{self._records[0].trade_date} to {self._records[-1].trade_date})"
        )


class SeriesStore:
    """
    Read-only mapping of instrument_id to Series.

    Built once per analysis run and passed explicitly into each analytic
    function.
    """

    def __init__(self, series: Iterable[Series] = ()):
        by_instrument: Dict[str, Series] = {}
        for s in series:
            if s.instrument_id in by_instrument:
                raise OutOfOrderError(f"Duplicate series for instrument {s.instrument_id}")
            by_instrument[s.instrument_id] = s
        self._series = by_instrument

    @classmethod
    def from_records(cls, records: Iterable[PriceRecord], sort: bool = False) -> 'SeriesStore':
        """
        Group records by instrument into validated series.

        Args:
            records: Price records for any number of instruments
            sort: Order each instrument's records by date first. Without
                it, input order must already be strictly increasing.

        Returns:
            SeriesStore with one Series per instrument

        Raises:
            OutOfOrderError: If an instrument's dates are out of order or repeat
            ValidationError: If a record fails validate_price_record
        """
        grouped: Dict[str, List[PriceRecord]] = {}
        for record in records:
            grouped.setdefault(record.instrument_id, []).append(record)

        series = []
        for instrument_id, rows in grouped.items():
            if sort:
                rows = sorted(rows, key=lambda r: r.trade_date)
            series.append(Series(instrument_id, rows))

        logger.debug(f"Built store with {len(series)} instruments from {sum(len(s) for s in series)} records")
        return cls(series)

    @classmethod
    def from_rows(cls, rows: Iterable[Dict[str, Any]], sort: bool = False) -> 'SeriesStore':
        """Normalize raw rows (canonical or market_data columns) and group them."""
        return cls.from_records(normalize_price_rows(rows), sort=sort)

    @classmethod
    def from_frame(cls, df) -> 'SeriesStore':
        """Build from a pandas DataFrame shaped like the market_data table."""
        return cls.from_records(frame_to_records(df), sort=True)

    def get_series(self, instrument_id: str) -> Series:
        try:
            return self._series[instrument_id]
        except KeyError:
            raise UnknownInstrumentError(instrument_id) from None

    def get_all(self) -> Mapping[str, Series]:
        return MappingProxyType(self._series)

    @property
    def instruments(self) -> List[str]:
        return sorted(self._series)

    def __contains__(self, instrument_id: object) -> bool:
        return instrument_id in self._series

    def __len__(self) -> int:
        return len(self._series)

    def __iter__(self) -> Iterator[Series]:
        return iter(self._series.values())
