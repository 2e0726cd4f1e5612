"""
Core data types for price series analytics.
Immutable records - nothing here is mutated after construction.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional, Union


PRICE_FIELDS = ('open', 'close', 'high', 'low')


@dataclass(frozen=True)
class PriceRecord:
    """One trading day for one instrument. Natural key is (instrument_id, trade_date)."""
    instrument_id: str
    trade_date: date
    open: Decimal
    close: Decimal
    high: Decimal
    low: Decimal
    volume: int

    @property
    def key(self):
        return (self.instrument_id, self.trade_date)


@dataclass(frozen=True)
class DerivedPoint:
    """
    A derived value aligned to one row of a source series.

    A value of None means the metric is not defined for this row
    (insufficient history, zero denominator), not that it failed.
    """
    instrument_id: str
    trade_date: date
    value: Optional[Decimal]


class Trend(str, Enum):
    """Direction of the close relative to the previous close."""
    UPTREND = 'uptrend'
    DOWNTREND = 'downtrend'


class Alert(str, Enum):
    """Sudden price movement beyond the alert threshold."""
    SURGE = 'surge'
    DROP = 'drop'


class Action(str, Enum):
    """Moving average crossover action."""
    BUY = 'buy'
    SELL = 'sell'
    HOLD = 'hold'


SignalLabel = Union[Trend, Alert, Action]


@dataclass(frozen=True)
class Signal:
    """A classification for one row. label is None when undefined or no alert."""
    instrument_id: str
    trade_date: date
    label: Optional[SignalLabel]


class YearMonth(NamedTuple):
    """Calendar month key."""
    year: int
    month: int

    @classmethod
    def of(cls, day: date) -> 'YearMonth':
        return cls(day.year, day.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class MonthlyRange:
    """Highest high and lowest low for one instrument in one calendar month."""
    instrument_id: str
    month: YearMonth
    max_high: Decimal
    min_low: Decimal
