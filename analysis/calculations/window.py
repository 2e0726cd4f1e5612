"""
Rolling window utilities.
Pure functions for windowed aggregates and lags over a single series.

One Series is one partition; rows are ordered by trade date. All
arithmetic is Decimal.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Union

from series.models import DerivedPoint, PriceRecord


logger = logging.getLogger(__name__)


class WindowError(Exception):
    """Raised when window parameters are invalid."""
    pass


class DivisionByZeroError(WindowError, ZeroDivisionError):
    """Raised when a metric's denominator is zero."""
    pass


class InsufficientDataError(WindowError):
    """Raised when too few values exist to compute an aggregate."""
    pass


Aggregate = Callable[[List[Decimal]], Decimal]
Rows = Union[Sequence[PriceRecord], Sequence[DerivedPoint]]


def safe_divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    """
    Divide, raising DivisionByZeroError on a zero denominator.

    rolling_aggregate and the metric functions map this to a null point.
    """
    if denominator == 0:
        raise DivisionByZeroError(f"Division by zero: {numerator} / {denominator}")
    return numerator / denominator


def mean(values: List[Decimal]) -> Decimal:
    if not values:
        raise InsufficientDataError("Mean of empty window")
    return sum(values, Decimal(0)) / Decimal(len(values))


def _stddev(values: List[Decimal], ddof: int) -> Decimal:
    n = len(values)
    if n - ddof <= 0:
        raise InsufficientDataError(
            f"Insufficient data: need more than {ddof} values for standard deviation, have {n}"
        )
    avg = mean(values)
    variance = sum(((v - avg) ** 2 for v in values), Decimal(0)) / Decimal(n - ddof)
    return variance.sqrt()


def sample_stddev(values: List[Decimal]) -> Decimal:
    """Sample standard deviation (n - 1 denominator)."""
    return _stddev(values, ddof=1)


def population_stddev(values: List[Decimal]) -> Decimal:
    """Population standard deviation (n denominator)."""
    return _stddev(values, ddof=0)


def window_min(values: List[Decimal]) -> Decimal:
    if not values:
        raise InsufficientDataError("Min of empty window")
    return min(values)


def window_max(values: List[Decimal]) -> Decimal:
    if not values:
        raise InsufficientDataError("Max of empty window")
    return max(values)


AGGREGATES: Dict[str, Aggregate] = {
    'mean': mean,
    'stddev': sample_stddev,
    'stddev_samp': sample_stddev,
    'stddev_pop': population_stddev,
    'min': window_min,
    'max': window_max,
}


def resolve_aggregate(aggregate: Union[str, Aggregate]) -> Aggregate:
    """Look up an aggregate by name, or pass a callable through."""
    if callable(aggregate):
        return aggregate
    try:
        return AGGREGATES[aggregate]
    except KeyError:
        raise WindowError(
            f"Unknown aggregate {aggregate!r}; expected one of {sorted(AGGREGATES)}"
        ) from None


def _row_value(row, field: str) -> Optional[Decimal]:
    if isinstance(row, DerivedPoint):
        return row.value
    return getattr(row, field)


def rolling_aggregate(
    series: Rows,
    window_size: int,
    aggregate: Union[str, Aggregate],
    min_periods: Optional[int] = None,
    field: str = 'close'
) -> List[DerivedPoint]:
    """
    Apply an aggregate over a trailing window at every row.

    For row i the window is rows [max(0, i-window_size+1) .. i]. None
    values (from a DerivedPoint input) are skipped and do not count
    toward min_periods.

    Args:
        series: Series (or PriceRecords) or a list of DerivedPoints
        window_size: Number of rows in a full window
        aggregate: 'mean', 'stddev' (sample), 'stddev_pop', 'min', 'max',
            or a callable taking a list of Decimals
        min_periods: Values required before emitting a non-null point.
            Defaults to window_size (null until the window is full).
        field: Price field to aggregate for PriceRecord input

    Returns:
        DerivedPoints aligned 1:1 with the input rows

    Raises:
        WindowError: If window_size or min_periods are invalid
    """
    if window_size < 1:
        raise WindowError(f"window_size must be >= 1, got {window_size}")

    if min_periods is None:
        min_periods = window_size

    if not 1 <= min_periods <= window_size:
        raise WindowError(
            f"min_periods must be between 1 and window_size ({window_size}), got {min_periods}"
        )

    fn = resolve_aggregate(aggregate)
    values = [_row_value(row, field) for row in series]

    points = []
    for i, row in enumerate(series):
        window = [v for v in values[max(0, i - window_size + 1):i + 1] if v is not None]

        value = None
        if len(window) >= min_periods:
            try:
                value = fn(window)
            except (DivisionByZeroError, InsufficientDataError) as e:
                logger.debug(f"Null point for {row.instrument_id} on {row.trade_date}: {e}")

        points.append(DerivedPoint(row.instrument_id, row.trade_date, value))

    return points


def lag(series: Rows, n: int = 1, field: str = 'close') -> List[DerivedPoint]:
    """
    Value from n rows earlier; None for the first n rows.

    Args:
        series: Series (or PriceRecords) or a list of DerivedPoints
        n: Rows to look back (0 returns the values unchanged)
        field: Price field for PriceRecord input

    Returns:
        DerivedPoints aligned 1:1 with the input rows
    """
    if n < 0:
        raise WindowError(f"lag must be non-negative, got {n}")

    values = [_row_value(row, field) for row in series]
    return [
        DerivedPoint(row.instrument_id, row.trade_date, values[i - n] if i >= n else None)
        for i, row in enumerate(series)
    ]
