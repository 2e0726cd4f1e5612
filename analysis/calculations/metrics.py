"""
Derived price metrics.
Pure functions over a Series; daily metrics return DerivedPoints aligned 1:1 with it.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List

from dateutil.relativedelta import relativedelta

from analysis.calculations.window import (
    DivisionByZeroError,
    lag,
    rolling_aggregate,
    safe_divide,
)
from series.models import DerivedPoint, MonthlyRange, YearMonth
from series.store import Series


HUNDRED = Decimal(100)

STDDEV_KINDS = {
    'sample': 'stddev',
    'population': 'stddev_pop',
}


def daily_change(series: Series) -> List[DerivedPoint]:
    """
    Absolute intraday movement: close - open.

    Args:
        series: Price series for one instrument

    Returns:
        DerivedPoints with the exact Decimal difference for every row
    """
    return [
        DerivedPoint(r.instrument_id, r.trade_date, r.close - r.open)
        for r in series
    ]


def volatility_pct(series: Series) -> List[DerivedPoint]:
    """
    Intraday range as a percentage of the low.

    Formula: (high - low) / low * 100

    Rows with a zero low have no defined volatility and yield None.
    """
    points = []
    for r in series:
        try:
            value = safe_divide(r.high - r.low, r.low) * HUNDRED
        except DivisionByZeroError:
            value = None
        points.append(DerivedPoint(r.instrument_id, r.trade_date, value))
    return points


def moving_average(series: Series, window: int, field: str = 'close') -> List[DerivedPoint]:
    """
    Trailing moving average of closes.

    Partial windows are averaged from the first row, so the first
    window-1 points average fewer than window closes.
    """
    return rolling_aggregate(series, window, 'mean', min_periods=1, field=field)


def rolling_std_dev(
    series: Series,
    window: int,
    kind: str = 'sample',
    field: str = 'close'
) -> List[DerivedPoint]:
    """
    Rolling standard deviation of closes over a full window.

    Args:
        series: Price series for one instrument
        window: Window size in trading days
        kind: 'sample' (n-1 denominator) or 'population' (n)
        field: Price field

    Returns:
        DerivedPoints, None for the first window-1 rows
    """
    if kind not in STDDEV_KINDS:
        raise ValueError(f"kind must be one of {sorted(STDDEV_KINDS)}, got {kind!r}")
    return rolling_aggregate(series, window, STDDEV_KINDS[kind], min_periods=window, field=field)


def daily_pct_change(series: Series) -> List[DerivedPoint]:
    """
    Close-to-close change in percent.

    Formula: (close[i] - close[i-1]) / close[i-1] * 100

    None for the first row and wherever the previous close is zero.
    """
    previous = lag(series, 1)
    points = []
    for r, prev in zip(series, previous):
        value = None
        if prev.value is not None:
            try:
                value = safe_divide(r.close - prev.value, prev.value) * HUNDRED
            except DivisionByZeroError:
                value = None
        points.append(DerivedPoint(r.instrument_id, r.trade_date, value))
    return points


def monthly_high_low(series: Series) -> List[MonthlyRange]:
    """
    Highest high and lowest low per calendar month.

    Returns:
        One MonthlyRange per month present in the series, ordered by month
    """
    groups: Dict[YearMonth, List] = {}
    for r in series:
        groups.setdefault(YearMonth.of(r.trade_date), []).append(r)

    return [
        MonthlyRange(
            instrument_id=series.instrument_id,
            month=month,
            max_high=max(r.high for r in rows),
            min_low=min(r.low for r in rows),
        )
        for month, rows in sorted(groups.items())
    ]


def monthly_return(series: Series, as_of: date) -> DerivedPoint:
    """
    Return over the last month, measured from the lowest open to the highest close.

    Formula: (max(close) - min(open)) / min(open) * 100 over rows with
    trade_date >= as_of - 1 month. The month is subtracted on the
    calendar, clamping to month end (Mar 31 -> Feb 28/29).

    Args:
        series: Price series for one instrument
        as_of: Reference date, usually today

    Returns:
        DerivedPoint stamped with as_of; value None if no rows fall in
        the period or the lowest open is zero
    """
    cutoff = as_of - relativedelta(months=1)
    recent = series.since(cutoff)

    if not len(recent):
        return DerivedPoint(series.instrument_id, as_of, None)

    max_close = max(recent.values('close'))
    min_open = min(recent.values('open'))

    try:
        value = safe_divide(max_close - min_open, min_open) * HUNDRED
    except DivisionByZeroError:
        value = None

    return DerivedPoint(series.instrument_id, as_of, value)
