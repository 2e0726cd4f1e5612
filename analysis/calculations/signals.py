"""
Trend, alert and crossover signals.
Pure functions of the full series - every decision looks at the previous row,
so nothing is carried between calls.
"""

from decimal import Decimal
from typing import List, Optional, Union

from analysis.calculations.metrics import daily_pct_change, moving_average
from series.models import Action, Alert, Signal, Trend
from series.normalizers import to_decimal
from series.store import Series


def trend(series: Series) -> List[Signal]:
    """
    Classify each close against the previous close.

    UPTREND when close[i] > close[i-1], DOWNTREND otherwise (an unchanged
    close is a downtrend). The first row has no previous close and is
    labelled None rather than defaulting to a direction.

    Args:
        series: Price series for one instrument

    Returns:
        Signals aligned 1:1 with the series
    """
    signals = []
    previous_close = None
    for r in series:
        label = None
        if previous_close is not None:
            label = Trend.UPTREND if r.close > previous_close else Trend.DOWNTREND
        signals.append(Signal(r.instrument_id, r.trade_date, label))
        previous_close = r.close
    return signals


def price_alert(
    series: Series,
    threshold_pct: Union[Decimal, int, float, str] = 5
) -> List[Signal]:
    """
    Flag sudden close-to-close moves.

    SURGE when the daily change is above +threshold_pct, DROP when below
    -threshold_pct, None otherwise. The first row and rows after a zero
    close carry no change and are None.

    Args:
        series: Price series for one instrument
        threshold_pct: Alert threshold in percent (exclusive)

    Returns:
        Signals aligned 1:1 with the series
    """
    threshold = to_decimal(threshold_pct)
    if threshold < 0:
        raise ValueError(f"threshold_pct must be non-negative, got {threshold_pct}")

    signals = []
    for point in daily_pct_change(series):
        label: Optional[Alert] = None
        if point.value is not None:
            if point.value > threshold:
                label = Alert.SURGE
            elif point.value < -threshold:
                label = Alert.DROP
        signals.append(Signal(point.instrument_id, point.trade_date, label))
    return signals


def ma_crossover(
    series: Series,
    fast_window: int = 50,
    slow_window: int = 200,
    require_full_windows: bool = False
) -> List[Signal]:
    """
    Moving average crossover actions.

    BUY when the fast average moves above the slow one (fast > slow
    today, fast <= slow yesterday); SELL on the reverse move; HOLD
    otherwise. The first row is always HOLD.

    Both averages use partial windows from the first row, so early
    crossovers compare short averages. With require_full_windows the
    comparison only starts once yesterday's slow window was full.

    Args:
        series: Price series for one instrument
        fast_window: Fast moving average window (trading days)
        slow_window: Slow moving average window (trading days)
        require_full_windows: HOLD until both windows are full on both rows

    Returns:
        Signals aligned 1:1 with the series
    """
    if fast_window < 1:
        raise ValueError(f"fast_window must be positive, got {fast_window}")
    if fast_window >= slow_window:
        raise ValueError(
            f"fast_window ({fast_window}) must be smaller than slow_window ({slow_window})"
        )

    fast = moving_average(series, fast_window)
    slow = moving_average(series, slow_window)
    first_comparable = slow_window if require_full_windows else 1

    signals = []
    for i, r in enumerate(series):
        action = Action.HOLD
        if i >= first_comparable:
            action = _crossover_action(
                fast[i].value, slow[i].value, fast[i-1].value, slow[i-1].value
            )
        signals.append(Signal(r.instrument_id, r.trade_date, action))
    return signals


def _crossover_action(
    fast: Optional[Decimal],
    slow: Optional[Decimal],
    prev_fast: Optional[Decimal],
    prev_slow: Optional[Decimal]
) -> Action:
    if None in (fast, slow, prev_fast, prev_slow):
        return Action.HOLD
    if fast > slow and prev_fast <= prev_slow:
        return Action.BUY
    if fast < slow and prev_fast >= prev_slow:
        return Action.SELL
    return Action.HOLD
