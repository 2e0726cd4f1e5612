"""
Orchestrated analysis job - SeriesStore to report DataFrames.
Calls the pure metric and signal functions and lines their outputs up by row.
"""

import logging
from datetime import date, datetime
from typing import Dict, Any, List, Optional

import pandas as pd

from analysis.calculations.metrics import (
    daily_change,
    daily_pct_change,
    monthly_high_low,
    monthly_return,
    moving_average,
    rolling_std_dev,
    volatility_pct,
)
from analysis.calculations.signals import ma_crossover, price_alert, trend
from analysis.config import AnalysisConfig
from series.frames import monthly_ranges_to_frame
from series.store import Series, SeriesStore


logger = logging.getLogger(__name__)


DAILY_COLUMNS = [
    'instrument_id', 'trade_date', 'close',
    'price_change', 'moving_avg', 'volatility_pct', 'volatility_stddev',
    'daily_change_pct', 'trend', 'alert', 'action',
]


class AnalysisJobError(Exception):
    """Raised when an instrument cannot be analyzed."""
    pass


def analyze_instrument(
    series: Series,
    config: Optional[AnalysisConfig] = None
) -> pd.DataFrame:
    """
    Compute every daily metric and signal for one instrument.

    Args:
        series: Price series for one instrument
        config: Window sizes and thresholds (defaults if omitted)

    Returns:
        DataFrame with one row per trading day and DAILY_COLUMNS;
        undefined values are None

    Raises:
        AnalysisJobError: If the series is empty
    """
    if config is None:
        config = AnalysisConfig()

    if not len(series):
        raise AnalysisJobError(f"No price data for instrument {series.instrument_id}")

    columns = {
        'price_change': [p.value for p in daily_change(series)],
        'moving_avg': [p.value for p in moving_average(series, config.moving_average_window)],
        'volatility_pct': [p.value for p in volatility_pct(series)],
        'volatility_stddev': [
            p.value for p in rolling_std_dev(series, config.stddev_window, kind=config.stddev_kind)
        ],
        'daily_change_pct': [p.value for p in daily_pct_change(series)],
        'trend': _labels(trend(series)),
        'alert': _labels(price_alert(series, config.alert_threshold_pct)),
        'action': _labels(ma_crossover(
            series,
            fast_window=config.fast_window,
            slow_window=config.slow_window,
            require_full_windows=config.require_full_windows,
        )),
    }

    df = pd.DataFrame({
        'instrument_id': [series.instrument_id] * len(series),
        'trade_date': series.dates,
        'close': series.values('close'),
        **{name: pd.Series(values, dtype=object) for name, values in columns.items()},
    }, columns=DAILY_COLUMNS)

    logger.debug(f"Analyzed {series.instrument_id}: {len(df)} rows")
    return df


def _labels(signals) -> List[Optional[str]]:
    return [s.label.value if s.label is not None else None for s in signals]


def best_performers(store: SeriesStore, as_of: Optional[date] = None) -> pd.DataFrame:
    """
    Rank instruments by return over the month before as_of.

    Args:
        store: SeriesStore with all instruments
        as_of: Reference date (defaults to today)

    Returns:
        DataFrame (instrument_id, monthly_return) sorted by return,
        highest first, instruments without a defined return last
    """
    if as_of is None:
        as_of = date.today()

    rows = [
        {'instrument_id': s.instrument_id, 'monthly_return': monthly_return(s, as_of).value}
        for s in store
    ]

    # Decimal and None don't compare; rank defined values and append the rest
    defined = sorted(
        (r for r in rows if r['monthly_return'] is not None),
        key=lambda r: (-r['monthly_return'], r['instrument_id'])
    )
    undefined = sorted(
        (r for r in rows if r['monthly_return'] is None),
        key=lambda r: r['instrument_id']
    )

    df = pd.DataFrame(defined + undefined, columns=['instrument_id', 'monthly_return'])
    df['monthly_return'] = df['monthly_return'].astype(object)
    return df


def batch_analyze(
    store: SeriesStore,
    config: Optional[AnalysisConfig] = None,
    as_of: Optional[date] = None
) -> Dict[str, Any]:
    """
    Run analysis for every instrument in the store.

    A failing instrument is logged and listed under 'failed'; the rest
    of the batch still runs.

    Args:
        store: SeriesStore with all instruments
        config: Window sizes and thresholds (defaults if omitted)
        as_of: Reference date for the monthly return ranking

    Returns:
        Dictionary with 'daily', 'monthly' and 'best_performers'
        DataFrames plus run summary fields
    """
    if config is None:
        config = AnalysisConfig()

    if as_of is None:
        as_of = date.today()

    start_time = datetime.now()
    logger.info(f"Starting analysis of {len(store)} instruments as of {as_of}")

    daily_frames = []
    monthly_ranges = []
    completed = []
    failed = []

    for instrument_id in store.instruments:
        series = store.get_series(instrument_id)
        try:
            daily_frames.append(analyze_instrument(series, config))
        except Exception as e:
            logger.warning(f"Skipping {instrument_id}: {e}")
            failed.append({'instrument_id': instrument_id, 'error_message': str(e)})
            continue

        monthly_ranges.extend(monthly_high_low(series))
        completed.append(instrument_id)

    if daily_frames:
        daily = pd.concat(daily_frames, ignore_index=True)
    else:
        daily = pd.DataFrame(columns=DAILY_COLUMNS)

    duration = (datetime.now() - start_time).total_seconds()
    logger.info(
        f"Analysis finished: {len(completed)} completed, {len(failed)} failed "
        f"in {duration:.2f}s"
    )

    return {
        'as_of': as_of,
        'daily': daily,
        'monthly': monthly_ranges_to_frame(monthly_ranges),
        'best_performers': best_performers(store, as_of),
        'completed': completed,
        'failed': failed,
        'total_instruments': len(store),
        'duration_seconds': duration,
    }
