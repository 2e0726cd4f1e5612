"""
pandas adapters - DataFrames in, DataFrames out.
Decimal values stay Decimal in object columns; undefined values are None.
"""

from typing import Iterable, List, Sequence

import numpy as np
import pandas as pd

from series.models import DerivedPoint, MonthlyRange, PriceRecord, Signal
from series.normalizers import COLUMN_ALIASES, normalize_price_rows


SERIES_COLUMNS = ['instrument_id', 'trade_date', 'open', 'close', 'high', 'low', 'volume']


def frame_to_records(df: pd.DataFrame) -> List[PriceRecord]:
    """
    Convert a market_data shaped DataFrame to PriceRecords.

    Accepts either the table's column names (stock_id, open_price, ...)
    or canonical ones. Missing cells become None and fail validation.
    """
    if df.empty:
        return []

    renamed = df.rename(columns=COLUMN_ALIASES)
    cleaned = renamed.astype(object).where(pd.notna(renamed), None)
    return normalize_price_rows(cleaned.to_dict('records'))


def series_to_frame(records: Iterable[PriceRecord]) -> pd.DataFrame:
    """Flatten a Series (or any PriceRecords) to one row per trading day."""
    rows = [
        {
            'instrument_id': r.instrument_id,
            'trade_date': r.trade_date,
            'open': r.open,
            'close': r.close,
            'high': r.high,
            'low': r.low,
            'volume': r.volume,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=SERIES_COLUMNS)


def points_to_frame(points: Sequence[DerivedPoint], name: str = 'value') -> pd.DataFrame:
    """DerivedPoints to columns (instrument_id, trade_date, <name>)."""
    df = pd.DataFrame(
        {
            'instrument_id': [p.instrument_id for p in points],
            'trade_date': [p.trade_date for p in points],
            name: pd.Series([p.value for p in points], dtype=object),
        },
        columns=['instrument_id', 'trade_date', name],
    )
    return df


def signals_to_frame(signals: Sequence[Signal], name: str = 'label') -> pd.DataFrame:
    """Signals to columns (instrument_id, trade_date, <name>) with string labels."""
    return pd.DataFrame(
        {
            'instrument_id': [s.instrument_id for s in signals],
            'trade_date': [s.trade_date for s in signals],
            name: pd.Series([s.label.value if s.label is not None else None for s in signals], dtype=object),
        },
        columns=['instrument_id', 'trade_date', name],
    )


def monthly_ranges_to_frame(ranges: Sequence[MonthlyRange]) -> pd.DataFrame:
    """MonthlyRanges to columns (instrument_id, year, month, max_price, min_price)."""
    return pd.DataFrame(
        [
            {
                'instrument_id': r.instrument_id,
                'year': r.month.year,
                'month': r.month.month,
                'max_price': r.max_high,
                'min_price': r.min_low,
            }
            for r in ranges
        ],
        columns=['instrument_id', 'year', 'month', 'max_price', 'min_price'],
    )


def points_to_array(points: Sequence[DerivedPoint]) -> np.ndarray:
    """Float view of DerivedPoint values for plotting or vectorized use; None becomes NaN."""
    return np.array(
        [float(p.value) if p.value is not None else np.nan for p in points],
        dtype=np.float64,
    )
