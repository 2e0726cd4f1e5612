"""
Tests for Series and SeriesStore.
Ordering is validated at construction; views are read-only.
"""

import pytest
import pandas as pd
from datetime import date, timedelta
from decimal import Decimal

from series.models import PriceRecord
from series.store import Series, SeriesStore, UnknownInstrumentError
from series.validators import OutOfOrderError, ValidationError


def make_record(instrument_id, day, close, volume=1000):
    price = Decimal(str(close))
    return PriceRecord(instrument_id, day, price, price, price, price, volume)


def make_records(instrument_id, closes, start=date(2024, 1, 1)):
    return [make_record(instrument_id, start + timedelta(days=i), c) for i, c in enumerate(closes)]


class TestSeries:
    """Tests for Series construction and access."""

    def test_valid_series(self):
        series = Series('AAA', make_records('AAA', [10, 11, 12]))

        assert len(series) == 3
        assert series.instrument_id == 'AAA'
        assert series.values('close') == [Decimal('10'), Decimal('11'), Decimal('12')]
        assert series.dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_empty_series(self):
        series = Series('AAA')
        assert len(series) == 0
        assert list(series) == []

    def test_rejects_duplicate_dates(self):
        records = make_records('AAA', [10, 11])
        records.append(make_record('AAA', date(2024, 1, 2), 12))

        with pytest.raises(OutOfOrderError, match="Duplicate"):
            Series('AAA', records)

    def test_rejects_unsorted_dates(self):
        records = list(reversed(make_records('AAA', [10, 11, 12])))

        with pytest.raises(OutOfOrderError):
            Series('AAA', records)

    def test_rejects_foreign_instrument(self):
        records = make_records('AAA', [10]) + [make_record('BBB', date(2024, 1, 5), 11)]

        with pytest.raises(OutOfOrderError, match="does not belong"):
            Series('AAA', records)

    def test_rejects_float_prices(self):
        """Records built by hand are validated like normalized rows."""
        record = PriceRecord('AAA', date(2024, 1, 1), 10.5, 10.5, 10.5, 10.5, 1000)

        with pytest.raises(ValidationError, match="must be Decimal"):
            Series('AAA', [record])

    def test_rejects_nan_price(self):
        nan = Decimal('NaN')
        record = PriceRecord('AAA', date(2024, 1, 1), nan, nan, nan, nan, 1000)

        with pytest.raises(ValidationError, match="finite"):
            Series('AAA', [record])

    def test_input_list_mutation_does_not_leak(self):
        """Series copies its input; later changes to the list are not seen."""
        records = make_records('AAA', [10, 11])
        series = Series('AAA', records)
        records.append(make_record('AAA', date(2024, 2, 1), 99))

        assert len(series) == 2

    def test_window(self):
        series = Series('AAA', make_records('AAA', [1, 2, 3, 4, 5]))

        assert [r.close for r in series.window(1, 3)] == [Decimal(1), Decimal(2)]
        assert [r.close for r in series.window(4, 3)] == [Decimal(3), Decimal(4), Decimal(5)]

    def test_window_bounds(self):
        series = Series('AAA', make_records('AAA', [1, 2]))

        with pytest.raises(IndexError):
            series.window(2, 1)
        with pytest.raises(ValueError):
            series.window(0, 0)

    def test_between_and_since(self):
        series = Series('AAA', make_records('AAA', [1, 2, 3, 4, 5]))

        middle = series.between(date(2024, 1, 2), date(2024, 1, 4))
        assert isinstance(middle, Series)
        assert middle.values('close') == [Decimal(2), Decimal(3), Decimal(4)]

        tail = series.since(date(2024, 1, 4))
        assert tail.values('close') == [Decimal(4), Decimal(5)]

    def test_unknown_field(self):
        series = Series('AAA', make_records('AAA', [1]))
        with pytest.raises(ValueError, match="Unknown price field"):
            series.values('adj_close')

    def test_equality(self):
        assert Series('AAA', make_records('AAA', [1, 2])) == Series('AAA', make_records('AAA', [1, 2]))
        assert Series('AAA', make_records('AAA', [1, 2])) != Series('AAA', make_records('AAA', [1, 3]))


class TestSeriesStore:
    """Tests for SeriesStore."""

    def test_from_records_groups_by_instrument(self):
        records = make_records('AAA', [10, 11]) + make_records('BBB', [20, 21, 22])

        store = SeriesStore.from_records(records)

        assert len(store) == 2
        assert store.instruments == ['AAA', 'BBB']
        assert len(store.get_series('AAA')) == 2
        assert len(store.get_series('BBB')) == 3

    def test_from_records_interleaved_instruments(self):
        """Interleaving is fine as long as each instrument's dates increase."""
        a = make_records('AAA', [10, 11])
        b = make_records('BBB', [20, 21])
        store = SeriesStore.from_records([a[0], b[0], a[1], b[1]])

        assert store.get_series('AAA').values('close') == [Decimal(10), Decimal(11)]

    def test_from_records_unsorted_rejected(self):
        records = list(reversed(make_records('AAA', [10, 11, 12])))

        with pytest.raises(OutOfOrderError):
            SeriesStore.from_records(records)

    def test_from_records_sort(self):
        records = list(reversed(make_records('AAA', [10, 11, 12])))

        store = SeriesStore.from_records(records, sort=True)

        assert store.get_series('AAA').values('close') == [Decimal(10), Decimal(11), Decimal(12)]

    def test_sort_still_rejects_duplicates(self):
        records = make_records('AAA', [10, 11]) + make_records('AAA', [12])

        with pytest.raises(OutOfOrderError, match="Duplicate"):
            SeriesStore.from_records(records, sort=True)

    def test_from_records_validates(self):
        record = PriceRecord('AAA', date(2024, 1, 1), Decimal(10), Decimal(10), Decimal(9), Decimal(11), 1000)

        with pytest.raises(ValidationError, match="high"):
            SeriesStore.from_records([record])

    def test_unknown_instrument(self):
        store = SeriesStore.from_records(make_records('AAA', [10]))

        with pytest.raises(UnknownInstrumentError):
            store.get_series('ZZZ')

        # KeyError subclass for mapping-style callers
        with pytest.raises(KeyError):
            store.get_series('ZZZ')

    def test_get_all_is_read_only(self):
        store = SeriesStore.from_records(make_records('AAA', [10]))
        view = store.get_all()

        assert set(view) == {'AAA'}
        with pytest.raises(TypeError):
            view['BBB'] = Series('BBB')

    def test_duplicate_series_rejected(self):
        with pytest.raises(OutOfOrderError, match="Duplicate series"):
            SeriesStore([Series('AAA'), Series('AAA')])

    def test_from_rows(self):
        rows = [
            {'stock_id': 'AAA', 'trade_date': '2024-01-02', 'open_price': 10, 'close_price': 11,
             'high_price': 11, 'low_price': 10, 'volume': 100},
            {'stock_id': 'AAA', 'trade_date': '2024-01-01', 'open_price': 9, 'close_price': 10,
             'high_price': 10, 'low_price': 9, 'volume': 100},
        ]

        store = SeriesStore.from_rows(rows, sort=True)

        assert store.get_series('AAA').dates == [date(2024, 1, 1), date(2024, 1, 2)]

    def test_from_frame(self):
        """A frame read from the market_data table, in any row order."""
        df = pd.DataFrame({
            'stock_id': ['BBB', 'AAA', 'AAA'],
            'trade_date': pd.to_datetime(['2024-01-01', '2024-01-02', '2024-01-01']),
            'open_price': [20.0, 10.5, 10.0],
            'close_price': [21.0, 11.0, 10.5],
            'high_price': [21.5, 11.25, 10.75],
            'low_price': [19.5, 10.25, 9.75],
            'volume': [300, 200, 100],
        })

        store = SeriesStore.from_frame(df)

        aaa = store.get_series('AAA')
        assert aaa.dates == [date(2024, 1, 1), date(2024, 1, 2)]
        assert aaa.values('close') == [Decimal('10.5'), Decimal('11.0')]
        assert aaa.values('volume') == [100, 200]
        assert len(store.get_series('BBB')) == 1
