"""
Unit tests for the price/time normalizer.
"""

import logging
import os
import sys
import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from pmz.errors import ErrorCode, InvalidTimestamp
from pmz.models.ohlcv import RawBar
from pmz.normalization.normalizer import normalize_bar, normalize_bars
from pmz.utils.numeric import D, from_fixed_point, to_fixed_point
from pmz.utils.timeutils import EASTERN, from_epoch_ns, to_epoch_ns


def utc_ns(*args) -> int:
    return to_epoch_ns(datetime(*args, tzinfo=timezone.utc))


def make_raw(ts_ns, price="5000.25", instrument_id=1, volume=10):
    fp = to_fixed_point(price)
    return RawBar(ts_event=ts_ns, instrument_id=instrument_id, open=fp, high=fp, low=fp, close=fp, volume=volume)


class TestNumeric(unittest.TestCase):
    """Test Decimal helpers."""

    def test_fixed_point_scaling_is_exact(self):
        self.assertEqual(from_fixed_point(5000250000000), Decimal("5000.25"))
        self.assertEqual(from_fixed_point(1), Decimal("0.000000001"))

    def test_to_fixed_point_inverse(self):
        self.assertEqual(to_fixed_point("5000.25"), 5000250000000)
        self.assertEqual(from_fixed_point(to_fixed_point("4990.75")), Decimal("4990.75"))

    def test_D_conversions(self):
        self.assertEqual(D(0.1), Decimal("0.1"))
        self.assertEqual(D(5), Decimal(5))
        with self.assertRaises(TypeError):
            D(None)

    def test_fixed_point_rejects_float(self):
        with self.assertRaises(TypeError):
            from_fixed_point(1.5)


class TestNormalizeBar(unittest.TestCase):
    """Test single bar normalization."""

    def test_summer_offset_is_edt(self):
        bar = normalize_bar(make_raw(utc_ns(2025, 3, 14, 13, 30)), "ES.c.0")
        self.assertEqual((bar.timestamp.hour, bar.timestamp.minute), (9, 30))
        self.assertEqual(bar.timestamp.utcoffset(), timedelta(hours=-4))

    def test_winter_offset_is_est(self):
        bar = normalize_bar(make_raw(utc_ns(2025, 1, 15, 14, 30)), "ES.c.0")
        self.assertEqual((bar.timestamp.hour, bar.timestamp.minute), (9, 30))
        self.assertEqual(bar.timestamp.utcoffset(), timedelta(hours=-5))

    def test_prices_and_fields(self):
        raw = RawBar(
            ts_event=utc_ns(2025, 3, 14, 13, 30),
            instrument_id=42,
            open=5000000000000,
            high=5010500000000,
            low=4990250000000,
            close=5005000000000,
            volume=1234,
        )
        bar = normalize_bar(raw, "ES.c.0")
        self.assertEqual(bar.open, Decimal("5000"))
        self.assertEqual(bar.high, Decimal("5010.5"))
        self.assertEqual(bar.low, Decimal("4990.25"))
        self.assertEqual(bar.close, Decimal("5005"))
        self.assertEqual(bar.volume, 1234)
        self.assertEqual(bar.instrument_id, 42)
        self.assertEqual(bar.symbol, "ES.c.0")
        self.assertIs(bar.timestamp.tzinfo, EASTERN)

    def test_sub_microsecond_nanos_truncated(self):
        ts = from_epoch_ns(utc_ns(2025, 3, 14, 13, 30) + 1_999)
        self.assertEqual(ts.microsecond, 1)

    def test_out_of_range_timestamp_raises(self):
        with self.assertRaises(InvalidTimestamp) as ctx:
            normalize_bar(make_raw(10 ** 30), "ES.c.0")
        self.assertEqual(ctx.exception.value, 10 ** 30)
        self.assertEqual(ctx.exception.code, ErrorCode.DATA_PROCESSING_FAILED)

    def test_negative_out_of_range_timestamp_raises(self):
        with self.assertRaises(InvalidTimestamp):
            from_epoch_ns(-(10 ** 30))

    def test_non_integer_timestamp_raises(self):
        with self.assertRaises(InvalidTimestamp):
            from_epoch_ns("1700000000000000000")


class TestNormalizeBars(unittest.TestCase):
    """Test batch normalization."""

    def test_preserves_input_order(self):
        raws = [make_raw(utc_ns(2025, 3, 14, 13, m)) for m in (5, 1, 3)]
        bars = normalize_bars(raws, "ES.c.0")
        self.assertEqual([b.timestamp.minute for b in bars], [5, 1, 3])

    def test_strict_mode_propagates(self):
        raws = [make_raw(utc_ns(2025, 3, 14, 13, 0)), make_raw(10 ** 30)]
        with self.assertRaises(InvalidTimestamp):
            normalize_bars(raws, "ES.c.0")

    def test_skip_invalid_drops_and_logs(self):
        raws = [make_raw(utc_ns(2025, 3, 14, 13, 0)), make_raw(10 ** 30), make_raw(utc_ns(2025, 3, 14, 13, 1))]
        with self.assertLogs("pmz.normalization.normalizer", level=logging.WARNING) as logs:
            bars = normalize_bars(raws, "ES.c.0", skip_invalid=True)
        self.assertEqual(len(bars), 2)
        self.assertTrue(any("bar_timestamp_invalid" in line for line in logs.output))


if __name__ == '__main__':
    unittest.main()
