"""
Data Loader: Switchable Source (Synthetic | Cache | CSV)

Hands the PMZ engine decoded 1-minute records for a query range. Records are
RawBar values: UTC nanosecond timestamps and prices scaled by 1e-9, the same
shape the vendor decoder produces.
"""

import json
import logging
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pmz.models.ohlcv import RawBar
from pmz.utils.numeric import to_fixed_point
from pmz.utils.timeutils import to_epoch_ns

logger = logging.getLogger(__name__)


class DataSource(Enum):
    """Data source types."""
    SYNTHETIC = "synthetic"
    CACHE = "cache"
    CSV = "csv"


class DataLoader:
    """
    Unified raw bar loader with switchable sources.

    Supports:
    - Synthetic data generation (demos, determinism checks)
    - Cached JSON data (replay)
    - CSV exports
    """

    def __init__(self, config: Dict):
        """
        Initialize data loader.

        Args:
            config: Data loader config
                {
                  "source": "synthetic|cache|csv",
                  "instrument_id": 1,
                  "synthetic": { "base_price": "5000.00" },
                  "cache": { "path": "..." },
                  "csv_path": "...",
                  "price_format": "fixed|decimal"
                }
        """
        self.config = config
        self.source = DataSource(config.get("source", "synthetic"))
        self.instrument_id = int(config.get("instrument_id", 1))

        self.synthetic_config = config.get("synthetic", {})
        self.cache_config = config.get("cache", {})

        logger.info("data_loader_initialized", extra={"source": self.source.value})

    def fetch_raw_bars(self, symbol: str, start: datetime, end: datetime) -> List[RawBar]:
        """
        Fetch 1-minute records in the half-open range [start, end).

        Args:
            symbol: Symbol name (e.g., "ES.c.0")
            start: Range start (aware)
            end: Range end (aware, exclusive)

        Returns:
            Records in ascending time order
        """
        start_ns, end_ns = to_epoch_ns(start), to_epoch_ns(end)
        if self.source == DataSource.SYNTHETIC:
            bars = self._fetch_synthetic(start_ns, end_ns)
        elif self.source == DataSource.CACHE:
            bars = self._fetch_cached(symbol)
        else:
            bars = self._fetch_csv(symbol)

        bars = [b for b in bars if start_ns <= b.ts_event < end_ns]
        logger.info("raw_bars_fetched", extra={
            "symbol": symbol,
            "source": self.source.value,
            "range_start": start.isoformat(),
            "range_end": end.isoformat(),
            "bars": len(bars),
        })
        return bars

    def _fetch_synthetic(self, start_ns: int, end_ns: int) -> List[RawBar]:
        """
        Generate deterministic 1-minute records covering [start_ns, end_ns).

        The walk depends only on each bar's minute of the epoch, so any two
        overlapping ranges agree on their shared bars.
        """
        base_price = Decimal(str(self.synthetic_config.get("base_price", "5000.00")))
        step = Decimal(str(self.synthetic_config.get("tick", "0.25")))
        minute_ns = 60 * 1_000_000_000

        bars = []
        ts = -(-start_ns // minute_ns) * minute_ns
        while ts < end_ns:
            minute = ts // minute_ns
            drift = step * ((minute % 40) - 20)
            open_price = base_price + drift
            close_price = open_price + step * ((minute % 7) - 3)
            high_price = max(open_price, close_price) + step * 2
            low_price = min(open_price, close_price) - step * 2

            bars.append(RawBar(
                ts_event=ts,
                instrument_id=self.instrument_id,
                open=to_fixed_point(open_price),
                high=to_fixed_point(high_price),
                low=to_fixed_point(low_price),
                close=to_fixed_point(close_price),
                volume=100 + int(minute % 50),
            ))
            ts += minute_ns
        return bars

    def _cache_file(self, symbol: str) -> str:
        cache_path = self.cache_config.get("path", "data/cache")
        return os.path.join(cache_path, f"{symbol}_1m.json")

    def _fetch_cached(self, symbol: str) -> List[RawBar]:
        """
        Load records from the JSON cache.

        Raises:
            FileNotFoundError: If no cache exists for the symbol
        """
        cache_file = self._cache_file(symbol)
        if not os.path.exists(cache_file):
            logger.warning("cache_file_not_found", extra={"file": cache_file})
            raise FileNotFoundError(cache_file)

        with open(cache_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [RawBar(**record) for record in data.get("bars", [])]

    def cache_data(self, symbol: str, bars: List[RawBar]) -> str:
        """
        Cache records for later replay.

        Args:
            symbol: Symbol name
            bars: Records to store

        Returns:
            Path of the written cache file
        """
        cache_file = self._cache_file(symbol)
        os.makedirs(os.path.dirname(cache_file) or ".", exist_ok=True)

        data = {
            "symbol": symbol,
            "cached_at": datetime.now(timezone.utc).isoformat(),
            "bars": [
                {
                    "ts_event": b.ts_event,
                    "instrument_id": b.instrument_id,
                    "open": b.open,
                    "high": b.high,
                    "low": b.low,
                    "close": b.close,
                    "volume": b.volume,
                }
                for b in bars
            ],
        }
        with open(cache_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.info("data_cached", extra={"symbol": symbol, "file": cache_file, "bars": len(bars)})
        return cache_file

    def _fetch_csv(self, symbol: str) -> List[RawBar]:
        """
        Load records from a CSV export.

        Accepts either a `ts_event` column (ns since epoch) or a parseable
        `timestamp` column. Prices are fixed-point integers unless
        price_format is "decimal".

        Raises:
            FileNotFoundError: If the CSV does not exist
            ValueError: If required columns are missing
        """
        import pandas as pd

        csv_path = self.config.get("csv_path", "data/bars_1m.csv")
        if not os.path.exists(csv_path):
            logger.error("csv_file_not_found", extra={"path": csv_path})
            raise FileNotFoundError(csv_path)

        df = pd.read_csv(csv_path)
        df.columns = [c.strip().lower() for c in df.columns]

        if "ts_event" in df.columns:
            ts_values = df["ts_event"].astype("int64")
        elif "timestamp" in df.columns:
            parsed = pd.to_datetime(df["timestamp"], utc=True)
            ts_values = (parsed - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(nanoseconds=1)
        else:
            raise ValueError("No ts_event or timestamp column found in CSV")

        missing = [c for c in ("open", "high", "low", "close") if c not in df.columns]
        if missing:
            raise ValueError(f"CSV missing price columns: {missing}")

        decimal_prices = self.config.get("price_format", "fixed") == "decimal"

        def price(value) -> int:
            return to_fixed_point(str(value)) if decimal_prices else int(value)

        if "instrument_id" in df.columns:
            instrument_ids = df["instrument_id"].astype("int64")
        else:
            instrument_ids = pd.Series(self.instrument_id, index=df.index)
        volumes = df["volume"].fillna(0).astype("int64") if "volume" in df.columns else pd.Series(0, index=df.index)

        bars = [
            RawBar(
                ts_event=int(ts_values[i]),
                instrument_id=int(instrument_ids[i]),
                open=price(row["open"]),
                high=price(row["high"]),
                low=price(row["low"]),
                close=price(row["close"]),
                volume=int(volumes[i]),
            )
            for i, row in df.iterrows()
        ]
        logger.info("csv_data_loaded", extra={"symbol": symbol, "path": csv_path, "bars": len(bars)})
        return bars

    def get_source(self) -> str:
        """Get current data source."""
        return self.source.value
