"""End-to-end tests for the run_pmz command line."""

import json
import logging
import os
import sys
from datetime import datetime

import pandas as pd
import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import run_pmz
from pmz.errors import ErrorCode
from pmz.utils.timeutils import EASTERN, to_epoch_ns


@pytest.fixture
def isolated_run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield tmp_path
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def test_synthetic_run_prints_json(isolated_run, capsys):
    code = run_pmz.main(["--date", "2025-03-14", "--json"])
    assert code == ErrorCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)
    assert payload["date"] == "2025-03-14"
    assert payload["gap_direction"] in ("Up", "Down")
    assert list((isolated_run / "logs").glob("pmz_*.json"))


def test_synthetic_run_prints_report(isolated_run, capsys):
    assert run_pmz.main(["--date", "2025-03-14"]) == ErrorCode.SUCCESS
    out = capsys.readouterr().out
    assert "Date: 2025-03-14" in out
    assert "PMZ High:" in out


def test_insufficient_data_exit_code(isolated_run, capsys):
    ts = to_epoch_ns(datetime(2025, 3, 13, 15, 57, tzinfo=EASTERN))
    csv_path = isolated_run / "bars.csv"
    pd.DataFrame({
        "ts_event": [ts], "open": [5000000000000], "high": [5000000000000],
        "low": [5000000000000], "close": [5000000000000], "volume": [1],
    }).to_csv(csv_path, index=False)

    code = run_pmz.main(["--date", "2025-03-14", "--source", "csv", "--csv-path", str(csv_path), "--json"])
    assert code == ErrorCode.INSUFFICIENT_DATA
    payload = json.loads(capsys.readouterr().out)
    assert payload["error_code"] == 5
    assert "pmh" in payload["error_message"]
    assert payload["levels"]["lis"] == "5000.000000000"


def test_missing_csv_reports_error(isolated_run, capsys):
    code = run_pmz.main(["--date", "2025-03-14", "--source", "csv", "--csv-path", "missing.csv"])
    assert code == ErrorCode.DATA_PROCESSING_FAILED
    assert "Error:" in capsys.readouterr().err


def test_invalid_date_rejected():
    with pytest.raises(SystemExit) as excinfo:
        run_pmz.parse_args(["--date", "14/03/2025"])
    assert excinfo.value.code == 2


def _write_two_instrument_csv(path):
    stamps = [
        datetime(2025, 3, 14, 9, 31, tzinfo=EASTERN),
        datetime(2025, 3, 14, 9, 32, tzinfo=EASTERN),
        datetime(2025, 3, 14, 9, 31, tzinfo=EASTERN),
        datetime(2025, 3, 14, 9, 36, tzinfo=EASTERN),
    ]
    pd.DataFrame({
        "ts_event": [to_epoch_ns(ts) for ts in stamps],
        "instrument_id": [10, 10, 20, 10],
        "open": ["5000.00", "5001.00", "5100.00", "5003.00"],
        "high": ["5002.00", "5004.00", "5101.00", "5005.00"],
        "low": ["4999.00", "5000.50", "5099.25", "5002.00"],
        "close": ["5001.00", "5003.00", "5100.50", "5004.00"],
        "volume": [5, 7, 11, 13],
    }).to_csv(path, index=False)


def test_instrument_report_json(isolated_run, capsys):
    csv_path = isolated_run / "bars.csv"
    _write_two_instrument_csv(csv_path)

    code = run_pmz.main([
        "--date", "2025-03-14", "--source", "csv", "--csv-path", str(csv_path),
        "--price-format", "decimal", "--instruments", "--json",
    ])
    assert code == ErrorCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)

    assert [(i["instrument_id"], i["volume"], i["bar_count"]) for i in payload["instruments"]] == [
        (10, 25, 3),
        (20, 11, 1),
    ]
    assert payload["instruments"][1]["low"] == "5099.250000000"
    assert [(c["timestamp"][11:16], c["instrument_id"], c["volume"]) for c in payload["candles"]] == [
        ("09:30", 10, 12),
        ("09:30", 20, 11),
        ("09:35", 10, 13),
    ]


def test_instrument_report_text(isolated_run, capsys):
    csv_path = isolated_run / "bars.csv"
    _write_two_instrument_csv(csv_path)

    code = run_pmz.main([
        "--date", "2025-03-14", "--source", "csv", "--csv-path", str(csv_path),
        "--price-format", "decimal", "--instruments",
    ])
    assert code == ErrorCode.SUCCESS
    out = capsys.readouterr().out
    assert "Unique Instruments in Dataset:" in out
    assert "Aggregated into 3 5-minute candles" in out
    assert "Instrument ID: 10 (Symbol: ES.c.0)" in out
    assert "Instrument ID: 20 (Symbol: ES.c.0)" in out
    assert "2025-03-14 09:30:00 |   5000.00 |   5004.00 |   4999.00 |   5003.00 |      12" in out
    assert "PMZ High" not in out
