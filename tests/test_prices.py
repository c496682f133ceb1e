import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from datalabs.prices import download_adjusted_close, load_price_csv, price_coverage, prices_to_long


def _history(values, start="2024-01-02"):
    idx = pd.bdate_range(start, periods=len(values))
    return pd.DataFrame({"Open": values, "Close": values}, index=idx)


def _fake_yfinance(histories):
    """yfinance stand-in whose download() serves canned frames (or raises)."""

    def download(ticker, **kwargs):
        h = histories[ticker]
        if isinstance(h, Exception):
            raise h
        return h

    fake = MagicMock()
    fake.download.side_effect = download
    return fake


def test_download_writes_csv_and_skips_failures(tmp_path, capsys):
    multi = _history([10.0, 11.0, 12.0])
    multi.columns = pd.MultiIndex.from_product([multi.columns, ["BBB"]])
    fake = _fake_yfinance(
        {
            "AAA": _history([100.0, 101.0, 102.0]),
            "BBB": multi,
            "GONE": pd.DataFrame(),
            "BAD": ValueError("delisted"),
        }
    )
    cache = tmp_path / "prices.csv"

    with patch.dict(sys.modules, {"yfinance": fake}):
        df = download_adjusted_close(["AAA", "BBB", "GONE", "BAD"], "2024-01-01", "2024-02-01", cache_path=cache)

    assert list(df.columns) == ["AAA", "BBB"]
    assert df.index.name == "date"
    assert df["BBB"].tolist() == [10.0, 11.0, 12.0]
    assert cache.exists()
    out = capsys.readouterr().out
    assert "GONE" in out and "BAD" in out


def test_download_uses_cache_without_network(tmp_path):
    cache = tmp_path / "prices.csv"
    fake = _fake_yfinance({"AAA": _history([1.0, 2.0, 3.0])})
    with patch.dict(sys.modules, {"yfinance": fake}):
        download_adjusted_close(["AAA"], "2024-01-01", "2024-02-01", cache_path=cache)

    offline = MagicMock()
    offline.download.side_effect = AssertionError("should read cache")
    with patch.dict(sys.modules, {"yfinance": offline}):
        df = download_adjusted_close(["AAA"], "2024-01-01", "2024-01-04", cache_path=cache)
        first = download_adjusted_close(["AAA"], "2024-01-01", "2024-01-03", cache_path=cache)

    # cache hit is sliced to the requested window, end exclusive like yfinance
    assert df["AAA"].tolist() == [1.0, 2.0]
    assert first["AAA"].tolist() == [1.0]


def test_download_refresh_overwrites_cache(tmp_path, capsys):
    cache = tmp_path / "prices.csv"
    with patch.dict(sys.modules, {"yfinance": _fake_yfinance({"AAA": _history([1.0, 2.0, 3.0])})}):
        download_adjusted_close(["AAA"], "2024-01-01", "2024-02-01", cache_path=cache)

    fresh = _fake_yfinance({"AAA": _history([10.0, 20.0, 30.0])})
    with patch.dict(sys.modules, {"yfinance": fresh}):
        df = download_adjusted_close(["AAA"], "2024-01-01", "2024-02-01", cache_path=cache, refresh=True)

    assert fresh.download.call_count == 1
    assert df["AAA"].tolist() == [10.0, 20.0, 30.0]
    assert load_price_csv(cache)["AAA"].tolist() == [10.0, 20.0, 30.0]
    assert "[Prices] Saved prices" in capsys.readouterr().out


def test_download_raises_when_nothing_returned(tmp_path):
    fake = _fake_yfinance({"AAA": pd.DataFrame()})
    with patch.dict(sys.modules, {"yfinance": fake}):
        with pytest.raises(RuntimeError):
            download_adjusted_close(["AAA"], "2024-01-01", "2024-02-01", cache_path=tmp_path / "p.csv")


def test_download_requires_tickers(tmp_path):
    with pytest.raises(ValueError):
        download_adjusted_close([], "2024-01-01", "2024-02-01", cache_path=tmp_path / "p.csv")


def test_load_price_csv_roundtrip(tmp_path):
    idx = pd.to_datetime(["2024-01-03", "2024-01-02"])
    pd.DataFrame({"AAA": [2.0, 1.0]}, index=idx).to_csv(tmp_path / "p.csv")

    df = load_price_csv(tmp_path / "p.csv")
    assert isinstance(df.index, pd.DatetimeIndex)
    assert df["AAA"].tolist() == [1.0, 2.0]


def test_prices_to_long_drops_missing():
    idx = pd.to_datetime(["2024-01-02", "2024-01-03"])
    wide = pd.DataFrame({"AAA": [1.0, 2.0], "BBB": [np.nan, 5.0]}, index=idx)

    long = prices_to_long(wide)
    assert list(long.columns) == ["date", "ticker", "adjusted"]
    assert len(long) == 3
    assert long.loc[long["ticker"] == "BBB", "adjusted"].tolist() == [5.0]


def test_price_coverage():
    idx = pd.to_datetime(["2024-01-02", "2024-01-03", "2024-01-04"])
    wide = pd.DataFrame({"AAA": [1.0, 2.0, 3.0], "NEW": [np.nan, np.nan, 7.0]}, index=idx)

    cov = price_coverage(wide)
    assert cov.loc["AAA", "n_obs"] == 3
    assert cov.loc["NEW", "first_date"] == pd.Timestamp("2024-01-04")
