"""
Download and cache daily adjusted close prices for a list of tickers.

Used by the CAPM workflow: constituent tickers plus the market index level
are fetched once, written to a CSV under PROCESSED_DIR, and re-read from that
CSV on later runs.

Dependencies
-----------
- yfinance : pip install yfinance
  Used to fetch adjusted close prices (auto_adjust=True, so "Close" is
  already split/dividend adjusted).

Design choices
--------------
- Prices are returned wide (index = dates, one column per ticker) so that
  return computation is one vectorised call. `prices_to_long` gives the
  tidy (date, ticker, adjusted) layout for export.
- Tickers are downloaded one at a time. A failing ticker is reported and
  left out instead of aborting the whole batch; the caller can compare the
  requested list with the returned columns.
- Cache key is the ticker set plus start/end, encoded in the file name.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd

from .config import PROCESSED_DIR


def _stage(msg: str) -> None:
    print(f"[Prices] {msg}", flush=True)


def _cache_name(tickers: List[str], start: str, end: str) -> str:
    digest = hashlib.sha1(",".join(sorted(tickers)).encode()).hexdigest()[:10]
    return f"prices_{start}_{end}_{digest}.csv"


def _extract_close(hist: pd.DataFrame) -> pd.Series:
    # yfinance can return MultiIndex columns for single ticker in some versions
    if isinstance(hist.columns, pd.MultiIndex):
        return hist["Close"].iloc[:, 0]
    return hist["Close"] if "Close" in hist.columns else hist["Adj Close"]


def load_price_csv(path: str | Path) -> pd.DataFrame:
    """Read a wide price CSV written by `download_adjusted_close`."""
    df = pd.read_csv(path, index_col=0, parse_dates=True)
    df.index.name = "date"
    return df.sort_index()


def download_adjusted_close(
    tickers: Iterable[str],
    start: str,
    end: str,
    use_cache: bool = True,
    cache_path: Optional[Path] = None,
    refresh: bool = False,
) -> pd.DataFrame:
    """
    Load daily adjusted close prices for `tickers`.

    Parameters
    ----------
    tickers : iterable of str
        Provider tickers (e.g. 'AAPL', 'BRK-B', '^GSPC').
    start, end : str
        Date range 'YYYY-MM-DD' (end exclusive, as in yfinance, on both the
        download and the cache-hit path).
    use_cache : bool, default True
        If True, read from or write to the CSV at `cache_path`.
    cache_path : Path, optional
        Defaults to a file in PROCESSED_DIR keyed on tickers and dates.
    refresh : bool, default False
        Skip the cache hit and download again; the CSV is still
        overwritten when `use_cache` is True.

    Returns
    -------
    DataFrame
        Index: trading dates (DatetimeIndex named 'date').
        Columns: tickers that returned data, in request order.
        Values: adjusted close. NaN before a ticker's listing date.
    """
    tickers = list(dict.fromkeys(tickers))
    if not tickers:
        raise ValueError("No tickers requested.")

    if cache_path is None:
        cache_path = PROCESSED_DIR / _cache_name(tickers, start, end)
    cache_path = Path(cache_path)

    if use_cache and not refresh and cache_path.exists():
        _stage(f"Price cache hit: {cache_path}")
        last_day = pd.Timestamp(end) - pd.Timedelta(days=1)
        return load_price_csv(cache_path).loc[start:last_day]

    try:
        import yfinance as yf
    except ImportError:
        raise ImportError(
            "yfinance is required for price data. Install with: pip install yfinance"
        )

    _stage(f"Downloading adjusted close for {len(tickers)} tickers ({start} -> {end}) ...")
    out = {}
    for ticker in tickers:
        try:
            hist = yf.download(
                ticker,
                start=start,
                end=end,
                progress=False,
                auto_adjust=True,
            )
            if hist is None or hist.empty:
                print(f"  Warning: no data returned for {ticker}", flush=True)
                continue
            out[ticker] = _extract_close(hist).sort_index()
        except Exception as e:
            # One bad symbol (delisted, renamed) should not sink the batch.
            print(f"  Warning: failed to load {ticker}: {e}", flush=True)

    if not out:
        raise RuntimeError("Price download returned no data for any ticker.")

    df = pd.DataFrame(out)
    df.index = pd.to_datetime(df.index)
    df.index.name = "date"
    df = df.sort_index()

    if use_cache:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(cache_path)
        _stage(f"Saved prices ({df.shape[0]} rows x {df.shape[1]} tickers) to {cache_path}")

    return df


def prices_to_long(prices: pd.DataFrame) -> pd.DataFrame:
    """
    Reshape wide prices into tidy rows (date, ticker, adjusted).

    Missing prices are dropped rather than kept as NaN rows.
    """
    long = (
        prices.rename_axis("date")
        .reset_index()
        .melt(id_vars="date", var_name="ticker", value_name="adjusted")
        .dropna(subset=["adjusted"])
    )
    return long.sort_values(["ticker", "date"]).reset_index(drop=True)


def price_coverage(prices: pd.DataFrame) -> pd.DataFrame:
    """
    First/last valid date and observation count per ticker.

    Useful to spot recent listings that will shorten a common sample.
    """
    rows = []
    for ticker in prices.columns:
        s = prices[ticker].dropna()
        rows.append(
            {
                "ticker": ticker,
                "first_date": s.index.min() if len(s) else pd.NaT,
                "last_date": s.index.max() if len(s) else pd.NaT,
                "n_obs": int(len(s)),
            }
        )
    return pd.DataFrame(rows).set_index("ticker")
