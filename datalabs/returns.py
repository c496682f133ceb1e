"""
Return computation from adjusted close prices.

All functions take and return wide DataFrames (index = dates, one column per
ticker). Returns are *net* (0.02 = 2%), unlike gross R = 1 + r.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
import pandas as pd

# pandas offset aliases for period-end resampling
_RESAMPLE_RULES = {
    "daily": None,
    "weekly": "W-FRI",
    "monthly": "ME",
}

_PERIODS_PER_YEAR = {
    "daily": 252,
    "weekly": 52,
    "monthly": 12,
}


def _check_frequency(frequency: str) -> str:
    freq = frequency.lower()
    if freq not in _RESAMPLE_RULES:
        raise ValueError(f"frequency must be one of {list(_RESAMPLE_RULES)}, got {frequency!r}")
    return freq


def periods_per_year(frequency: str) -> int:
    """Number of return periods per year for `frequency`."""
    return _PERIODS_PER_YEAR[_check_frequency(frequency)]


def compute_returns(
    prices: pd.DataFrame,
    frequency: str = "monthly",
    method: str = "simple",
) -> pd.DataFrame:
    """
    Compute periodic returns from (daily) prices.

    Parameters
    ----------
    prices : DataFrame
        Adjusted close prices, DatetimeIndex.
    frequency : {'daily', 'weekly', 'monthly'}
        Weekly and monthly returns use the last available price in each period.
    method : {'simple', 'log'}
        simple: P_t / P_{t-1} - 1;  log: ln(P_t / P_{t-1}).

    Returns
    -------
    DataFrame
        Net returns, first period dropped, all-NaN rows dropped.
    """
    if prices.empty:
        raise ValueError("prices is empty")
    freq = _check_frequency(frequency)
    if method not in ("simple", "log"):
        raise ValueError(f"method must be 'simple' or 'log', got {method!r}")

    px = prices.sort_index()
    rule = _RESAMPLE_RULES[freq]
    if rule is not None:
        px = px.resample(rule).last()

    if method == "simple":
        rets = px.pct_change(fill_method=None)
    else:
        rets = np.log(px / px.shift(1))

    return rets.iloc[1:].dropna(how="all")


def split_market(
    returns: pd.DataFrame,
    market_ticker: str,
) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Separate the market index column from the stock columns.

    Returns
    -------
    (stock_returns, market_returns)
    """
    if market_ticker not in returns.columns:
        raise ValueError(f"Market ticker {market_ticker!r} not found in returns columns.")
    market = returns[market_ticker].rename(market_ticker)
    stocks = returns.drop(columns=[market_ticker])
    return stocks, market


def excess_returns(returns, rf_annual: float, frequency: str = "monthly"):
    """
    Subtract a constant risk-free rate, converted to the return frequency.

    EXPLAIN: the notebook uses a flat annual rate rather than a T-bill
    series, so a simple division by periods per year is enough.
    """
    rf_period = rf_annual / periods_per_year(frequency)
    return returns - rf_period


def cumulative_growth(returns: pd.DataFrame) -> pd.DataFrame:
    """Growth of 1 unit invested at the start of the sample (NaN treated as 0 return)."""
    return (1.0 + returns.fillna(0.0)).cumprod()
