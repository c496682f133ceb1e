import numpy as np
import pandas as pd
import pytest

from datalabs.returns import (
    compute_returns,
    cumulative_growth,
    excess_returns,
    periods_per_year,
    split_market,
)


@pytest.fixture
def step_prices():
    """Daily prices flat within each month: Jan 100, Feb 110, Mar 99."""
    idx = pd.bdate_range("2024-01-01", "2024-03-29")
    level = np.where(idx.month == 1, 100.0, np.where(idx.month == 2, 110.0, 99.0))
    return pd.DataFrame({"AAA": level, "^DJI": level * 2}, index=idx)


def test_monthly_simple_returns(step_prices):
    rets = compute_returns(step_prices, frequency="monthly")

    assert list(rets.index) == [pd.Timestamp("2024-02-29"), pd.Timestamp("2024-03-31")]
    assert rets["AAA"].tolist() == pytest.approx([0.10, -0.10])


def test_monthly_log_returns(step_prices):
    rets = compute_returns(step_prices, frequency="monthly", method="log")
    assert rets["AAA"].iloc[0] == pytest.approx(np.log(1.1))


def test_daily_returns_drop_first_row(step_prices):
    rets = compute_returns(step_prices, frequency="daily")
    assert len(rets) == len(step_prices) - 1
    assert rets["AAA"].abs().max() == pytest.approx(0.10)


def test_weekly_returns_use_friday_close(step_prices):
    rets = compute_returns(step_prices, frequency="weekly")
    assert all(d.dayofweek == 4 for d in rets.index)


def test_returns_keep_late_listings_as_nan():
    idx = pd.bdate_range("2024-01-01", "2024-04-30")
    prices = pd.DataFrame({"OLD": np.linspace(10, 20, len(idx)), "NEW": np.nan}, index=idx)
    prices.loc[prices.index >= "2024-03-01", "NEW"] = 5.0

    rets = compute_returns(prices, frequency="monthly")
    assert rets["NEW"].isna().sum() == 2
    assert rets["NEW"].iloc[-1] == pytest.approx(0.0)


def test_invalid_arguments(step_prices):
    with pytest.raises(ValueError):
        compute_returns(step_prices, frequency="hourly")
    with pytest.raises(ValueError):
        compute_returns(step_prices, method="arith")
    with pytest.raises(ValueError):
        compute_returns(step_prices.iloc[0:0])


def test_split_market(step_prices):
    rets = compute_returns(step_prices)
    stocks, market = split_market(rets, "^DJI")

    assert list(stocks.columns) == ["AAA"]
    assert market.name == "^DJI"
    with pytest.raises(ValueError):
        split_market(rets, "^GSPC")


def test_excess_returns_and_periods():
    assert periods_per_year("Monthly") == 12
    assert periods_per_year("daily") == 252
    rets = pd.Series([0.01, 0.02])
    assert excess_returns(rets, 0.12, "monthly").tolist() == pytest.approx([0.0, 0.01])


def test_cumulative_growth():
    rets = pd.DataFrame({"A": [0.1, np.nan, -0.5]})
    assert cumulative_growth(rets)["A"].tolist() == pytest.approx([1.1, 1.1, 0.55])
