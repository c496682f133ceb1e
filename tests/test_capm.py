import numpy as np
import pandas as pd
import pytest

from datalabs.capm import (
    CapmFit,
    annualise_alpha,
    expected_returns,
    fit_capm,
    fit_capm_many,
    summarise_betas,
)


@pytest.fixture
def market_and_stocks():
    rng = np.random.default_rng(0)
    idx = pd.date_range("2010-01-31", periods=120, freq="ME")
    market = pd.Series(rng.normal(0.01, 0.04, 120), index=idx, name="^GSPC")
    high = 0.002 + 1.5 * market + rng.normal(0, 0.005, 120)
    low = -0.001 + 0.5 * market + rng.normal(0, 0.005, 120)
    short = pd.Series(np.nan, index=idx)
    short.iloc[-5:] = rng.normal(0, 0.05, 5)
    stocks = pd.DataFrame({"LOW": low, "HIGH": high, "SHORT": short})
    return stocks, market


def test_fit_capm_recovers_alpha_and_beta(market_and_stocks):
    stocks, market = market_and_stocks
    fit = fit_capm(stocks["HIGH"], market, ticker="HIGH")

    assert isinstance(fit, CapmFit)
    slope, intercept = np.polyfit(market, stocks["HIGH"], 1)
    assert fit.beta == pytest.approx(slope)
    assert fit.alpha == pytest.approx(intercept)
    assert fit.beta == pytest.approx(1.5, abs=0.05)
    assert fit.r_squared > 0.9
    assert fit.n_obs == 120
    assert fit.beta_pvalue < 1e-10
    assert fit.beta_t == pytest.approx(fit.beta / fit.beta_se)


def test_fit_capm_uses_overlapping_dates_only(market_and_stocks):
    stocks, market = market_and_stocks
    stock = stocks["HIGH"].copy()
    stock.iloc[:20] = np.nan

    fit = fit_capm(stock, market.iloc[10:])
    assert fit.n_obs == 100


def test_fit_capm_rejects_degenerate_inputs():
    idx = pd.date_range("2020-01-31", periods=10, freq="ME")
    with pytest.raises(ValueError):
        fit_capm(pd.Series([0.01, 0.02], index=idx[:2]), pd.Series([0.0, 0.01], index=idx[:2]))
    with pytest.raises(ValueError):
        fit_capm(pd.Series(np.arange(10) / 100, index=idx), pd.Series(0.01, index=idx))


def test_fit_capm_many_sorts_and_skips(market_and_stocks, capsys):
    stocks, market = market_and_stocks
    table = fit_capm_many(stocks, market, min_obs=12)

    assert table.index.tolist() == ["HIGH", "LOW"]
    assert table.attrs["skipped"] == ["SHORT"]
    assert table.loc["LOW", "beta"] == pytest.approx(0.5, abs=0.05)
    assert "SHORT" in capsys.readouterr().out


def test_fit_capm_many_rejects_empty(market_and_stocks):
    stocks, market = market_and_stocks
    with pytest.raises(ValueError):
        fit_capm_many(stocks.iloc[:, 0:0], market)


def test_summarise_betas(market_and_stocks):
    stocks, market = market_and_stocks
    table = fit_capm_many(stocks, market)
    summary = summarise_betas(table)

    assert summary["n_stocks"] == 2
    assert summary["n_aggressive"] == 1
    assert summary["n_defensive"] == 1
    assert summary["highest_beta"] == "HIGH"
    assert summary["lowest_beta"] == "LOW"
    assert summary["share_beta_significant"] == 1.0
    assert summary["mean_beta"] == pytest.approx(table["beta"].mean())


def test_summarise_betas_empty():
    with pytest.raises(ValueError):
        summarise_betas(pd.DataFrame(columns=["beta"]))


def test_expected_returns_and_alpha_scaling():
    table = pd.DataFrame({"beta": [0.5, 1.0, 2.0]}, index=["A", "B", "C"])
    er = expected_returns(table, market_premium=0.01, rf=0.002)

    assert er.tolist() == pytest.approx([0.007, 0.012, 0.022])
    assert annualise_alpha(0.001, "monthly") == pytest.approx(0.012)
