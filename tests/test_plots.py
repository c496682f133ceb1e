import pandas as pd
import pytest
from matplotlib.figure import Figure

from datalabs.capm import fit_capm, fit_capm_many
from datalabs.iplayer import clean_viewing_events
from datalabs.plot_capm import plot_beta_distribution, plot_capm_scatter, plot_price_history, plot_top_betas
from datalabs.plot_iplayer import plot_minutes_by_genre, plot_minutes_viewed, plot_missing_profile
from datalabs.plot_styles import style
from datalabs.returns import compute_returns, split_market


@pytest.fixture
def capm_inputs(synthetic_prices):
    stocks, market = split_market(compute_returns(synthetic_prices), "^DJI")
    return stocks, market, fit_capm_many(stocks, market)


def test_style_merges_role_and_series():
    kw = style("fit", "fit", label="beta = 1.2")
    assert kw["color"] == "C3"
    assert kw["linewidth"] == 2.0
    assert kw["label"] == "beta = 1.2"
    with pytest.raises(ValueError):
        style("violin", "fit")
    with pytest.raises(ValueError):
        style("line", "nope")


def test_capm_plots_return_figures(capm_inputs, synthetic_prices):
    stocks, market, table = capm_inputs
    fit = fit_capm(stocks["AAA"], market, ticker="AAA")

    assert isinstance(plot_capm_scatter(stocks["AAA"], market, fit), Figure)
    assert isinstance(plot_beta_distribution(table), Figure)
    assert isinstance(plot_top_betas(table, n=1), Figure)
    assert isinstance(plot_price_history(synthetic_prices, ["AAA", "^DJI"]), Figure)


def test_scatter_legend_reports_beta(capm_inputs):
    stocks, market, _ = capm_inputs
    fit = fit_capm(stocks["BBB"], market, ticker="BBB")
    fig = plot_capm_scatter(stocks["BBB"], market, fit)

    labels = [t.get_text() for t in fig.axes[0].get_legend().get_texts()]
    assert any(f"beta = {fit.beta:.2f}" in lbl for lbl in labels)


def test_plot_price_history_unknown_ticker(synthetic_prices):
    with pytest.raises(ValueError):
        plot_price_history(synthetic_prices, ["XYZ"])


def test_iplayer_plots_return_figures(raw_viewing_events):
    result = clean_viewing_events(raw_viewing_events, now=pd.Timestamp("2020-01-01"))

    assert isinstance(plot_missing_profile(result.reports["missing"]), Figure)
    assert isinstance(plot_minutes_viewed(result.data), Figure)
    fig = plot_minutes_by_genre(result.data)
    assert isinstance(fig, Figure)

    # horizontal boxes: one genre per y tick, lowest median first
    medians = result.data.groupby("genre", observed=True)["minutes_viewed"].median().sort_values()
    labels = [t.get_text() for t in fig.axes[0].get_yticklabels()]
    assert labels == [str(g) for g in medians.index]
    assert fig.axes[0].get_xlabel() == "Minutes viewed"
