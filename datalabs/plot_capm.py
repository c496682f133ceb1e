"""
Plotting helpers for the CAPM workflow.

Each function accepts workflow outputs (return series, CAPM tables, price
frames) and returns a matplotlib Figure so notebooks and reports can stay
declarative.
"""

from __future__ import annotations

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .capm import CapmFit, align_pair
from .plot_styles import style


def plot_capm_scatter(stock: pd.Series, market: pd.Series, fit: CapmFit):
    """Scatter of stock vs market returns with the fitted market-model line."""
    pair = align_pair(stock, market)

    fig, ax = plt.subplots(figsize=(7, 5))
    ax.scatter(pair["market"], pair["stock"], **style("points", "stock", label=fit.ticker or "Stock"))

    x = np.linspace(pair["market"].min(), pair["market"].max(), 50)
    fit_label = f"alpha = {fit.alpha:.4f}, beta = {fit.beta:.2f} (R² = {fit.r_squared:.2f})"
    ax.plot(x, fit.alpha + fit.beta * x, **style("fit", "fit", label=fit_label))

    ax.axhline(0.0, **style("ref", "market", label="_nolegend_"))
    ax.axvline(0.0, **style("ref", "market", label="_nolegend_"))
    ax.set_xlabel(f"Market return ({market.name})" if market.name else "Market return")
    ax.set_ylabel("Stock return")
    ax.set_title(f"CAPM regression: {fit.ticker}" if fit.ticker else "CAPM regression")
    ax.legend(loc="upper left")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_beta_distribution(table: pd.DataFrame):
    """Histogram of estimated betas with a reference line at beta = 1."""
    betas = table["beta"].dropna()

    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.hist(betas, **style("hist", "beta", label=f"{len(betas)} stocks"))
    ax.axvline(1.0, **style("ref", "unit_beta"))
    ax.axvline(float(betas.mean()), **style("line", "fit", label=f"Mean beta = {betas.mean():.2f}"))
    ax.set_xlabel("Beta")
    ax.set_ylabel("Number of stocks")
    ax.set_title("Cross-section of CAPM betas")
    ax.legend()
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_top_betas(table: pd.DataFrame, n: int = 10):
    """
    Horizontal bars for the `n` highest and `n` lowest betas, with one
    standard error whiskers.
    """
    ordered = table.sort_values("beta", ascending=False)
    if len(ordered) > 2 * n:
        ordered = pd.concat([ordered.head(n), ordered.tail(n)])
    ordered = ordered.iloc[::-1]

    colors = [
        style("bar", "aggressive")["color"] if b > 1 else style("bar", "defensive")["color"]
        for b in ordered["beta"]
    ]
    bar_kw = {k: v for k, v in style("bar", "beta").items() if k not in ("color", "label")}

    fig, ax = plt.subplots(figsize=(8, max(3.0, 0.3 * len(ordered) + 1)))
    ax.barh(ordered.index.astype(str), ordered["beta"], xerr=ordered["beta_se"], color=colors, **bar_kw)
    ax.axvline(1.0, **style("ref", "unit_beta"))
    ax.set_xlabel("Beta (± 1 s.e.)")
    ax.set_title("Highest and lowest CAPM betas")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_price_history(prices: pd.DataFrame, tickers=None):
    """Adjusted close normalised to 1 at each ticker's first valid price."""
    cols = list(tickers) if tickers is not None else list(prices.columns)
    missing = [c for c in cols if c not in prices.columns]
    if missing:
        raise ValueError(f"Tickers not in price data: {missing}")

    fig, ax = plt.subplots(figsize=(9, 5))
    for i, col in enumerate(cols):
        s = prices[col].dropna()
        if s.empty:
            continue
        kw = style("line", "stock", label=col)
        kw["color"] = f"C{i % 10}"
        ax.plot(s.index, s / s.iloc[0], **kw)
    ax.set_ylabel("Growth of 1")
    ax.set_title("Normalised adjusted close")
    ax.legend(ncol=2, fontsize="small")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig
