"""
CAPM alpha/beta estimation by ordinary least squares.

For each stock i the market model

    r_{i,t} = alpha_i + beta_i * r_{m,t} + e_{i,t}

is fitted separately on the dates where both the stock and the market have
a return. Excess returns may be passed instead of raw returns; the
regression itself does not care.

Implements:
- fit_capm: one regression, full inference (standard errors, t, p, R^2).
- fit_capm_many: the same regression mapped over every column of a wide
  returns frame, collected into one table sorted by beta.
- summarise_betas / expected_returns: the tables reported in the notebook.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List

import numpy as np
import pandas as pd
from scipy import stats

from .returns import periods_per_year

# Below this a regression has no residual degrees of freedom worth reporting.
MIN_OBS = 3


@dataclass
class CapmFit:
    """Result of one market-model regression."""

    ticker: str
    alpha: float
    beta: float
    alpha_se: float
    beta_se: float
    alpha_t: float
    beta_t: float
    alpha_pvalue: float
    beta_pvalue: float
    r_squared: float
    n_obs: int


def _ratio(num: float, den: float) -> float:
    if den == 0 or not np.isfinite(den):
        return np.nan
    return float(num / den)


def align_pair(stock: pd.Series, market: pd.Series) -> pd.DataFrame:
    """Overlapping non-missing (stock, market) observations."""
    df = pd.concat([stock.rename("stock"), market.rename("market")], axis=1, join="inner")
    return df.dropna()


def fit_capm(stock: pd.Series, market: pd.Series, ticker: str = "") -> CapmFit:
    """
    Regress stock returns on market returns.

    Parameters
    ----------
    stock, market : Series
        Net (or excess) returns indexed by date. Only overlapping non-NaN
        dates are used.
    ticker : str
        Label stored on the result (defaults to the stock Series name).

    Returns
    -------
    CapmFit
    """
    pair = align_pair(stock, market)
    n = len(pair)
    label = ticker or str(stock.name or "")
    if n < MIN_OBS:
        raise ValueError(f"{label or 'stock'}: need at least {MIN_OBS} overlapping observations, got {n}")

    x = pair["market"].to_numpy(dtype=float)
    y = pair["stock"].to_numpy(dtype=float)
    if np.ptp(x) == 0:
        raise ValueError(f"{label or 'stock'}: market returns are constant; beta is undefined")

    res = stats.linregress(x, y)
    dof = n - 2

    alpha_t = _ratio(res.intercept, res.intercept_stderr)
    alpha_p = float(2.0 * stats.t.sf(abs(alpha_t), dof)) if np.isfinite(alpha_t) else np.nan
    beta_t = _ratio(res.slope, res.stderr)

    return CapmFit(
        ticker=label,
        alpha=float(res.intercept),
        beta=float(res.slope),
        alpha_se=float(res.intercept_stderr),
        beta_se=float(res.stderr),
        alpha_t=alpha_t,
        beta_t=beta_t,
        alpha_pvalue=alpha_p,
        beta_pvalue=float(res.pvalue),
        r_squared=float(res.rvalue**2),
        n_obs=int(n),
    )


def fit_capm_many(
    stock_returns: pd.DataFrame,
    market_returns: pd.Series,
    min_obs: int = 12,
) -> pd.DataFrame:
    """
    Fit the market model for every stock column.

    Parameters
    ----------
    stock_returns : DataFrame
        One column per ticker.
    market_returns : Series
        Market index returns on the same frequency.
    min_obs : int, default 12
        Tickers with fewer overlapping observations are skipped.

    Returns
    -------
    DataFrame
        Indexed by ticker, columns = CapmFit fields, sorted by beta
        (highest first). Skipped tickers are listed in `.attrs['skipped']`.
    """
    if stock_returns.empty:
        raise ValueError("stock_returns is empty")
    if market_returns.empty:
        raise ValueError("market_returns is empty")
    min_obs = max(int(min_obs), MIN_OBS)

    fits: List[Dict] = []
    skipped: List[str] = []
    for ticker in stock_returns.columns:
        n = len(align_pair(stock_returns[ticker], market_returns))
        if n < min_obs:
            print(f"  Warning: skipping {ticker} ({n} observations < {min_obs})", flush=True)
            skipped.append(str(ticker))
            continue
        fits.append(asdict(fit_capm(stock_returns[ticker], market_returns, ticker=str(ticker))))

    columns = list(CapmFit.__dataclass_fields__)
    table = pd.DataFrame(fits, columns=columns).set_index("ticker")
    table = table.sort_values("beta", ascending=False)
    table.attrs["skipped"] = skipped
    return table


def annualise_alpha(alpha, frequency: str = "monthly"):
    """Scale a per-period alpha to an annual figure (simple, not compounded)."""
    return alpha * periods_per_year(frequency)


def summarise_betas(table: pd.DataFrame, significance: float = 0.05) -> Dict[str, object]:
    """
    Cross-sectional summary of a `fit_capm_many` table.

    Returns a dict with count, mean/median/std beta, counts of aggressive
    (beta > 1) and defensive (beta < 1) stocks, the share of betas and
    alphas significant at `significance`, and the extreme tickers.
    """
    if table.empty:
        raise ValueError("CAPM table is empty")
    beta = table["beta"]
    return {
        "n_stocks": int(len(table)),
        "mean_beta": float(beta.mean()),
        "median_beta": float(beta.median()),
        "std_beta": float(beta.std(ddof=1)) if len(beta) > 1 else np.nan,
        "n_aggressive": int((beta > 1).sum()),
        "n_defensive": int((beta < 1).sum()),
        "share_beta_significant": float((table["beta_pvalue"] < significance).mean()),
        "share_alpha_significant": float((table["alpha_pvalue"] < significance).mean()),
        "mean_r_squared": float(table["r_squared"].mean()),
        "highest_beta": str(beta.idxmax()),
        "lowest_beta": str(beta.idxmin()),
    }


def expected_returns(table: pd.DataFrame, market_premium: float, rf: float = 0.0) -> pd.Series:
    """
    Security market line: E[r_i] = rf + beta_i * (E[r_m] - rf).

    `market_premium` and `rf` must be in the same units (e.g. monthly).
    """
    return (rf + table["beta"] * market_premium).rename("expected_return")
