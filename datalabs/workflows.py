"""
Section-level workflow entry points for the datalabs notebooks.

Design goal: keep notebooks mostly to descriptive function calls, with data
loading, estimation and plotting delegated to reusable module code. Each
workflow returns a dict with the same top-level keys:

- inputs: run parameters and sample metadata
- data: the frames the analysis was run on
- summary_tables: tables shown in the report
- diagnostics: what was skipped or failed along the way
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional, Sequence

import pandas as pd

from .capm import annualise_alpha, expected_returns, fit_capm, fit_capm_many, summarise_betas
from .config import DEFAULT_END, DEFAULT_FREQUENCY, DEFAULT_START, IPLAYER_ZIP, MARKET_TICKERS
from .constituents import clean_ticker, fetch_constituents
from .iplayer import clean_viewing_events, load_viewing_events, summarise_by_genre
from .plot_capm import plot_beta_distribution, plot_capm_scatter, plot_price_history, plot_top_betas
from .plot_iplayer import plot_minutes_by_genre, plot_minutes_viewed, plot_missing_profile
from .prices import download_adjusted_close, price_coverage
from .returns import compute_returns, excess_returns, periods_per_year, split_market


REPORT_COLUMNS = [
    "company",
    "sector",
    "alpha",
    "alpha_annual",
    "beta",
    "beta_se",
    "beta_pvalue",
    "alpha_pvalue",
    "r_squared",
    "n_obs",
    "expected_return",
]


def run_capm_workflow(
    index: str = "djia",
    start: str = DEFAULT_START,
    end: str = DEFAULT_END,
    frequency: str = DEFAULT_FREQUENCY,
    method: str = "simple",
    rf_annual: float = 0.0,
    min_obs: int = 12,
    use_cache: bool = True,
    refresh_constituents: bool = False,
    refresh_prices: bool = False,
    tickers: Optional[Sequence[str]] = None,
    market_ticker: Optional[str] = None,
) -> dict[str, Any]:
    """
    CAPM betas for every constituent of `index`.

    Steps: scrape constituents -> download adjusted close (stocks + index)
    -> periodic returns (optionally in excess of a flat risk-free rate)
    -> one OLS regression per stock -> table and summary.

    Parameters
    ----------
    index : {'djia', 'sp500'}
        Universe and default market proxy.
    tickers : sequence of str, optional
        Explicit ticker list; skips the Wikipedia scrape.
    market_ticker : str, optional
        Override the market proxy (default from MARKET_TICKERS).
    refresh_prices : bool
        Re-download prices and overwrite the cached price CSV.
    """
    key = index.lower()
    if market_ticker is None:
        if key not in MARKET_TICKERS:
            raise ValueError(f"Unknown index {index!r}; expected one of {sorted(MARKET_TICKERS)}")
        market_ticker = MARKET_TICKERS[key]

    if tickers is None:
        constituents = fetch_constituents(key, refresh=refresh_constituents)
    else:
        constituents = pd.DataFrame(
            {"ticker": [clean_ticker(t) for t in tickers], "company": "", "sector": ""}
        )
    universe: List[str] = [t for t in constituents["ticker"] if t != market_ticker]
    if not universe:
        raise ValueError("Empty ticker universe.")

    prices = download_adjusted_close(
        universe + [market_ticker], start=start, end=end, use_cache=use_cache, refresh=refresh_prices
    )
    if market_ticker not in prices.columns:
        raise RuntimeError(f"No price data for market proxy {market_ticker}.")
    failed = [t for t in universe if t not in prices.columns]

    rets = compute_returns(prices, frequency=frequency, method=method)
    if rf_annual:
        rets = excess_returns(rets, rf_annual, frequency)
    stocks, market = split_market(rets, market_ticker)

    table = fit_capm_many(stocks, market, min_obs=min_obs)
    skipped = list(table.attrs.get("skipped", []))

    meta = constituents.drop_duplicates("ticker").set_index("ticker")[["company", "sector"]]
    table = table.join(meta, how="left")
    table["alpha_annual"] = annualise_alpha(table["alpha"], frequency)

    rf_period = rf_annual / periods_per_year(frequency)
    market_premium = float(market.mean())
    table["expected_return"] = expected_returns(table, market_premium, rf=rf_period)

    summary = summarise_betas(table) if not table.empty else {}

    return {
        "inputs": {
            "index": key,
            "market_ticker": market_ticker,
            "start": start,
            "end": end,
            "frequency": frequency,
            "method": method,
            "rf_annual": rf_annual,
            "excess_returns": bool(rf_annual),
            "n_requested": len(universe),
            "n_estimated": int(len(table)),
            "sample_start": rets.index.min().strftime("%Y-%m-%d"),
            "sample_end": rets.index.max().strftime("%Y-%m-%d"),
            "n_periods": int(len(rets)),
            "market_premium": market_premium,
        },
        "data": {
            "constituents": constituents,
            "prices": prices,
            "stock_returns": stocks,
            "market_returns": market,
        },
        "summary_tables": {
            "capm": table,
            "beta_summary": summary,
        },
        "diagnostics": {
            "failed_downloads": failed,
            "skipped_regressions": skipped,
            "coverage": price_coverage(prices),
        },
    }


def _highlight_tickers(table: pd.DataFrame) -> List[str]:
    """Highest, median and lowest beta tickers (deduplicated, in that order)."""
    if table.empty:
        return []
    ordered = table.sort_values("beta", ascending=False).index.tolist()
    picks = [ordered[0], ordered[len(ordered) // 2], ordered[-1]]
    return list(dict.fromkeys(picks))


def build_capm_report(result: dict[str, Any]) -> list:
    """Turn a run_capm_workflow result into report sections."""
    inputs = result["inputs"]
    table = result["summary_tables"]["capm"]
    stocks = result["data"]["stock_returns"]
    market = result["data"]["market_returns"]
    diag = result["diagnostics"]

    sections: list = [("Run parameters", inputs)]
    if table.empty:
        sections.append(("Results", "No stock had enough observations to estimate a beta."))
        return sections

    sections.append(("Beta summary", result["summary_tables"]["beta_summary"]))
    sections.append(("CAPM estimates", table[[c for c in REPORT_COLUMNS if c in table.columns]]))
    sections.append(("Distribution of betas", plot_beta_distribution(table)))
    sections.append(("Highest and lowest betas", plot_top_betas(table)))

    picks = _highlight_tickers(table)
    scatters = []
    for ticker in picks:
        fit = fit_capm(stocks[ticker], market, ticker=ticker)
        scatters.append(plot_capm_scatter(stocks[ticker], market, fit))
    sections.append(("Regression fits (highest, median, lowest beta)", scatters))
    sections.append(
        ("Price history", plot_price_history(result["data"]["prices"], picks + [inputs["market_ticker"]]))
    )

    sections.append(
        (
            "Diagnostics",
            [
                f"Failed downloads: {', '.join(diag['failed_downloads']) or 'none'}",
                f"Skipped regressions (too few observations): {', '.join(diag['skipped_regressions']) or 'none'}",
                diag["coverage"],
            ],
        )
    )
    return sections


def run_iplayer_workflow(
    path: str | Path = IPLAYER_ZIP,
    drop_invalid: bool = True,
    min_minutes: float = 0.5,
    now: Optional[pd.Timestamp] = None,
) -> dict[str, Any]:
    """
    Load, profile and clean the iPlayer viewing extract.

    Returns the standard workflow dict; `data['clean']` is the analysis-ready
    frame.
    """
    raw = load_viewing_events(path)
    cleaned = clean_viewing_events(raw, drop_invalid=drop_invalid, min_minutes=min_minutes, now=now)
    clean = cleaned.data

    date_min = clean["start_date_time"].min() if len(clean) else pd.NaT
    date_max = clean["start_date_time"].max() if len(clean) else pd.NaT

    return {
        "inputs": {
            "path": str(path),
            "drop_invalid": drop_invalid,
            "min_minutes": min_minutes,
            "n_raw_rows": int(len(raw)),
            "n_clean_rows": int(len(clean)),
            "columns": list(raw.columns),
            "first_event": date_min,
            "last_event": date_max,
        },
        "data": {
            "raw": raw,
            "clean": clean,
        },
        "summary_tables": {
            "steps": cleaned.steps,
            "missing": cleaned.reports["missing"],
            "conversion": cleaned.reports["conversion"],
            "outliers": cleaned.reports["outliers"],
            "genre": summarise_by_genre(clean) if "genre" in clean.columns else pd.DataFrame(),
        },
        "diagnostics": {
            "duplicates": cleaned.reports["duplicates"],
            "validity": cleaned.reports["validity"],
        },
    }


def build_iplayer_report(result: dict[str, Any]) -> list:
    """Turn a run_iplayer_workflow result into report sections."""
    tables = result["summary_tables"]
    clean = result["data"]["clean"]
    inputs = {k: v for k, v in result["inputs"].items() if k != "columns"}

    sections: list = [
        ("Input", inputs),
        ("Raw data preview", result["data"]["raw"].head(10)),
        ("Missing values", [tables["missing"], plot_missing_profile(tables["missing"])]),
        ("Type conversion", tables["conversion"]),
        ("Duplicates", result["diagnostics"]["duplicates"]),
        ("Validity checks", result["diagnostics"]["validity"]),
        ("Cleaning steps", tables["steps"]),
        ("Outliers (IQR rule)", tables["outliers"]),
    ]
    if len(clean):
        sections.append(("Time viewed", plot_minutes_viewed(clean)))
    if not tables["genre"].empty:
        sections.append(("Viewing by genre", [tables["genre"], plot_minutes_by_genre(clean)]))
    return sections
