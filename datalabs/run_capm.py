"""
One-shot CAPM beta run for DJIA or S&P 500 constituents.

Usage (from the project root):

    python -m datalabs.run_capm --index djia --start 2015-01-01 --end 2024-12-31

This will:
1. Scrape the constituent list from Wikipedia (cached).
2. Download adjusted close prices for the constituents and the index (cached CSV).
3. Compute returns and fit one market-model regression per stock.
4. Write the CAPM table as CSV and a rendered HTML report under datalabs_data/reports/.
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

from .config import DEFAULT_END, DEFAULT_FREQUENCY, DEFAULT_START, REPORTS_DIR
from .reports import write_html_report
from .workflows import build_capm_report, run_capm_workflow


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Estimate CAPM betas for index constituents.")
    parser.add_argument("--index", choices=["djia", "sp500"], default="djia", help="Constituent universe.")
    parser.add_argument("--start", type=str, default=DEFAULT_START, help="Price history start (YYYY-MM-DD).")
    parser.add_argument("--end", type=str, default=DEFAULT_END, help="Price history end (YYYY-MM-DD).")
    parser.add_argument(
        "--frequency",
        choices=["daily", "weekly", "monthly"],
        default=DEFAULT_FREQUENCY,
        help="Return frequency for the regressions.",
    )
    parser.add_argument("--log-returns", action="store_true", help="Use log instead of simple returns.")
    parser.add_argument("--rf", type=float, default=0.0, help="Flat annual risk-free rate, e.g. 0.02.")
    parser.add_argument("--min-obs", type=int, default=12, help="Minimum observations per regression.")
    parser.add_argument("--tickers", nargs="+", default=None, help="Explicit tickers (skips the scrape).")
    parser.add_argument("--refresh", action="store_true", help="Re-scrape constituents and re-download prices.")
    parser.add_argument("--out", type=Path, default=None, help="CAPM table CSV output path.")
    parser.add_argument("--report", type=Path, default=None, help="HTML report output path.")
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    print("[CAPM] Starting run_capm", flush=True)
    print(
        "[CAPM] Config: "
        f"index={args.index}, sample={args.start}..{args.end}, frequency={args.frequency}, "
        f"rf={args.rf}, min_obs={args.min_obs}, refresh={args.refresh}",
        flush=True,
    )

    result = run_capm_workflow(
        index=args.index,
        start=args.start,
        end=args.end,
        frequency=args.frequency,
        method="log" if args.log_returns else "simple",
        rf_annual=args.rf,
        min_obs=args.min_obs,
        refresh_constituents=args.refresh,
        refresh_prices=args.refresh,
        tickers=args.tickers,
    )

    table = result["summary_tables"]["capm"]
    out = args.out or REPORTS_DIR / f"capm_{args.index}_{args.frequency}.csv"
    out.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(out)
    print(f"[CAPM] Wrote CAPM table ({len(table)} stocks): {out}", flush=True)

    report = args.report or REPORTS_DIR / f"capm_{args.index}_{args.frequency}.html"
    title = f"CAPM betas: {args.index.upper()} constituents vs {result['inputs']['market_ticker']}"
    write_html_report(report, title, build_capm_report(result))

    summary = result["summary_tables"]["beta_summary"]
    if summary:
        print(
            f"[CAPM] Mean beta {summary['mean_beta']:.2f} over {summary['n_stocks']} stocks "
            f"({summary['n_aggressive']} aggressive, {summary['n_defensive']} defensive)",
            flush=True,
        )
    print("[CAPM] Done", flush=True)


if __name__ == "__main__":
    main()
