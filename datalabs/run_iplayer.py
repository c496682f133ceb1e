"""
Clean the raw BBC iPlayer viewing extract and render the cleaning report.

Usage (from the project root):

    python -m datalabs.run_iplayer datalabs_data/raw/bbc_iplayer.zip

Writes the cleaned events as CSV and an HTML report describing each step
(missing values, type conversion, duplicates, validity, outliers).
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

from .config import IPLAYER_ZIP, REPORTS_DIR
from .reports import write_html_report
from .workflows import build_iplayer_report, run_iplayer_workflow


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clean the BBC iPlayer viewing-events extract.")
    parser.add_argument("path", type=Path, nargs="?", default=IPLAYER_ZIP, help="Zipped or plain CSV input.")
    parser.add_argument(
        "--keep-invalid",
        action="store_true",
        help="Report impossible values (negative durations, over-long views) but keep the rows.",
    )
    parser.add_argument(
        "--min-minutes",
        type=float,
        default=0.5,
        help="Threshold in minutes for the watched_over_min flag.",
    )
    parser.add_argument("--out", type=Path, default=None, help="Cleaned CSV output path.")
    parser.add_argument("--report", type=Path, default=None, help="HTML report output path.")
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    print(f"[iPlayer] Starting run_iplayer on {args.path}", flush=True)

    result = run_iplayer_workflow(args.path, drop_invalid=not args.keep_invalid, min_minutes=args.min_minutes)

    clean = result["data"]["clean"]
    out = args.out or REPORTS_DIR / "iplayer_clean.csv"
    out.parent.mkdir(parents=True, exist_ok=True)
    clean.to_csv(out, index=False)
    print(f"[iPlayer] Wrote cleaned events ({len(clean):,} rows): {out}", flush=True)

    report = args.report or REPORTS_DIR / "iplayer_cleaning.html"
    write_html_report(report, "BBC iPlayer viewing data: cleaning report", build_iplayer_report(result))
    print("[iPlayer] Done", flush=True)


if __name__ == "__main__":
    main()
