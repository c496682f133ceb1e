"""
Configuration for the datalabs notebooks helpers.

Centralises paths so that all downloaded and derived data lives under a single
`datalabs_data/` directory at the project root, plus the handful of source
URLs and defaults shared by the CAPM and iPlayer workflows.
"""

from pathlib import Path

# Project root = parent of this `datalabs` package
PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_ROOT = PROJECT_ROOT / "datalabs_data"
RAW_DIR = DATA_ROOT / "raw"              # Inputs as received (zipped CSVs)
PROCESSED_DIR = DATA_ROOT / "processed"  # Scraped ticker lists, price CSVs
REPORTS_DIR = DATA_ROOT / "reports"      # Rendered HTML reports

# EXPLAIN: Actual directory creation is done by the code that writes files,
# not at import time, to keep module side effects minimal.

WIKIPEDIA_URLS = {
    "djia": "https://en.wikipedia.org/wiki/Dow_Jones_Industrial_Average",
    "sp500": "https://en.wikipedia.org/wiki/List_of_S%26P_500_companies",
}

# Index level used as the market return in the CAPM regressions.
MARKET_TICKERS = {
    "djia": "^DJI",
    "sp500": "^GSPC",
}

DEFAULT_START = "2015-01-01"
DEFAULT_END = "2024-12-31"
DEFAULT_FREQUENCY = "monthly"

USER_AGENT = "datalabs/1.0 (course notebooks; contact: team@example.com)"

# iPlayer viewing events: sample zip expected under RAW_DIR.
IPLAYER_ZIP = RAW_DIR / "bbc_iplayer.zip"
