"""
Scrape index constituent lists (DJIA, S&P 500) from Wikipedia.

This module:
- Downloads the Wikipedia page for the requested index.
- Parses every HTML table on the page into rows of cell text.
- Picks the constituents table (first table with a Symbol/Ticker header).
- Normalises tickers for the price provider and caches the list as CSV
  under `datalabs_data/processed/`.

EXPLAIN: Wikipedia is the live source used by the notebook, so the list
changes over time. The CSV cache pins the universe for a given run and
keeps repeated runs from re-scraping.
"""

from __future__ import annotations

import re
from html.parser import HTMLParser
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
import requests

from .config import PROCESSED_DIR, USER_AGENT, WIKIPEDIA_URLS


SYMBOL_HEADERS = ("Symbol", "Ticker", "Ticker symbol")
COMPANY_HEADERS = ("Company", "Security", "Name")
SECTOR_HEADERS = ("GICS Sector", "Industry", "Sector")

_FOOTNOTE = re.compile(r"\[(?:\d+|[a-z]|note \d+)\]")


def _stage(msg: str) -> None:
    print(f"[Constituents] {msg}", flush=True)


def clean_ticker(t: str) -> str:
    """Upper-case, strip and map share-class dots to dashes (BRK.B -> BRK-B)."""
    return str(t).upper().strip().replace(".", "-")


def _clean_cell(text: str) -> str:
    text = _FOOTNOTE.sub("", text)
    return " ".join(text.split())


def _span(attrs, name: str) -> int:
    """colspan/rowspan attribute as a positive int (1 when absent or malformed)."""
    for key, value in attrs:
        if key == name:
            try:
                return max(1, int(value))
            except (TypeError, ValueError):
                return 1
    return 1


class _TableParser(HTMLParser):
    """
    Internal helper: collect every <table> as a list of rows of cell text.

    colspan/rowspan cells are repeated into every grid position they cover,
    so columns line up with the header. A table nested inside a cell is
    collected as its own table; the enclosing row and cell resume after it.
    """

    def __init__(self) -> None:
        super().__init__()
        self.tables: List[List[List[str]]] = []
        self._stack: List[List[List[str]]] = []
        # per open table: column -> (rows still covered, text) from rowspan cells
        self._pending: List[Dict[int, Tuple[int, str]]] = []
        self._saved: List[Tuple[Optional[List[str]], Optional[List[str]], Tuple[int, int]]] = []
        self._row: Optional[List[str]] = None
        self._cell: Optional[List[str]] = None
        self._spans: Tuple[int, int] = (1, 1)

    def handle_starttag(self, tag, attrs) -> None:  # type: ignore[override]
        if tag == "table":
            self._saved.append((self._row, self._cell, self._spans))
            self._stack.append([])
            self._pending.append({})
            self._row = None
            self._cell = None
        elif not self._stack:
            return
        elif tag == "tr":
            self._row = []
        elif tag in ("td", "th") and self._row is not None:
            self._cell = []
            self._spans = (_span(attrs, "colspan"), _span(attrs, "rowspan"))
        elif tag == "br" and self._cell is not None:
            self._cell.append(" ")

    def _fill_spanned(self) -> None:
        pending = self._pending[-1]
        while len(self._row) in pending:
            col = len(self._row)
            left, text = pending.pop(col)
            if left > 1:
                pending[col] = (left - 1, text)
            self._row.append(text)

    def handle_endtag(self, tag) -> None:  # type: ignore[override]
        if not self._stack:
            return
        if tag in ("td", "th") and self._cell is not None and self._row is not None:
            text = _clean_cell("".join(self._cell))
            colspan, rowspan = self._spans
            self._fill_spanned()
            for _ in range(colspan):
                if rowspan > 1:
                    self._pending[-1][len(self._row)] = (rowspan - 1, text)
                self._row.append(text)
            self._cell = None
            self._spans = (1, 1)
        elif tag == "tr" and self._row is not None:
            self._fill_spanned()
            if self._row:
                self._stack[-1].append(self._row)
            self._row = None
        elif tag == "table":
            self.tables.append(self._stack.pop())
            self._pending.pop()
            self._row, self._cell, self._spans = self._saved.pop()

    def handle_data(self, data) -> None:  # type: ignore[override]
        if self._cell is not None:
            self._cell.append(data)


def parse_html_tables(html: str) -> List[List[List[str]]]:
    """
    Parse all HTML tables in `html`.

    Returns
    -------
    list
        One entry per table, each a list of rows, each row a list of cell
        strings (footnote markers removed, whitespace collapsed). The first
        row of a table is its header.
    """
    parser = _TableParser()
    parser.feed(html)
    parser.close()
    return parser.tables


def _find_column(header: List[str], candidates) -> Optional[int]:
    for name in candidates:
        for i, h in enumerate(header):
            if h.lower() == name.lower():
                return i
    return None


def find_constituents_table(tables: List[List[List[str]]]) -> pd.DataFrame:
    """
    Select the constituents table and return it as a tidy DataFrame.

    Returns
    -------
    DataFrame
        Columns ['ticker', 'company', 'sector'], one row per ticker,
        sorted by ticker.
    """
    for rows in tables:
        if len(rows) < 2:
            continue
        header = rows[0]
        sym_idx = _find_column(header, SYMBOL_HEADERS)
        if sym_idx is None:
            continue
        comp_idx = _find_column(header, COMPANY_HEADERS)
        sec_idx = _find_column(header, SECTOR_HEADERS)

        records = []
        for row in rows[1:]:
            if len(row) <= sym_idx or not row[sym_idx]:
                continue
            records.append(
                {
                    "ticker": clean_ticker(row[sym_idx]),
                    "company": row[comp_idx] if comp_idx is not None and comp_idx < len(row) else "",
                    "sector": row[sec_idx] if sec_idx is not None and sec_idx < len(row) else "",
                }
            )
        if not records:
            continue

        df = pd.DataFrame(records, columns=["ticker", "company", "sector"])
        df = df.drop_duplicates(subset="ticker").sort_values("ticker").reset_index(drop=True)
        return df

    raise RuntimeError("No table with a Symbol/Ticker column found on the page.")


def _requests_session(user_agent: Optional[str] = None) -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": user_agent or USER_AGENT, "Accept": "text/html,*/*"})
    return s


def fetch_constituents(
    index: str,
    refresh: bool = False,
    cache_dir: Path = PROCESSED_DIR,
    session: Optional[requests.Session] = None,
) -> pd.DataFrame:
    """
    Return the current constituents of `index` ('djia' or 'sp500').

    Parameters
    ----------
    index : str
        Key into WIKIPEDIA_URLS.
    refresh : bool, default False
        Ignore the CSV cache and scrape again.
    cache_dir : Path
        Directory holding `<index>_constituents.csv`.
    session : requests.Session, optional
        Pre-configured session (mainly for tests).
    """
    key = index.lower()
    if key not in WIKIPEDIA_URLS:
        raise ValueError(f"Unknown index {index!r}; expected one of {sorted(WIKIPEDIA_URLS)}")

    cache_csv = Path(cache_dir) / f"{key}_constituents.csv"
    if cache_csv.exists() and not refresh:
        _stage(f"{key} constituents cache hit: {cache_csv}")
        cached = pd.read_csv(cache_csv, dtype=str, keep_default_na=False)
        return cached[["ticker", "company", "sector"]]

    url = WIKIPEDIA_URLS[key]
    _stage(f"Scraping {key} constituents from {url}")
    s = session or _requests_session()
    resp = s.get(url, timeout=30)
    resp.raise_for_status()

    df = find_constituents_table(parse_html_tables(resp.text))
    cache_csv.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(cache_csv, index=False)
    _stage(f"Saved {len(df)} {key} constituents: {cache_csv}")
    return df


def fetch_tickers(index: str, **kwargs) -> List[str]:
    """Convenience wrapper: list of normalised tickers for `index`."""
    return fetch_constituents(index, **kwargs)["ticker"].tolist()
