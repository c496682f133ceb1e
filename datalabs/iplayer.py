"""
Cleaning utilities for the raw BBC iPlayer viewing-events extract.

Each row of the raw file is one streaming event:

    user_id, program_id, series_id, genre, program_duration,
    streaming_id, start_date_time, time_viewed

with both durations in milliseconds. The raw file arrives zipped and is read
entirely as text so that every cleaning decision is an explicit step:

1. normalise_missing   - blank strings and NA-like tokens -> NaN
2. convert_types       - datetimes, numeric durations, string ids, category genre
3. duplicates          - exact duplicate rows removed
4. required fields     - rows without user, programme or start time removed
5. validity            - negative durations, over-long views, future starts
6. features            - minutes viewed, share of programme, date/hour/weekday

Profiling helpers (missing_value_profile, duplicate_report, outlier_report,
validity_report) only describe the data; they never modify it.
"""

from __future__ import annotations

import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd


RAW_COLUMNS = [
    "user_id",
    "program_id",
    "series_id",
    "genre",
    "program_duration",
    "streaming_id",
    "start_date_time",
    "time_viewed",
]
ID_COLUMNS = ["user_id", "program_id", "series_id", "streaming_id"]
DURATION_COLUMNS = ["program_duration", "time_viewed"]
DATETIME_COLUMN = "start_date_time"
REQUIRED_COLUMNS = ["user_id", "program_id", DATETIME_COLUMN]
EVENT_KEY = ["user_id", "program_id", DATETIME_COLUMN]

MISSING_TOKENS = {"", "na", "n/a", "nan", "null", "none", "-"}

MS_PER_MINUTE = 60_000.0


def _stage(msg: str) -> None:
    print(f"[iPlayer] {msg}", flush=True)


def _require(df: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")


def _is_text(s: pd.Series) -> bool:
    return pd.api.types.is_object_dtype(s) or pd.api.types.is_string_dtype(s)


def load_viewing_events(path: str | Path) -> pd.DataFrame:
    """
    Read the raw viewing events from a zipped or plain CSV.

    For a ZIP, the first CSV member is read (macOS resource forks ignored).
    All values are kept as text, with empty cells as empty strings.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Viewing data not found: {path}")

    read_kw = dict(dtype=str, keep_default_na=False, skipinitialspace=True)
    if path.suffix.lower() == ".zip":
        with zipfile.ZipFile(path, "r") as zf:
            members = [
                n for n in zf.namelist()
                if n.lower().endswith(".csv") and not n.startswith("__MACOSX")
            ]
            if not members:
                raise ValueError(f"No CSV file found inside zip: {path}")
            with zf.open(members[0]) as fh:
                df = pd.read_csv(fh, **read_kw)
        _stage(f"Loaded {members[0]} from {path.name}: {df.shape[0]:,} rows x {df.shape[1]} columns")
    else:
        df = pd.read_csv(path, **read_kw)
        _stage(f"Loaded {path.name}: {df.shape[0]:,} rows x {df.shape[1]} columns")

    df.columns = [str(c).strip() for c in df.columns]
    return df


def normalise_missing(df: pd.DataFrame, tokens: Iterable[str] = MISSING_TOKENS) -> pd.DataFrame:
    """
    Strip text cells and turn blank / NA-like tokens into NaN.

    Matching is case-insensitive on the stripped value. Non-text columns are
    left unchanged.
    """
    lowered = {t.lower() for t in tokens}
    out = df.copy()
    for col in out.columns:
        s = out[col]
        if not _is_text(s):
            continue
        stripped = s.where(s.isna(), s.astype(str).str.strip())
        mask = stripped.isna() | stripped.str.lower().isin(lowered)
        out[col] = stripped.mask(mask, np.nan)
    return out


def missing_value_profile(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-column missingness summary.

    Returns
    -------
    DataFrame
        Index: column name. Columns: n_missing, pct_missing, dtype, n_unique.
        Sorted by pct_missing (highest first), ties in original column order.
    """
    n = len(df)
    n_missing = df.isna().sum()
    profile = pd.DataFrame(
        {
            "n_missing": n_missing.astype(int),
            "pct_missing": (n_missing / n * 100.0) if n else 0.0,
            "dtype": df.dtypes.astype(str),
            "n_unique": df.nunique(dropna=True).astype(int),
        }
    )
    profile.index.name = "column"
    return profile.sort_values("pct_missing", ascending=False, kind="mergesort")


def convert_types(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Convert raw text columns to analysis types.

    - start_date_time -> datetime64 (unparseable -> NaT)
    - program_duration, time_viewed -> float (unparseable -> NaN)
    - id columns -> pandas string dtype
    - genre -> category

    Only columns present in `df` are touched.

    Returns
    -------
    (converted, report)
        report has one row per converted column with the target type and
        the number of non-missing values that failed to convert.
    """
    out = df.copy()
    rows = []

    if DATETIME_COLUMN in out.columns:
        raw = out[DATETIME_COLUMN]
        conv = pd.to_datetime(raw, errors="coerce", format="mixed")
        rows.append({"column": DATETIME_COLUMN, "target": "datetime", "n_failed": int((conv.isna() & raw.notna()).sum())})
        out[DATETIME_COLUMN] = conv

    for col in DURATION_COLUMNS:
        if col not in out.columns:
            continue
        raw = out[col]
        conv = pd.to_numeric(raw, errors="coerce").astype(float)
        rows.append({"column": col, "target": "float", "n_failed": int((conv.isna() & raw.notna()).sum())})
        out[col] = conv

    for col in ID_COLUMNS:
        if col in out.columns:
            out[col] = out[col].astype("string")
            rows.append({"column": col, "target": "string", "n_failed": 0})

    if "genre" in out.columns:
        out["genre"] = out["genre"].astype("category")
        rows.append({"column": "genre", "target": "category", "n_failed": 0})

    report = pd.DataFrame(rows, columns=["column", "target", "n_failed"]).set_index("column")
    return out, report


def duplicate_report(df: pd.DataFrame) -> Dict[str, int]:
    """
    Count duplicates three ways.

    - exact_duplicates: rows identical in every column (beyond the first)
    - duplicate_streaming_ids: repeated non-missing streaming_id values
    - duplicate_events: repeated (user_id, program_id, start_date_time)
    """
    report = {
        "n_rows": int(len(df)),
        "exact_duplicates": int(df.duplicated().sum()),
    }
    if "streaming_id" in df.columns:
        report["duplicate_streaming_ids"] = int(df["streaming_id"].dropna().duplicated().sum())
    if all(c in df.columns for c in EVENT_KEY):
        report["duplicate_events"] = int(df.duplicated(subset=EVENT_KEY).sum())
    return report


def drop_duplicate_events(df: pd.DataFrame, subset: Optional[List[str]] = None) -> pd.DataFrame:
    """Drop duplicate rows (on `subset`, default all columns), keeping the first."""
    return df.drop_duplicates(subset=subset, keep="first").reset_index(drop=True)


def iqr_bounds(s: pd.Series, k: float = 1.5) -> Tuple[float, float]:
    """Tukey fences: (Q1 - k*IQR, Q3 + k*IQR) on non-missing values."""
    q1, q3 = s.dropna().quantile([0.25, 0.75])
    iqr = q3 - q1
    return float(q1 - k * iqr), float(q3 + k * iqr)


def outlier_report(
    df: pd.DataFrame,
    columns: Optional[Iterable[str]] = None,
    k: float = 1.5,
) -> pd.DataFrame:
    """
    IQR outlier summary for numeric columns.

    Returns
    -------
    DataFrame
        Index: column. Columns: min, q1, median, q3, max, lower, upper,
        n_low, n_high, pct_outliers.
    """
    if columns is None:
        columns = [c for c in df.columns if pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])]
    rows = []
    for col in columns:
        s = df[col].dropna()
        if s.empty:
            continue
        lower, upper = iqr_bounds(s, k=k)
        n_low = int((s < lower).sum())
        n_high = int((s > upper).sum())
        rows.append(
            {
                "column": col,
                "min": float(s.min()),
                "q1": float(s.quantile(0.25)),
                "median": float(s.median()),
                "q3": float(s.quantile(0.75)),
                "max": float(s.max()),
                "lower": lower,
                "upper": upper,
                "n_low": n_low,
                "n_high": n_high,
                "pct_outliers": (n_low + n_high) / len(s) * 100.0,
            }
        )
    cols = ["column", "min", "q1", "median", "q3", "max", "lower", "upper", "n_low", "n_high", "pct_outliers"]
    return pd.DataFrame(rows, columns=cols).set_index("column")


def _invalid_flags(df: pd.DataFrame, now: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    now = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    flags = pd.DataFrame(index=df.index)
    if "program_duration" in df.columns:
        flags["negative_program_duration"] = df["program_duration"] < 0
    if "time_viewed" in df.columns:
        flags["negative_time_viewed"] = df["time_viewed"] < 0
    if "program_duration" in df.columns and "time_viewed" in df.columns:
        flags["viewed_exceeds_duration"] = df["time_viewed"] > df["program_duration"]
    if DATETIME_COLUMN in df.columns and pd.api.types.is_datetime64_any_dtype(df[DATETIME_COLUMN]):
        start = df[DATETIME_COLUMN]
        tz = start.dt.tz
        if tz is not None and now.tzinfo is None:
            now = now.tz_localize(tz)
        elif tz is None and now.tzinfo is not None:
            now = now.tz_convert(None)
        flags["future_start"] = start > now
    return flags.astype(bool)


def validity_report(df: pd.DataFrame, now: Optional[pd.Timestamp] = None) -> Dict[str, int]:
    """
    Count logically impossible values in a type-converted frame.

    Comparisons involving missing values do not count as violations.
    """
    flags = _invalid_flags(df, now=now)
    report = {name: int(flags[name].sum()) for name in flags.columns}
    report["any_invalid"] = int(flags.any(axis=1).sum())
    return report


def add_viewing_features(df: pd.DataFrame, min_minutes: float = 0.5) -> pd.DataFrame:
    """
    Derive analysis columns from a type-converted frame.

    Adds minutes_viewed, program_minutes, share_viewed (time viewed over
    programme length, capped at 1; NaN when the length is not positive),
    date, hour, weekday, and watched_over_min (minutes_viewed >= min_minutes).
    """
    _require(df, DURATION_COLUMNS + [DATETIME_COLUMN])
    out = df.copy()
    out["minutes_viewed"] = out["time_viewed"] / MS_PER_MINUTE
    out["program_minutes"] = out["program_duration"] / MS_PER_MINUTE
    length = out["program_duration"].where(out["program_duration"] > 0)
    out["share_viewed"] = (out["time_viewed"] / length).clip(upper=1.0)
    start = out[DATETIME_COLUMN]
    out["date"] = start.dt.normalize()
    out["hour"] = start.dt.hour
    out["weekday"] = start.dt.day_name()
    out["watched_over_min"] = out["minutes_viewed"] >= min_minutes
    return out


@dataclass
class CleaningResult:
    """Output of clean_viewing_events: cleaned data plus everything reported on the way."""

    data: pd.DataFrame
    steps: pd.DataFrame
    reports: Dict[str, object] = field(default_factory=dict)


def clean_viewing_events(
    raw: pd.DataFrame,
    drop_invalid: bool = True,
    min_minutes: float = 0.5,
    now: Optional[pd.Timestamp] = None,
) -> CleaningResult:
    """
    Run the full cleaning pipeline on a raw (text) viewing-events frame.

    Parameters
    ----------
    raw : DataFrame
        Output of load_viewing_events().
    drop_invalid : bool, default True
        If False, impossible values are reported but kept.
    min_minutes : float
        Threshold for the watched_over_min flag.
    now : Timestamp, optional
        Reference time for the future-start check (default: current time).

    Returns
    -------
    CleaningResult
        steps: rows before/after each step.
        reports: 'missing' (profile after normalising), 'conversion',
        'duplicates', 'validity', 'outliers' (on the cleaned frame).
    """
    _require(raw, REQUIRED_COLUMNS + DURATION_COLUMNS)
    steps: List[Dict[str, object]] = []
    reports: Dict[str, object] = {}

    def _record(name: str, before: int, after: int) -> None:
        steps.append({"step": name, "rows_before": before, "rows_after": after, "rows_removed": before - after})
        _stage(f"{name}: {before:,} -> {after:,} rows")

    df = normalise_missing(raw)
    reports["missing"] = missing_value_profile(df)
    _record("normalise_missing", len(raw), len(df))

    n = len(df)
    df, reports["conversion"] = convert_types(df)
    _record("convert_types", n, len(df))

    n = len(df)
    reports["duplicates"] = duplicate_report(df)
    df = drop_duplicate_events(df)
    _record("drop_exact_duplicates", n, len(df))

    n = len(df)
    df = df.dropna(subset=REQUIRED_COLUMNS).reset_index(drop=True)
    _record("drop_missing_required", n, len(df))

    n = len(df)
    reports["validity"] = validity_report(df, now=now)
    if drop_invalid:
        bad = _invalid_flags(df, now=now).any(axis=1)
        df = df.loc[~bad].reset_index(drop=True)
    _record("drop_invalid" if drop_invalid else "keep_invalid", n, len(df))

    df = add_viewing_features(df, min_minutes=min_minutes)
    reports["outliers"] = outlier_report(df, columns=["minutes_viewed", "program_minutes"])

    return CleaningResult(data=df, steps=pd.DataFrame(steps), reports=reports)


def summarise_by_genre(df: pd.DataFrame) -> pd.DataFrame:
    """
    Viewing summary per genre on a cleaned frame.

    Columns: events, users, mean_minutes, median_minutes, share_over_min.
    Sorted by number of events.
    """
    _require(df, ["genre", "user_id", "minutes_viewed", "watched_over_min"])
    summary = df.groupby("genre", observed=True).agg(
        events=("user_id", "size"),
        users=("user_id", "nunique"),
        mean_minutes=("minutes_viewed", "mean"),
        median_minutes=("minutes_viewed", "median"),
        share_over_min=("watched_over_min", "mean"),
    )
    return summary.sort_values("events", ascending=False)
