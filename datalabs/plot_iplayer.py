"""
Plotting helpers for the iPlayer cleaning workflow.

All functions return matplotlib Figure objects.
"""

from __future__ import annotations

import matplotlib.pyplot as plt
import pandas as pd

from .plot_styles import style


def plot_missing_profile(profile: pd.DataFrame):
    """Bar chart of % missing per column (output of missing_value_profile)."""
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.bar(profile.index.astype(str), profile["pct_missing"], **style("bar", "missing"))
    ax.set_ylabel("% missing")
    ax.set_title("Missing values by column")
    ax.tick_params(axis="x", rotation=45)
    ax.grid(True, axis="y", alpha=0.3)
    fig.tight_layout()
    return fig


def plot_minutes_viewed(df: pd.DataFrame, clip_quantile: float = 0.99):
    """
    Histogram of minutes viewed per event.

    The long right tail is clipped at `clip_quantile` for readability; the
    clip point is shown in the title.
    """
    minutes = df["minutes_viewed"].dropna()
    cap = float(minutes.quantile(clip_quantile)) if len(minutes) else 0.0

    fig, ax = plt.subplots(figsize=(8, 4.5))
    ax.hist(minutes.clip(upper=cap), **style("hist", "viewing", label=f"{len(minutes):,} events"))
    ax.set_xlabel("Minutes viewed")
    ax.set_ylabel("Events")
    ax.set_title(f"Time viewed per event (clipped at {cap:.0f} min)")
    ax.legend()
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_minutes_by_genre(df: pd.DataFrame):
    """Box plot of minutes viewed per genre, genres ordered by median."""
    data = df.dropna(subset=["genre", "minutes_viewed"])
    medians = data.groupby("genre", observed=True)["minutes_viewed"].median().sort_values()
    groups = [data.loc[data["genre"] == g, "minutes_viewed"].to_numpy() for g in medians.index]

    fig, ax = plt.subplots(figsize=(9, 5))
    ax.boxplot(groups, orientation="horizontal", showfliers=False)
    ax.set_yticks(range(1, len(medians) + 1))
    ax.set_yticklabels([str(g) for g in medians.index])
    ax.set_xlabel("Minutes viewed")
    ax.set_title("Minutes viewed by genre (outliers hidden)")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    return fig
