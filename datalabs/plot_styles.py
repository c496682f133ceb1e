"""
Central styling for the CAPM and iPlayer charts.

Use style(role, series) for all plot/scatter/bar calls. Colours come from one
SERIES palette and the role supplies the geometry kwargs, so no chart
function hardcodes color=.
"""

# --- Base styles (kwargs for ax.plot / ax.scatter / ax.bar / ax.hist) ---
LINE_STYLE = {
    "linewidth": 1.5,
    "zorder": 2,
}

FIT_STYLE = {
    "linewidth": 2.0,
    "zorder": 3,
}

POINT_STYLE = {
    "s": 18,
    "alpha": 0.6,
    "zorder": 2,
}

BAR_STYLE = {
    "alpha": 0.85,
    "edgecolor": "black",
    "linewidth": 0.5,
}

HIST_STYLE = {
    "bins": 30,
    "alpha": 0.8,
    "edgecolor": "black",
    "linewidth": 0.5,
}

REF_STYLE = {
    "linewidth": 1.0,
    "linestyle": ":",
    "zorder": 1,
}

# --- Single series palette ---
SERIES = {
    "stock": {"color": "C0", "label": "Stock returns"},
    "market": {"color": "C7", "label": "Market"},
    "fit": {"color": "C3", "label": "OLS fit"},
    "aggressive": {"color": "C3", "label": "Beta > 1"},
    "defensive": {"color": "C0", "label": "Beta < 1"},
    "beta": {"color": "C0", "label": "Estimated betas"},
    "unit_beta": {"color": "black", "label": "Beta = 1"},
    "missing": {"color": "C1", "label": "% missing"},
    "viewing": {"color": "C2", "label": "Minutes viewed"},
}

ROLE_BASES = {
    "line": LINE_STYLE,
    "fit": FIT_STYLE,
    "points": POINT_STYLE,
    "bar": BAR_STYLE,
    "hist": HIST_STYLE,
    "ref": REF_STYLE,
}


def style(
    role: str,
    series: str,
    *,
    label: str | None = None,
) -> dict:
    """
    Return a single style dict for ax.plot(...), ax.scatter(...) etc.

    - role: "line" | "fit" | "points" | "bar" | "hist" | "ref"
    - series: key into SERIES (e.g. "stock", "fit", "aggressive")
    - label: optional legend override

    Example: ax.scatter(x, y, **style("points", "stock"))
             ax.plot(x, y_hat, **style("fit", "fit", label="beta = 1.12"))
    """
    base = ROLE_BASES.get(role)
    if base is None:
        raise ValueError(f"Unknown role: {role}")
    series_d = SERIES.get(series)
    if series_d is None:
        raise ValueError(f"Unknown series: {series!r}")
    out = {**base, **series_d}

    if label is not None:
        out["label"] = label
    return out
