import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from datalabs.iplayer import RAW_COLUMNS


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    import matplotlib.pyplot as plt

    plt.close("all")


@pytest.fixture
def raw_viewing_events():
    """Nine raw text rows covering every cleaning branch."""
    rows = [
        ["u1", "p1", "s1", "Drama", "3600000", "st1", "2017-01-01 10:00:00", "1800000"],
        ["u1", "p1", "s1", "Drama", "3600000", "st1", "2017-01-01 10:00:00", "1800000"],
        ["u2", "p2", "s2", "News", "1800000", "st2", "2017-01-02 20:30:00", "NA"],
        ["u3", "p3", "", "Comedy", "abc", "st3", "2017-01-03 08:00:00", "600000"],
        ["", "p4", "s4", "Drama", "3000000", "st4", "2017-01-04 12:00:00", "100000"],
        ["u5", "p5", "s5", "Sport", "1200000", "st5", "2017-01-05 15:00:00", "2400000"],
        ["u6", "p6", "s6", "Drama", "-5", "st6", "2017-01-06 09:00:00", "1000"],
        ["u7", "p7", "s7", "News", "2700000", "st7", "not a date", "900000"],
        ["u8", "p8", "s8", "Drama", "3600000", "st8", "2017-01-08 21:00:00", "3000000"],
    ]
    return pd.DataFrame(rows, columns=RAW_COLUMNS)


@pytest.fixture
def synthetic_prices():
    """Three years of daily prices: market ^DJI, AAA (beta ~1.5), BBB (beta ~0.5)."""
    rng = np.random.default_rng(42)
    idx = pd.bdate_range("2020-01-01", "2022-12-31", name="date")
    r_m = rng.normal(0.0004, 0.01, len(idx))
    r_a = 1.5 * r_m + rng.normal(0.0, 0.002, len(idx))
    r_b = 0.5 * r_m + rng.normal(0.0, 0.002, len(idx))
    return pd.DataFrame(
        {
            "AAA": 50.0 * np.cumprod(1 + r_a),
            "BBB": 20.0 * np.cumprod(1 + r_b),
            "^DJI": 30000.0 * np.cumprod(1 + r_m),
        },
        index=idx,
    )
