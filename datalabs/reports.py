"""
Render workflow outputs into a single self-contained HTML report.

A report is a title plus a list of sections. Each section is a
(heading, content) pair where content is a DataFrame, a matplotlib Figure,
a plain string (rendered as a paragraph), a dict (rendered as a two-column
table) or a list mixing those. Figures are embedded as base64 PNG so the file
can be opened or mailed on its own.
"""

from __future__ import annotations

import base64
import html
import io
from pathlib import Path
from typing import Iterable, Sequence, Tuple

import matplotlib.pyplot as plt
import pandas as pd
from matplotlib.figure import Figure

_CSS = """
body { font-family: -apple-system, Helvetica, Arial, sans-serif; margin: 2em auto; max-width: 1000px; color: #222; }
h1 { border-bottom: 2px solid #444; padding-bottom: .2em; }
h2 { margin-top: 1.6em; color: #333; }
table.dataframe { border-collapse: collapse; font-size: 0.85em; margin: .5em 0 1em; }
table.dataframe th, table.dataframe td { border: 1px solid #ccc; padding: 3px 8px; text-align: right; }
table.dataframe th { background: #f2f2f2; }
img { max-width: 100%; margin: .5em 0; }
"""


def _stage(msg: str) -> None:
    print(f"[Report] {msg}", flush=True)


def figure_to_html(fig: Figure, dpi: int = 110, close: bool = True) -> str:
    """Encode a Figure as an inline <img> tag."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi, bbox_inches="tight")
    if close:
        plt.close(fig)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f'<img src="data:image/png;base64,{encoded}" alt="figure"/>'


def _render_block(content, float_format: str) -> str:
    if content is None:
        return ""
    if isinstance(content, Figure):
        return figure_to_html(content)
    if isinstance(content, pd.Series):
        content = content.to_frame()
    if isinstance(content, pd.DataFrame):
        return content.to_html(float_format=lambda v: format(v, float_format), na_rep="", border=0)
    if isinstance(content, dict):
        frame = pd.DataFrame({"value": pd.Series(content, dtype=object)})
        return frame.to_html(border=0)
    if isinstance(content, str):
        return f"<p>{html.escape(content)}</p>"
    if isinstance(content, (list, tuple)):
        return "\n".join(_render_block(c, float_format) for c in content)
    raise TypeError(f"Unsupported report content type: {type(content).__name__}")


def render_html_report(
    title: str,
    sections: Iterable[Tuple[str, object]],
    float_format: str = ".4f",
) -> str:
    """Return the full HTML document as a string."""
    parts = [
        "<!DOCTYPE html>",
        "<html><head><meta charset='utf-8'>",
        f"<title>{html.escape(title)}</title>",
        f"<style>{_CSS}</style>",
        "</head><body>",
        f"<h1>{html.escape(title)}</h1>",
    ]
    for heading, content in sections:
        parts.append(f"<h2>{html.escape(heading)}</h2>")
        parts.append(_render_block(content, float_format))
    parts.append(f"<p><small>Generated {pd.Timestamp.now():%Y-%m-%d %H:%M}</small></p>")
    parts.append("</body></html>")
    return "\n".join(parts)


def write_html_report(
    path: str | Path,
    title: str,
    sections: Sequence[Tuple[str, object]],
    float_format: str = ".4f",
) -> Path:
    """Render and write the report, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_html_report(title, sections, float_format=float_format), encoding="utf-8")
    _stage(f"Wrote report to {path}")
    return path
