from __future__ import annotations

from typing import Any, Dict, List

import altair as alt

alt.data_transformers.disable_max_rows()

COLORS = ["#38bdf8", "#818cf8", "#f472b6", "#facc15", "#4ade80", "#f87171"]
INCOME_COLOR = "#4ade80"
EXPENSE_COLOR = "#f87171"

BANK_COLORS = {
    "Flash": "#f472b6",
    "Santander": "#ef4444",
    "Nubank": "#8b5cf6",
    "99Pay": "#facc15",
}

BANK_LOGOS = {
    "Flash": "💳",
    "Santander": "🏦",
    "Nubank": "💜",
    "99Pay": "💰",
}
DEFAULT_LOGO = "🏷️"


def palette(n: int) -> List[str]:
    """Cycle through COLORS for `n` slices."""
    return [COLORS[i % len(COLORS)] for i in range(n)]


def bank_color(name: str, index: int = 0) -> str:
    return BANK_COLORS.get(name, COLORS[index % len(COLORS)])


def bank_logo(name: str) -> str:
    return BANK_LOGOS.get(name, DEFAULT_LOGO)


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()
