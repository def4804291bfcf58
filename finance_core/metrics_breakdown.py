from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from finance_core.charts import palette, to_vega_spec
from finance_core.data import format_brl
from finance_core.filters import DashboardFilters


def _slices(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    colors = palette(len(df))
    return [
        {"name": str(name), "value": float(value), "label": f"{name}: {format_brl(value)}", "color": color}
        for (name, value), color in zip(df[["name", "value"]].itertuples(index=False), colors)
    ]


def pie_chart(slices: List[Dict[str, Any]], title: str) -> Optional[Dict[str, Any]]:
    """Pie with 'name: R$ x' labels outside each slice; colours cycle through COLORS."""
    if not slices:
        return None
    data = pd.DataFrame(slices)
    data["value_fmt"] = data["value"].apply(format_brl)

    base = alt.Chart(data).encode(
        theta=alt.Theta("value:Q", stack=True),
        color=alt.Color(
            "name:N",
            scale=alt.Scale(domain=data["name"].tolist(), range=data["color"].tolist()),
            legend=None,
        ),
        order=alt.Order("value:Q", sort="descending"),
        tooltip=[alt.Tooltip("name:N", title=title), alt.Tooltip("value_fmt:N", title="Valor")],
    )
    pie = base.mark_arc(outerRadius=100)
    text = base.mark_text(radius=130, fontSize=11).encode(text="label:N")
    return to_vega_spec(alt.layer(pie, text).properties(height=300))


def compute_breakdown(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    by_subgroup = _slices(ctx.get("by_subgroup", pd.DataFrame()))
    by_payment = _slices(ctx.get("by_payment_method", pd.DataFrame()))
    return {
        "filters": asdict(filters),
        "by_subgroup": by_subgroup,
        "by_payment_method": by_payment,
        "charts": {
            "subgroup_pie": pie_chart(by_subgroup, "Subgrupo"),
            "payment_method_pie": pie_chart(by_payment, "Forma de pagamento"),
        },
    }
