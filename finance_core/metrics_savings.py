from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from finance_core.charts import EXPENSE_COLOR, INCOME_COLOR, to_vega_spec
from finance_core.data import format_brl
from finance_core.filters import DashboardFilters


def savings_progress(rate: Optional[float], target: float) -> float:
    if rate is None:
        return 0.0
    if target <= 0:
        return 1.0 if rate >= 0 else 0.0
    return max(0.0, min(1.0, rate / target))


def compute_savings(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    totals: Dict[str, float] = ctx.get("totals") or {"renda": 0.0, "despesa": 0.0}
    table: pd.DataFrame = ctx.get("savings", pd.DataFrame()).copy()

    renda = float(totals.get("renda", 0.0))
    net = renda - float(totals.get("despesa", 0.0))
    rate = net / renda if renda > 0 else None
    target = float(filters.targets.savings_rate)

    # Rows without a date reach the totals but not the monthly balance.
    undated_net = net - (float(table["net"].sum()) if not table.empty else 0.0)

    best_month = None
    charts: Dict[str, Any] = {}
    if not table.empty:
        best = table.sort_values("net", ascending=False, kind="stable").iloc[0]
        best_month = {"month": str(best["month"]), "net": float(best["net"])}

        table["net_fmt"] = table["net"].apply(format_brl)
        table["balance_fmt"] = table["balance"].apply(format_brl)
        month_order = table["month"].tolist()
        chart_df = table[["month", "net", "balance", "net_fmt", "balance_fmt"]]
        net_bar = (
            alt.Chart(chart_df)
            .mark_bar()
            .encode(
                x=alt.X("month:N", sort=month_order, title=None),
                y=alt.Y("net:Q", title="Economia do mês", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                color=alt.condition(alt.datum.net >= 0, alt.value(INCOME_COLOR), alt.value(EXPENSE_COLOR)),
                tooltip=[alt.Tooltip("month:N", title="Mês"), alt.Tooltip("net_fmt:N", title="Economia")],
            )
            .properties(height=260)
        )
        balance_line = (
            alt.Chart(chart_df)
            .mark_line(point={"filled": True, "size": 60})
            .encode(
                x=alt.X("month:N", sort=month_order, title=None),
                y=alt.Y("balance:Q", title="Saldo acumulado", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
                tooltip=[alt.Tooltip("month:N", title="Mês"), alt.Tooltip("balance_fmt:N", title="Saldo")],
            )
            .properties(height=260)
        )
        charts = {"monthly_net": to_vega_spec(net_bar), "balance_trend": to_vega_spec(balance_line)}
        table = table.drop(columns=["net_fmt", "balance_fmt"])

    return {
        "filters": asdict(filters),
        "kpis": {
            "net": net,
            "savings_rate": rate,
            "target_rate": target,
            "progress": savings_progress(rate, target),
            "best_month": best_month,
            "undated_net": undated_net,
            "closing_balance": float(filters.targets.opening_balance) + net,
        },
        "months": table.to_dict(orient="records"),
        "charts": charts,
    }
