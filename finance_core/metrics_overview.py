from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from finance_core.charts import EXPENSE_COLOR, INCOME_COLOR, to_vega_spec
from finance_core.data import EXPENSE_LABEL, INCOME_LABEL, format_brl
from finance_core.filters import DashboardFilters

POSITIVE_MESSAGE = "Parabéns! Seu saldo está positivo. Mantenha os bons hábitos de economia."
NEGATIVE_MESSAGE = "Atenção: seu saldo está negativo. Reveja seus gastos com alimentação, lazer e compras parceladas."


def assistant_message(saldo: float) -> Dict[str, str]:
    if saldo >= 0:
        return {"tone": "positive", "message": POSITIVE_MESSAGE}
    return {"tone": "negative", "message": NEGATIVE_MESSAGE}


def monthly_bar_chart(by_month: pd.DataFrame) -> Optional[Dict[str, Any]]:
    if by_month.empty:
        return None
    long_df = by_month.melt(
        id_vars=["month"],
        value_vars=[INCOME_LABEL, EXPENSE_LABEL],
        var_name="tipo",
        value_name="valor",
    )
    long_df["valor_fmt"] = long_df["valor"].apply(format_brl)
    month_order = by_month["month"].tolist()

    base = alt.Chart(long_df).encode(
        x=alt.X("month:N", sort=month_order, title=None, axis=alt.Axis(labelAngle=-15)),
        xOffset=alt.XOffset("tipo:N", sort=[INCOME_LABEL, EXPENSE_LABEL]),
        color=alt.Color(
            "tipo:N",
            scale=alt.Scale(domain=[INCOME_LABEL, EXPENSE_LABEL], range=[INCOME_COLOR, EXPENSE_COLOR]),
            legend=alt.Legend(title=None, labelFontSize=12, orient="bottom"),
        ),
        tooltip=[
            alt.Tooltip("month:N", title="Mês"),
            alt.Tooltip("tipo:N", title="Tipo"),
            alt.Tooltip("valor_fmt:N", title="Valor"),
        ],
    )
    bars = base.mark_bar().encode(y=alt.Y("valor:Q", axis=None))
    labels = base.mark_text(dy=-6, fontSize=10).encode(y=alt.Y("valor:Q", axis=None), text="valor_fmt:N")
    return to_vega_spec(alt.layer(bars, labels).properties(height=340))


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    totals: Dict[str, float] = ctx.get("totals") or {"renda": 0.0, "despesa": 0.0, "saldo": filters.targets.opening_balance}
    by_month: pd.DataFrame = ctx.get("by_month", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered", pd.DataFrame())

    return {
        "filters": asdict(filters),
        "records": int(ctx.get("rows_accepted", 0) or 0),
        "filtered_records": int(len(filtered)),
        "kpis": {
            "opening_balance": float(filters.targets.opening_balance),
            "renda": totals["renda"],
            "despesa": totals["despesa"],
            "saldo": totals["saldo"],
        },
        "by_month": by_month.to_dict(orient="records"),
        "assistant": assistant_message(totals["saldo"]),
        "charts": {"monthly": monthly_bar_chart(by_month)},
    }
