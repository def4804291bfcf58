from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from finance_core.charts import bank_color, bank_logo
from finance_core.data import format_brl
from finance_core.filters import DashboardFilters


def compute_accounts(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    summary: pd.DataFrame = ctx.get("accounts", pd.DataFrame())
    if summary.empty:
        return {"filters": asdict(filters), "total_spent": 0.0, "total_received": 0.0, "accounts": []}

    accounts = []
    for idx, row in enumerate(summary.itertuples(index=False)):
        name = str(row.payment_method)
        share = float(row.expense_share)
        accounts.append(
            {
                "name": name,
                "logo": bank_logo(name),
                "color": bank_color(name, idx),
                "spent": float(row.spent),
                "received": float(row.received),
                "net": float(row.net),
                "transactions": int(row.transactions),
                "expense_share": share,
                "progress": max(0.0, min(1.0, share)),
                "spent_fmt": format_brl(row.spent),
                "received_fmt": format_brl(row.received),
                "net_fmt": format_brl(row.net),
            }
        )

    return {
        "filters": asdict(filters),
        "total_spent": float(summary["spent"].sum()),
        "total_received": float(summary["received"].sum()),
        "accounts": accounts,
    }
