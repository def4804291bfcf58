from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from finance_core.data import EXPENSE_KINDS, INCOME_KINDS
from finance_core.filters import DashboardFilters


def compute_debug(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    transactions: pd.DataFrame = ctx.get("transactions", pd.DataFrame()).copy()
    payload = {
        "filters": asdict(filters),
        "row_counts": {
            "rows_accepted": int(ctx.get("rows_accepted", len(transactions)) or 0),
            "rows_skipped": int(ctx.get("rows_skipped", 0) or 0),
            "rows_filtered": int(len(ctx.get("filtered", pd.DataFrame()))),
            "rows_without_month": 0,
        },
        "kind_counts": [],
        "unknown_kinds": [],
        "month_coverage": [],
    }
    if transactions.empty:
        return payload

    payload["row_counts"]["rows_without_month"] = int(transactions["month_number"].isna().sum())
    kind_counts = transactions["kind"].value_counts().rename_axis("kind").reset_index(name="count")
    payload["kind_counts"] = kind_counts.to_dict(orient="records")
    known = INCOME_KINDS | EXPENSE_KINDS
    payload["unknown_kinds"] = sorted(k for k in transactions["kind"].dropna().unique() if k not in known)

    dated = transactions.dropna(subset=["year", "month_number"])
    if not dated.empty:
        coverage = dated.groupby(["year", "month_number"]).size().reset_index(name="rows")
        payload["month_coverage"] = coverage.to_dict(orient="records")
    return payload
