from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Tuple

from finance_core.filters import DashboardFilters, Goal


def allocate_goals(goals: Iterable[Goal], available: float) -> Tuple[List[Dict[str, Any]], float]:
    """Fill goals in order with the available balance.

    Returns the per-goal progress rows and the amount left unallocated.
    A negative balance funds nothing.
    """
    funds = max(0.0, float(available))
    rows: List[Dict[str, Any]] = []
    for goal in goals:
        saved = min(funds, goal.target)
        funds -= saved
        rows.append(
            {
                "name": goal.name,
                "target": goal.target,
                "saved": saved,
                "remaining": goal.target - saved,
                "progress": saved / goal.target if goal.target > 0 else 0.0,
                "completed": saved >= goal.target,
            }
        )
    return rows, funds


def compute_goals(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    totals = ctx.get("totals") or {}
    saldo = float(totals.get("saldo", filters.targets.opening_balance))
    rows, unallocated = allocate_goals(filters.goals, saldo)
    total_target = sum(g.target for g in filters.goals)
    return {
        "filters": asdict(filters),
        "saldo": saldo,
        "goals": rows,
        "completed": sum(1 for r in rows if r["completed"]),
        "total_target": total_target,
        "overall_progress": (sum(r["saved"] for r in rows) / total_target) if total_target else 0.0,
        "unallocated": unallocated,
    }
