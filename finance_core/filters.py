from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

OPENING_BALANCE = float(os.environ.get("FINANCE_OPENING_BALANCE", "645.81"))
SAVINGS_RATE_TARGET = 0.2


@dataclass(frozen=True)
class Goal:
    name: str
    target: float


DEFAULT_GOALS = (
    Goal("Reserva de emergência", 5000.0),
    Goal("Viagem", 3000.0),
)


@dataclass(frozen=True)
class Targets:
    opening_balance: float = OPENING_BALANCE
    savings_rate: float = SAVINGS_RATE_TARGET


@dataclass(frozen=True)
class DashboardFilters:
    selected_months: List[int] = field(default_factory=list)
    selected_subgroups: List[str] = field(default_factory=list)
    selected_payment_methods: List[str] = field(default_factory=list)
    query: str = ""
    goals: List[Goal] = field(default_factory=lambda: list(DEFAULT_GOALS))
    targets: Targets = field(default_factory=Targets)


def _as_int_list(values: Optional[Iterable[object]]) -> List[int]:
    if not values:
        return []
    out: List[int] = []
    for v in values:
        try:
            out.append(int(v))
        except (TypeError, ValueError):
            continue
    return out


def _as_float(value: object, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    return [str(x).strip() for x in (values or []) if x is not None and str(x).strip()]


def _as_goals(raw_goals: object) -> List[Goal]:
    if raw_goals is None:
        return list(DEFAULT_GOALS)
    goals: List[Goal] = []
    for g in raw_goals or []:
        if isinstance(g, Goal):
            goals.append(g)
            continue
        if not isinstance(g, dict):
            continue
        name = g.get("name")
        name = name.strip() if isinstance(name, str) else ""
        target = _as_float(g.get("target"), 0.0)
        if name and target > 0:
            goals.append(Goal(name=name, target=target))
    return goals


def normalize_filters(raw: dict) -> DashboardFilters:
    # Two-digit month field. A month without rows filters everything out.
    selected_months = sorted({m for m in _as_int_list(raw.get("selected_months")) if 0 <= m <= 99})

    t = raw.get("targets") or {}
    savings_rate = _as_float(t.get("savings_rate", SAVINGS_RATE_TARGET), SAVINGS_RATE_TARGET)
    targets = Targets(
        opening_balance=_as_float(t.get("opening_balance", OPENING_BALANCE), OPENING_BALANCE),
        savings_rate=max(0.0, min(1.0, savings_rate)),
    )

    return DashboardFilters(
        selected_months=selected_months,
        selected_subgroups=_as_str_list(raw.get("selected_subgroups")),
        selected_payment_methods=_as_str_list(raw.get("selected_payment_methods")),
        query=(raw.get("query") or "").strip(),
        goals=_as_goals(raw.get("goals")),
        targets=targets,
    )
