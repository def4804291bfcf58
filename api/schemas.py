from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from finance_core.filters import DEFAULT_GOALS, OPENING_BALANCE, SAVINGS_RATE_TARGET


class GoalModel(BaseModel):
    name: str
    target: float


class TargetsModel(BaseModel):
    opening_balance: float = OPENING_BALANCE
    savings_rate: float = SAVINGS_RATE_TARGET


class DashboardFiltersModel(BaseModel):
    selected_months: List[int] = Field(default_factory=list)
    selected_subgroups: List[str] = Field(default_factory=list)
    selected_payment_methods: List[str] = Field(default_factory=list)
    query: str = ""
    goals: List[GoalModel] = Field(default_factory=lambda: [GoalModel(name=g.name, target=g.target) for g in DEFAULT_GOALS])
    targets: TargetsModel = Field(default_factory=TargetsModel)


class MetaListResponse(BaseModel):
    values: List[str]
