import pytest

from finance_core.charts import BANK_COLORS, COLORS, bank_color, bank_logo
from finance_core.data import prepare_context
from finance_core.filters import Goal
from finance_core.metrics_accounts import compute_accounts
from finance_core.metrics_breakdown import compute_breakdown
from finance_core.metrics_debug import compute_debug
from finance_core.metrics_goals import allocate_goals, compute_goals
from finance_core.metrics_overview import NEGATIVE_MESSAGE, POSITIVE_MESSAGE, assistant_message, compute_overview
from finance_core.metrics_savings import compute_savings, savings_progress


def test_overview_payload(ctx):
    payload = compute_overview(ctx["filters"], ctx)
    assert payload["records"] == 9
    assert payload["filtered_records"] == 9
    assert payload["kpis"]["renda"] == pytest.approx(6100.0)
    assert payload["by_month"][-1]["month"] == "Total Geral"
    assert payload["assistant"] == {"tone": "positive", "message": POSITIVE_MESSAGE}
    assert "layer" in payload["charts"]["monthly"]


def test_overview_negative_balance(data_ctx):
    ctx = prepare_context({"targets": {"opening_balance": -10000}}, data_ctx)
    payload = compute_overview(ctx["filters"], ctx)
    assert payload["assistant"]["tone"] == "negative"
    assert payload["assistant"]["message"] == NEGATIVE_MESSAGE


def test_assistant_message_zero_is_positive():
    assert assistant_message(0.0)["tone"] == "positive"


def test_breakdown_payload(ctx):
    payload = compute_breakdown(ctx["filters"], ctx)
    first = payload["by_subgroup"][0]
    assert first["name"] == "Moradia"
    assert first["label"] == "Moradia: R$ 1.200,00"
    assert [s["color"] for s in payload["by_subgroup"]] == COLORS[:4]
    assert payload["charts"]["subgroup_pie"] is not None
    assert payload["charts"]["payment_method_pie"] is not None


def test_breakdown_without_expenses(data_ctx):
    ctx = prepare_context({"selected_subgroups": ["Salário"]}, data_ctx)
    payload = compute_breakdown(ctx["filters"], ctx)
    assert payload["by_subgroup"] == []
    assert payload["charts"]["subgroup_pie"] is None


def test_accounts_payload(ctx):
    payload = compute_accounts(ctx["filters"], ctx)
    names = [a["name"] for a in payload["accounts"]]
    assert names == ["99Pay", "Flash", "Nubank", "Santander"]
    pay = payload["accounts"][0]
    assert pay["logo"] == "💰"
    assert pay["color"] == BANK_COLORS["99Pay"]
    assert pay["progress"] == pytest.approx(1200.0 / 1900.0)
    santander = payload["accounts"][-1]
    assert santander["progress"] == 0.0
    assert santander["received_fmt"] == "R$ 6.000,00"
    assert payload["total_spent"] == pytest.approx(1900.0)


def test_bank_palette_fallbacks():
    assert bank_logo("Inter") == "🏷️"
    assert bank_color("Inter", 7) == COLORS[1]


def test_savings_payload(ctx):
    payload = compute_savings(ctx["filters"], ctx)
    kpis = payload["kpis"]
    assert kpis["net"] == pytest.approx(4200.0)
    assert kpis["savings_rate"] == pytest.approx(4200.0 / 6100.0)
    assert kpis["progress"] == 1.0
    assert kpis["best_month"] == {"month": "Jan.", "net": pytest.approx(2469.5)}
    assert len(payload["months"]) == 3
    assert set(payload["charts"]) == {"monthly_net", "balance_trend"}


def test_savings_reports_undated_rows(ctx):
    kpis = compute_savings(ctx["filters"], ctx)["kpis"]
    last_balance = ctx["savings"]["balance"].iloc[-1]
    assert kpis["undated_net"] == pytest.approx(100.0)
    assert kpis["closing_balance"] == pytest.approx(ctx["totals"]["saldo"])
    assert last_balance + kpis["undated_net"] == pytest.approx(ctx["totals"]["saldo"])


def test_savings_progress():
    assert savings_progress(None, 0.2) == 0.0
    assert savings_progress(0.1, 0.2) == pytest.approx(0.5)
    assert savings_progress(-0.1, 0.2) == 0.0
    assert savings_progress(0.0, 0.0) == 1.0


def test_allocate_goals_waterfall():
    rows, left = allocate_goals([Goal("A", 100.0), Goal("B", 50.0), Goal("C", 10.0)], 120.0)
    assert [r["saved"] for r in rows] == [100.0, 20.0, 0.0]
    assert [r["completed"] for r in rows] == [True, False, False]
    assert rows[1]["progress"] == pytest.approx(0.4)
    assert left == 0.0


def test_allocate_goals_negative_balance_funds_nothing():
    rows, left = allocate_goals([Goal("A", 100.0)], -50.0)
    assert rows[0]["saved"] == 0.0
    assert rows[0]["remaining"] == 100.0
    assert left == 0.0


def test_goals_payload(ctx):
    payload = compute_goals(ctx["filters"], ctx)
    assert payload["saldo"] == pytest.approx(4845.81)
    assert payload["goals"][0]["saved"] == pytest.approx(4845.81)
    assert payload["goals"][1]["saved"] == 0.0
    assert payload["completed"] == 0
    assert payload["total_target"] == 8000.0


def test_goals_surplus_is_unallocated(data_ctx):
    ctx = prepare_context({"goals": [{"name": "Curso", "target": 1000}]}, data_ctx)
    payload = compute_goals(ctx["filters"], ctx)
    assert payload["completed"] == 1
    assert payload["overall_progress"] == 1.0
    assert payload["unallocated"] == pytest.approx(3845.81)


def test_debug_payload(ctx):
    payload = compute_debug(ctx["filters"], ctx)
    assert payload["row_counts"]["rows_accepted"] == 9
    assert payload["row_counts"]["rows_skipped"] == 1
    assert payload["row_counts"]["rows_without_month"] == 1
    assert payload["unknown_kinds"] == ["Transferência"]
    assert {r["kind"]: r["count"] for r in payload["kind_counts"]}["Despesas"] == 4
