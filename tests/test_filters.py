from finance_core.filters import DEFAULT_GOALS, OPENING_BALANCE, SAVINGS_RATE_TARGET, Goal, normalize_filters


def test_defaults():
    f = normalize_filters({})
    assert f.selected_months == []
    assert f.query == ""
    assert f.goals == list(DEFAULT_GOALS)
    assert f.targets.opening_balance == OPENING_BALANCE
    assert f.targets.savings_rate == SAVINGS_RATE_TARGET


def test_months_are_coerced_and_bounded():
    f = normalize_filters({"selected_months": ["2", 1, "x", 100, -1, 2]})
    assert f.selected_months == [1, 2]


def test_months_without_rows_are_kept():
    f = normalize_filters({"selected_months": [5, 1, 13]})
    assert f.selected_months == [1, 5, 13]


def test_invalid_goals_dropped():
    f = normalize_filters(
        {
            "goals": [
                {"name": "Carro", "target": "20000"},
                {"name": "", "target": 10},
                {"name": "Zero", "target": 0},
                {"name": float("nan"), "target": 5},
                "junk",
            ]
        }
    )
    assert f.goals == [Goal("Carro", 20000.0)]


def test_empty_goal_list_is_kept_empty():
    assert normalize_filters({"goals": []}).goals == []


def test_targets_are_clamped_and_defaulted():
    f = normalize_filters({"targets": {"opening_balance": "abc", "savings_rate": 3}})
    assert f.targets.opening_balance == OPENING_BALANCE
    assert f.targets.savings_rate == 1.0


def test_text_lists_are_stripped():
    f = normalize_filters({"selected_subgroups": [" Lazer ", None, ""], "query": "  pix "})
    assert f.selected_subgroups == ["Lazer"]
    assert f.query == "pix"
