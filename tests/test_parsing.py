import pytest

from finance_core.data import (
    format_brl,
    format_percent,
    month_label,
    month_name,
    parse_amount,
    parse_date_parts,
    repair_split_amount,
    rows_to_frame,
    split_rows,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("R$ 1.234,56", 1234.56),
        ("-R$ 50,00", -50.0),
        ("R$ -50,00", -50.0),
        ('"R$ 120,00"', 120.0),
        ("R$ 10", 10.0),
        ("R$ 1,5", 1.5),
        ("", 0.0),
        ("abc", 0.0),
        ("R$ -", 0.0),
        (None, 0.0),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == pytest.approx(expected)


def test_parse_date_parts_finds_first_token():
    assert parse_date_parts("05/01/2025") == (2025, 1)
    assert parse_date_parts("Pago em 31/12/2024 às 10h") == (2024, 12)
    assert parse_date_parts("2025-01-05") == (None, None)
    assert parse_date_parts("") == (None, None)


def test_out_of_range_month_keeps_its_number():
    assert parse_date_parts("05/13/2025") == (2025, 13)
    assert month_label("05/13/2025") == "13"
    assert month_label("05/00/2025") == "00"


def test_month_name():
    assert month_name(1) == "Jan."
    assert month_name(12) == "Dez."
    assert month_name(13) == "13"


def test_month_label_uses_portuguese_abbreviations():
    assert month_label("10/02/2025") == "Fev."
    assert month_label("01/12/2025") == "Dez."
    assert month_label("sem data") is None


def test_repair_split_amount_rejoins_unquoted_cents():
    cells = ["7", "OK", "25/02/2025", "Farmácia", "Despesas", "Saúde", "Pessoal", "Nubank", "R$ 120", "00", "1", "", "Cartão"]
    repaired = repair_split_amount(cells)
    assert repaired[8] == "R$ 120,00"
    assert repaired[9] == "1"
    assert len(repaired) == 12


def test_repair_split_amount_leaves_complete_amount_alone():
    cells = ["1", "OK", "05/01/2025", "x", "Renda", "Salário", "", "Santander", "R$ 3.000,00", "12", "", ""]
    assert repair_split_amount(cells) == cells


def _split_cells(amount: str, following: str) -> list:
    return ["7", "OK", "25/02/2025", "Farmácia", "Despesas", "Saúde", "Pessoal", "Nubank", amount, following, "1", "", "Cartão"]


@pytest.mark.parametrize(
    "amount, following, expected",
    [
        ("R$ 120", "00", "R$ 120,00"),
        ('"R$ 120', '00"', '"R$ 120,00"'),
        ("R$ 1.200", "50", "R$ 1.200,50"),
    ],
)
def test_repair_split_amount_joins_two_digit_cents(amount, following, expected):
    repaired = repair_split_amount(_split_cells(amount, following))
    assert repaired[8] == expected
    assert repaired[9] == "1"


@pytest.mark.parametrize(
    "amount, following",
    [
        ("R$ 120", "000"),
        ("R$ 120", "1"),
        ("R$ 120", '0"'),
        ("R$ 120", ""),
        ("120", "00"),
        ("R$ 120,5", "00"),
    ],
)
def test_repair_split_amount_leaves_other_cells_alone(amount, following):
    cells = _split_cells(amount, following)
    assert repair_split_amount(cells) == cells


def test_split_rows_accepts_transactions_and_counts_skipped(sample_csv):
    rows, skipped = split_rows(sample_csv)
    assert len(rows) == 9
    assert skipped == 1
    assert all(len(r) >= 12 for r in rows)
    assert rows[6][8] == "R$ 120,00"


def test_split_rows_on_preamble_only():
    rows, skipped = split_rows("a,b\nc,d\ne,f\n")
    assert rows == []
    assert skipped == 0


def test_rows_to_frame_types(sample_csv):
    rows, _ = split_rows(sample_csv)
    df = rows_to_frame(rows)
    assert len(df) == 9
    first = df.iloc[0]
    assert first["kind"] == "Renda"
    assert first["description"] == "Salário"
    assert first["month"] == "Jan."
    assert int(first["year"]) == 2025
    assert first["amount"] == pytest.approx(3000.0)
    assert bool(first["is_income"]) and not bool(first["is_expense"])
    assert df["is_expense"].sum() == 5
    assert df["month_number"].isna().sum() == 1


def test_rows_to_frame_empty():
    df = rows_to_frame([])
    assert df.empty
    assert "amount" in df.columns


def test_rows_to_frame_fills_blank_labels():
    row = ["1", "", "01/01/2025", "", "Despesas", "", "", "", "R$ 5,00", "", "", ""]
    df = rows_to_frame([row])
    assert df.iloc[0]["subgroup"] == "Sem subgrupo"
    assert df.iloc[0]["payment_method"] == "Sem forma de pagamento"


def test_format_brl():
    assert format_brl(1234.5) == "R$ 1.234,50"
    assert format_brl(1234567.891) == "R$ 1.234.567,89"
    assert format_brl(-50) == "-R$ 50,00"
    assert format_brl(0) == "R$ 0,00"
    assert format_brl(None) == "N/A"


def test_format_percent():
    assert format_percent(0.125) == "12,5%"
    assert format_percent(0.2, 0) == "20%"
    assert format_percent(None) == "N/A"
