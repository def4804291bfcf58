from __future__ import annotations

import csv
import io
import logging
import os
import re
import time
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
import requests

from finance_core.filters import DashboardFilters, normalize_filters

logger = logging.getLogger(__name__)

SHEET_CSV_URL = os.environ.get(
    "FINANCE_SHEET_CSV_URL",
    "https://docs.google.com/spreadsheets/d/e/2PACX-1vQLaOmmhnI-3lDtmSZOMiLu-j0qsJEBU38w2hS60k_636PNRjjKAfFchUmqJbT2unXBCc2FOZmAmo_g"
    "/pub?gid=1943682131&single=true&output=csv",
)
HTTP_TIMEOUT = float(os.environ.get("FINANCE_HTTP_TIMEOUT", "30"))
CACHE_TTL_SECONDS = int(os.environ.get("FINANCE_CACHE_TTL", "60"))

# Title rows and the header row of the published sheet.
HEADER_ROWS = 3
MIN_FIELDS = 12

COLUMN_POSITIONS = {
    "date": 2,
    "description": 3,
    "kind": 4,
    "subgroup": 5,
    "payment_method": 7,
    "amount_raw": 8,
}

INCOME_KINDS = frozenset({"Renda"})
EXPENSE_KINDS = frozenset({"Despesas", "Despesa"})
INCOME_LABEL = "Renda"
EXPENSE_LABEL = "Despesas"
TOTAL_LABEL = "Total Geral"
MISSING_SUBGROUP = "Sem subgrupo"
MISSING_PAYMENT_METHOD = "Sem forma de pagamento"

MONTH_LABELS = ["", "Jan.", "Fev.", "Mar.", "Abr.", "Mai.", "Jun.", "Jul.", "Ago.", "Set.", "Out.", "Nov.", "Dez."]

TRANSACTION_COLUMNS = [
    "date",
    "description",
    "year",
    "month_number",
    "month",
    "kind",
    "subgroup",
    "payment_method",
    "amount_raw",
    "amount",
    "is_income",
    "is_expense",
]
MONTHLY_COLUMNS = ["month", "month_number", INCOME_LABEL, EXPENSE_LABEL]
BREAKDOWN_COLUMNS = ["name", "value"]

DATE_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})")
SPLIT_CENTS_RE = re.compile(r'^\d{2}"?$')
LEADING_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_BRL_SEPARATORS = str.maketrans(",.", ".,")


class SheetFetchError(RuntimeError):
    """The sheet export could not be fetched or read."""


# ---------------- Formatting ----------------
def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_brl(value: object) -> str:
    """Format like pt-BR currency: 1234.5 -> 'R$ 1.234,50'."""
    if value is None or pd.isna(value):
        return "N/A"
    v = round_half_up(value, 2)
    body = f"{abs(v):,.2f}".translate(_BRL_SEPARATORS)
    return f"-R$ {body}" if v < 0 else f"R$ {body}"


def format_percent(value: object, decimals: int = 1) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"{float(value) * 100:.{decimals}f}%".replace(".", ",")


def format_brl_columns(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(lambda v: format_brl(v) if pd.notna(v) else "")
    return formatted


# ---------------- Parsing ----------------
def parse_amount(value: object) -> float:
    """Parse a BRL amount cell ('R$ 1.234,56') into a float; unparsable cells count as 0."""
    if value is None or pd.isna(value):
        return 0.0
    cleaned = re.sub(r"[^0-9,-]+", "", str(value)).replace(",", ".", 1)
    match = LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return 0.0
    return float(match.group(0))


def parse_date_parts(value: object) -> Tuple[Optional[int], Optional[int]]:
    """First dd/mm/yyyy token in the cell -> (year, month).

    The month is returned as written, so a typo like 05/13/2025 yields 13.
    """
    if value is None or pd.isna(value):
        return None, None
    match = DATE_RE.search(str(value))
    if not match:
        return None, None
    return int(match.group(3)), int(match.group(2))


def parse_month(value: object) -> Optional[int]:
    return parse_date_parts(value)[1]


def month_name(number: int) -> str:
    """'Jan.'..'Dez.' for 1..12; any other month keeps its two-digit number."""
    number = int(number)
    if 1 <= number <= 12:
        return MONTH_LABELS[number]
    return f"{number:02d}"


def month_label(value: object) -> Optional[str]:
    month = parse_month(value)
    return month_name(month) if month is not None else None


def repair_split_amount(cells: List[str]) -> List[str]:
    """Rejoin 'R$ 120' + '00' when an unquoted decimal comma split the amount cell."""
    pos = COLUMN_POSITIONS["amount_raw"]
    if len(cells) <= pos + 1:
        return cells
    amount, following = cells[pos], cells[pos + 1]
    if "R$" in amount and "," not in amount and SPLIT_CENTS_RE.match(following):
        return cells[:pos] + [f"{amount},{following}"] + cells[pos + 2 :]
    return cells


def split_rows(text: str, *, header_rows: int = HEADER_ROWS) -> Tuple[List[List[str]], int]:
    """Tokenize the export and keep the rows that look like transactions.

    Returns (accepted rows, number of non-blank rows skipped).
    """
    records = list(csv.reader(io.StringIO(text, newline="")))[header_rows:]
    kind_pos = COLUMN_POSITIONS["kind"]
    amount_pos = COLUMN_POSITIONS["amount_raw"]

    rows: List[List[str]] = []
    skipped = 0
    for record in records:
        cells = [c.strip() for c in record]
        if not any(cells):
            continue
        cells = repair_split_amount(cells)
        if len(cells) >= MIN_FIELDS and cells[kind_pos] and cells[amount_pos]:
            rows.append(cells)
        else:
            skipped += 1
    logger.debug("split_rows: %d accepted, %d skipped", len(rows), skipped)
    return rows, skipped


def rows_to_frame(rows: List[List[str]]) -> pd.DataFrame:
    df = pd.DataFrame({name: [r[pos] for r in rows] for name, pos in COLUMN_POSITIONS.items()}, dtype=object)
    date_parts = [parse_date_parts(d) for d in df["date"]]
    df["year"] = pd.array([p[0] for p in date_parts], dtype="Int64")
    df["month_number"] = pd.array([p[1] for p in date_parts], dtype="Int64")
    df["month"] = [month_name(p[1]) if p[1] is not None else None for p in date_parts]
    df["amount"] = pd.Series([parse_amount(v) for v in df["amount_raw"]], index=df.index, dtype=float)
    df["subgroup"] = df["subgroup"].replace("", MISSING_SUBGROUP)
    df["payment_method"] = df["payment_method"].replace("", MISSING_PAYMENT_METHOD)
    df["is_income"] = df["kind"].isin(INCOME_KINDS).astype(bool)
    df["is_expense"] = df["kind"].isin(EXPENSE_KINDS).astype(bool)
    return df[TRANSACTION_COLUMNS]


# ---------------- Loaders ----------------
def is_remote(source: str) -> bool:
    return source.strip().lower().startswith(("http://", "https://"))


def fetch_csv_text(source: str, *, timeout: float = HTTP_TIMEOUT) -> str:
    if not is_remote(source):
        try:
            return Path(source).expanduser().read_text(encoding="utf-8-sig")
        except OSError as exc:
            raise SheetFetchError(f"Erro ao buscar CSV: {exc}") from exc

    try:
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SheetFetchError(f"Erro ao buscar CSV: {exc}") from exc
    logger.info("Fetched sheet export (%d bytes)", len(response.content))
    return response.content.decode("utf-8-sig", errors="replace")


def load_transactions(source: str) -> Tuple[pd.DataFrame, int]:
    rows, skipped = split_rows(fetch_csv_text(source))
    return rows_to_frame(rows), skipped


# ---------------- Aggregations ----------------
def filter_transactions(df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    out = df
    if out.empty:
        return out
    if filters.selected_months:
        out = out[out["month_number"].isin(filters.selected_months)]
    if filters.selected_subgroups:
        out = out[out["subgroup"].isin(set(filters.selected_subgroups))]
    if filters.selected_payment_methods:
        out = out[out["payment_method"].isin(set(filters.selected_payment_methods))]
    if filters.query:
        q = filters.query.lower()
        mask = pd.Series(False, index=out.index)
        for col in ["date", "description", "kind", "subgroup", "payment_method"]:
            mask |= out[col].astype(str).str.lower().str.contains(q, na=False, regex=False)
        out = out[mask]
    return out


def compute_totals(df: pd.DataFrame, opening_balance: float) -> Dict[str, float]:
    if df.empty:
        renda = despesa = 0.0
    else:
        renda = float(df.loc[df["is_income"], "amount"].sum())
        despesa = float(df.loc[df["is_expense"], "amount"].sum())
    return {
        "renda": renda,
        "despesa": despesa,
        "saldo": float(opening_balance) + renda - despesa,
    }


def compute_by_month(df: pd.DataFrame) -> pd.DataFrame:
    """Income/expense per calendar month, followed by the 'Total Geral' row.

    Any row with a parseable month creates its entry, even when it is neither
    income nor expense. Rows without a month only count toward the total.
    """
    totals = compute_totals(df, 0.0)
    total_row = pd.DataFrame(
        [{"month": TOTAL_LABEL, "month_number": pd.NA, INCOME_LABEL: totals["renda"], EXPENSE_LABEL: totals["despesa"]}]
    )
    dated = df.dropna(subset=["month_number"]) if not df.empty else df
    if dated.empty:
        out = total_row
    else:
        monthly = (
            dated.assign(
                **{
                    INCOME_LABEL: dated["amount"].where(dated["is_income"], 0.0),
                    EXPENSE_LABEL: dated["amount"].where(dated["is_expense"], 0.0),
                }
            )
            .groupby("month_number", as_index=False)[[INCOME_LABEL, EXPENSE_LABEL]]
            .sum()
            .sort_values("month_number")
        )
        monthly["month"] = [month_name(m) for m in monthly["month_number"]]
        out = pd.concat([monthly[MONTHLY_COLUMNS], total_row], ignore_index=True)
    out["month_number"] = out["month_number"].astype("Int64")
    out[INCOME_LABEL] = out[INCOME_LABEL].astype(float)
    out[EXPENSE_LABEL] = out[EXPENSE_LABEL].astype(float)
    return out[MONTHLY_COLUMNS]


def compute_breakdown(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Expense totals per value of `column`, largest first."""
    if df.empty or column not in df.columns:
        return pd.DataFrame(columns=BREAKDOWN_COLUMNS)
    expenses = df[df["is_expense"]]
    if expenses.empty:
        return pd.DataFrame(columns=BREAKDOWN_COLUMNS)
    return (
        expenses.groupby(column, sort=False)["amount"]
        .sum()
        .reset_index()
        .rename(columns={column: "name", "amount": "value"})
        .sort_values("value", ascending=False, kind="stable")
        .reset_index(drop=True)
    )


def compute_account_summary(df: pd.DataFrame) -> pd.DataFrame:
    cols = ["payment_method", "spent", "received", "net", "transactions", "expense_share"]
    if df.empty:
        return pd.DataFrame(columns=cols)
    summary = (
        df.assign(
            spent=df["amount"].where(df["is_expense"], 0.0),
            received=df["amount"].where(df["is_income"], 0.0),
        )
        .groupby("payment_method", sort=False)
        .agg(spent=("spent", "sum"), received=("received", "sum"), transactions=("amount", "size"))
        .reset_index()
    )
    summary["net"] = summary["received"] - summary["spent"]
    total_spent = float(summary["spent"].sum())
    summary["expense_share"] = summary["spent"] / total_spent if total_spent else 0.0
    return summary.sort_values(["spent", "received"], ascending=False, kind="stable").reset_index(drop=True)[cols]


def compute_savings_table(by_month: pd.DataFrame, opening_balance: float) -> pd.DataFrame:
    """Monthly net, savings rate and running balance (the 'Total Geral' row is excluded)."""
    cols = ["month", "month_number", INCOME_LABEL, EXPENSE_LABEL, "net", "savings_rate", "balance"]
    monthly = by_month[by_month["month"] != TOTAL_LABEL].copy() if not by_month.empty else by_month.copy()
    if monthly.empty:
        return pd.DataFrame(columns=cols)
    monthly["net"] = monthly[INCOME_LABEL] - monthly[EXPENSE_LABEL]
    monthly["savings_rate"] = pd.Series(
        [(net / income) if income > 0 else None for net, income in zip(monthly["net"], monthly[INCOME_LABEL])],
        index=monthly.index,
        dtype=object,
    )
    monthly["balance"] = float(opening_balance) + monthly["net"].cumsum()
    return monthly.reset_index(drop=True)[cols]


# ---------------- Public API (Streamlit parity + FastAPI use) ----------------
def _ttl_bucket(ttl: int = CACHE_TTL_SECONDS) -> int:
    if ttl <= 0:
        return time.monotonic_ns()
    return int(time.time() // ttl)


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(source: str, bucket: int) -> Dict[str, object]:
    transactions, skipped = load_transactions(source)
    logger.info("Loaded %d transactions (%d rows skipped)", len(transactions), skipped)

    months = sorted(int(m) for m in transactions["month_number"].dropna().unique())
    return {
        "source": source,
        "transactions": transactions,
        "rows_accepted": int(len(transactions)),
        "rows_skipped": int(skipped),
        "months": months,
        "subgroups": sorted(transactions["subgroup"].dropna().astype(str).unique().tolist()),
        "payment_methods": sorted(transactions["payment_method"].dropna().astype(str).unique().tolist()),
        "loaded_at": pd.Timestamp.now(tz="UTC"),
    }


def load_dashboard_data(source: Optional[str] = None) -> Dict[str, object]:
    """Fetch and parse the sheet; cached for CACHE_TTL_SECONDS. Raises SheetFetchError."""
    return _load_dashboard_data_cached(source or SHEET_CSV_URL, _ttl_bucket())


def clear_cache() -> None:
    _load_dashboard_data_cached.cache_clear()


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    transactions: pd.DataFrame = data_ctx.get("transactions", pd.DataFrame(columns=TRANSACTION_COLUMNS)).copy()
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)

    filtered = filter_transactions(transactions, filt)
    by_month = compute_by_month(filtered)

    return {
        "filters": filt,
        "transactions": transactions,
        "filtered": filtered,
        "totals": compute_totals(filtered, filt.targets.opening_balance),
        "by_month": by_month,
        "by_subgroup": compute_breakdown(filtered, "subgroup"),
        "by_payment_method": compute_breakdown(filtered, "payment_method"),
        "accounts": compute_account_summary(filtered),
        "savings": compute_savings_table(by_month, filt.targets.opening_balance),
        "rows_accepted": int(data_ctx.get("rows_accepted", len(transactions)) or 0),
        "rows_skipped": int(data_ctx.get("rows_skipped", 0) or 0),
    }
