from __future__ import annotations

import logging
import math
from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, MetaListResponse
from finance_core.data import (
    SheetFetchError,
    format_brl_columns,
    load_dashboard_data,
    month_name,
    prepare_context,
)
from finance_core.filters import DashboardFilters, normalize_filters
from finance_core.metrics_accounts import compute_accounts
from finance_core.metrics_breakdown import compute_breakdown
from finance_core.metrics_debug import compute_debug
from finance_core.metrics_goals import compute_goals
from finance_core.metrics_overview import compute_overview
from finance_core.metrics_savings import compute_savings


app = FastAPI(title="Finance Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _context(model: DashboardFiltersModel) -> Tuple[DashboardFilters, Dict[str, Any]]:
    data_ctx = load_dashboard_data()
    f = _filters_from_model(model)
    return f, prepare_context(f, data_ctx)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, name: str) -> JSONResponse:
    if isinstance(exc, SheetFetchError):
        logger.warning("%s: sheet unavailable: %s", name, exc)
        return JSONResponse(status_code=502, content={"error": str(exc), "type": type(exc).__name__})
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/meta/summary")
def meta_summary():
    try:
        data_ctx = load_dashboard_data()
        return _json(
            {
                "records": data_ctx.get("rows_accepted", 0),
                "skipped": data_ctx.get("rows_skipped", 0),
                "loaded_at": data_ctx.get("loaded_at"),
            }
        )
    except Exception as exc:
        return _error(exc, "meta_summary")


@app.get("/meta/months")
def meta_months():
    try:
        data_ctx = load_dashboard_data()
        months = [int(m) for m in data_ctx.get("months", []) or []]
        return _json({"months": [{"number": m, "label": month_name(m)} for m in months]})
    except Exception as exc:
        return _error(exc, "meta_months")


@app.get("/meta/subgroups", response_model=MetaListResponse)
def meta_subgroups():
    try:
        data_ctx = load_dashboard_data()
        return _json({"values": data_ctx.get("subgroups", [])})
    except Exception as exc:
        return _error(exc, "meta_subgroups")


@app.get("/meta/payment-methods", response_model=MetaListResponse)
def meta_payment_methods():
    try:
        data_ctx = load_dashboard_data()
        return _json({"values": data_ctx.get("payment_methods", [])})
    except Exception as exc:
        return _error(exc, "meta_payment_methods")


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        return _error(exc, "overview")


@app.post("/breakdown")
def breakdown(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_breakdown(f, ctx))
    except Exception as exc:
        return _error(exc, "breakdown")


@app.post("/accounts")
def accounts(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_accounts(f, ctx))
    except Exception as exc:
        return _error(exc, "accounts")


@app.post("/savings")
def savings(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_savings(f, ctx))
    except Exception as exc:
        return _error(exc, "savings")


@app.post("/goals")
def goals(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_goals(f, ctx))
    except Exception as exc:
        return _error(exc, "goals")


@app.post("/debug")
def debug(filters: DashboardFiltersModel):
    try:
        f, ctx = _context(filters)
        return _json(compute_debug(f, ctx))
    except Exception as exc:
        return _error(exc, "debug")


@app.post("/export/{page}")
def export_page(page: str, filters: DashboardFiltersModel):
    try:
        _, ctx = _context(filters)
    except Exception as exc:
        return _error(exc, "export")

    export_df = None
    filename = f"{page}.csv"
    if page == "overview":
        export_df = format_brl_columns(ctx.get("by_month"), ["Renda", "Despesas"])
    elif page == "breakdown":
        export_df = ctx.get("by_subgroup")
        filename = "subgrupos.csv"
    elif page == "accounts":
        export_df = ctx.get("accounts")
    elif page == "savings":
        export_df = ctx.get("savings")
    elif page == "transactions":
        export_df = ctx.get("filtered")
    else:
        export_df = pd.DataFrame()

    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
