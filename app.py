import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from finance_core import data as dc
from finance_core.data import SheetFetchError, format_brl, format_brl_columns, format_percent, month_name
from finance_core.filters import DEFAULT_GOALS, OPENING_BALANCE, SAVINGS_RATE_TARGET
from finance_core.metrics_accounts import compute_accounts
from finance_core.metrics_breakdown import compute_breakdown
from finance_core.metrics_debug import compute_debug
from finance_core.metrics_goals import compute_goals
from finance_core.metrics_overview import compute_overview
from finance_core.metrics_savings import compute_savings


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #374151;border-radius: 12px;padding: 16px;background: #1f2937;
               box-shadow: 0 1px 2px rgba(0,0,0,0.2); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;}
        .card-actions {font-size: 0.9rem;color: #38bdf8;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #374151;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;}
        .bank-logo {font-size: 1.6rem;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selected_months: List[int], selected_subgroups: List[str], selected_payment_methods: List[str], query: str) -> str:
    month_chip = "Meses: todos" if not selected_months else "Meses: " + ", ".join(month_name(m) for m in selected_months)
    subgroup_chip = "Subgrupos: todos" if not selected_subgroups else f"Subgrupos: {', '.join(selected_subgroups)}"
    payment_chip = "Pagamentos: todos" if not selected_payment_methods else f"Pagamentos: {', '.join(selected_payment_methods)}"
    chips = [month_chip, subgroup_chip, payment_chip]
    if query:
        chips.append(f"Busca: {query}")
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_tab_header(title: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    c1, c2 = st.columns([8, 2])
    with c1:
        st.subheader(title)
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Exportar CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
                key=f"export_{export_name}",
            )


def render_chart(spec: Optional[Dict[str, Any]], empty_message: str = "Sem dados para o gráfico."):
    if not spec:
        st.info(empty_message)
        return
    st.vega_lite_chart(spec, use_container_width=True)


# ---------- UI setup ----------
st.set_page_config(page_title="Dashboard Financeira", layout="wide", page_icon="💰")
inject_base_styles()
st.markdown("<h1 style='text-align:center;'>Dashboard Financeira</h1>", unsafe_allow_html=True)

try:
    with st.spinner("Carregando dados da planilha..."):
        data_ctx = dc.load_dashboard_data()
except SheetFetchError as exc:
    st.error(f"Erro: {exc}")
    st.stop()

st.caption(f"{data_ctx['rows_accepted']} registros carregados da planilha.")

# ----- Sidebar: filters + targets -----
months = data_ctx.get("months") or []
with st.sidebar:
    if st.button("Atualizar dados"):
        dc.clear_cache()
        st.rerun()

    st.markdown("### Filtros")
    selected_months = st.multiselect("Meses", options=months, format_func=month_name, default=[])
    selected_subgroups = st.multiselect("Subgrupos", options=data_ctx.get("subgroups") or [], default=[])
    selected_payment_methods = st.multiselect("Formas de pagamento", options=data_ctx.get("payment_methods") or [], default=[])
    query = st.text_input("Busca (tipo, subgrupo, pagamento, data)", "")

    st.markdown("---")
    with st.expander("Metas", expanded=False):
        opening_balance = st.number_input("Saldo inicial (R$)", value=float(OPENING_BALANCE), step=50.0, format="%.2f")
        savings_rate = st.slider("Meta de economia (% da renda)", 0.0, 1.0, SAVINGS_RATE_TARGET, 0.05)
        goals_df = st.data_editor(
            pd.DataFrame([{"name": g.name, "target": g.target} for g in DEFAULT_GOALS]),
            num_rows="dynamic",
            hide_index=True,
            column_config={
                "name": st.column_config.TextColumn("Objetivo"),
                "target": st.column_config.NumberColumn("Valor (R$)", min_value=0.0, step=100.0),
            },
            key="goals_editor",
        )

filters = {
    "selected_months": selected_months,
    "selected_subgroups": selected_subgroups,
    "selected_payment_methods": selected_payment_methods,
    "query": query,
    "goals": goals_df.to_dict(orient="records"),
    "targets": {"opening_balance": opening_balance, "savings_rate": savings_rate},
}

ctx = dc.prepare_context(filters, data_ctx)
filt = ctx["filters"]
st.markdown(
    f"<div class='chip-row'>{format_filter_summary(filt.selected_months, filt.selected_subgroups, filt.selected_payment_methods, filt.query)}</div>",
    unsafe_allow_html=True,
)


# ----- Tab renderers -----
def render_overview_tab():
    payload = compute_overview(filt, ctx)
    render_tab_header("Visão Geral", export_df=format_brl_columns(ctx["by_month"], ["Renda", "Despesas"]), export_name="visao_geral.csv")
    kpis = payload["kpis"]
    cols = st.columns(4)
    cols[0].metric("Renda", format_brl(kpis["renda"]))
    cols[1].metric("Despesas", format_brl(kpis["despesa"]))
    cols[2].metric("Saldo", format_brl(kpis["saldo"]), help=f"Saldo inicial de {format_brl(kpis['opening_balance'])} + renda - despesas.")
    cols[3].metric("Registros", f"{payload['filtered_records']} / {payload['records']}")

    render_chart(payload["charts"]["monthly"])

    with card("💡 Assistente Financeiro"):
        assistant = payload["assistant"]
        if assistant["tone"] == "positive":
            st.success(assistant["message"])
        else:
            st.error(assistant["message"])


def render_breakdown_tab():
    payload = compute_breakdown(filt, ctx)
    render_tab_header("Subgrupos & Formas de Pagamento", export_df=ctx["by_subgroup"], export_name="subgrupos.csv")
    left, right = st.columns(2)
    with left:
        with card("💼 Por Subgrupo"):
            render_chart(payload["charts"]["subgroup_pie"], "Nenhuma despesa para os filtros selecionados.")
            if payload["by_subgroup"]:
                st.dataframe(
                    pd.DataFrame(payload["by_subgroup"])[["name", "label"]].rename(columns={"name": "Subgrupo", "label": "Total"}),
                    hide_index=True,
                    use_container_width=True,
                )
    with right:
        with card("💳 Por Forma de Pagamento"):
            render_chart(payload["charts"]["payment_method_pie"], "Nenhuma despesa para os filtros selecionados.")
            if payload["by_payment_method"]:
                st.dataframe(
                    pd.DataFrame(payload["by_payment_method"])[["name", "label"]].rename(columns={"name": "Forma de pagamento", "label": "Total"}),
                    hide_index=True,
                    use_container_width=True,
                )


def render_accounts_tab():
    payload = compute_accounts(filt, ctx)
    render_tab_header("Contas", export_df=ctx["accounts"], export_name="contas.csv")
    if not payload["accounts"]:
        st.info("Nenhuma movimentação para os filtros selecionados.")
        return
    st.caption(f"Total gasto: {format_brl(payload['total_spent'])} · Total recebido: {format_brl(payload['total_received'])}")
    cols = st.columns(min(4, len(payload["accounts"])))
    for idx, account in enumerate(payload["accounts"]):
        with cols[idx % len(cols)]:
            with card(f"<span class='bank-logo'>{account['logo']}</span> {account['name']}"):
                st.markdown(f"<span style='color:{account['color']};font-weight:700;'>{account['spent_fmt']}</span> gastos", unsafe_allow_html=True)
                st.progress(account["progress"], text=f"{format_percent(account['expense_share'])} das despesas")
                st.caption(f"Recebido: {account['received_fmt']} · Líquido: {account['net_fmt']} · {account['transactions']} lançamentos")


def render_savings_tab():
    payload = compute_savings(filt, ctx)
    render_tab_header("Economia", export_df=ctx["savings"], export_name="economia.csv")
    kpis = payload["kpis"]
    cols = st.columns(3)
    cols[0].metric("Economia no período", format_brl(kpis["net"]))
    cols[1].metric("Taxa de economia", format_percent(kpis["savings_rate"]))
    best = kpis["best_month"]
    cols[2].metric("Melhor mês", best["month"] if best else "N/A", delta=format_brl(best["net"]) if best else None)
    st.progress(kpis["progress"], text=f"Meta: economizar {format_percent(kpis['target_rate'], 0)} da renda")

    left, right = st.columns(2)
    with left:
        with card("Economia por mês"):
            render_chart(payload["charts"].get("monthly_net"))
    with right:
        with card("Saldo acumulado"):
            render_chart(payload["charts"].get("balance_trend"))
    if abs(kpis["undated_net"]) >= 0.005:
        st.caption(
            f"Lançamentos sem data somam {format_brl(kpis['undated_net'])}: entram no saldo final "
            f"({format_brl(kpis['closing_balance'])}), mas não no saldo acumulado por mês."
        )


def render_goals_tab():
    payload = compute_goals(filt, ctx)
    render_tab_header("Objetivos")
    st.caption(f"Saldo disponível: {format_brl(payload['saldo'])} · {payload['completed']} de {len(payload['goals'])} objetivos concluídos")
    if not payload["goals"]:
        st.info("Cadastre objetivos na barra lateral (Metas).")
        return
    st.progress(payload["overall_progress"], text=f"Progresso geral: {format_percent(payload['overall_progress'], 0)}")
    for goal in payload["goals"]:
        with card(("✅ " if goal["completed"] else "🎯 ") + goal["name"]):
            st.progress(goal["progress"], text=f"{format_brl(goal['saved'])} de {format_brl(goal['target'])}")
            if not goal["completed"]:
                st.caption(f"Faltam {format_brl(goal['remaining'])}")


def render_debug_expander():
    with st.expander("Qualidade dos dados", expanded=False):
        payload = compute_debug(filt, ctx)
        st.write(payload["row_counts"])
        if payload["unknown_kinds"]:
            st.warning("Tipos não reconhecidos (ignorados nos totais): " + ", ".join(payload["unknown_kinds"]))
        if payload["kind_counts"]:
            st.dataframe(pd.DataFrame(payload["kind_counts"]), hide_index=True)
        if payload["month_coverage"]:
            st.dataframe(pd.DataFrame(payload["month_coverage"]), hide_index=True)


tab_overview, tab_breakdown, tab_accounts, tab_savings, tab_goals = st.tabs(
    ["Visão Geral", "Subgrupos & Pagamentos", "Contas", "Economia", "Objetivos"]
)
with tab_overview:
    render_overview_tab()
with tab_breakdown:
    render_breakdown_tab()
with tab_accounts:
    render_accounts_tab()
with tab_savings:
    render_savings_tab()
with tab_goals:
    render_goals_tab()

render_debug_expander()
