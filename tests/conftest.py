"""Pytest configuration to make the project root importable.

Also provides a small published-sheet export shared by the tests.
"""

import os
import sys

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from finance_core import data  # noqa: E402

# Three preamble lines, then transactions. Row 7 has an unquoted amount split
# by its decimal comma, row 8 has no kind, row 9 has no date and row 10 is a
# transfer (neither income nor expense).
SAMPLE_CSV = (
    "Controle Financeiro 2025,,,,,,,,,,,\n"
    ",,,,,,,,,,,\n"
    "Nº,Status,Data,Descrição,Tipo,Subgrupo,Grupo,Forma de Pagamento,Valor,Parcela,Observação,Conta\n"
    '1,OK,05/01/2025,Salário,Renda,Salário,Receitas,Santander,"R$ 3.000,00",1,,Corrente\n'
    '2,OK,10/01/2025,Mercado,Despesas,Alimentação,Casa,Flash,"R$ 450,50",1,,Benefício\n'
    '3,OK,15/01/2025,Cinema,Despesa,Lazer,Pessoal,Nubank,"R$ 80,00",1,,Cartão\n'
    '4,OK,03/02/2025,Salário,Renda,Salário,Receitas,Santander,"R$ 3.000,00",1,,Corrente\n'
    '5,OK,12/02/2025,Aluguel,Despesas,Moradia,Casa,99Pay,"R$ 1.200,00",1,,Carteira\n'
    '6,OK,20/02/2025,Padaria,Despesas,Alimentação,Casa,Flash,"R$ 49,50",1,,Benefício\n'
    "7,OK,25/02/2025,Farmácia,Despesas,Saúde,Pessoal,Nubank,R$ 120,00,1,,Cartão\n"
    ",,,,,\n"
    '8,OK,01/03/2025,Ajuste,,Outros,,Nubank,"R$ 10,00",1,,Conta\n'
    '9,OK,sem data,Pix,Renda,Extra,Receitas,Nubank,"R$ 100,00",1,,Conta\n'
    '10,OK,05/03/2025,Transferência,Transferência,Interna,,Nubank,"R$ 500,00",1,,Conta\n'
    "\n"
)


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def data_ctx(monkeypatch):
    monkeypatch.setattr(data, "fetch_csv_text", lambda source, **kwargs: SAMPLE_CSV)
    data.clear_cache()
    yield data.load_dashboard_data("memory://sample")
    data.clear_cache()


@pytest.fixture
def ctx(data_ctx):
    return data.prepare_context({}, data_ctx)
