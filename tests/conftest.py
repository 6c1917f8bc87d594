"""Shared fixtures for the report tests."""

import pytest

from cryptotaxreport.config import Settings
from cryptotaxreport.report import ExchangeReport

# Documents with valid check digits
CPF_A = "44246742074"
CPF_B = "43808960051"
CNPJ_A = "17869530000173"


@pytest.fixture
def settings() -> Settings:
    """Sao Paulo time, LF line breaks (easier to split in asserts)."""
    return Settings(timezone="America/Sao_Paulo", line_separator="\n")


@pytest.fixture
def report(settings) -> ExchangeReport:
    return ExchangeReport(
        exchange_name="Binance",
        exchange_country="US",
        exchange_url="https://binance.com",
        settings=settings,
    )


@pytest.fixture
def buy_payload() -> dict:
    return {
        "date": "25/05/2019",
        "brl_value": "R$ 1500,80",
        "brl_fees": "R$ 1,49",
        "coin_symbol": "BTC",
        "coin_quantity": "0.0000001",
    }
