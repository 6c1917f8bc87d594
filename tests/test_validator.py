from decimal import Decimal

import pytest

from conftest import CNPJ_A, CPF_A, CPF_B
from cryptotaxreport.errors import ValidationError
from cryptotaxreport.schemas import (
    BalanceReport,
    BuyOperation,
    DepositOperation,
    IdentityType,
    OperationKind,
    PermutationOperation,
)
from cryptotaxreport.validator import fold_payload, parse_kind, validate_exchange, validate_operation


def _fields(exc_info) -> dict:
    return {e.field: e.reason for e in exc_info.value.errors}


# --------------------------------------------------------------------------------------
# Kinds
# --------------------------------------------------------------------------------------
def test_parse_kind_is_case_insensitive():
    assert parse_kind("Buy") is OperationKind.BUY
    assert parse_kind(" WITHDRAW ") is OperationKind.WITHDRAW
    assert parse_kind(OperationKind.OTHER) is OperationKind.OTHER


def test_unknown_kind():
    with pytest.raises(ValidationError) as exc_info:
        parse_kind("airdrop")
    assert "operation" in _fields(exc_info)


# --------------------------------------------------------------------------------------
# Trades
# --------------------------------------------------------------------------------------
def test_buy_is_normalized(buy_payload):
    op = validate_operation("buy", buy_payload)
    assert isinstance(op, BuyOperation)
    assert op.brl_value == Decimal("1500.80")
    assert op.brl_fees == Decimal("1.49")
    assert op.coin_quantity == Decimal("0.0000001")
    assert op.buyer is None and op.seller is None


def test_fee_defaults_to_zero(buy_payload):
    del buy_payload["brl_fees"]
    assert validate_operation("buy", buy_payload).brl_fees == Decimal("0")


def test_coin_symbol_is_uppercased(buy_payload):
    buy_payload["coin_symbol"] = "btc"
    assert validate_operation("buy", buy_payload).coin_symbol == "BTC"


def test_every_bad_field_is_reported(buy_payload):
    buy_payload.update(brl_value="-10", date="99/99/9999", coin_symbol="")
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("buy", buy_payload)
    fields = _fields(exc_info)
    assert set(fields) == {"brl_value", "date", "coin_symbol"}
    assert fields["brl_value"] == "Value cannot be less than zero"
    assert exc_info.value.kind == "buy"


def test_missing_required_fields():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("sell", {"date": "25/05/2019"})
    assert {"brl_value", "coin_symbol", "coin_quantity"} <= set(_fields(exc_info))


def test_unknown_key_is_rejected(buy_payload):
    buy_payload["brl_valeu"] = "10"
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("buy", buy_payload)
    assert "brl_valeu" in _fields(exc_info)


def test_fiat_width_limit(buy_payload):
    buy_payload["brl_value"] = "99999999999999.99"  # 16 digits
    validate_operation("buy", buy_payload)

    buy_payload["brl_value"] = "100000000000000"  # 17 digits
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("buy", buy_payload)
    assert _fields(exc_info)["brl_value"] == "Value exceeds the maximum allowed digits."


def test_coin_width_limit(buy_payload):
    buy_payload["coin_quantity"] = "1" * 21  # 31 digits with 10 decimals
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("buy", buy_payload)
    assert "coin_quantity" in _fields(exc_info)


def test_optional_parties_are_folded(buy_payload):
    buy_payload.update(
        buyer_identity_type="cpf",
        buyer_document="442.467.420-74",
        buyer_fullname="João da Silva",
        buyer_country="br",
    )
    op = validate_operation("buy", buy_payload)
    assert op.buyer.identity_type is IdentityType.CPF
    assert op.buyer.document == CPF_A
    assert op.buyer.fullname == "Joao da Silva"
    assert op.buyer.country == "BR"
    assert op.seller is None


def test_party_errors_use_flat_names(buy_payload):
    buy_payload.update(buyer_identity_type="CPF", buyer_document="12345678900", buyer_fullname="X")
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("buy", buy_payload)
    assert _fields(exc_info) == {"buyer_document": "Invalid CPF"}


def test_blank_optional_party_is_ignored(buy_payload):
    buy_payload.update(seller_identity_type="", seller_fullname="")
    assert validate_operation("buy", buy_payload).seller is None


# --------------------------------------------------------------------------------------
# Other variants
# --------------------------------------------------------------------------------------
def test_deposit_requires_party():
    payload = {"date": 1564672373, "coin_symbol": "BTC", "coin_quantity": 0.000004}
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("deposit", payload)
    assert {"identity_type", "fullname"} <= set(_fields(exc_info))


def test_deposit_with_cnpj():
    op = validate_operation(
        "deposit",
        {
            "date": 1564672373,
            "id": "REALLY_UNIQUE_ID",
            "coin_symbol": "BTC",
            "coin_quantity": 0.000004,
            "identity_type": "CNPJ",
            "document": "17.869.530/0001-73",
            "country": "BR",
            "fullname": "Casa de Câmbio",
        },
    )
    assert isinstance(op, DepositOperation)
    assert op.party.document == CNPJ_A
    assert op.party.fullname == "Casa de Cambio"


def test_invalid_cnpj():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation(
            "withdraw",
            {
                "date": "01/08/2019",
                "coin_symbol": "BTC",
                "coin_quantity": "1",
                "identity_type": "CNPJ",
                "document": "17869530000174",
                "fullname": "ACME",
            },
        )
    assert _fields(exc_info) == {"document": "Invalid CNPJ"}


@pytest.mark.parametrize("identity_type", ["CPF", "CNPJ"])
def test_tax_id_without_digits_is_rejected(identity_type):
    with pytest.raises(ValidationError) as exc_info:
        validate_operation(
            "deposit",
            {
                "date": "01/08/2019",
                "coin_symbol": "BTC",
                "coin_quantity": "1",
                "identity_type": identity_type,
                "document": "not-a-document",
                "fullname": "ACME",
            },
        )
    assert _fields(exc_info) == {"document": f"Invalid {identity_type}"}


def test_passport_document_is_kept_as_text():
    op = validate_operation(
        "withdraw",
        {
            "date": "01/08/2019",
            "coin_symbol": "ETH",
            "coin_quantity": "2",
            "identity_type": "passport",
            "document": "AB-123456",
            "fullname": "Jane Doe",
        },
    )
    assert op.party.identity_type is IdentityType.PASSPORT
    assert op.party.document == "AB-123456"


def test_document_longer_than_30_characters():
    with pytest.raises(ValidationError) as exc_info:
        validate_operation(
            "withdraw",
            {
                "date": "01/08/2019",
                "coin_symbol": "ETH",
                "coin_quantity": "2",
                "identity_type": "NIF_PF",
                "document": "X" * 31,
                "fullname": "Jane Doe",
            },
        )
    assert "document" in _fields(exc_info)


def test_permutation_parties():
    op = validate_operation(
        "permutation",
        {
            "date": "26/08/2022",
            "received_coin_symbol": "BTC",
            "received_coin_quantity": "0.01",
            "delivered_coin_symbol": "USDT",
            "delivered_coin_quantity": "1003",
            "second_party_identity_type": "CPF",
            "second_party_document": CPF_B,
            "second_party_fullname": "Maria",
        },
    )
    assert isinstance(op, PermutationOperation)
    assert op.first_party is None
    assert op.second_party.document == CPF_B


def test_balance_with_single_coin_fields():
    op = validate_operation(
        "balance",
        {
            "date": "31/12/2021",
            "identity_type": "CPF",
            "document": CPF_A,
            "fullname": "Joao",
            "fiat_balance": "10,00",
            "coin_symbol": "btc",
            "coin_balance": "0.5",
        },
    )
    assert isinstance(op, BalanceReport)
    assert len(op.coin_balances) == 1
    assert op.coin_balances[0].coin_symbol == "BTC"


def test_balance_coin_errors_map_back():
    payload = {
        "date": "31/12/2021",
        "identity_type": "CPF",
        "document": CPF_A,
        "fullname": "Joao",
        "fiat_balance": "0",
        "coin_symbol": "BTC",
        "coin_balance": "-1",
        "coin_balances": [{"coin_symbol": "ETH", "coin_balance": "abc"}],
    }
    with pytest.raises(ValidationError) as exc_info:
        validate_operation("balance", payload)
    assert set(_fields(exc_info)) == {"coin_balance", "coin_balances.0.coin_balance"}


def test_fold_payload_keeps_nested_party():
    data, single = fold_payload(OperationKind.DEPOSIT, {"party": {"fullname": "A"}, "coin_symbol": "BTC"})
    assert data["party"] == {"fullname": "A"}
    assert single is False


def test_payload_must_be_mapping():
    with pytest.raises(ValidationError):
        validate_operation("buy", ["not", "a", "mapping"])


# --------------------------------------------------------------------------------------
# Exchange
# --------------------------------------------------------------------------------------
def test_exchange_identity():
    ex = validate_exchange({"exchange_name": "Binance", "exchange_country": "us", "exchange_url": "https://binance.com"})
    assert ex.exchange_country == "US"


@pytest.mark.parametrize(
    "payload, field",
    [
        ({"exchange_name": "", "exchange_url": "https://x.com"}, "exchange_name"),
        ({"exchange_name": "X", "exchange_url": "binance.com"}, "exchange_url"),
        ({"exchange_name": "X", "exchange_url": "https://x.com", "exchange_country": "BRA"}, "exchange_country"),
    ],
)
def test_exchange_identity_errors(payload, field):
    with pytest.raises(ValidationError) as exc_info:
        validate_exchange(payload)
    assert field in _fields(exc_info)


def test_schemas_module_docstring():
    from cryptotaxreport import schemas

    assert "operation variants" in schemas.__doc__
