# encoder.py
"""
Render validated operations into exchange report lines.

Every record is one line of `|`-separated fields, first field = record code:

  0000  header (exchange)                        4 fields
  0110  buy / sell                              20 fields
  0210  permutation                             21 fields
  0410  deposit / withdraw                      13 fields
  0510  payment                                 19 fields
  0710  other operations                        19 fields
  0910  balance report (one line per coin)      11 fields
  9999  footer (totals)                          9 fields

Value formats:
  dates  -> DDMMYYYY in the report timezone
  fiat   -> 2 decimals, point removed, at most 16 digits  (1500.80 -> 150080)
  coins  -> 10 decimals, point removed, at most 30 digits (0.0000001 -> 00000001000)
  text   -> already sanitized by the schemas; absent values are empty strings

The validator is expected to have rejected oversized values already. The checks
here are the last line of defence: a value that does not fit raises
EncodingWidthExceeded and nothing is written.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from .errors import EncodingWidthExceeded, ReportError
from .normalizers import DEFAULT_TZ, scaled_digits
from .schemas import (
    COIN_MAX_DIGITS,
    COIN_PLACES,
    FIAT_MAX_DIGITS,
    FIAT_PLACES,
    BalanceReport,
    ExchangeIdentity,
    Operation,
    OperationKind,
    OtherOperation,
    Party,
    PaymentOperation,
    PermutationOperation,
    ReportTotals,
    TradeOperation,
    TransferOperation,
)

DELIMITER = "|"

HEADER_CODE = "0000"
FOOTER_CODE = "9999"

RECORD_CODES: Dict[OperationKind, str] = {
    OperationKind.BUY: "0110",
    OperationKind.SELL: "0110",
    OperationKind.PERMUTATION: "0210",
    OperationKind.DEPOSIT: "0410",
    OperationKind.WITHDRAW: "0410",
    OperationKind.PAYMENT: "0510",
    OperationKind.OTHER: "0710",
    OperationKind.BALANCE: "0910",
}

NATURE_CODES: Dict[OperationKind, str] = {
    OperationKind.BUY: "I",
    OperationKind.SELL: "I",
    OperationKind.PERMUTATION: "II",
    OperationKind.DEPOSIT: "IV",
    OperationKind.WITHDRAW: "V",
    OperationKind.PAYMENT: "VII",
    OperationKind.OTHER: "IX",
}

RECORD_FIELD_COUNTS: Dict[str, int] = {
    HEADER_CODE: 4,
    "0110": 20,
    "0210": 21,
    "0410": 13,
    "0510": 19,
    "0710": 19,
    "0910": 11,
    FOOTER_CODE: 9,
}

PARTY_BLOCK_SIZE = 6

# max characters per text column
ID_WIDTH = 1024
NAME_WIDTH = 80
URL_WIDTH = 80
COUNTRY_WIDTH = 2
DOCUMENT_WIDTH = 30
ADDRESS_WIDTH = 120
SYMBOL_WIDTH = 10


# -----------------------------------------------------------------------------
# Field formatters
# -----------------------------------------------------------------------------

def _fixed(value: Decimal, places: int, max_digits: int, field: str) -> str:
    if value < 0:
        raise ReportError(f"Field {field} is negative")
    digits = scaled_digits(value, places)
    if len(digits) > max_digits:
        raise EncodingWidthExceeded(field, max_digits, len(digits))
    return digits


def format_fiat(value: Decimal, field: str = "brl") -> str:
    """BRL amount as integer cents: Decimal('1500.8') -> '150080', 0 -> '000'."""
    return _fixed(value, FIAT_PLACES, FIAT_MAX_DIGITS, field)


def format_coin(value: Decimal, field: str = "coin") -> str:
    """Coin quantity with an implied 10-digit fraction: Decimal('0.01') -> '00100000000'."""
    return _fixed(value, COIN_PLACES, COIN_MAX_DIGITS, field)


def format_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    return value.astimezone(tz or DEFAULT_TZ).strftime("%d%m%Y")


def text_field(value: Optional[str], field: str, max_width: int) -> str:
    s = value or ""
    if DELIMITER in s or "\r" in s or "\n" in s:
        raise ReportError(f"Field {field} contains a delimiter character")
    if len(s) > max_width:
        raise EncodingWidthExceeded(field, max_width, len(s))
    return s


def party_block(party: Optional[Party], role: str) -> List[str]:
    """
    Six columns: identity code | country | CPF/CNPJ | other document | name | address.

    The document lands in the CPF/CNPJ column for those two identity types and
    in the "other document" column (NIF, passport, ...) otherwise.
    """
    if party is None:
        return [""] * PARTY_BLOCK_SIZE

    document = text_field(party.document, f"{role}_document", DOCUMENT_WIDTH)
    tax_id, other_id = (document, "") if party.identity_type.is_tax_id else ("", document)
    return [
        party.identity_type.code,
        text_field(party.country, f"{role}_country", COUNTRY_WIDTH),
        tax_id,
        other_id,
        text_field(party.fullname, f"{role}_fullname", NAME_WIDTH),
        text_field(party.address, f"{role}_address", ADDRESS_WIDTH),
    ]


def join_line(fields: List[str]) -> str:
    """Join one record, checking its field count against the layout."""
    code = fields[0]
    expected = RECORD_FIELD_COUNTS.get(code)
    if expected is None:
        raise ReportError(f"Unknown record code {code}")
    if len(fields) != expected:
        raise ReportError(f"Record {code} has {len(fields)} fields, layout requires {expected}")
    return DELIMITER.join(fields)


# -----------------------------------------------------------------------------
# Records
# -----------------------------------------------------------------------------

def encode_header(exchange: ExchangeIdentity) -> str:
    return join_line(
        [
            HEADER_CODE,
            text_field(exchange.exchange_country, "exchange_country", COUNTRY_WIDTH),
            text_field(exchange.exchange_name, "exchange_name", NAME_WIDTH),
            text_field(exchange.exchange_url, "exchange_url", URL_WIDTH),
        ]
    )


def _lead(op: Operation, tz: Optional[tzinfo]) -> List[str]:
    """code | date | id | nature: the columns every movement record starts with."""
    return [
        RECORD_CODES[op.kind],
        format_date(op.date, tz),
        text_field(op.id, "id", ID_WIDTH),
        NATURE_CODES[op.kind],
    ]


def encode_trade(op: TradeOperation, tz: Optional[tzinfo] = None) -> List[str]:
    fields = _lead(op, tz) + [
        format_fiat(op.brl_value, "brl_value"),
        format_fiat(op.brl_fees, "brl_fees"),
        text_field(op.coin_symbol, "coin_symbol", SYMBOL_WIDTH),
        format_coin(op.coin_quantity, "coin_quantity"),
    ]
    fields += party_block(op.buyer, "buyer")
    fields += party_block(op.seller, "seller")
    return [join_line(fields)]


def encode_permutation(op: PermutationOperation, tz: Optional[tzinfo] = None) -> List[str]:
    fields = _lead(op, tz) + [
        format_fiat(op.brl_fees, "brl_fees"),
        text_field(op.received_coin_symbol, "received_coin_symbol", SYMBOL_WIDTH),
        format_coin(op.received_coin_quantity, "received_coin_quantity"),
    ]
    fields += party_block(op.first_party, "first_party")
    fields += [
        text_field(op.delivered_coin_symbol, "delivered_coin_symbol", SYMBOL_WIDTH),
        format_coin(op.delivered_coin_quantity, "delivered_coin_quantity"),
    ]
    fields += party_block(op.second_party, "second_party")
    return [join_line(fields)]


def _coin_movement(op, tz: Optional[tzinfo]) -> List[str]:
    return _lead(op, tz) + [
        format_fiat(op.brl_fees, "brl_fees"),
        text_field(op.coin_symbol, "coin_symbol", SYMBOL_WIDTH),
        format_coin(op.coin_quantity, "coin_quantity"),
    ]


def encode_transfer(op: TransferOperation, tz: Optional[tzinfo] = None) -> List[str]:
    return [join_line(_coin_movement(op, tz) + party_block(op.party, "party"))]


def encode_payment(op: PaymentOperation, tz: Optional[tzinfo] = None) -> List[str]:
    fields = _coin_movement(op, tz) + party_block(op.payer, "payer") + party_block(op.receiver, "receiver")
    return [join_line(fields)]


def encode_other(op: OtherOperation, tz: Optional[tzinfo] = None) -> List[str]:
    fields = _coin_movement(op, tz) + party_block(op.origin, "origin") + party_block(op.recipient, "recipient")
    return [join_line(fields)]


def encode_balance(op: BalanceReport, tz: Optional[tzinfo] = None) -> List[str]:
    """One 0910 line per coin balance; a fiat-only report still gets one line."""
    lead = [RECORD_CODES[op.kind], format_date(op.date, tz)] + party_block(op.party, "party")
    lead.append(format_fiat(op.fiat_balance, "fiat_balance"))

    if not op.coin_balances:
        return [join_line(lead + ["", ""])]

    return [
        join_line(
            lead
            + [
                text_field(coin.coin_symbol, "coin_symbol", SYMBOL_WIDTH),
                format_coin(coin.coin_balance, "coin_balance"),
            ]
        )
        for coin in op.coin_balances
    ]


ENCODERS: Dict[OperationKind, Callable[..., List[str]]] = {
    OperationKind.BUY: encode_trade,
    OperationKind.SELL: encode_trade,
    OperationKind.PERMUTATION: encode_permutation,
    OperationKind.DEPOSIT: encode_transfer,
    OperationKind.WITHDRAW: encode_transfer,
    OperationKind.PAYMENT: encode_payment,
    OperationKind.OTHER: encode_other,
    OperationKind.BALANCE: encode_balance,
}


def encode_operation(op: Operation, tz: Optional[tzinfo] = None) -> List[str]:
    """Encode one registered operation; most produce exactly one line."""
    return ENCODERS[op.kind](op, tz)


def encode_footer(totals: ReportTotals) -> str:
    return join_line(
        [
            FOOTER_CODE,
            str(totals.trade_count),
            format_fiat(totals.trade_brl_total, "total_brl_value"),
            str(totals.permutation_count),
            str(totals.transfer_count),
            str(totals.payment_count),
            str(totals.other_count),
            str(totals.balance_count),
            str(totals.operation_count),
        ]
    )
