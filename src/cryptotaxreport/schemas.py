"""
Pydantic schemas for the exchange identity and the eight operation variants.

- Sanitizing/normalizing runs in "before" validators, so length limits apply to
  the cleaned value (an accented 80-char name is measured after stripping).
- Models are frozen: once accepted, an operation never changes.
- Unknown keys are rejected (extra="forbid") so a typo in a payload surfaces as
  a field error instead of being silently dropped.

Widths follow the exchange report layout: fiat values are at most 16 digits
once written with 2 decimals and no point, coin quantities at most 30 digits
with 10 decimals.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    StringConstraints,
    ValidationInfo,
    field_validator,
)

from .documents import is_valid_cnpj, is_valid_cpf
from .normalizers import normalize_currency, normalize_date, only_digits, sanitize_text, scaled_digits

FIAT_PLACES = 2
FIAT_MAX_DIGITS = 16
COIN_PLACES = 10
COIN_MAX_DIGITS = 30


class OperationKind(str, Enum):
    BUY = "buy"
    SELL = "sell"
    PERMUTATION = "permutation"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    PAYMENT = "payment"
    OTHER = "other"
    BALANCE = "balance"


class IdentityType(str, Enum):
    CPF = "CPF"
    CNPJ = "CNPJ"
    NIF_PF = "NIF_PF"
    NIF_PJ = "NIF_PJ"
    PASSPORT = "PASSPORT"
    COUNTRY_NO_ID = "COUNTRY_NO_ID"
    USER_NO_ID = "USER_NO_ID"

    @property
    def code(self) -> str:
        """Numeric code written in the identity block (CPF=1 ... USER_NO_ID=7)."""
        return str(list(IdentityType).index(self) + 1)

    @property
    def is_tax_id(self) -> bool:
        return self in (IdentityType.CPF, IdentityType.CNPJ)


# -----------------------------------------------------------------------------
# Field types
# -----------------------------------------------------------------------------

def _check_width(places: int, max_digits: int):
    def check(v: Decimal) -> Decimal:
        try:
            width = len(scaled_digits(v, places))
        except InvalidOperation:
            width = max_digits + 1  # too large to quantize
        if width > max_digits:
            raise ValueError("Value exceeds the maximum allowed digits.")
        return v

    return check


def _fee_or_zero(v):
    if v is None or v == "":
        return Decimal("0")
    return normalize_currency(v)


def _upper_text(v) -> str:
    return sanitize_text(v).strip().upper()


def _report_date(v, info: ValidationInfo) -> datetime:
    tz = (info.context or {}).get("tz")
    return normalize_date(v, tz)


def _http_url(v: str) -> str:
    parsed = urlparse(v)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL")
    return v


Fiat = Annotated[
    Decimal,
    BeforeValidator(normalize_currency),
    AfterValidator(_check_width(FIAT_PLACES, FIAT_MAX_DIGITS)),
]
Fee = Annotated[
    Decimal,
    BeforeValidator(_fee_or_zero),
    AfterValidator(_check_width(FIAT_PLACES, FIAT_MAX_DIGITS)),
]
Coin = Annotated[
    Decimal,
    BeforeValidator(normalize_currency),
    AfterValidator(_check_width(COIN_PLACES, COIN_MAX_DIGITS)),
]
ReportDate = Annotated[datetime, BeforeValidator(_report_date)]

Name = Annotated[str, BeforeValidator(sanitize_text), StringConstraints(min_length=1, max_length=80)]
Address = Annotated[str, BeforeValidator(sanitize_text), StringConstraints(max_length=120)]
Country = Annotated[str, BeforeValidator(_upper_text), StringConstraints(max_length=2)]
ExternalId = Annotated[str, BeforeValidator(sanitize_text), StringConstraints(max_length=1024)]
CoinSymbol = Annotated[str, BeforeValidator(_upper_text), StringConstraints(min_length=1, max_length=10)]
Url = Annotated[
    str,
    BeforeValidator(sanitize_text),
    StringConstraints(min_length=1, max_length=80),
    AfterValidator(_http_url),
]


# -----------------------------------------------------------------------------
# Exchange and parties
# -----------------------------------------------------------------------------

class ExchangeIdentity(BaseModel):
    """The reporting exchange; written once, in the header line."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    exchange_name: Name
    exchange_country: Country = ""
    exchange_url: Url


class Party(BaseModel):
    """
    One counterparty identity block (buyer, seller, payer, depositor, ...).

    For CPF/CNPJ the document keeps only its digits and must carry valid check
    digits; other identity types keep the (sanitized) document as typed.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    identity_type: IdentityType
    country: Country = ""
    document: str = ""
    fullname: Name
    address: Address = ""

    @field_validator("identity_type", mode="before")
    @classmethod
    def _upper_identity_type(cls, v):
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("document", mode="before")
    @classmethod
    def _clean_document(cls, v, info: ValidationInfo) -> str:
        if v is None or v == "":
            return ""
        identity_type = info.data.get("identity_type")
        if identity_type is not None and identity_type.is_tax_id:
            digits = only_digits(v)
            if not digits:
                raise ValueError(f"Invalid {identity_type.value}")
            return digits
        return sanitize_text(v)

    @field_validator("document")
    @classmethod
    def _check_document(cls, v: str, info: ValidationInfo) -> str:
        reason = document_error(info.data.get("identity_type"), v)
        if reason:
            raise ValueError(reason)
        return v


def document_error(identity_type: Optional[IdentityType], document: str) -> Optional[str]:
    """Return why `document` is unacceptable for `identity_type`, or None."""
    if len(document) > 30:
        return "Document exceeds 30 characters"
    if not document:
        return None
    if identity_type is IdentityType.CPF and not is_valid_cpf(document):
        return "Invalid CPF"
    if identity_type is IdentityType.CNPJ and not is_valid_cnpj(document):
        return "Invalid CNPJ"
    return None


# -----------------------------------------------------------------------------
# Operations
# -----------------------------------------------------------------------------

class OperationBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: ClassVar[OperationKind]

    date: ReportDate


class TradeOperation(OperationBase):
    """Buy or sell of a coin against BRL."""

    id: ExternalId = ""
    brl_value: Fiat
    brl_fees: Fee = Decimal("0")
    coin_symbol: CoinSymbol
    coin_quantity: Coin
    buyer: Optional[Party] = None
    seller: Optional[Party] = None


class BuyOperation(TradeOperation):
    kind: ClassVar[OperationKind] = OperationKind.BUY


class SellOperation(TradeOperation):
    kind: ClassVar[OperationKind] = OperationKind.SELL


class PermutationOperation(OperationBase):
    """Coin-for-coin swap; no fiat leg besides the fee."""

    kind: ClassVar[OperationKind] = OperationKind.PERMUTATION

    id: ExternalId = ""
    brl_fees: Fee = Decimal("0")
    received_coin_symbol: CoinSymbol
    received_coin_quantity: Coin
    first_party: Optional[Party] = None
    delivered_coin_symbol: CoinSymbol
    delivered_coin_quantity: Coin
    second_party: Optional[Party] = None


class TransferOperation(OperationBase):
    """Coin moved into (deposit) or out of (withdraw) the exchange."""

    id: ExternalId = ""
    brl_fees: Fee = Decimal("0")
    coin_symbol: CoinSymbol
    coin_quantity: Coin
    party: Party


class DepositOperation(TransferOperation):
    kind: ClassVar[OperationKind] = OperationKind.DEPOSIT


class WithdrawOperation(TransferOperation):
    kind: ClassVar[OperationKind] = OperationKind.WITHDRAW


class PaymentOperation(OperationBase):
    kind: ClassVar[OperationKind] = OperationKind.PAYMENT

    id: ExternalId = ""
    brl_fees: Fee = Decimal("0")
    coin_symbol: CoinSymbol
    coin_quantity: Coin
    payer: Optional[Party] = None
    receiver: Optional[Party] = None


class OtherOperation(OperationBase):
    kind: ClassVar[OperationKind] = OperationKind.OTHER

    id: ExternalId = ""
    brl_fees: Fee = Decimal("0")
    coin_symbol: CoinSymbol
    coin_quantity: Coin
    origin: Optional[Party] = None
    recipient: Optional[Party] = None


class CoinBalance(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    coin_symbol: CoinSymbol
    coin_balance: Coin


class BalanceReport(OperationBase):
    """Balance snapshot of one customer: fiat plus any number of coins."""

    kind: ClassVar[OperationKind] = OperationKind.BALANCE

    party: Party
    fiat_balance: Fiat
    coin_balances: Tuple[CoinBalance, ...] = ()


Operation = (
    BuyOperation
    | SellOperation
    | PermutationOperation
    | DepositOperation
    | WithdrawOperation
    | PaymentOperation
    | OtherOperation
    | BalanceReport
)


class ReportTotals(BaseModel):
    """Aggregates carried by the footer line."""

    trade_count: int = 0
    trade_brl_total: Decimal = Decimal("0")
    permutation_count: int = 0
    transfer_count: int = 0
    payment_count: int = 0
    other_count: int = 0
    balance_count: int = 0
    operation_count: int = 0


# -----------------------------------------------------------------------------
# API payloads
# -----------------------------------------------------------------------------

class ExportRequest(BaseModel):
    """
    Body of POST /export.

    `operations` items are flat payloads plus an `operation` key naming the
    type ("buy", "sell", "permutation", ...).
    """

    exchange: Dict[str, Any]
    operations: List[Dict[str, Any]] = []


class CSVExportPreview(BaseModel):
    """
    API response model for /upload/csv.
    `report` is only filled when every row was accepted.
    """

    filename: str
    total_valid: int
    total_errors: int
    errors: List[Any]
    report: Optional[str] = None
    sha256: Optional[str] = None
