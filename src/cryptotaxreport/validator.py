# validator.py
"""
Validate raw operation payloads and turn them into frozen operation models.

Callers send flat mappings, the way they come out of a spreadsheet row:

    {"date": "25/05/2019", "brl_value": "R$ 1500,80", ...,
     "buyer_identity_type": "CPF", "buyer_document": "442.467.420-74", ...}

Before schema validation the role-prefixed keys are folded into one `Party`
block per role (buyer, seller, payer, ...), so document checks always see the
identity type of the same party. Errors are reported back under the flat key
names the caller used ("buyer_document", not "buyer.document").
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Any, Dict, List, Mapping, Tuple

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import FieldError, ValidationError
from .logging_setup import get_logger
from .schemas import (
    BalanceReport,
    BuyOperation,
    DepositOperation,
    ExchangeIdentity,
    Operation,
    OperationKind,
    OtherOperation,
    PaymentOperation,
    PermutationOperation,
    SellOperation,
    WithdrawOperation,
)

logger = get_logger(__name__)

PARTY_FIELDS = ("identity_type", "country", "document", "fullname", "address")

# kind -> schema
OPERATION_MODELS: Dict[OperationKind, type[BaseModel]] = {
    OperationKind.BUY: BuyOperation,
    OperationKind.SELL: SellOperation,
    OperationKind.PERMUTATION: PermutationOperation,
    OperationKind.DEPOSIT: DepositOperation,
    OperationKind.WITHDRAW: WithdrawOperation,
    OperationKind.PAYMENT: PaymentOperation,
    OperationKind.OTHER: OtherOperation,
    OperationKind.BALANCE: BalanceReport,
}

# kind -> ((model field, flat key prefix, required), ...)
PARTY_ROLES: Dict[OperationKind, Tuple[Tuple[str, str, bool], ...]] = {
    OperationKind.BUY: (("buyer", "buyer_", False), ("seller", "seller_", False)),
    OperationKind.SELL: (("buyer", "buyer_", False), ("seller", "seller_", False)),
    OperationKind.PERMUTATION: (
        ("first_party", "first_party_", False),
        ("second_party", "second_party_", False),
    ),
    OperationKind.DEPOSIT: (("party", "", True),),
    OperationKind.WITHDRAW: (("party", "", True),),
    OperationKind.PAYMENT: (("payer", "payer_", False), ("receiver", "receiver_", False)),
    OperationKind.OTHER: (("origin", "origin_", False), ("recipient", "recipient_", False)),
    OperationKind.BALANCE: (("party", "", True),),
}


def parse_kind(kind: Any) -> OperationKind:
    """Accept an OperationKind or its name in any case ("Buy", "SELL", ...)."""
    if isinstance(kind, OperationKind):
        return kind
    try:
        return OperationKind(str(kind).strip().lower())
    except ValueError:
        raise ValidationError([FieldError("operation", f"Unknown operation type {kind!r}")]) from None


def fold_payload(kind: OperationKind, payload: Mapping[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Regroup flat role-prefixed keys into nested party dicts.

    Returns (data, single_coin) where single_coin tells whether a balance
    report's top-level coin_symbol/coin_balance pair was moved to coin_balances[0].
    """
    data = dict(payload)

    for role, prefix, required in PARTY_ROLES[kind]:
        if role in data:
            continue  # already nested
        party = {f: data.pop(prefix + f) for f in PARTY_FIELDS if prefix + f in data}
        if required or any(v not in (None, "") for v in party.values()):
            data[role] = party

    single_coin = False
    if kind is OperationKind.BALANCE:
        symbol = data.pop("coin_symbol", None)
        balance = data.pop("coin_balance", None)
        coins = list(data.get("coin_balances") or [])
        if symbol not in (None, "") or balance not in (None, ""):
            coins.insert(0, {"coin_symbol": symbol, "coin_balance": balance})
            single_coin = True
        data["coin_balances"] = coins

    return data, single_coin


def _flat_field_name(kind: OperationKind, loc: Tuple[Any, ...], single_coin: bool) -> str:
    if not loc:
        return "__root__"
    head = loc[0]

    for role, prefix, _ in PARTY_ROLES.get(kind, ()):
        if head == role:
            if len(loc) == 1:
                return role
            return prefix + str(loc[1])

    if head == "coin_balances" and len(loc) >= 3:
        index = int(loc[1])
        if single_coin:
            if index == 0:
                return str(loc[2])
            index -= 1
        return f"coin_balances.{index}.{loc[2]}"

    return ".".join(str(part) for part in loc)


def _reason(err: Mapping[str, Any]) -> str:
    # Prefer the message we raised ourselves over pydantic's "Value error, ..." prefix
    ctx = err.get("ctx") or {}
    if "error" in ctx:
        return str(ctx["error"])
    return err["msg"]


def _field_errors(
    exc: PydanticValidationError, kind: OperationKind | None = None, single_coin: bool = False
) -> List[FieldError]:
    errors = []
    for err in exc.errors():
        name = _flat_field_name(kind, err["loc"], single_coin) if kind else ".".join(map(str, err["loc"]))
        errors.append(FieldError(name, _reason(err)))
    return errors


def validate_operation(kind: Any, payload: Mapping[str, Any], tz: tzinfo | None = None) -> Operation:
    """
    Validate `payload` as an operation of `kind`.

    Returns the frozen operation model, or raises ValidationError listing every
    rejected field.
    """
    op_kind = parse_kind(kind)
    if not isinstance(payload, Mapping):
        raise ValidationError([FieldError("__root__", "Payload must be a mapping")], kind=op_kind.value)

    data, single_coin = fold_payload(op_kind, payload)
    model = OPERATION_MODELS[op_kind]
    try:
        return model.model_validate(data, context={"tz": tz})
    except PydanticValidationError as exc:
        errors = _field_errors(exc, op_kind, single_coin)
        logger.warning(
            "operation_rejected",
            kind=op_kind.value,
            fields=[e.field for e in errors],
        )
        raise ValidationError(errors, kind=op_kind.value) from exc


def validate_exchange(payload: Mapping[str, Any]) -> ExchangeIdentity:
    """Validate the exchange identity (name, country, url)."""
    try:
        return ExchangeIdentity.model_validate(dict(payload))
    except PydanticValidationError as exc:
        errors = _field_errors(exc)
        logger.warning("exchange_rejected", fields=[e.field for e in errors])
        raise ValidationError(errors) from exc
