# report.py
"""
ExchangeReport: collect operations for one exchange and export the report file.

    report = ExchangeReport(
        exchange_name="Binance", exchange_country="US", exchange_url="https://binance.com"
    )
    report.add_buy_operation(date="25/05/2019", brl_value="R$ 1500,80",
                             brl_fees="R$ 1,49", coin_symbol="BTC",
                             coin_quantity="0.0000001")
    text = report.export_file()

Each add_* call validates first and only appends when the payload is accepted;
a rejected payload raises ValidationError and leaves the report unchanged.
export_file() is a pure function of what has been added so far: calling it
twice without adding anything returns the same text.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from .config import Settings, load_settings
from .digest import sha256_text
from .encoder import (
    RECORD_CODES,
    encode_footer,
    encode_header,
    encode_operation,
    format_fiat,
)
from .errors import EncodingWidthExceeded
from .logging_setup import get_logger
from .registry import OperationRegistry
from .schemas import ExchangeIdentity, Operation, OperationBase, OperationKind, ReportTotals
from .validator import validate_exchange, validate_operation

logger = get_logger(__name__)

# record code -> ReportTotals counter
_COUNTERS = {
    "0110": "trade_count",
    "0210": "permutation_count",
    "0410": "transfer_count",
    "0510": "payment_count",
    "0710": "other_count",
    "0910": "balance_count",
}


def _merge(payload: Optional[Mapping[str, Any]], fields: Mapping[str, Any]) -> dict:
    data = dict(payload or {})
    data.update(fields)
    return data


class ExchangeReport:
    """One exchange, its registered operations, and the file built from them."""

    def __init__(
        self,
        exchange: Optional[Mapping[str, Any]] = None,
        *,
        settings: Optional[Settings] = None,
        **fields: Any,
    ) -> None:
        self.settings = settings or load_settings()
        self.exchange: ExchangeIdentity = validate_exchange(_merge(exchange, fields))
        self._registry = OperationRegistry()
        logger.info("report_created", exchange=self.exchange.exchange_name)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_operation(self, kind: Any, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        """Validate and append one operation; returns its record id."""
        op = validate_operation(kind, _merge(payload, fields), tz=self.settings.tzinfo)
        record_id = self._registry.register(op)
        logger.debug("operation_registered", kind=op.kind.value, record_id=record_id)
        return record_id

    def add_buy_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.BUY, payload, **fields)

    def add_sell_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.SELL, payload, **fields)

    def add_permutation_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.PERMUTATION, payload, **fields)

    def add_deposit_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.DEPOSIT, payload, **fields)

    def add_withdraw_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.WITHDRAW, payload, **fields)

    def add_payment_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.PAYMENT, payload, **fields)

    def add_other_operation(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.OTHER, payload, **fields)

    def add_balance_report(self, payload: Optional[Mapping[str, Any]] = None, **fields: Any) -> int:
        return self.add_operation(OperationKind.BALANCE, payload, **fields)

    def register(self, op: Operation) -> int:
        """Append an operation that was already validated (e.g. by csv_normalizer)."""
        if not isinstance(op, OperationBase):
            raise TypeError(f"Expected a validated operation, got {type(op).__name__}")
        return self._registry.register(op)

    @property
    def operations(self) -> Tuple[Operation, ...]:
        return self._registry.all()

    def __len__(self) -> int:
        return len(self._registry)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def build_lines(self) -> Tuple[List[str], ReportTotals]:
        """
        Encode header, body and footer.

        BRL totals are accumulated in integer cents taken from the encoded
        body columns, so the footer always equals the sum of what was written.
        """
        tz = self.settings.tzinfo
        lines = [encode_header(self.exchange)]
        counts = dict.fromkeys(_COUNTERS.values(), 0)
        trade_cents = 0
        operation_count = 0

        for op in self._registry.all():
            encoded = encode_operation(op, tz)
            lines.extend(encoded)
            counts[_COUNTERS[RECORD_CODES[op.kind]]] += len(encoded)
            if op.kind is not OperationKind.BALANCE:
                operation_count += len(encoded)
            if op.kind in (OperationKind.BUY, OperationKind.SELL):
                trade_cents += int(format_fiat(op.brl_value, "brl_value"))

        totals = ReportTotals(
            trade_brl_total=Decimal(trade_cents).scaleb(-2),
            operation_count=operation_count,
            **counts,
        )
        lines.append(encode_footer(totals))
        return lines, totals

    def summary(self) -> ReportTotals:
        """Footer aggregates for the operations registered so far."""
        return self.build_lines()[1]

    def export_file(self) -> str:
        """
        Return the complete report text.

        Raises EncodingWidthExceeded (and produces nothing) when any value,
        including the footer total, does not fit its column.
        """
        try:
            lines, totals = self.build_lines()
        except EncodingWidthExceeded as exc:
            logger.error(
                "report_export_failed",
                field=exc.field,
                max_width=exc.max_width,
                actual_width=exc.actual_width,
            )
            raise

        text = self.settings.line_separator.join(lines)
        logger.info(
            "report_exported",
            lines=len(lines),
            operations=totals.operation_count,
            sha256=sha256_text(text),
        )
        return text


def create_report(exchange: Mapping[str, Any], settings: Optional[Settings] = None) -> ExchangeReport:
    """Functional entry point: validate the exchange identity and start a report."""
    return ExchangeReport(exchange, settings=settings)
