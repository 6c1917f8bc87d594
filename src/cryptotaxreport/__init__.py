"""
CryptoTaxReport: build the pipe-delimited exchange report file (IN 1888 layout)
from manually entered crypto operations.
"""

from .__about__ import __title__, __version__
from .errors import (
    DateParseError,
    EncodingWidthExceeded,
    FieldError,
    ReportError,
    ValidationError,
)
from .report import ExchangeReport, create_report
from .schemas import OperationKind

__all__ = [
    "__title__",
    "__version__",
    "ExchangeReport",
    "create_report",
    "OperationKind",
    "ReportError",
    "ValidationError",
    "FieldError",
    "EncodingWidthExceeded",
    "DateParseError",
]
