# csv_normalizer.py
"""
CSV import of operations.

Responsibilities:
- Read uploaded CSV bytes safely.
- Normalize header names (case-insensitive).
- Validate required columns are present.
- Drop empty cells so optional fields fall back to their defaults.
- Validate each row as the operation named in its `operation` column,
  returning (valid_operations, errors) so callers can preview and/or register.

One CSV may mix operation types; columns a row's type doesn't use must be left
empty. Role fields use the same flat names as the library API
(buyer_identity_type, payer_fullname, identity_type for deposits, ...).

Design choices:
- This module is "pure" (no report state). It converts raw bytes -> validated
  operation models; `load_csv_into` is the only function that touches a report.
"""

from __future__ import annotations

import csv
from datetime import tzinfo
from io import BytesIO, TextIOWrapper
from typing import Any, Dict, List, Tuple

from .errors import ValidationError
from .logging_setup import get_logger
from .schemas import Operation
from .validator import validate_operation

logger = get_logger(__name__)

REQUIRED_COLUMNS = {"operation", "date"}
KIND_COLUMN = "operation"


def _normalize_headers(headers: List[str]) -> List[str]:
    """Lowercase and strip whitespace so headers are matched flexibly."""
    return [h.strip().lower() for h in headers]


def parse_csv(
    file_bytes: bytes, encoding: str = "utf-8-sig", tz: tzinfo | None = None
) -> Tuple[List[Operation], List[Dict[str, Any]]]:
    """
    Parse CSV bytes into validated operations.

    Returns:
      valid: list of operation models, in file order
      errors: list of {row_number, error, raw_row}; `error` is a string for
              file-level problems and a list of {field, reason} for rows
    """
    valid: List[Operation] = []
    errors: List[Dict[str, Any]] = []

    text_stream = TextIOWrapper(BytesIO(file_bytes), encoding=encoding, newline="")
    reader = csv.DictReader(text_stream)

    if reader.fieldnames is None:
        errors.append({"row_number": 0, "error": "CSV has no header", "raw_row": None})
        return valid, errors

    headers = _normalize_headers(reader.fieldnames)
    header_map = {orig: norm for orig, norm in zip(reader.fieldnames, headers)}

    missing = REQUIRED_COLUMNS - set(headers)
    if missing:
        errors.append({"row_number": 0, "error": f"Missing required columns: {sorted(missing)}", "raw_row": None})
        return valid, errors

    for i, row in enumerate(reader, start=2):  # start=2 because row 1 is the header
        normalized: Dict[str, Any] = {}
        for orig_key, value in row.items():
            if orig_key is None:
                continue  # more cells than headers
            value = value.strip() if isinstance(value, str) else value
            if value in (None, ""):
                continue
            normalized[header_map.get(orig_key, orig_key.lower())] = value

        raw_row = dict(normalized)
        kind = normalized.pop(KIND_COLUMN, None)
        try:
            valid.append(validate_operation(kind, normalized, tz=tz))
        except ValidationError as ve:
            errors.append({"row_number": i, "error": ve.as_list(), "raw_row": raw_row})

    logger.info("csv_parsed", valid=len(valid), errors=len(errors))
    return valid, errors


def load_csv_into(report, file_bytes: bytes, encoding: str = "utf-8-sig") -> List[Dict[str, Any]]:
    """
    Register every valid row of the CSV into `report` and return the row errors.

    Rows that fail validation are skipped; the caller decides whether a partial
    import is acceptable before exporting.
    """
    operations, errors = parse_csv(file_bytes, encoding=encoding, tz=report.settings.tzinfo)
    for op in operations:
        report.register(op)
    return errors
