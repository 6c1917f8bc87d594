# normalizers.py
"""
Field normalization: raw user input -> canonical values.

Pure functions, no I/O. They turn the loosely formatted values people type into
an exchange back-office sheet ("R$ 1500,80", "25/05/2019", 1564672373) into
Decimal amounts, timezone-aware datetimes and report-safe ASCII text.

Rounding never happens here; amounts keep every digit the user typed until the
encoder renders them with a fixed number of decimals.
"""

from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

from .errors import DateParseError

DEFAULT_TZ = ZoneInfo("America/Sao_Paulo")

_SLASHED_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_COMPACT_DATE = re.compile(r"^(\d{1,2})(\d{1,2})(\d{4})$")
_EPOCH = re.compile(r"^\d+(\.\d+)?$")
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7e]")
_FILL_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


# -----------------------------------------------------------------------------
# Currency / quantities
# -----------------------------------------------------------------------------

def normalize_currency(raw: Any) -> Decimal:
    """
    Parse a fiat amount or coin quantity into a non-negative Decimal.

    Strings use "," or "." as the decimal point; anything that is not a digit or
    a separator (currency symbols, spaces) is ignored. Thousands separators are
    not supported: a string that still holds more than one separator after the
    comma is turned into a point ("1.500,80") is rejected rather than guessed.

    Raises ValueError for negative, non-finite, empty or ambiguous input.
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError("A numeric value is required")

    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, int):
        value = Decimal(raw)
    elif isinstance(raw, float):
        if not math.isfinite(raw):
            raise ValueError("Value must be a finite number")
        value = Decimal(str(raw))  # via str() so 0.1 stays 0.1
    elif isinstance(raw, str):
        value = _parse_amount_string(raw)
    else:
        raise ValueError(f"Unsupported value type: {type(raw).__name__}")

    if not value.is_finite():
        raise ValueError("Value must be a finite number")
    if value < 0:
        raise ValueError("Value cannot be less than zero")
    return value


def _parse_amount_string(raw: str) -> Decimal:
    s = raw.replace(",", ".")
    if "-" in s:
        raise ValueError("Value cannot be less than zero")

    kept = re.sub(r"[^0-9.]", "", s)
    if not any(ch.isdigit() for ch in kept):
        raise ValueError(f"No digits in value {raw!r}")
    if kept.count(".") > 1:
        raise ValueError(f"Ambiguous value {raw!r}: thousands separators are not allowed")

    try:
        return Decimal(kept)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value {raw!r}") from exc


def scaled_digits(value: Decimal, places: int) -> str:
    """
    Render `value` with exactly `places` decimals (ROUND_HALF_UP) and drop the point.

    scaled_digits(Decimal("1500.8"), 2)     -> "150080"
    scaled_digits(Decimal("0.0000001"), 10) -> "00000001000"
    """
    with localcontext() as ctx:
        ctx.prec = 80  # 30-digit coin columns exceed the default 28
        fixed = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return format(fixed, "f").replace(".", "")


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------

def normalize_date(raw: Any, tz: tzinfo | None = None) -> datetime:
    """
    Turn any accepted date form into an aware datetime in `tz`.

    Tried in order, first hit wins:
      1. 'DD/MM/YYYY' (day and month may have one digit) -> midnight in tz
      2. 'DDMMYYYY'                                       -> midnight in tz
      3. Unix epoch seconds (int, float or numeric string)
      4. date / datetime objects (naive datetimes are read as tz-local)
      5. any other string dateutil understands, as long as it names a full
         day, month and year (naive -> tz-local)

    A pattern that matches but names an impossible day (31/02/2019) falls
    through to the next form. Raises DateParseError when nothing fits.
    """
    tz = tz or DEFAULT_TZ

    if raw is None or isinstance(raw, bool):
        raise DateParseError(raw)

    if isinstance(raw, datetime):
        return raw.replace(tzinfo=tz) if raw.tzinfo is None else raw.astimezone(tz)

    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=tz)

    if isinstance(raw, (int, float, Decimal)):
        return _from_epoch(raw, tz)

    if not isinstance(raw, str):
        raise DateParseError(raw)

    s = raw.strip()
    for pattern in (_SLASHED_DATE, _COMPACT_DATE):
        m = pattern.match(s)
        if m:
            day, month, year = (int(g) for g in m.groups())
            try:
                return datetime(year, month, day, tzinfo=tz)
            except ValueError:
                continue

    if _EPOCH.match(s):
        return _from_epoch(Decimal(s), tz)

    parsed = _parse_full_date(s, raw)
    return parsed.replace(tzinfo=tz) if parsed.tzinfo is None else parsed.astimezone(tz)


def _parse_full_date(s: str, raw: Any) -> datetime:
    # dateutil fills missing parts from `default`; two defaults expose them
    try:
        first = date_parser.parse(s, default=_FILL_DEFAULTS[0])
        second = date_parser.parse(s, default=_FILL_DEFAULTS[1])
    except (ValueError, OverflowError) as exc:
        raise DateParseError(raw) from exc
    if first.date() != second.date():
        raise DateParseError(raw)
    return first


def _from_epoch(seconds: int | float | Decimal, tz: tzinfo) -> datetime:
    try:
        return datetime.fromtimestamp(float(seconds), tz)
    except (OverflowError, OSError, ValueError) as exc:
        raise DateParseError(seconds) from exc


# -----------------------------------------------------------------------------
# Text
# -----------------------------------------------------------------------------

def sanitize_text(raw: Any) -> str:
    """
    Make a value safe for a pipe-delimited ASCII line.

    Decomposes accents (NFD) and drops the combining marks, then drops anything
    outside printable ASCII, single quotes and the `|` delimiter.
    "João D'Ávila | SP" -> "Joao DAvila  SP"
    """
    if raw is None:
        return ""
    s = unicodedata.normalize("NFD", str(raw))
    s = _COMBINING_MARKS.sub("", s)
    s = _NON_PRINTABLE.sub("", s)
    return s.replace("'", "").replace("|", "")


def only_digits(raw: Any) -> str:
    """Keep the digits of a document number ("123.456.789-09" -> "12345678909")."""
    if raw is None:
        return ""
    return re.sub(r"\D", "", str(raw))
