# config.py
"""
Runtime settings.

Values come from environment variables; a `.env` file in the project root is
loaded first when present (python-dotenv), so local overrides don't need to be
exported in the shell.

  CRYPTO_TAXREPORT_TIMEZONE        report timezone (dates are written in it)
  CRYPTO_TAXREPORT_LINE_SEPARATOR  "crlf" (default) or "lf"
  CRYPTO_TAXREPORT_JSON_LOGS       "1"/"true" for JSON log lines
  LOG_LEVEL                        DEBUG, INFO, WARNING, ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]

LINE_SEPARATORS = {"crlf": "\r\n", "lf": "\n"}


@dataclass(frozen=True)
class Settings:
    timezone: str = "America/Sao_Paulo"
    line_separator: str = "\r\n"
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Build Settings from the environment (and `.env`, if present)."""
    load_dotenv(PROJECT_ROOT / ".env")

    sep_name = os.getenv("CRYPTO_TAXREPORT_LINE_SEPARATOR", "crlf").strip().lower()
    if sep_name not in LINE_SEPARATORS:
        raise ValueError(
            f"CRYPTO_TAXREPORT_LINE_SEPARATOR must be one of {sorted(LINE_SEPARATORS)}, got {sep_name!r}"
        )

    tz = os.getenv("CRYPTO_TAXREPORT_TIMEZONE", Settings.timezone)
    ZoneInfo(tz)  # fail early on unknown zones

    return Settings(
        timezone=tz,
        line_separator=LINE_SEPARATORS[sep_name],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        json_logs=_env_flag("CRYPTO_TAXREPORT_JSON_LOGS"),
    )
