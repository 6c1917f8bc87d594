import logging
from zoneinfo import ZoneInfo

import pytest
import structlog

from cryptotaxreport.config import Settings, load_settings
from cryptotaxreport.logging_setup import configure_logging, get_logger


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "CRYPTO_TAXREPORT_TIMEZONE",
        "CRYPTO_TAXREPORT_LINE_SEPARATOR",
        "CRYPTO_TAXREPORT_JSON_LOGS",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = load_settings()
    assert s.timezone == "America/Sao_Paulo"
    assert s.line_separator == "\r\n"
    assert s.json_logs is False
    assert s.tzinfo == ZoneInfo("America/Sao_Paulo")


def test_env_overrides(clean_env):
    clean_env.setenv("CRYPTO_TAXREPORT_TIMEZONE", "UTC")
    clean_env.setenv("CRYPTO_TAXREPORT_LINE_SEPARATOR", "LF")
    clean_env.setenv("CRYPTO_TAXREPORT_JSON_LOGS", "true")
    clean_env.setenv("LOG_LEVEL", "debug")
    s = load_settings()
    assert s == Settings(timezone="UTC", line_separator="\n", log_level="DEBUG", json_logs=True)


def test_bad_line_separator(clean_env):
    clean_env.setenv("CRYPTO_TAXREPORT_LINE_SEPARATOR", "cr")
    with pytest.raises(ValueError):
        load_settings()


def test_unknown_timezone(clean_env):
    clean_env.setenv("CRYPTO_TAXREPORT_TIMEZONE", "Mars/Olympus_Mons")
    with pytest.raises(Exception):
        load_settings()


def test_library_logs_go_to_stdlib_without_configuration(caplog, capsys):
    structlog.reset_defaults()
    get_logger("cryptotaxreport.tests")
    assert isinstance(structlog.get_config()["logger_factory"], structlog.stdlib.LoggerFactory)

    caplog.set_level(logging.INFO, logger="cryptotaxreport.tests")
    get_logger("cryptotaxreport.tests").info("library_event", detail=1)
    assert "library_event" not in capsys.readouterr().out
    assert any("library_event" in r.getMessage() for r in caplog.records)


def test_configure_logging_sets_root_level():
    configure_logging("warning", json_logs=True)
    assert logging.getLogger().level == logging.WARNING
    get_logger("cryptotaxreport.tests").info("not_emitted", detail=1)
    configure_logging("INFO")
    assert logging.getLogger().level == logging.INFO
