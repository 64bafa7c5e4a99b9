from __future__ import annotations

import logging

import pytest

from vault_ledger import logger as logger_module


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    noisy = {name: logging.getLogger(name).level for name in logger_module.NOISY_LOGGERS}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, lvl in noisy.items():
        logging.getLogger(name).setLevel(lvl)


def test_setup_logging_uses_explicit_level():
    logger_module.setup_logging("warning")

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, logger_module.ColoredFormatter)


def test_setup_logging_falls_back_to_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    logger_module.setup_logging()

    assert logging.getLogger().level == logging.ERROR


def test_debug_silences_noisy_loggers_and_trace_opens_them():
    logger_module.setup_logging("DEBUG")
    assert logging.getLogger("urllib3").level == logging.WARNING

    logger_module.setup_logging("TRACE")
    assert logging.getLogger().level == logger_module.TRACE
    assert logging.getLogger("web3").level == logger_module.TRACE


def test_colored_formatter_restores_levelname():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    formatted = logger_module.ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert "\033[32m" in formatted
    assert formatted.endswith("hello")
    assert record.levelname == "INFO"


def test_colored_formatter_leaves_custom_levels_plain():
    record = logging.LogRecord("x", 25, __file__, 1, "note", None, None)
    formatted = logger_module.ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert formatted == "Level 25 note"
