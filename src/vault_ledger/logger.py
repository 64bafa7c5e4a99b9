"""Console logging for the vault ledger service and CLI."""

import copy
import logging
import os
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# HTTP and RPC client loggers that flood DEBUG output
NOISY_LOGGERS = ("urllib3", "web3")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_ANSI_RESET = "\033[0m"
_LEVEL_STYLES = {
    "TRACE": "\033[90m",
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;35m",
}


class ColoredFormatter(logging.Formatter):
    """Highlights the level name; the record itself is left untouched."""

    def format(self, record: logging.LogRecord) -> str:
        style = _LEVEL_STYLES.get(record.levelname)
        if style is None:
            return super().format(record)
        styled = copy.copy(record)
        styled.levelname = f"{style}\033[1m{record.levelname}{_ANSI_RESET}"
        return super().format(styled)


def _resolve_level(name: str) -> int:
    if name == "TRACE":
        return TRACE
    return getattr(logging, name, logging.INFO)


def setup_logging(log_level: str | None = None) -> None:
    """Install a colored stdout handler on the root logger.

    ``log_level`` wins over the LOG_LEVEL environment variable; INFO is the
    fallback. Client libraries stay at WARNING under DEBUG and follow the
    root level only under TRACE.
    """
    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logging.basicConfig(level=_resolve_level(level_name), handlers=[handler], force=True)

    noisy_level = {"DEBUG": logging.WARNING, "TRACE": TRACE}.get(level_name)
    if noisy_level is not None:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(noisy_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
