"""Logging setup shared by the API, services and scripts."""

import logging
import sys

ROOT_LOGGER_NAME = "ledger_core"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger, e.g. ``ledger_core.ledger``."""
    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Attach a single stream handler to the package logger.

    Safe to call more than once; later calls only change the level.
    """
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
    _configured = True


def reset_logging() -> None:
    """Remove handlers installed by configure_logging (used by tests)."""
    global _configured
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    _configured = False
