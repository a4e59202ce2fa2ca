"""Mini README: Application-wide logging helpers for FeeLedger.

Structure:
    * get_logger - factory returning module loggers with baseline configuration.
    * configure_root_logger - idempotent setup of the root handler and level.

Usage:
    Modules declare ``LOGGER = get_logger(__name__)``. The first call installs a
    single stream handler so reloads under ``uvicorn --reload`` or repeated
    application factories in tests never stack duplicate handlers.
"""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER_INITIALISED = False


def configure_root_logger(level: Optional[int] = None) -> None:
    """Configure the root logger once; later calls only adjust an explicit level."""

    global _LOGGER_INITIALISED
    if _LOGGER_INITIALISED:
        if level is not None:
            logging.getLogger().setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO if level is None else level)
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def level_for_environment(environment: str) -> int:
    """Map an environment label onto a logging level."""

    return logging.DEBUG if environment.strip().lower() == "development" else logging.INFO


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-specific logger ensuring baseline configuration."""

    configure_root_logger()
    return logging.getLogger(name)
