"""
Structured logging configuration for drivefuzz.

Provides JSON-formatted logs with the fuzz seed attached to every record, so
lines from concurrent scenarios can be told apart and a failure can be
reproduced from its log alone.

Environment Variables:
    DRIVEFUZZ_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    DRIVEFUZZ_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from drivefuzz.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, seed="hyperdrive")
    logger.info("Starting run", extra={"iterations": 20000})
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Arguments override DRIVEFUZZ_LOG_LEVEL / DRIVEFUZZ_LOG_FORMAT.
    """
    level_name = (level or os.getenv("DRIVEFUZZ_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.getenv("DRIVEFUZZ_LOG_FORMAT", "json")).lower()
    log_level = LEVELS.get(level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.addFilter(SeedFilter())

    if fmt == "json":
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(seed)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [seed=%(seed)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence asyncio's own debug chatter
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str, seed: Optional[str] = None) -> logging.LoggerAdapter:
    """
    Get a logger that stamps the fuzz seed on every record.

    Example:
        logger = get_logger(__name__, seed="hyperdrive")
        logger.info("Run finished")
        # {"timestamp": "...", "level": "INFO", "message": "Run finished", "seed": "hyperdrive"}
    """
    return logging.LoggerAdapter(logging.getLogger(name), {"seed": seed if seed is not None else "N/A"})


class SeedFilter(logging.Filter):
    """Ensures every record has a seed field, even outside a fuzz run."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "seed"):
            record.seed = "N/A"  # type: ignore
        return True
