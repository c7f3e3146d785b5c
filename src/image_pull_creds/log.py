"""Process-wide logging setup."""

import logging

import structlog

from .exceptions import ConfigError

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_level(level: str) -> int:
    """Translate a configured level name to a logging level."""
    try:
        return LEVELS[level.lower()]
    except KeyError:
        raise ConfigError(f"unknown log level {level!r}") from None


def json_formatter() -> logging.Formatter:
    """Formatter rendering stdlib records as one JSON object per line."""
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
        ],
    )


def setup_logging(level: str = "info", fmt: str = "human") -> None:
    """Configure the root logger."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(json_formatter())
    else:
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT))

    logging.basicConfig(level=parse_level(level), handlers=[handler], force=True)
