"""Structured logging for the QFPay demo backend.

Gateway calls log the parameters they send, the signed headers and the raw
replies. Anything that could be replayed against the gateway (client keys,
signatures, canonical sign strings, card tokens) is redacted before a
record is rendered, whether it sits at the top level of the event or
inside a nested ``params``/``headers`` mapping.
"""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping

import structlog

if TYPE_CHECKING:
    from qfpay_demo.config import Config

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"  # "json" or "console"
DEFAULT_LOG_RETENTION_DAYS = 30

# Matched against event keys, case-insensitively
SENSITIVE_PATTERNS = [
    re.compile(r"secret(_?key)?", re.IGNORECASE),
    re.compile(r"client_?key", re.IGNORECASE),
    re.compile(r"(x-auth-)?signature", re.IGNORECASE),
    re.compile(r"canonical|sign_string", re.IGNORECASE),
    re.compile(r"token(_id)?", re.IGNORECASE),
    re.compile(r"authorization|password", re.IGNORECASE),
]

MASK = "***REDACTED***"


def is_sensitive_key(key: str) -> bool:
    return any(pattern.fullmatch(key) for pattern in SENSITIVE_PATTERNS)


def redact(value: Any) -> Any:
    """Replace sensitive values wholesale; nested structures are walked."""
    if isinstance(value, Mapping):
        return {
            key: MASK if isinstance(key, str) and is_sensitive_key(key) and item not in (None, "")
            else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class SensitiveDataFilter:
    """structlog processor redacting secrets, signatures and tokens."""

    def __call__(
        self,
        logger: logging.Logger,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        return redact(event_dict)


def _get_log_level(level_name: str) -> int:
    level = logging.getLevelName((level_name or "").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: str | None = None,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
) -> None:
    """Route structlog and stdlib records to stdout and an optional file.

    Args:
        level: Log level name; unknown names fall back to INFO.
        log_format: "json" for one JSON object per line, anything else for
            the colored console renderer.
        log_file: Rotated daily at midnight, keeping ``retention_days`` files.
    """
    log_level = _get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(TimedRotatingFileHandler(
            filename=str(log_path),
            when="midnight",
            backupCount=retention_days,
            encoding="utf-8",
        ))

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        SensitiveDataFilter(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderers: list[structlog.types.Processor]
    if log_format == "json":
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *renderers,
        ],
    )
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)

    structlog.get_logger(__name__).info(
        "logging_configured", level=level, format=log_format, log_file=log_file
    )


def configure_from_config(settings: "Config") -> None:
    """Apply the LOG_* settings of a loaded Config."""
    configure_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        retention_days=settings.log_retention_days,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = [
    "configure_logging",
    "configure_from_config",
    "get_logger",
    "redact",
    "SensitiveDataFilter",
    "SENSITIVE_PATTERNS",
    "MASK",
]
