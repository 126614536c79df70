"""structlog setup for the ledger.

Console output for local use, JSON lines for anything that ships logs.
Events are snake_case and carry amounts as strings, e.g.

    logger.info("entry_posted", entry_id=str(entry.id), total="125.50")
"""

import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from smb_ledger.config import Settings, get_settings

_QUIET_LOGGERS = ("httpcore", "httpx", "uvicorn.access", "asyncio")


def _stringify_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Render Decimal, UUID and date values as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, (Decimal, UUID, date)):
            event_dict[key] = str(value)
    return event_dict


def _ledger_context(settings: Settings) -> Processor:
    def add_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict.setdefault("app", settings.app_name)
        event_dict.setdefault("environment", settings.environment.value)
        return event_dict

    return add_context


def _processors(settings: Settings) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _stringify_values,
    ]
    if settings.log_format == "json":
        processors += [
            _ledger_context(settings),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_logging(settings: Settings | None = None) -> None:
    """Route structlog through stdlib logging at the configured level.

    Safe to call more than once; the CLI calls it per command and the API
    once at startup.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.value)

    structlog.configure(
        processors=_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("smb_ledger").setLevel(level)

    if settings.log_file:
        _add_file_handler(settings.log_file, level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def _add_file_handler(log_file: Path, level: int) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logging.getLogger("smb_ledger").addHandler(handler)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach values (request_id, path, ...) to every event in this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
