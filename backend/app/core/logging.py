"""
Structured logging for the service.

Everything goes through one stdlib root handler whose formatter is a
structlog ProcessorFormatter, so records from structlog loggers and from
plain stdlib loggers (uvicorn, pymongo) share the same fields and renderer:
JSON lines in production, key=value console output elsewhere.

Each entry carries the service name, version and environment.
"""

import logging
import sys

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from app.core.config import Settings, get_settings

HANDLER_NAME = "devevents-structlog"

# Third-party loggers that are only interesting when something goes wrong
_QUIET_LOGGERS = ("uvicorn.access", "pymongo", "pymongo.command", "pymongo.serverSelection")


def _service_context(settings: Settings) -> Processor:
    context = {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "env": settings.ENVIRONMENT,
    }

    def add_service_context(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_context


def _pre_chain(settings: Settings) -> list[Processor]:
    """Processors applied to every record, structlog or stdlib."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_context(settings),
    ]


def _renderers(settings: Settings) -> list[Processor]:
    if settings.ENVIRONMENT == "production":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=settings.DEBUG)]


def _install_handler(formatter: logging.Formatter, level: int) -> None:
    root = logging.getLogger()
    # lifespan may run more than once per process (reloads, tests)
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)


def setup_logging() -> None:
    settings = get_settings()
    pre_chain = _pre_chain(settings)

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *_renderers(settings),
        ],
    )
    _install_handler(formatter, getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
