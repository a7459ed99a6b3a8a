import logging
from pathlib import Path
from typing import Final

import structlog
from opentelemetry import trace
from rich.logging import RichHandler

from .config import settings

LOG_FORMAT: Final = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DIR: Final = Path("logs")

# Libraries that log every statement, connection or fragment fetch
NOISY_LOGGERS: Final = {
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "uvicorn": logging.INFO,
}


def _resolve_level(log_level: str | None) -> int:
    if log_level:
        return logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO)
    return logging.DEBUG if settings.debug else logging.INFO


def _build_handlers() -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")

    console = RichHandler(
        rich_tracebacks=True, show_path=settings.debug, show_time=False
    )
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if settings.is_production or settings.log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = logging.FileHandler(LOG_DIR / "relpanel.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    return handlers


def setup_logging(log_level: str | None = None) -> None:
    """Route stdlib logging through Rich and configure structlog next to it.

    Args:
        log_level: Level name overriding the debug-based default
    """
    level = _resolve_level(log_level)

    root = logging.getLogger()
    root.handlers[:] = _build_handlers()
    root.setLevel(level)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)

    _configure_structlog(level)
    get_logger(__name__).info("Logging configured", level=logging.getLevelName(level))


def _add_trace_context(logger, method_name, event_dict):
    """Attach the active OpenTelemetry span to the event, if one is recording."""
    span = trace.get_current_span()
    if not span.is_recording():
        return event_dict
    context = span.get_span_context()
    if context.is_valid:
        event_dict["trace_id"] = trace.format_trace_id(context.trace_id)
        event_dict["span_id"] = trace.format_span_id(context.span_id)
    return event_dict


def _add_app_name(logger, method_name, event_dict):
    event_dict.setdefault("app", settings.app_name)
    return event_dict


def _configure_structlog(level: int) -> None:
    if settings.debug:
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _add_app_name,
            _add_trace_context,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(max(level, logging.INFO)),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    """Structlog logger for a module; pass ``__name__``."""
    return structlog.get_logger(name)
