"""Structured log records for requests, record changes and startup.

These go through the stdlib loggers configured in ``logging_config`` so the
Rich console and the production log file both receive them.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import Request

from .constants import COMPONENT_NAME_PARAM
from .request_utils import is_htmx_request

ANONYMOUS = "anonymous"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _status_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def log_user_action(
    action: str, user: str | None, logger_name: str = "admin.actions", **context: Any
) -> None:
    """Record something a panel user did, e.g. ``delete_record``.

    Args:
        action: Short action name
        user: Name from the ``user`` cookie, None when anonymous
        logger_name: Logger to write to
        **context: Resource uri, record id and similar details
    """
    who = user or ANONYMOUS
    logging.getLogger(logger_name).info(
        "%s performed %s",
        who,
        action,
        extra={"action": action, "user": who, "at": _now(), **context},
    )


def log_api_request(
    request: Request,
    response_status: int,
    process_time_ms: float | None = None,
    logger_name: str = "admin.http",
) -> None:
    """One line per request; HTMX fragment requests name the component they reload."""
    fragment = is_htmx_request(request)
    details: dict[str, Any] = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response_status,
        "fragment": fragment,
        "component": request.query_params.get(COMPONENT_NAME_PARAM),
        "client_ip": request.client.host if request.client else None,
    }

    line = f"{request.method} {request.url.path} -> {response_status}"
    if fragment:
        line += " [fragment]"
    if process_time_ms is not None:
        details["process_time_ms"] = round(process_time_ms, 2)
        line += f" in {process_time_ms:.1f}ms"

    logging.getLogger(logger_name).log(
        _status_level(response_status), line, extra=details
    )


def log_database_operation(
    operation: str,
    table: str,
    success: bool = True,
    logger_name: str = "admin.database",
    **context: Any,
) -> None:
    """Record a create, update, delete or reorder against ``table``."""
    outcome = "ok" if success else "failed"
    logging.getLogger(logger_name).log(
        logging.INFO if success else logging.ERROR,
        "%s %s: %s",
        table,
        operation,
        outcome,
        extra={"operation": operation, "table": table, "outcome": outcome, **context},
    )


def log_system_info(hostname: str, ip_address: str, debug_mode: bool) -> None:
    logging.getLogger("admin.system").info(
        "Panel started on %s (%s)",
        hostname,
        ip_address,
        extra={"debug_mode": debug_mode, "started_at": _now()},
    )
