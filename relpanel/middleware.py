import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response

from .constants import COMPONENT_NAME_PARAM
from .logging_utils import log_api_request
from .metrics import record_http_request

CallNext = Callable[[Request], Awaitable[Response]]


async def log_requests_middleware(request: Request, call_next: CallNext) -> Response:
    """Time each request and log it, binding path and table component to the logs.

    Structlog calls made while handling the request carry ``path`` and, for
    async table reloads, ``component``.
    """
    component = request.query_params.get(COMPONENT_NAME_PARAM)
    structlog.contextvars.bind_contextvars(path=request.url.path, component=component)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.unbind_contextvars("path", "component")
    elapsed = time.perf_counter() - started

    log_api_request(request, response.status_code, process_time_ms=elapsed * 1000)
    record_http_request(request.method, request.url.path, response.status_code, elapsed)
    return response
