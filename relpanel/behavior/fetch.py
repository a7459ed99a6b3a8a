"""Async fragment fetching with explicit outcomes.

Every request resolves to exactly one of ``FetchSuccess``, ``NetworkFailure``
or ``HttpFailure``; nothing is raised to the caller and nothing is dropped.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final

import httpx

from ..logging_config import get_logger

logger: Final = get_logger(__name__)

HTMX_HEADERS: Final = {"HX-Request": "true"}


@dataclass(frozen=True)
class FetchSuccess:
    url: str
    status_code: int
    content: str


@dataclass(frozen=True)
class NetworkFailure:
    url: str
    error: str


@dataclass(frozen=True)
class HttpFailure:
    url: str
    status_code: int
    content: str


FetchResult = FetchSuccess | NetworkFailure | HttpFailure
ResultHandler = Callable[[FetchResult], None]


async def _send(
    client: httpx.AsyncClient, method: str, url: str, **kwargs: Any
) -> FetchResult:
    headers = {**HTMX_HEADERS, **(kwargs.pop("headers", None) or {})}
    try:
        response = await client.request(method, url, headers=headers, **kwargs)
    except httpx.RequestError as e:
        error = str(e) or type(e).__name__
        logger.warning("Fragment request failed", method=method, url=url, error=error)
        return NetworkFailure(url, error)

    if response.is_success:
        logger.debug("Fragment request succeeded", method=method, url=url)
        return FetchSuccess(url, response.status_code, response.text)

    logger.warning(
        "Fragment request returned an error status",
        method=method,
        url=url,
        status_code=response.status_code,
    )
    return HttpFailure(url, response.status_code, response.text)


async def fetch_fragment(
    client: httpx.AsyncClient, url: str, headers: Mapping[str, str] | None = None
) -> FetchResult:
    return await _send(client, "GET", url, headers=headers)


async def post_form(
    client: httpx.AsyncClient,
    url: str,
    data: Mapping[str, Any],
    headers: Mapping[str, str] | None = None,
) -> FetchResult:
    return await _send(client, "POST", url, data=data, headers=headers)
