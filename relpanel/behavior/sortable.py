"""Drag-and-drop row ordering, reduced to explicit moves."""

from collections.abc import Callable
from typing import Final, Self

import httpx
from bs4 import Tag

from ..logging_config import get_logger
from .fetch import FetchResult, post_form

logger: Final = get_logger(__name__)


class SortableRows:
    def __init__(
        self,
        container: Tag,
        url: str | None = None,
        group: str | None = None,
        events: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.container = container
        self.url = url or None
        self.group = group or None
        self.events = [e.strip() for e in (events or "").split(",") if e.strip()]
        self.client = client
        self.dispatched: list[str] = []
        self._on_sort: list[Callable[[], None]] = []

    def on_sort(self, callback: Callable[[], None]) -> Self:
        self._on_sort.append(callback)
        return self

    def rows(self) -> list[Tag]:
        return self.container.find_all("tr", recursive=False)

    def keys(self) -> list[str]:
        return [row.get("data-row-key", "") for row in self.rows()]

    async def move(self, old_index: int, new_index: int) -> FetchResult | None:
        """Move a row, then persist the new key order and emit the sort events."""
        rows = self.rows()
        if not (0 <= old_index < len(rows) and 0 <= new_index < len(rows)):
            raise IndexError(f"Cannot move row {old_index} to {new_index}")
        if old_index == new_index:
            return None

        row = rows[old_index].extract()
        remaining = self.rows()
        if new_index >= len(remaining):
            self.container.append(row)
        else:
            remaining[new_index].insert_before(row)

        for callback in self._on_sort:
            callback()

        result = None
        if self.url and self.client is not None:
            result = await post_form(self.client, self.url, {"data[]": self.keys()})
        elif self.url:
            logger.warning("Sortable URL set but no HTTP client", url=self.url)

        self.dispatched.extend(self.events)
        return result
