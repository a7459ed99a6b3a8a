"""Paginated slices of related records."""

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from .constants import DEFAULT_PER_PAGE


@dataclass
class Page:
    """One page of records plus the size of the whole result set."""

    items: list[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def last_page(self) -> int:
        if self.per_page <= 0:
            return 1
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.last_page

    def take(self, limit: int) -> list[Any]:
        return self.items[:limit]


def count_items(value: Page | Sequence[Any] | None) -> int:
    """Count related items: the page total for a Page, the length otherwise."""
    if value is None:
        return 0
    if isinstance(value, Page):
        return value.total
    return len(value)
