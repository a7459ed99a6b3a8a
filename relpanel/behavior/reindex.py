"""Renumbering of array-style form field names such as ``comments[3][body]``.

Each nesting level of tables owns one numeric bracket group in the names
of the inputs it contains: the outermost table rewrites the first group,
a table nested in one of its rows rewrites the second, and so on.
"""

import re
from typing import Final

from bs4 import Tag

_INDEX_GROUP: Final = re.compile(r"\[(\d*)\]")


def find_root_table(table: Tag) -> Tag:
    """Walk parent pointers up to the outermost enclosing table."""
    root = table
    while (parent := root.find_parent("table")) is not None:
        root = parent
    return root


def direct_rows(table: Tag) -> list[Tag]:
    """Body rows of ``table``, leaving out rows of tables nested inside it."""
    rows: list[Tag] = []
    for tbody in table.find_all("tbody"):
        if tbody.find_parent("table") is table:
            rows.extend(tbody.find_all("tr", recursive=False))
    return rows


def replace_index(name: str, level: int, index: int) -> str:
    """Replace the ``level``-th numeric (or empty) bracket group with ``index``."""
    seen = -1

    def substitute(match: re.Match[str]) -> str:
        nonlocal seen
        seen += 1
        return f"[{index}]" if seen == level else match.group(0)

    return _INDEX_GROUP.sub(substitute, name)


def reindex(table: Tag, level: int = 0) -> None:
    """Number the rows of ``table`` 0..N-1 in document order, recursively."""
    for index, row in enumerate(direct_rows(table)):
        row["data-row-index"] = str(index)
        for element in row.find_all(attrs={"name": True}):
            element["name"] = replace_index(element["name"], level, index)
        for nested in row.find_all("table"):
            if nested.find_parent("table") is table:
                reindex(nested, level + 1)
