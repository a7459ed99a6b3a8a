"""Client-side table behavior, run against a parsed HTML tree.

``TableBehavior`` mirrors what the panel's table does in the browser: it
snapshots a template row, adds and removes rows, keeps array-style input
names sequential, reloads itself or a single row over HTTP, syncs bulk
selections into hidden ``ids[]`` inputs and delegates row clicks.
All state lives on the instance; the tree it operates on is passed in.
"""

from dataclasses import dataclass
from typing import Final, Literal

import httpx
from bs4 import BeautifulSoup, Tag

from ..constants import BULK_IDS_PARAM, COMPONENT_NAME_PARAM, INDEX_PARAM, KEY_PARAM
from ..logging_config import get_logger
from ..routing import build_url, replace_query_param
from .dom import (
    clone,
    closest,
    document_of,
    is_checked,
    parse_html,
    remove_class,
    serialize_inputs,
    set_checked,
)
from .fetch import FetchResult, FetchSuccess, ResultHandler, fetch_fragment
from .reindex import direct_rows, find_root_table, reindex
from .sortable import SortableRows

logger: Final = get_logger(__name__)

INTERACTIVE_ELEMENTS: Final = frozenset({"a", "button", "input", "label"})


def _parse_int(value: str | None) -> int | None:
    try:
        return int(value) if value else None
    except ValueError:
        return None


@dataclass
class ClickEvent:
    """A click on ``target``, plus whatever text the user had selected."""

    target: Tag
    selection: str = ""

    @property
    def path(self) -> list[Tag]:
        return [
            node
            for node in [self.target, *self.target.parents]
            if not isinstance(node, BeautifulSoup)
        ]


class TableBehavior:
    def __init__(
        self,
        root: Tag,
        *,
        creatable: bool = False,
        sortable: bool = False,
        reindex: bool = False,
        async_mode: bool = False,
        async_url: str = "",
        client: httpx.AsyncClient | None = None,
    ):
        self.root = root
        self.creatable = creatable
        self.sortable = sortable
        self.reindex = reindex
        self.async_mode = async_mode
        self.async_url = async_url
        self.client = client

        self.table: Tag | None = None
        self.last_row: Tag | None = None
        self.actions_open = False
        self.loading = False
        self.sorter: SortableRows | None = None
        self.history: list[str] = []

    @classmethod
    def from_component(
        cls, root: Tag, client: httpx.AsyncClient | None = None
    ) -> "TableBehavior":
        """Configure a behavior from the data attributes the server rendered."""
        table = root if root.name == "table" else root.find("table")
        attrs = table.attrs if table is not None else {}
        return cls(
            root,
            creatable="data-creatable" in attrs,
            sortable="data-sortable-url" in attrs,
            reindex="data-reindex" in attrs,
            async_mode=root.has_attr("hx-get"),
            async_url=root.get("hx-get", ""),
            client=client,
        )

    @property
    def document(self) -> BeautifulSoup:
        return document_of(self.root)

    @property
    def name(self) -> str:
        if self.table is None:
            return ""
        return self.table.get("data-name", "")

    def _tbody(self) -> Tag | None:
        if self.table is None:
            return None
        return next(
            (
                tbody
                for tbody in self.table.find_all("tbody")
                if tbody.find_parent("table") is self.table
            ),
            None,
        )

    def init(self) -> "TableBehavior":
        self.table = self.root if self.root.name == "table" else self.root.find("table")
        if self.table is None:
            logger.debug("No table found in component")
            return self

        tfoot = self.table.find("tfoot")
        if tfoot is not None:
            remove_class(tfoot, "hidden")

        rows = direct_rows(self.table)
        last = rows[-1] if rows else None
        self.last_row = clone(last) if last is not None else None

        remove_after_clone = bool(self.table.get("data-remove-after-clone"))
        if last is not None and (self.creatable or remove_after_clone):
            last.decompose()

        if self.reindex:
            self.resolve_reindex()

        tbody = self._tbody()
        if self.sortable and tbody is not None:
            self.sorter = SortableRows(
                tbody,
                url=self.table.get("data-sortable-url"),
                group=self.table.get("data-sortable-group"),
                events=self.table.get("data-sortable-events"),
                client=self.client,
            )
            if self.reindex:
                self.sorter.on_sort(self.resolve_reindex)
        return self

    def add(self, force: bool = False) -> bool:
        """Append a copy of the template row; returns whether a row was added."""
        if not self.creatable and not force:
            return False
        tbody = self._tbody()
        if self.table is None or tbody is None or self.last_row is None:
            return False

        limit = _parse_int(self.table.get("data-creatable-limit"))
        if limit is not None and len(direct_rows(self.table)) >= limit:
            return False

        tbody.append(clone(self.last_row))

        if not force and self.reindex:
            self.resolve_reindex()
        return True

    def remove(self, trigger: Tag) -> bool:
        row = closest(trigger, "tr")
        if row is None:
            return False
        row.decompose()
        if self.reindex:
            self.resolve_reindex()
        return True

    def resolve_reindex(self) -> None:
        if self.table is None:
            return
        reindex(find_root_table(self.table))

    # Async reloads

    async def async_form_request(self, form: Tag) -> FetchResult:
        """Reload the table with the form's inputs as query parameters."""
        pairs = [
            (name, value)
            for name, value in serialize_inputs(form)
            if value != "" and name not in ("_token", "_method")
        ]
        self.async_url = build_url(form.get("action") or self.async_url, pairs)
        return await self.async_request()

    async def async_request(self) -> FetchResult:
        """Fetch a fresh copy of the whole component and swap it in."""
        if self.client is None:
            raise RuntimeError("Async requests need an HTTP client")

        url = build_url(self.async_url, {COMPONENT_NAME_PARAM: self.name or None})
        push_state = bool(self.root.get("data-pushstate"))

        self.loading = True
        try:
            result = await fetch_fragment(self.client, url)
        finally:
            self.loading = False

        if isinstance(result, FetchSuccess):
            replacement = parse_html(result.content).find(True)
            if replacement is not None:
                self.root.replace_with(replacement)
                self.root = replacement
                self.init()
            if push_state:
                self.history.append(self.async_url)
        return result

    async def async_row_request(
        self,
        key: str | int,
        index: int,
        on_result: ResultHandler | None = None,
    ) -> FetchResult | None:
        """Re-render one row from the server; None when the row is not on screen."""
        if self.table is None:
            return None
        row = self.table.find("tr", attrs={"data-row-key": str(key)})
        if row is None:
            return None
        if self.client is None:
            raise RuntimeError("Async requests need an HTTP client")

        url = build_url(self.async_url, {KEY_PARAM: key, INDEX_PARAM: index})
        result = await fetch_fragment(self.client, url)

        if isinstance(result, FetchSuccess):
            new_row = parse_html(result.content).find("tr")
            if new_row is not None:
                row.replace_with(new_row)
        else:
            logger.warning("Row refresh failed", key=str(key), result=repr(result))

        if on_result is not None:
            on_result(result)
        return result

    # Bulk selection

    def actions(self, kind: Literal["all", "row"], component_id: str) -> list[str]:
        """Sync checked rows into hidden ``ids[]`` inputs and bulk button links."""
        all_checkbox = self.root.select_one(f".{component_id}-actionsAllChecked")
        if all_checkbox is None:
            return []

        document = self.document
        checkboxes = self.root.select(f".{component_id}-tableActionRow")
        containers = document.select(f'.hidden-ids[data-for-component="{self.name}"]')
        if not containers:
            containers = document.select(".hidden-ids:not([data-for-component])")
        bulk_buttons = document.select(
            f'[data-button-type="bulk-button"][data-for-component="{self.name}"]'
        )

        for container in containers:
            container.clear()

        values: list[str] = []
        for checkbox in checkboxes:
            if kind == "all":
                set_checked(checkbox, is_checked(all_checkbox))
            if is_checked(checkbox) and checkbox.get("value"):
                values.append(checkbox["value"])

        for container in containers:
            for value in values:
                hidden = {"type": "hidden", "name": BULK_IDS_PARAM, "value": value}
                container.append(document.new_tag("input", attrs=hidden))

        for button in bulk_buttons:
            href = button.get("href")
            if not href:
                continue
            button["href"] = replace_query_param(href, BULK_IDS_PARAM, values)

        self.actions_open = is_checked(all_checkbox) or bool(values)
        return values

    # Row clicks

    def row_click_action(self, event: ClickEvent, cell: Tag) -> Tag | None:
        """Forward a click on a cell to the row's detail, edit or select control.

        Returns the control that was activated, if any.
        """
        if any(node.name in INTERACTIVE_ELEMENTS for node in event.path):
            return None
        if event.selection:
            return None
        if self.table is None:
            return None

        row = closest(cell, "tr")
        if row is None:
            return None

        action = self.table.get("data-click-action")
        if action == "detail":
            return row.select_one(".detail-button")
        if action == "edit":
            return row.select_one(".edit-button")
        if action == "select":
            checkbox = row.select_one('.tableActionRow[type="checkbox"]')
            if checkbox is not None:
                set_checked(checkbox, not is_checked(checkbox))
                self.actions("row", self.name)
            return checkbox
        return None
