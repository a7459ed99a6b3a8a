"""Server-side table component.

A TableBuilder turns a list (or Page) of records plus a field list into the
table markup the client behavior operates on. Every client-side switch
(creatable limit, sorting, row clicks, async reloads) travels as a data
attribute on the rendered elements.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Self

from markupsafe import Markup

from ..domain.pagination import Page
from ..routing import build_url
from ..templating import render_template
from .buttons import ActionButton

AttributesResolver = Callable[[Any, int], Mapping[str, Any]]
CellAttributesResolver = Callable[[Any, int, int], Mapping[str, Any]]


def to_raw(item: Any) -> dict[str, Any]:
    """Plain column/value mapping for a record, dict or arbitrary object."""
    if item is None:
        return {}
    if isinstance(item, Mapping):
        return dict(item)
    if hasattr(item, "model_dump"):
        return item.model_dump()
    return dict(vars(item))


@dataclass
class TableCell:
    content: Markup
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class TableRow:
    key: Any
    index: int
    cells: list[TableCell]
    buttons: list[Markup]
    attributes: Mapping[str, Any] = field(default_factory=dict)


class TableBuilder:
    def __init__(
        self,
        items: Iterable[Any] | Page | None = None,
        fields: Iterable[Any] | Callable[[], Iterable[Any]] | None = None,
        buttons: Iterable[ActionButton] | None = None,
    ):
        self.items: Page | list[Any] = (
            items if isinstance(items, Page) else list(items or [])
        )
        self._fields = fields if fields is not None else []
        self._buttons: list[ActionButton] = list(buttons or [])

        self.component_name = "default"
        self.async_url: str | None = None
        self.is_searchable = False
        self.search_value = ""
        self.is_preview = False
        self.is_simple = False
        self.is_editable = False
        self.has_not_found = False
        self.is_creatable = False
        self.creatable_limit: int | None = None
        self.is_reindex = False
        self.is_sortable = False
        self.sortable_url: str | None = None
        self.sortable_group: str | None = None
        self.sortable_events: list[str] = []
        self.click_action: str | None = None
        self.remove_after_clone = False
        self.push_state = False
        self._tr_attributes: AttributesResolver | None = None
        self._td_attributes: CellAttributesResolver | None = None

    # Configuration

    def fields(self, fields: Iterable[Any] | Callable[[], Iterable[Any]]) -> Self:
        self._fields = fields
        return self

    def buttons(self, buttons: Iterable[ActionButton]) -> Self:
        self._buttons = list(buttons)
        return self

    def name(self, name: str) -> Self:
        self.component_name = name
        return self

    def with_async(self, url: str) -> Self:
        self.async_url = url
        return self

    def searchable(self, value: str | None = None) -> Self:
        self.is_searchable = True
        self.search_value = value or ""
        return self

    def preview(self) -> Self:
        self.is_preview = True
        return self

    def simple(self) -> Self:
        self.is_simple = True
        return self

    def editable(self) -> Self:
        self.is_editable = True
        return self

    def with_not_found(self) -> Self:
        self.has_not_found = True
        return self

    def creatable(self, limit: int | None = None) -> Self:
        self.is_creatable = True
        self.creatable_limit = limit
        return self

    def reindex(self) -> Self:
        self.is_reindex = True
        return self

    def sortable(
        self,
        url: str | None = None,
        group: str | None = None,
        events: Iterable[str] = (),
    ) -> Self:
        self.is_sortable = True
        self.sortable_url = url
        self.sortable_group = group
        self.sortable_events = list(events)
        return self

    def on_row_click(self, action: str) -> Self:
        if action not in ("detail", "edit", "select"):
            raise ValueError(f"Unknown click action: {action}")
        self.click_action = action
        return self

    def removing_after_clone(self) -> Self:
        self.remove_after_clone = True
        return self

    def with_push_state(self) -> Self:
        self.push_state = True
        return self

    def tr_attributes(self, resolver: AttributesResolver) -> Self:
        self._tr_attributes = resolver
        return self

    def td_attributes(self, resolver: CellAttributesResolver) -> Self:
        self._td_attributes = resolver
        return self

    def when(self, condition: bool, callback: Callable[[Self], Any]) -> Self:
        if condition:
            callback(self)
        return self

    # Resolution

    def get_fields(self) -> list[Any]:
        fields = self._fields() if callable(self._fields) else self._fields
        return list(fields)

    def get_items(self) -> list[Any]:
        return list(self.items)

    def row_buttons(self) -> list[ActionButton]:
        return [button for button in self._buttons if not button.bulk]

    def bulk_buttons(self) -> list[ActionButton]:
        return [button for button in self._buttons if button.bulk and button.is_see()]

    def has_bulk(self) -> bool:
        return not self.is_preview and bool(self.bulk_buttons())

    def _build_row(self, item: Any, index: int, fields: list[Any]) -> TableRow:
        raw = to_raw(item)
        cells = []
        for column_index, source in enumerate(fields):
            cell_field = source.clone().resolve_fill(raw, item)
            if self.is_editable:
                content = cell_field.render_input(
                    f"{self.component_name}[{index}][{cell_field.column}]"
                )
            else:
                content = cell_field.preview()
            attributes = (
                self._td_attributes(item, index, column_index)
                if self._td_attributes and item is not None
                else {}
            )
            cells.append(TableCell(Markup(content), attributes))

        buttons = []
        if not self.is_preview and item is not None:
            buttons = [
                button.render(item)
                for button in self.row_buttons()
                if button.is_see(item)
            ]

        attributes = (
            self._tr_attributes(item, index)
            if self._tr_attributes and item is not None
            else {}
        )
        return TableRow(raw.get("id"), index, cells, buttons, attributes)

    def rows(self) -> list[TableRow]:
        fields = self.get_fields()
        return [
            self._build_row(item, index, fields)
            for index, item in enumerate(self.get_items())
        ]

    def template_row(self) -> TableRow | None:
        """Blank row the client clones when adding rows to a creatable table."""
        if not (self.is_creatable and self.is_editable):
            return None
        return self._build_row(None, len(self.get_items()), self.get_fields())

    def page_url(self, page: int) -> str:
        return build_url(
            self.async_url or "",
            {"page": page, "search": self.search_value or None},
        )

    # Rendering

    def render(self) -> Markup:
        fields = self.get_fields()
        return render_template(
            "components/table.html",
            table=self,
            headers=[f.label for f in fields],
            rows=self.rows(),
            template_row=self.template_row(),
            bulk_buttons=self.bulk_buttons(),
            page=self.items if isinstance(self.items, Page) else None,
        )

    def render_row(self, item: Any, index: int) -> Markup:
        """Render a single row, as the async row refresh expects it."""
        return render_template(
            "components/table_row.html",
            table=self,
            row=self._build_row(item, index, self.get_fields()),
        )

    def __html__(self) -> str:
        return str(self.render())
