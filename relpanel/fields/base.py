"""Form and table fields.

A field knows how to read its value off a record (``resolve_fill``), show it
in a table cell (``preview``), render a form input and write submitted form
data back (``apply``).
"""

import copy
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Self

from markupsafe import Markup, escape

from ..domain.constants import MAX_TEXT_LENGTH
from ..domain.exceptions import ValidationError
from ..templating import render_template


def _column_from_label(label: str) -> str:
    return "_".join(label.lower().split())


class Field:
    input_type = "text"
    is_relation = False
    is_group = False

    def __init__(
        self,
        label: str,
        column: str | None = None,
        formatted: Callable[[Any], Any] | None = None,
    ):
        self.label = label
        self.column = column or _column_from_label(label)
        self.formatted = formatted
        self.default: Any = None

        self.value: Any = None
        self.raw_value: Any = None
        self.record: Any = None
        self.parent: Field | None = None

        self.show_on_index = True
        self.show_on_form = True
        self.show_on_detail = True
        self.is_required = False
        self.is_raw_mode = False

        self._update_on_preview = False
        self._update_on_preview_url: str | None = None
        self._custom_update_url = False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(label={self.label!r}, column={self.column!r})"

    # Configuration

    def hide_on_index(self) -> Self:
        self.show_on_index = False
        return self

    def hide_on_form(self) -> Self:
        self.show_on_form = False
        return self

    def hide_on_detail(self) -> Self:
        self.show_on_detail = False
        return self

    def required(self) -> Self:
        self.is_required = True
        return self

    def with_default(self, value: Any) -> Self:
        self.default = value
        return self

    def raw_mode(self) -> Self:
        self.is_raw_mode = True
        return self

    def set_parent(self, parent: "Field") -> Self:
        self.parent = parent
        return self

    def clone(self) -> Self:
        return copy.copy(self)

    # Update-on-preview: the cell renders an input that posts each change

    def update_on_preview(self, url: str | None = None) -> Self:
        self._update_on_preview = True
        if url is not None:
            self._update_on_preview_url = url
            self._custom_update_url = True
        return self

    def is_update_on_preview(self) -> bool:
        return self._update_on_preview

    def has_update_on_preview_custom_url(self) -> bool:
        return self._custom_update_url

    def set_update_on_preview_url(self, url: str) -> Self:
        self._update_on_preview_url = url
        return self

    def get_update_on_preview_url(self) -> str | None:
        return self._update_on_preview_url

    # Filling

    def resolve_fill(self, raw: Mapping[str, Any], record: Any = None) -> Self:
        self.record = record
        self.raw_value = raw.get(self.column)
        self.value = self.prepare_fill(raw, record)
        return self

    def prepare_fill(self, raw: Mapping[str, Any], record: Any = None) -> Any:
        value = raw.get(self.column)
        return self.default if value is None else value

    def to_value(self) -> Any:
        return self.value

    def to_formatted_value(self) -> Any:
        if self.formatted is not None and self.record is not None:
            return self.formatted(self.record)
        return self.to_value()

    def record_key(self) -> Any:
        if self.record is None:
            return None
        if isinstance(self.record, Mapping):
            return self.record.get("id")
        return getattr(self.record, "id", None)

    # Rendering

    def preview(self) -> Markup:
        value = self.to_formatted_value()
        if self.is_raw_mode:
            return escape("" if value is None else value)

        key = self.record_key()
        updatable = self.is_update_on_preview() and self._update_on_preview_url
        if updatable and key is not None:
            return render_template(
                "fields/update_on_preview.html",
                field=self,
                key=key,
                value="" if value is None else value,
            )
        return self.render_preview(value)

    def render_preview(self, value: Any) -> Markup:
        return escape("" if value is None else value)

    def render_input(self, name: str | None = None) -> Markup:
        value = self.to_value()
        return render_template(
            "fields/input.html",
            field=self,
            name=name or self.column,
            value="" if value is None else value,
        )

    # Saving

    def coerce(self, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
        return value

    def validate(self, value: Any) -> None:
        if self.is_required and value in (None, ""):
            raise ValidationError(f"{self.label} is required")

    def apply(self, data: dict[str, Any], form: Mapping[str, Any]) -> dict[str, Any]:
        """Coerce and validate the submitted value, then store it in ``data``."""
        if self.column not in form:
            self.validate(None)
            return data
        value = self.coerce(form[self.column])
        self.validate(value)
        data[self.column] = value
        return data

    def after_destroy(self, record: Any) -> Any:
        return record


class ID(Field):
    input_type = "hidden"

    def __init__(self, label: str = "ID", column: str = "id"):
        super().__init__(label, column)
        self.hide_on_form()

    def apply(self, data: dict[str, Any], form: Mapping[str, Any]) -> dict[str, Any]:
        return data


class Text(Field):
    def __init__(
        self,
        label: str,
        column: str | None = None,
        formatted: Callable[[Any], Any] | None = None,
        max_length: int = MAX_TEXT_LENGTH,
    ):
        super().__init__(label, column, formatted)
        self.max_length = max_length

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value and len(value) > self.max_length:
            raise ValidationError(
                f"{self.label} must be at most {self.max_length} characters"
            )


class Number(Field):
    input_type = "number"

    def __init__(
        self,
        label: str,
        column: str | None = None,
        formatted: Callable[[Any], Any] | None = None,
        min_value: int | None = None,
        max_value: int | None = None,
    ):
        super().__init__(label, column, formatted)
        self.min_value = min_value
        self.max_value = max_value

    def coerce(self, value: Any) -> Any:
        value = super().coerce(value)
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{self.label} must be a whole number") from None

    def validate(self, value: Any) -> None:
        super().validate(value)
        if value is None:
            return
        if self.min_value is not None and value < self.min_value:
            raise ValidationError(f"{self.label} must be at least {self.min_value}")
        if self.max_value is not None and value > self.max_value:
            raise ValidationError(f"{self.label} must be at most {self.max_value}")


class Stack(Field):
    """Groups several fields into one table cell."""

    is_group = True

    def __init__(self, fields: Iterable[Field], label: str = ""):
        super().__init__(label, column="__stack__")
        self.fields = list(fields)

    def clone(self) -> Self:
        clone = copy.copy(self)
        clone.fields = [f.clone() for f in self.fields]
        return clone

    def resolve_fill(self, raw: Mapping[str, Any], record: Any = None) -> Self:
        self.record = record
        self.fields = [f.clone().resolve_fill(raw, record) for f in self.fields]
        return self

    def preview(self) -> Markup:
        return Markup("").join(
            Markup('<div class="stack-item">{}</div>').format(f.preview())
            for f in self.fields
        )

    def render_input(self, name: str | None = None) -> Markup:
        return Markup("").join(f.render_input() for f in self.fields)

    def apply(self, data: dict[str, Any], form: Mapping[str, Any]) -> dict[str, Any]:
        for f in self.fields:
            f.apply(data, form)
        return data


class Fields(list):
    """Ordered field collection with page-specific filters."""

    def only_fields(self, with_wrappers: bool = False) -> "Fields":
        """Flatten Stack wrappers into their inner fields unless asked to keep them."""
        result = Fields()
        for f in self:
            if f.is_group and not with_wrappers:
                result.extend(Fields(f.fields).only_fields())
            else:
                result.append(f)
        return result

    def index_fields(self) -> "Fields":
        return Fields(f for f in self if f.show_on_index)

    def form_fields(self) -> "Fields":
        return Fields(f for f in self if f.show_on_form)

    def detail_fields(self) -> "Fields":
        return Fields(f for f in self if f.show_on_detail)

    def without_relations(self) -> "Fields":
        return Fields(f for f in self if not f.is_relation)

    def relations(self) -> "Fields":
        return Fields(f for f in self if f.is_relation)

    def find_by_column(self, column: str, default: Field | None = None) -> Field | None:
        return next((f for f in self if f.column == column), default)

    def clone(self) -> "Fields":
        return Fields(f.clone() for f in self)
