"""Action buttons rendered in tables, toolbars and relation fields."""

import copy
from collections.abc import Callable, Mapping
from typing import Any, Self

from markupsafe import Markup

from ..templating import render_template

UrlResolver = str | Callable[[Any], str]


class ActionButton:
    """A link or form button, optionally bound to a record when rendered.

    ``url`` may be a plain string or a callable receiving the record, which is
    how row buttons (detail, edit, delete) point at their own record.
    """

    def __init__(
        self,
        label: str,
        url: UrlResolver = "#",
        *,
        icon: str | None = None,
        css_class: str | None = None,
        primary: bool = False,
        bulk: bool = False,
        for_component: str | None = None,
        method: str = "get",
        is_async: bool = False,
        confirm: str | None = None,
        can_see: Callable[[Any], bool] | None = None,
        attributes: Mapping[str, Any] | None = None,
    ):
        self.label = label
        self.url = url
        self.icon = icon
        self.css_classes = css_class.split() if css_class else []
        self.primary = primary
        self.bulk = bulk
        self.for_component = for_component
        self.method = method.lower()
        self.is_async = is_async
        self.confirm = confirm
        self.can_see = can_see
        self.attributes = dict(attributes or {})

    def is_see(self, record: Any = None) -> bool:
        if self.can_see is None:
            return True
        return bool(self.can_see(record))

    def get_url(self, record: Any = None) -> str:
        if callable(self.url):
            return self.url(record)
        return self.url

    def with_url(self, url: UrlResolver) -> Self:
        clone = copy.copy(self)
        clone.url = url
        return clone

    def render(self, record: Any = None) -> Markup:
        return render_template(
            "components/action_button.html",
            button=self,
            url=self.get_url(record),
            record=record,
        )

    def __html__(self) -> str:
        return str(self.render())

    def __repr__(self) -> str:
        return f"ActionButton(label={self.label!r}, method={self.method!r})"
