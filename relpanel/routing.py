"""URL builders for admin pages, fragments and actions."""

from collections.abc import Mapping, Sequence
from typing import Any, Final
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .config import settings

QueryParams = Mapping[str, Any] | Sequence[tuple[str, Any]]


def build_url(path: str, params: QueryParams | None = None) -> str:
    """Append query parameters to a path.

    None values are skipped, list values repeat the key, and square brackets
    stay unescaped so ``ids[]`` keys remain readable.
    """
    pairs: list[tuple[str, str]] = []
    items = params.items() if isinstance(params, Mapping) else params or ()
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, list | tuple):
            pairs.extend((key, str(v)) for v in value)
        else:
            pairs.append((key, str(value)))

    if not pairs:
        return path

    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{urlencode(pairs, safe='[]')}"


def replace_query_param(url: str, key: str, values: Sequence[str]) -> str:
    """Drop every existing ``key`` from the query string, then append ``values``."""
    parts = urlsplit(url)
    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k != key
    ]
    query.extend((key, value) for value in values)
    return urlunsplit(parts._replace(query=urlencode(query, safe="[]")))


def parse_parent_id(value: str | None) -> tuple[str, str] | None:
    """Split a ``<relation>-<key>`` parent reference, e.g. ``article-5``."""
    if not value:
        return None
    relation, sep, key = value.rpartition("-")
    if not sep or not relation or not key:
        return None
    return relation, key


class AdminRouter:
    """Builds every URL the panel renders, under one prefix."""

    _relation_actions: Final = {
        "search-relations": "{prefix}/relation/{resource_uri}/{item}/{relation}",
    }

    def __init__(self, prefix: str = ""):
        self.prefix = prefix

    def home(self) -> str:
        return f"{self.prefix}/"

    def index_page(self, uri: str, params: QueryParams | None = None) -> str:
        return build_url(f"{self.prefix}/resource/{uri}", params)

    def create_page(self, uri: str, params: QueryParams | None = None) -> str:
        return build_url(f"{self.prefix}/resource/{uri}/create", params)

    def detail_page(
        self, uri: str, key: Any, params: QueryParams | None = None
    ) -> str:
        return build_url(f"{self.prefix}/resource/{uri}/{key}", params)

    def form_page(
        self, uri: str, key: Any = None, params: QueryParams | None = None
    ) -> str:
        if key is None:
            return self.create_page(uri, params)
        return build_url(f"{self.prefix}/resource/{uri}/{key}/edit", params)

    def to_relation(
        self,
        action: str,
        resource_uri: str,
        resource_item: Any,
        relation: str,
        params: QueryParams | None = None,
    ) -> str:
        try:
            template = self._relation_actions[action]
        except KeyError:
            raise ValueError(f"Unknown relation action: {action}") from None
        path = template.format(
            prefix=self.prefix,
            resource_uri=resource_uri,
            item=resource_item if resource_item is not None else "",
            relation=relation,
        )
        return build_url(path, params)

    def store(self, uri: str, params: QueryParams | None = None) -> str:
        return build_url(f"{self.prefix}/resource/{uri}", params)

    def delete(self, uri: str, key: Any, params: QueryParams | None = None) -> str:
        return build_url(f"{self.prefix}/resource/{uri}/{key}/delete", params)

    def mass_delete(self, uri: str, params: QueryParams | None = None) -> str:
        return build_url(f"{self.prefix}/resource/{uri}/mass-delete", params)

    def sort(self, uri: str, params: QueryParams | None = None) -> str:
        return build_url(f"{self.prefix}/resource/{uri}/sort", params)

    def update_column(self, uri: str, relation: str | None = None) -> str:
        return build_url(
            f"{self.prefix}/resource/{uri}/update-column", {"_relation": relation}
        )


admin_router: Final = AdminRouter(settings.admin_prefix)
