"""Serving relation tables and rows to the async table behavior."""

from typing import Any, Final

from markupsafe import Markup

from ..components.table import TableBuilder, to_raw
from ..context import RenderContext
from ..domain.exceptions import (
    RecordNotFoundError,
    RelationNotFoundError,
    ValidationError,
)
from ..fields.relationships import HasMany
from ..logging_config import get_logger
from ..metrics import record_fragment_request
from ..resources.base import ModelResource, coerce_key
from .resource_service import delete_record, get_record, mass_delete

logger: Final = get_logger(__name__)


def get_relation_field(resource: ModelResource, relation: str) -> HasMany:
    field = resource.get_relation_field(relation)
    if not isinstance(field, HasMany):
        raise RelationNotFoundError(f"{resource.title} has no relation '{relation}'")
    return field


def _filled_field(ctx: RenderContext, parent_key: Any, relation: str) -> HasMany:
    if ctx.resource is None or ctx.session is None:
        raise RelationNotFoundError("Relation rendering needs a resource and session")
    parent = get_record(ctx.session, ctx.resource, parent_key)
    field = get_relation_field(ctx.resource, relation)
    field.with_context(ctx).resolve_fill(to_raw(parent), parent)
    return field


def render_relation_table(ctx: RenderContext, parent_key: Any, relation: str) -> Markup:
    """The whole relation component, as the table's async reload expects it."""
    field = _filled_field(ctx, parent_key, relation)
    record_fragment_request(relation, "table")
    return field.resolve_value(ctx).render()


def render_relation_row(
    ctx: RenderContext, parent_key: Any, relation: str, key: Any, index: int
) -> Markup:
    """A single related row rendered at position ``index``."""
    field = _filled_field(ctx, parent_key, relation)
    value = field.resolve_value(ctx)
    if not isinstance(value, TableBuilder):
        raise RelationNotFoundError(f"Relation '{relation}' is shown as a link")

    resource = field.get_resource()
    record = resource.find(ctx.session, key)  # type: ignore[arg-type]
    foreign_key = field.foreign_key()
    if record is None or getattr(record, foreign_key) != coerce_key(parent_key):
        raise RecordNotFoundError(f"{resource.title} record '{key}' not found")

    record_fragment_request(relation, "row")
    logger.debug("Rendering relation row", relation=relation, key=key, index=index)
    return value.render_row(record, index)


def delete_related(
    ctx: RenderContext,
    relation: str,
    keys: list[Any],
    resource_uri: str | None = None,
) -> int:
    """Delete related records through the relation field's after-destroy hook.

    ``resource_uri`` is the resource the request was addressed to; it must be
    the one the relation points at.
    """
    if ctx.resource is None or ctx.session is None:
        raise RelationNotFoundError("Relation deletes need a resource and session")
    field = get_relation_field(ctx.resource, relation)
    resource = field.get_resource()
    if resource_uri is not None and resource.uri != resource_uri:
        raise ValidationError(
            f"Relation '{relation}' does not hold {resource_uri} records"
        )
    if len(keys) == 1:
        delete_record(ctx.session, resource, keys[0], ctx.user, relation_field=field)
        return 1
    return mass_delete(ctx.session, resource, keys, ctx.user, relation_field=field)
