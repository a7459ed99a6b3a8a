from collections.abc import Iterable, Mapping
from typing import Any, Final

from sqlalchemy import func
from sqlmodel import Session, select

from ..components.table import to_raw
from ..domain.exceptions import (
    PermissionDeniedError,
    RecordNotFoundError,
    ValidationError,
)
from ..fields.base import Field
from ..logging_config import get_logger
from ..logging_utils import log_database_operation, log_user_action
from ..metrics import record_created, record_deleted
from ..resources.base import ModelResource, coerce_key
from ..routing import parse_parent_id

logger: Final = get_logger(__name__)


def _table_name(resource: ModelResource) -> str:
    return str(resource.model.__tablename__)


def _ensure_can(
    resource: ModelResource, ability: str, record: Any, user: str | None
) -> None:
    if not resource.can(ability, record, user):
        logger.warning(
            "Permission denied", resource=resource.uri, ability=ability, user=user
        )
        raise PermissionDeniedError(f"You may not {ability} {resource.title}")


def get_record(session: Session, resource: ModelResource, key: Any) -> Any:
    record = resource.find(session, key)
    if record is None:
        raise RecordNotFoundError(f"{resource.title} record '{key}' not found")
    return record


def _next_position(
    session: Session, resource: ModelResource, data: Mapping[str, Any]
) -> int:
    """One past the highest sort position among the new record's siblings."""
    column = getattr(resource.model, resource.sort_column or "")
    statement = select(func.max(column))
    for name, value in data.items():
        if name.endswith("_id"):
            statement = statement.where(getattr(resource.model, name) == value)
    current = session.exec(statement).one()
    return 0 if current is None else int(current) + 1


def create_record(
    session: Session,
    resource: ModelResource,
    form: Mapping[str, Any],
    parent_id: str | None = None,
    user: str | None = None,
) -> Any:
    """Create a record from submitted form data.

    A ``<relation>-<key>`` parent reference binds the matching foreign key,
    which is how rows created from a relation table stay attached to their
    parent.
    """
    _ensure_can(resource, "create", None, user)

    data: dict[str, Any] = {}
    for field in resource.form_fields().only_fields().without_relations():
        field.apply(data, form)

    parent = parse_parent_id(parent_id)
    if parent is not None:
        relation, key = parent
        foreign_key = f"{relation}_id"
        if hasattr(resource.model, foreign_key):
            data[foreign_key] = coerce_key(key)

    if resource.sort_column and resource.sort_column not in data:
        data[resource.sort_column] = _next_position(session, resource, data)

    logger.debug("Creating record", resource=resource.uri, columns=sorted(data))
    record = resource.model(**data)
    session.add(record)
    session.commit()
    session.refresh(record)

    log_database_operation(
        "create", _table_name(resource), record_id=resource.get_key(record)
    )
    log_user_action("create_record", user, resource=resource.uri)
    record_created(resource.uri)
    return record


def update_record(
    session: Session,
    resource: ModelResource,
    key: Any,
    form: Mapping[str, Any],
    user: str | None = None,
) -> Any:
    """Write submitted form data back onto an existing record."""
    record = get_record(session, resource, key)
    _ensure_can(resource, "update", record, user)

    raw = to_raw(record)
    data: dict[str, Any] = {}
    for field in resource.form_fields().only_fields().without_relations():
        field.resolve_fill(raw, record).apply(data, form)
    for name, value in data.items():
        setattr(record, name, value)

    session.add(record)
    session.commit()
    session.refresh(record)

    log_database_operation("update", _table_name(resource), record_id=key)
    log_user_action("update_record", user, resource=resource.uri, record_id=key)
    return record


def update_column(
    session: Session,
    resource: ModelResource,
    key: Any,
    column: str,
    value: Any,
    user: str | None = None,
) -> Any:
    """Update a single column, as posted by an update-on-preview cell."""
    record = get_record(session, resource, key)
    _ensure_can(resource, "update", record, user)

    field: Field | None = resource.form_fields().only_fields().find_by_column(column)
    if field is None or field.is_relation:
        raise ValidationError(f"{resource.title} has no editable field '{column}'")

    data: dict[str, Any] = {}
    field.apply(data, {column: value})
    for name, new_value in data.items():
        setattr(record, name, new_value)

    session.add(record)
    session.commit()
    session.refresh(record)

    log_database_operation(
        "update", _table_name(resource), record_id=key, column=column
    )
    return record


def delete_record(
    session: Session,
    resource: ModelResource,
    key: Any,
    user: str | None = None,
    relation_field: Any = None,
) -> Any:
    """Delete a record and run its fields' after-destroy hooks.

    When the delete comes from a relation table, the relation field's hook
    runs instead of the resource's own.
    """
    record = get_record(session, resource, key)
    _ensure_can(resource, "delete", record, user)

    raw = to_raw(record)
    session.delete(record)
    session.commit()

    if relation_field is not None:
        relation_field.after_destroy(record, raw)
    else:
        resource.after_destroy(record, raw)

    log_database_operation("delete", _table_name(resource), record_id=key)
    log_user_action("delete_record", user, resource=resource.uri, record_id=key)
    record_deleted(resource.uri)
    return record


def mass_delete(
    session: Session,
    resource: ModelResource,
    keys: Iterable[Any],
    user: str | None = None,
    relation_field: Any = None,
) -> int:
    """Delete every existing record among ``keys``; returns how many went."""
    _ensure_can(resource, "mass_delete", None, user)

    deleted = 0
    for key in keys:
        if resource.find(session, key) is None:
            logger.debug("Skipping missing record", resource=resource.uri, key=key)
            continue
        delete_record(session, resource, key, user, relation_field)
        deleted += 1

    logger.info("Mass delete finished", resource=resource.uri, deleted=deleted)
    return deleted


def reorder(
    session: Session,
    resource: ModelResource,
    keys: Iterable[Any],
    user: str | None = None,
) -> None:
    """Store the given key order in the resource's sort column."""
    if not resource.sort_column:
        raise ValidationError(f"{resource.title} cannot be sorted")

    for position, key in enumerate(keys):
        record = get_record(session, resource, key)
        _ensure_can(resource, "update", record, user)
        setattr(record, resource.sort_column, position)
        session.add(record)
    session.commit()

    log_database_operation("reorder", _table_name(resource))
    log_user_action("reorder_rows", user, resource=resource.uri)
