import copy
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, Final, Self

from sqlalchemy import func, or_
from sqlmodel import Session, SQLModel, select
from sqlmodel.sql.expression import SelectOfScalar

from ..components.buttons import ActionButton
from ..components.table import (
    AttributesResolver,
    CellAttributesResolver,
    TableBuilder,
    to_raw,
)
from ..config import settings
from ..constants import COMPONENT_NAME_PARAM, PARENT_ID_PARAM, REDIRECT_PARAM
from ..context import RenderContext
from ..domain.pagination import Page
from ..fields.base import Field, Fields
from ..logging_config import get_logger
from ..routing import QueryParams, admin_router, parse_parent_id

logger: Final = get_logger(__name__)

Ability = bool | Callable[[Any, str | None], bool]


def coerce_key(key: Any) -> Any:
    """Primary keys arrive as strings from URLs and forms."""
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return key


class ModelResource:
    """Admin configuration for one SQLModel table.

    Subclasses set the class attributes and return their fields from
    ``fields()``. A fresh field list is built on every call, so fields can
    be filled and mutated freely during a request.
    """

    model: ClassVar[type[SQLModel]]
    uri: ClassVar[str] = ""
    title: ClassVar[str] = ""
    column: ClassVar[str] = "id"
    per_page: ClassVar[int] = settings.per_page
    search_columns: ClassVar[tuple[str, ...]] = ()
    click_action: ClassVar[str | None] = None
    sort_column: ClassVar[str | None] = None
    abilities: ClassVar[Mapping[str, Ability]] = {}

    def __init__(self) -> None:
        self._builder: SelectOfScalar | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(uri={self.uri!r})"

    # Fields

    def fields(self) -> list[Field]:
        return []

    def get_fields(self) -> Fields:
        return Fields(self.fields())

    def index_fields(self) -> Fields:
        return self.get_fields().index_fields()

    def form_fields(self) -> Fields:
        return self.get_fields().form_fields()

    def detail_fields(self) -> Fields:
        return self.get_fields().detail_fields()

    def get_relation_field(self, relation: str) -> Field | None:
        return self.get_fields().only_fields().relations().find_by_column(relation)

    def bind_context(self, fields: Fields, ctx: RenderContext) -> Fields:
        for field in fields.only_fields():
            if field.is_relation:
                field.with_context(ctx)  # type: ignore[attr-defined]
        return fields

    def search(self) -> list[str]:
        return list(self.search_columns)

    def tr_attributes(self) -> AttributesResolver | None:
        return None

    def td_attributes(self) -> CellAttributesResolver | None:
        return None

    # Permissions

    def can(self, ability: str, record: Any = None, user: str | None = None) -> bool:
        rule = self.abilities.get(ability, True)
        if callable(rule):
            return bool(rule(record, user))
        return bool(rule)

    # URLs

    def get_key(self, record: Any) -> Any:
        if record is None:
            return None
        if isinstance(record, Mapping):
            return record.get("id")
        return getattr(record, "id", None)

    def index_page_url(self, params: QueryParams | None = None) -> str:
        return admin_router.index_page(self.uri, params)

    def detail_page_url(self, key: Any, params: QueryParams | None = None) -> str:
        return admin_router.detail_page(self.uri, key, params)

    def form_page_url(self, key: Any = None, params: QueryParams | None = None) -> str:
        return admin_router.form_page(self.uri, key, params)

    # Queries

    def query(self) -> SelectOfScalar:
        if self._builder is not None:
            return self._builder
        return select(self.model)

    def custom_builder(self, builder: SelectOfScalar) -> Self:
        """Copy of this resource whose queries start from ``builder``."""
        scoped = copy.copy(self)
        scoped._builder = builder
        return scoped

    def apply_filters(
        self,
        statement: SelectOfScalar,
        search: str | None = None,
        parent_id: str | None = None,
    ) -> SelectOfScalar:
        parent = parse_parent_id(parent_id)
        if parent is not None:
            relation, key = parent
            foreign_key = getattr(self.model, f"{relation}_id", None)
            if foreign_key is not None:
                statement = statement.where(foreign_key == coerce_key(key))
            else:
                logger.debug("Ignoring unknown parent reference", parent_id=parent_id)

        columns = [getattr(self.model, c) for c in self.search()]
        if search and columns:
            statement = statement.where(or_(*(c.icontains(search) for c in columns)))
        return statement

    def apply_ordering(self, statement: SelectOfScalar) -> SelectOfScalar:
        primary_key = getattr(self.model, "id")
        if self.sort_column:
            sort_by = getattr(self.model, self.sort_column)
            return statement.order_by(sort_by, primary_key)
        return statement.order_by(primary_key)

    def paginate(
        self,
        session: Session,
        page: int = 1,
        search: str | None = None,
        parent_id: str | None = None,
    ) -> Page:
        page = max(1, page)
        statement = self.apply_filters(self.query(), search=search, parent_id=parent_id)
        total = session.exec(
            select(func.count()).select_from(statement.subquery())
        ).one()
        items = session.exec(
            self.apply_ordering(statement)
            .offset((page - 1) * self.per_page)
            .limit(self.per_page)
        ).all()
        return Page(items=list(items), total=total, page=page, per_page=self.per_page)

    def find(self, session: Session, key: Any) -> Any:
        return session.get(self.model, coerce_key(key))

    # Buttons

    def get_index_buttons(self, ctx: RenderContext) -> list[ActionButton]:
        return []

    def get_detail_button(
        self, user: str | None = None, is_async: bool = False
    ) -> ActionButton:
        return ActionButton(
            "Show",
            lambda record: self.detail_page_url(self.get_key(record)),
            icon="eye",
            css_class="detail-button",
            is_async=is_async,
            can_see=lambda record: self.can("view", record, user),
        )

    def get_edit_button(
        self, user: str | None = None, params: QueryParams | None = None
    ) -> ActionButton:
        return ActionButton(
            "Edit",
            lambda record: self.form_page_url(self.get_key(record), params),
            icon="pencil",
            css_class="edit-button",
            can_see=lambda record: self.can("update", record, user),
        )

    def _delete_params(
        self,
        component_name: str | None,
        redirect_after: str,
        params: QueryParams | None,
    ) -> dict[str, Any]:
        return {
            COMPONENT_NAME_PARAM: component_name,
            REDIRECT_PARAM: redirect_after or None,
            **(params or {}),
        }

    def get_delete_button(
        self,
        user: str | None = None,
        component_name: str | None = None,
        redirect_after: str = "",
        is_async: bool = False,
        params: QueryParams | None = None,
    ) -> ActionButton:
        query = self._delete_params(component_name, redirect_after, params)
        return ActionButton(
            "Delete",
            lambda record: admin_router.delete(self.uri, self.get_key(record), query),
            icon="trash",
            css_class="delete-button",
            method="post",
            is_async=is_async,
            confirm="Delete this record?",
            can_see=lambda record: self.can("delete", record, user),
        )

    def get_mass_delete_button(
        self,
        user: str | None = None,
        component_name: str | None = None,
        redirect_after: str = "",
        is_async: bool = False,
        params: QueryParams | None = None,
    ) -> ActionButton:
        query = self._delete_params(component_name, redirect_after, params)
        return ActionButton(
            "Delete selected",
            admin_router.mass_delete(self.uri, query),
            icon="trash",
            css_class="mass-delete-button",
            method="post",
            bulk=True,
            for_component=component_name,
            is_async=is_async,
            confirm="Delete the selected records?",
            can_see=lambda _: self.can("mass_delete", None, user),
        )

    # Pages

    def index_table(
        self, ctx: RenderContext, items: Page, parent_id: str | None = None
    ) -> TableBuilder:
        name = f"{self.uri}-index"
        index_url = self.index_page_url({PARENT_ID_PARAM: parent_id})
        fields = self.bind_context(self.index_fields(), ctx)

        table = (
            TableBuilder(items, fields=fields)
            .name(name)
            .with_async(index_url)
            .with_push_state()
            .buttons(
                [
                    *self.get_index_buttons(ctx),
                    self.get_detail_button(ctx.user),
                    self.get_edit_button(ctx.user),
                    self.get_delete_button(
                        ctx.user, component_name=name, redirect_after=index_url
                    ),
                    self.get_mass_delete_button(
                        ctx.user, component_name=name, redirect_after=index_url
                    ),
                ]
            )
            .when(bool(self.search()), lambda t: t.searchable(ctx.search))
        )

        if (tr_attributes := self.tr_attributes()) is not None:
            table.tr_attributes(tr_attributes)
        if (td_attributes := self.td_attributes()) is not None:
            table.td_attributes(td_attributes)
        if self.click_action:
            table.on_row_click(self.click_action)
        if self.sort_column:
            table.sortable(
                admin_router.sort(self.uri), events=[f"table-updated-{name}"]
            )
        return table

    # Lifecycle

    def after_destroy(self, record: Any, raw: Mapping[str, Any] | None = None) -> Any:
        """Let every form field clean up after ``record`` was deleted."""
        raw = raw if raw is not None else to_raw(record)
        for field in self.form_fields().only_fields().without_relations():
            field.resolve_fill(raw, record).after_destroy(record)
        return record
