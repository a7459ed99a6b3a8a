"""One-to-many relation field.

``HasMany`` shows the children of a record in one of three ways:

* a link button to the related index page filtered by the parent,
* a capped, read-only preview table (or a ``;``-joined raw string),
* an interactive async table with search, row buttons and bulk delete.

Link versus table is decided by the ``only_link`` condition, which may
depend on how many related rows there are.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Final, Self

from markupsafe import Markup, escape
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import NoInspectionAvailable

from ..components.buttons import ActionButton
from ..components.table import TableBuilder
from ..config import settings
from ..constants import (
    PARENT_ID_PARAM,
    PARENT_RESOURCE_PARAM,
    REDIRECT_PARAM,
    RELATION_PARAM,
)
from ..context import RenderContext
from ..domain.conditions import Computed, Condition, Fixed, boolean, to_condition
from ..domain.constants import RAW_VALUE_SEPARATOR
from ..domain.exceptions import RelationNotFoundError
from ..domain.pagination import Page, count_items
from ..logging_config import get_logger
from ..metrics import record_relation_render
from ..routing import admin_router
from ..templating import render_template
from .base import Field, Fields

if TYPE_CHECKING:
    from ..resources.base import ModelResource

logger: Final = get_logger(__name__)


def _data_get(item: Any, column: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(column)
    return getattr(item, column, None)


class HasMany(Field):
    is_relation = True

    def __init__(
        self,
        label: str,
        relation_name: str | None = None,
        *,
        resource: "ModelResource",
    ):
        super().__init__(label, relation_name)
        self.relation_name = self.column
        self.resource = resource
        self.context = RenderContext()

        self._fields: Fields | None = None
        self._limit = settings.default_relation_limit
        self._only_link: Condition = Fixed(False)
        self._link_relation: str | None = None
        self._creatable = False
        self._creatable_button: ActionButton | None = None
        self._searchable = True
        self._async = False

    # Configuration

    def fields(self, fields: list[Field]) -> Self:
        self._fields = Fields(fields)
        return self

    def has_fields(self) -> bool:
        return bool(self._fields)

    def get_fields(self) -> Fields:
        return self._fields if self._fields is not None else Fields()

    def creatable(
        self,
        condition: bool | Callable[[], bool] | None = None,
        button: ActionButton | None = None,
    ) -> Self:
        self._creatable = boolean(condition, default=True)
        self._creatable_button = button
        return self

    def is_creatable(self) -> bool:
        return self._creatable

    def searchable(self, condition: bool | Callable[[], bool] | None = None) -> Self:
        self._searchable = boolean(condition, default=True)
        return self

    def is_searchable(self) -> bool:
        return self._searchable

    def limit(self, limit: int) -> Self:
        self._limit = limit
        return self

    def get_limit(self) -> int:
        return self._limit

    def asynchronous(self) -> Self:
        self._async = True
        return self

    def is_async(self) -> bool:
        return self._async

    def only_link(
        self,
        link_relation: str | None = None,
        condition: bool | Callable[[int], bool] | Condition | None = None,
    ) -> Self:
        self._link_relation = link_relation
        self._only_link = to_condition(condition, default=True)
        return self

    def is_only_link(self) -> bool:
        if isinstance(self._only_link, Computed):
            return self._only_link.evaluate(count_items(self.to_value()))
        return self._only_link.evaluate()

    def with_context(self, ctx: RenderContext) -> Self:
        self.context = ctx
        return self

    # Parent and related resource

    def get_resource(self) -> "ModelResource":
        return self.resource

    def get_related_model(self) -> Any:
        return self.record

    def get_parent_key(self) -> Any:
        parent = self.get_related_model()
        if parent is None:
            return None
        return getattr(parent, "id", None)

    def parent_reference(self, ctx: RenderContext) -> str:
        """``<relation>-<key>`` value for the ``_parentId`` query parameter."""
        relation = self._link_relation or ctx.resource_uri.removesuffix("-resource")
        key = self.get_parent_key()
        return f"{relation}-{'' if key is None else key}"

    def foreign_key(self) -> str:
        """Column on the related table that points back at the parent."""
        parent = self.get_related_model()
        try:
            relationships = sa_inspect(type(parent)).relationships
            relationship = relationships[self.relation_name]
        except (NoInspectionAvailable, KeyError):
            raise RelationNotFoundError(
                f"{type(parent).__name__} has no relation '{self.relation_name}'"
            ) from None
        _, remote = next(iter(relationship.local_remote_pairs))
        return str(remote.name)

    # Fields shown for each related row

    def prepared_fields(self) -> Fields:
        if not self.has_fields():
            return self.get_resource().index_fields()
        return self.get_fields().only_fields(with_wrappers=True).index_fields()

    def prepared_cloned_fields(self) -> Fields:
        fields = self.prepared_fields()
        return fields.clone() if self.has_fields() else fields

    def _fields_on_preview(self) -> Callable[[], list[Field]]:
        def resolve() -> list[Field]:
            fields = self.prepared_cloned_fields()
            update_url = admin_router.update_column(
                self.get_resource().uri, self.relation_name
            )
            for field in fields.only_fields():
                if (
                    field.is_update_on_preview()
                    and not field.has_update_on_preview_custom_url()
                ):
                    field.set_update_on_preview_url(update_url)
                field.set_parent(self)
            return list(fields)

        return resolve

    # Buttons

    def _form_button(
        self, ctx: RenderContext, update: bool, button: ActionButton | None = None
    ) -> ActionButton:
        resource = self.get_resource()
        params = {
            PARENT_ID_PARAM: self.parent_reference(ctx),
            REDIRECT_PARAM: self._redirect_after(ctx) or None,
        }
        if update:
            return ActionButton(
                "Edit",
                lambda record: resource.form_page_url(
                    resource.get_key(record), params
                ),
                icon="pencil",
                css_class="edit-button",
                can_see=lambda record: resource.can("update", record, ctx.user),
            )

        create = (button or ActionButton("Create", icon="plus", primary=True)).with_url(
            resource.form_page_url(None, params)
        )
        create.css_classes = [*create.css_classes, "create-button"]
        if create.can_see is None:
            create.can_see = lambda _: resource.can("create", None, ctx.user)
        return create

    def create_button(self, ctx: RenderContext) -> ActionButton | None:
        if self.get_parent_key() is None:
            return None
        if not self.is_creatable():
            return None
        button = self._form_button(ctx, update=False, button=self._creatable_button)
        return button if button.is_see(self.get_related_model()) else None

    def _redirect_after(self, ctx: RenderContext) -> str:
        if self.is_async() or ctx.resource is None:
            return ""
        return ctx.resource.form_page_url(self.get_parent_key())

    # Previews (index and detail cells)

    def link_preview(self, ctx: RenderContext) -> Markup:
        count = len(self.to_value() or [])
        url = self.get_resource().index_page_url(
            {PARENT_ID_PARAM: self.parent_reference(ctx)}
        )
        return ActionButton(f"({count})", url, icon="eye").render()

    def table_preview(self, ctx: RenderContext) -> Markup | str:
        items = list(self.to_value() or [])[: self.get_limit()]

        if self.is_raw_mode:
            column = self.get_resource().column
            return RAW_VALUE_SEPARATOR.join(
                "" if (value := _data_get(item, column)) is None else str(value)
                for item in items
            )

        return (
            TableBuilder(items=items)
            .fields(self._fields_on_preview())
            .name(self.relation_name)
            .preview()
            .simple()
            .render()
        )

    def resolve_preview(self, ctx: RenderContext) -> Markup | str:
        if self.to_value() is None and self.get_related_model() is not None:
            self.value = list(
                getattr(self.get_related_model(), self.relation_name, None) or []
            )

        if self.is_only_link():
            record_relation_render(self.relation_name, "link")
            return self.link_preview(ctx)

        mode = "raw" if self.is_raw_mode else "preview"
        record_relation_render(self.relation_name, mode)
        return self.table_preview(ctx)

    def preview(self) -> Markup:
        result = self.resolve_preview(self.context)
        if isinstance(result, Markup):
            return result
        return escape(result)

    # Values (form page)

    def link_value(self, ctx: RenderContext) -> ActionButton:
        url = self.get_resource().index_page_url(
            {PARENT_ID_PARAM: self.parent_reference(ctx)}
        )
        return ActionButton(
            f"Show ({count_items(self.to_value())})", url, icon="eye", primary=True
        )

    def table_value(self, ctx: RenderContext) -> TableBuilder:
        resource = self.get_resource()
        name = self.relation_name
        redirect_after = self._redirect_after(ctx)
        delete_params = {
            RELATION_PARAM: self.relation_name,
            PARENT_RESOURCE_PARAM: ctx.resource_uri or None,
        }
        async_url = admin_router.to_relation(
            "search-relations",
            resource_uri=ctx.resource_uri,
            resource_item=self.get_parent_key(),
            relation=self.relation_name,
        )

        table = (
            TableBuilder(items=self.to_value())
            .with_async(async_url)
            .name(name)
            .fields(self._fields_on_preview())
            .buttons(
                [
                    *resource.get_index_buttons(ctx),
                    resource.get_detail_button(ctx.user, is_async=self.is_async()),
                    self._form_button(ctx, update=True),
                    resource.get_delete_button(
                        ctx.user,
                        component_name=name,
                        redirect_after=redirect_after,
                        is_async=self.is_async(),
                        params=delete_params,
                    ),
                    resource.get_mass_delete_button(
                        ctx.user,
                        component_name=name,
                        redirect_after=redirect_after,
                        is_async=self.is_async(),
                        params=delete_params,
                    ),
                ]
            )
            .when(
                self.is_searchable() and bool(resource.search()),
                lambda t: t.searchable(ctx.search),
            )
            .when(ctx.is_on_form, lambda t: t.with_not_found())
        )

        if (tr_attributes := resource.tr_attributes()) is not None:
            table.tr_attributes(tr_attributes)
        if (td_attributes := resource.td_attributes()) is not None:
            table.td_attributes(td_attributes)
        if resource.click_action:
            table.on_row_click(resource.click_action)
        return table

    def resolve_value(self, ctx: RenderContext) -> ActionButton | TableBuilder:
        if self.to_value() is None:
            self.value = self._paginate(ctx)

        if self.is_only_link():
            record_relation_render(self.relation_name, "link")
            return self.link_value(ctx)

        record_relation_render(self.relation_name, "table")
        return self.table_value(ctx)

    def _paginate(self, ctx: RenderContext) -> Page:
        resource = self.get_resource()
        parent_key = self.get_parent_key()
        if parent_key is None or ctx.session is None:
            return Page(items=[], total=0, per_page=resource.per_page)

        foreign_key = getattr(resource.model, self.foreign_key())
        builder = resource.query().where(foreign_key == parent_key)
        logger.debug(
            "Loading related records",
            relation=self.relation_name,
            parent_key=parent_key,
            page=ctx.page,
        )
        return resource.custom_builder(builder).paginate(
            ctx.session, page=ctx.page, search=ctx.search
        )

    # Rendering

    def view_data(self, ctx: RenderContext) -> dict[str, Any]:
        return {"table": self.resolve_value(ctx)}

    def render(self, ctx: RenderContext | None = None) -> Markup:
        ctx = ctx or self.context
        return render_template(
            "fields/has_many.html",
            field=self,
            create_button=self.create_button(ctx),
            **self.view_data(ctx),
        )

    # Saving

    def prepare_fill(self, raw: Mapping[str, Any], record: Any = None) -> Any:
        return None

    def apply(self, data: dict[str, Any], form: Mapping[str, Any]) -> dict[str, Any]:
        return data

    def after_destroy(self, record: Any, raw: Mapping[str, Any] | None = None) -> Any:
        return self.get_resource().after_destroy(record, raw)
