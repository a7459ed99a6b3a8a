from typing import Any, Final

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlmodel import Session

from ..application.relation_service import (
    delete_related,
    render_relation_row,
    render_relation_table,
)
from ..application.resource_service import (
    create_record,
    delete_record,
    get_record,
    mass_delete,
    reorder,
    update_column,
    update_record,
)
from ..components.table import to_raw
from ..config import settings
from ..constants import (
    BULK_IDS_PARAM,
    COMPONENT_NAME_PARAM,
    INDEX_PARAM,
    KEY_PARAM,
    PARENT_ID_PARAM,
    PARENT_RESOURCE_PARAM,
    REDIRECT_PARAM,
    RELATION_PARAM,
)
from ..context import PageType, RenderContext
from ..domain.exceptions import PermissionDeniedError, ValidationError
from ..infrastructure.database.database import get_session
from ..logging_config import get_logger
from ..request_utils import get_current_user, get_list_param, is_htmx_request
from ..resources.base import ModelResource
from ..resources.registry import resources
from ..routing import admin_router
from ..templating import templates

logger: Final = get_logger(__name__)

router: Final = APIRouter(prefix=settings.admin_prefix)


def _page_number(request: Request) -> int:
    try:
        return max(1, int(request.query_params.get("page", 1)))
    except ValueError:
        return 1


def _context(
    request: Request,
    session: Session,
    resource: ModelResource,
    page_type: PageType,
) -> RenderContext:
    return RenderContext(
        session=session,
        resource=resource,
        page_type=page_type,
        user=get_current_user(request),
        search=request.query_params.get("search") or None,
        page=_page_number(request),
    )


def _form_value(form: Any, request: Request, name: str) -> str | None:
    value = form.get(name) or request.query_params.get(name)
    return str(value) if value else None


def render_form_page(
    request: Request,
    ctx: RenderContext,
    resource: ModelResource,
    record: Any = None,
    parent_id: str | None = None,
    redirect: str | None = None,
):
    """Render the create/edit form, with relation fields below it on edit."""
    fields = resource.form_fields()
    raw = to_raw(record)
    key = resource.get_key(record)

    inputs = [
        (f.label, f.resolve_fill(raw, record).render_input())
        for f in fields.without_relations()
    ]
    relations = []
    if record is not None:
        relations = [
            f.with_context(ctx).resolve_fill(raw, record).render(ctx)
            for f in fields.only_fields().relations()
        ]

    action_params = {PARENT_ID_PARAM: parent_id, REDIRECT_PARAM: redirect}
    action = (
        admin_router.store(resource.uri)
        if record is None
        else admin_router.detail_page(resource.uri, key)
    )

    return templates.TemplateResponse(
        request,
        "form.html",
        {
            "resource": resource,
            "record": record,
            "record_key": key,
            "inputs": inputs,
            "relations": relations,
            "action": action,
            "hidden": {k: v for k, v in action_params.items() if v},
            "multipart": any(f.input_type == "file" for f in fields.only_fields()),
        },
    )


def _after_delete(
    request: Request,
    component: str | None,
    redirect: str | None,
    fallback: str,
) -> Response:
    """Async deletes tell the table to reload itself; others redirect."""
    if is_htmx_request(request) and component:
        return Response(
            status_code=status.HTTP_200_OK,
            headers={"HX-Trigger": f"table-updated-{component}"},
        )
    return RedirectResponse(
        url=redirect or fallback, status_code=status.HTTP_303_SEE_OTHER
    )


@router.get("/", response_class=HTMLResponse)
def dashboard(*, request: Request):
    return templates.TemplateResponse(
        request, "dashboard.html", {"resources": resources.all()}
    )


@router.get("/resource/{uri}", response_class=HTMLResponse)
def index_page(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    parent_id: str | None = Query(None, alias=PARENT_ID_PARAM),
):
    resource = resources.get(uri)
    ctx = _context(request, session, resource, PageType.INDEX)
    items = resource.paginate(
        session, page=ctx.page, search=ctx.search, parent_id=parent_id
    )
    table = resource.index_table(ctx, items, parent_id)
    logger.debug("Rendering index", resource=uri, total=items.total, page=ctx.page)

    if is_htmx_request(request):
        return HTMLResponse(table.render())

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "resource": resource,
            "table": table.render(),
            "parent_id": parent_id,
            "create_url": resource.form_page_url(None, {PARENT_ID_PARAM: parent_id}),
            "can_create": resource.can("create", None, ctx.user),
        },
    )


@router.get("/resource/{uri}/create", response_class=HTMLResponse)
def create_page(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    parent_id: str | None = Query(None, alias=PARENT_ID_PARAM),
    redirect: str | None = Query(None, alias=REDIRECT_PARAM),
):
    resource = resources.get(uri)
    ctx = _context(request, session, resource, PageType.FORM)
    if not resource.can("create", None, ctx.user):
        raise PermissionDeniedError(f"You may not create {resource.title}")
    return render_form_page(request, ctx, resource, None, parent_id, redirect)


@router.get("/resource/{uri}/{key}", response_class=HTMLResponse)
def detail_page(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    key: str,
):
    resource = resources.get(uri)
    ctx = _context(request, session, resource, PageType.DETAIL)
    record = get_record(session, resource, key)
    if not resource.can("view", record, ctx.user):
        raise PermissionDeniedError(f"You may not view {resource.title}")

    raw = to_raw(record)
    fields = resource.bind_context(resource.detail_fields(), ctx)
    rows = [(f.label, f.resolve_fill(raw, record).preview()) for f in fields]

    return templates.TemplateResponse(
        request,
        "detail.html",
        {
            "resource": resource,
            "record": record,
            "record_key": key,
            "rows": rows,
            "edit_button": resource.get_edit_button(ctx.user),
        },
    )


@router.get("/resource/{uri}/{key}/edit", response_class=HTMLResponse)
def edit_page(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    key: str,
    parent_id: str | None = Query(None, alias=PARENT_ID_PARAM),
    redirect: str | None = Query(None, alias=REDIRECT_PARAM),
):
    resource = resources.get(uri)
    ctx = _context(request, session, resource, PageType.FORM)
    record = get_record(session, resource, key)
    if not resource.can("update", record, ctx.user):
        raise PermissionDeniedError(f"You may not update {resource.title}")
    return render_form_page(request, ctx, resource, record, parent_id, redirect)


@router.get("/relation/{uri}/{key}/{relation}", response_class=HTMLResponse)
def relation_fragment(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    key: str,
    relation: str,
    row_key: str | None = Query(None, alias=KEY_PARAM),
    index: int = Query(0, alias=INDEX_PARAM),
):
    """Relation table for async reloads, or one row when ``_key`` is given."""
    resource = resources.get(uri)
    ctx = _context(request, session, resource, PageType.FORM)

    if row_key is not None:
        return HTMLResponse(render_relation_row(ctx, key, relation, row_key, index))
    return HTMLResponse(render_relation_table(ctx, key, relation))


@router.post("/resource/{uri}")
async def route_create_record(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
):
    resource = resources.get(uri)
    form = await request.form()
    parent_id = _form_value(form, request, PARENT_ID_PARAM)
    redirect = _form_value(form, request, REDIRECT_PARAM)

    logger.debug("Creating record via web form", resource=uri, parent_id=parent_id)
    user = get_current_user(request)
    record = create_record(session, resource, form, parent_id, user)
    logger.info(
        "Record created via web form", resource=uri, key=resource.get_key(record)
    )

    url = redirect or resource.form_page_url(resource.get_key(record))
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/resource/{uri}/mass-delete")
async def route_mass_delete(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    component: str | None = Query(None, alias=COMPONENT_NAME_PARAM),
    redirect: str | None = Query(None, alias=REDIRECT_PARAM),
    relation: str | None = Query(None, alias=RELATION_PARAM),
    parent_resource: str | None = Query(None, alias=PARENT_RESOURCE_PARAM),
):
    resource = resources.get(uri)
    form = await request.form()
    submitted = [str(v) for v in form.getlist(BULK_IDS_PARAM) if v != ""]
    keys = list(dict.fromkeys([*submitted, *get_list_param(request, BULK_IDS_PARAM)]))
    if not keys:
        raise ValidationError("No records selected")

    user = get_current_user(request)
    if relation and parent_resource:
        ctx = RenderContext(
            session=session, resource=resources.get(parent_resource), user=user
        )
        deleted = delete_related(ctx, relation, keys, resource_uri=uri)
    else:
        deleted = mass_delete(session, resource, keys, user)
    logger.info("Records deleted via web form", resource=uri, deleted=deleted)

    return _after_delete(request, component, redirect, resource.index_page_url())


@router.post("/resource/{uri}/sort")
async def route_sort(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
):
    resource = resources.get(uri)
    form = await request.form()
    keys = [str(v) for v in form.getlist("data[]") if v != ""]
    reorder(session, resource, keys, get_current_user(request))
    logger.info("Rows reordered via web form", resource=uri, count=len(keys))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/resource/{uri}/update-column")
async def route_update_column(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
):
    resource = resources.get(uri)
    form = await request.form()
    key = _form_value(form, request, KEY_PARAM)
    column = _form_value(form, request, "field")
    if key is None or column is None:
        raise ValidationError("Both a record key and a field are required")

    update_column(
        session, resource, key, column, form.get(column), get_current_user(request)
    )
    logger.info("Column updated via web form", resource=uri, key=key, column=column)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/resource/{uri}/{key}")
async def route_update_record(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    key: str,
):
    resource = resources.get(uri)
    form = await request.form()
    redirect = _form_value(form, request, REDIRECT_PARAM)

    update_record(session, resource, key, form, get_current_user(request))
    logger.info("Record updated via web form", resource=uri, key=key)

    url = redirect or resource.form_page_url(key)
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@router.post("/resource/{uri}/{key}/delete")
async def route_delete_record(
    *,
    session: Session = Depends(get_session),
    request: Request,
    uri: str,
    key: str,
    component: str | None = Query(None, alias=COMPONENT_NAME_PARAM),
    redirect: str | None = Query(None, alias=REDIRECT_PARAM),
    relation: str | None = Query(None, alias=RELATION_PARAM),
    parent_resource: str | None = Query(None, alias=PARENT_RESOURCE_PARAM),
):
    resource = resources.get(uri)
    user = get_current_user(request)

    if relation and parent_resource:
        ctx = RenderContext(
            session=session, resource=resources.get(parent_resource), user=user
        )
        delete_related(ctx, relation, [key], resource_uri=uri)
    else:
        delete_record(session, resource, key, user)
    logger.info("Record deleted via web form", resource=uri, key=key)

    return _after_delete(request, component, redirect, resource.index_page_url())
