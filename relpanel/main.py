import socket
from contextlib import asynccontextmanager
from typing import Final

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .domain.exceptions import DomainError
from .infrastructure.database.database import (
    get_async_engine,
    get_main_engine,
    init_async_db,
    init_db,
)
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.error_handlers import handle_domain_error, render_error_response
from .presentation.routes import router
from .resources.blog import register_blog_resources
from .resources.registry import resources
from .routing import admin_router
from .telemetry import setup_telemetry
from .templating import STATIC_DIR


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    logger = get_logger(__name__)

    try:
        await init_async_db(get_async_engine())
        logger.info("Async database initialized successfully")
    except Exception as e:
        logger.warning(
            "Async database init failed, falling back to sync", error=str(e)
        )
        init_db(get_main_engine())
        logger.info("Sync database initialized successfully")

    hostname = socket.gethostname()
    ip_addr = socket.gethostbyname(hostname)
    log_system_info(hostname, ip_addr, settings.debug)

    yield

    logger.info("Application shutdown completed")


register_blog_resources(resources)

app: Final = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
    description="""
**RelPanel** - admin pages for SQLModel tables, with one-to-many relations
shown as links, capped previews or interactive HTMX tables.
    """.strip(),
)

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

setup_telemetry(app)

app.middleware("http")(log_requests_middleware)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Global handler for domain-specific errors."""
    logger = get_logger(__name__)
    logger.warning(
        "Domain error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return handle_domain_error(exc, request)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Global handler for database errors."""
    logger = get_logger(__name__)
    logger.error(
        "Database error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    return render_error_response(
        request, "A database error occurred. Please try again.", status_code=500
    )


if settings.admin_prefix:

    @app.get("/", include_in_schema=False)
    def root():
        return RedirectResponse(url=admin_router.home())


app.include_router(router)
