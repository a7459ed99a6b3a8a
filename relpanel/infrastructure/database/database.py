from collections.abc import Generator
from typing import Any, Final

from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import Session, SQLModel, create_engine

from ...config import settings

# Sync URL scheme -> async driver scheme used for schema setup
ASYNC_DRIVERS: Final = {
    "sqlite:///": "sqlite+aiosqlite:///",
    "postgresql://": "postgresql+asyncpg://",
}


def _engine_options(database_url: str) -> dict[str, Any]:
    if database_url.startswith("sqlite"):
        # Request handlers run in a threadpool
        return {"connect_args": {"check_same_thread": False}}
    if database_url.startswith("postgresql"):
        return {"pool_pre_ping": True, "pool_size": 10, "max_overflow": 20}
    return {}


def to_async_url(database_url: str) -> str:
    for sync_scheme, async_scheme in ASYNC_DRIVERS.items():
        if database_url.startswith(sync_scheme):
            return async_scheme + database_url.removeprefix(sync_scheme)
    raise ValueError(f"No async driver for database URL: {database_url}")


_engines: dict[str, Engine] = {}
_async_engines: dict[str, AsyncEngine] = {}


def get_main_engine() -> Engine:
    url = settings.effective_database_url
    if url not in _engines:
        _engines[url] = create_engine(url, **_engine_options(url))
    return _engines[url]


def get_async_engine() -> AsyncEngine:
    """Async engine for the configured database, used at startup."""
    url = settings.effective_database_url
    if url not in _async_engines:
        options: dict[str, Any] = {"echo": False}
        if url.startswith("postgresql"):
            options |= {"pool_size": 10, "pool_recycle": 3600, "pool_pre_ping": True}
        _async_engines[url] = create_async_engine(to_async_url(url), **options)
    return _async_engines[url]


def get_session() -> Generator[Session, None, None]:
    with Session(get_main_engine()) as session:
        yield session


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


async def init_async_db(engine: AsyncEngine) -> None:
    """Create all tables through the async engine."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
