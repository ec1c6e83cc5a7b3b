from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from crudkit.core.config import Settings

R = TypeVar("R")
QueryOp = Callable[[AsyncSession], Awaitable[R]]

_LOG = logging.getLogger("crudkit.db")

DRIVER_SCHEMES = {
    "postgres": "postgresql+asyncpg",
    "mysql": "mysql+aiomysql",
    "sqlite": "sqlite+aiosqlite",
}


class Base(DeclarativeBase):
    pass


def async_database_url(url: str, driver: str | None = None) -> str:
    """Rewrite a plain ``scheme://`` URL to the async driver for ``driver``."""
    scheme, sep, rest = url.partition("://")
    if not sep or "+" in scheme:
        return url
    key = (driver or "").strip().lower()
    if not key:
        key = "postgres" if scheme.startswith("postgres") else scheme
    async_scheme = DRIVER_SCHEMES.get(key)
    if async_scheme is None:
        return url
    return f"{async_scheme}://{rest}"


class Database:
    """Query-execution port.

    ``execute(label, op)`` runs ``op`` with a fresh ``AsyncSession`` inside a
    single transaction: committed when ``op`` returns, rolled back when it
    raises. Exceptions from ``op`` propagate unchanged.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_options: Any):
        self.url = url
        self._engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_options)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)
        self._connected = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        url = async_database_url(settings.DATABASE_URL, settings.DATABASE_DRIVER)
        options: dict[str, Any] = {}
        if not url.startswith("sqlite"):
            options.update(
                pool_size=settings.DATABASE_MAX_CONNECTION,
                pool_timeout=settings.DATABASE_CONNECTION_TIMEOUT / 1000.0,
                pool_recycle=settings.DATABASE_MAX_USES,
                pool_pre_ping=True,
            )
            if settings.DATABASE_SSL:
                options["connect_args"] = {"ssl": True}
        return cls(url, echo=settings.DATABASE_ECHO, **options)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        if self._connected:
            return
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception:
            _LOG.exception("database connection failed dialect=%s", self.dialect_name)
            raise
        self._connected = True
        _LOG.info("%s database connected", self.dialect_name.upper())

    async def disconnect(self) -> None:
        await self._engine.dispose()
        if self._connected:
            _LOG.info("database disconnected")
        self._connected = False

    async def create_all(self, metadata: MetaData) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def execute(self, label: str, op: QueryOp[R]) -> R:
        async with self._sessionmaker() as session:
            async with session.begin():
                return await op(session)
