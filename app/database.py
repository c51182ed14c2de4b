"""Database utilities for the Pickshelf service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData()


# Columns added to ``contents`` once entries started carrying full TMDB metadata.
# Each entry maps the column name to its DDL type and the backfill value.
CONTENT_METADATA_COLUMNS: dict[str, tuple[str, str | None]] = {
    "name": ("VARCHAR(255) DEFAULT ''", "''"),
    "overview": ("TEXT DEFAULT ''", "''"),
    "release_date": ("VARCHAR(16) DEFAULT ''", "''"),
    "first_air_date": ("VARCHAR(16) DEFAULT ''", "''"),
    "poster_path": ("VARCHAR(255) DEFAULT ''", "''"),
    "backdrop_path": ("VARCHAR(255) DEFAULT ''", "''"),
    "genre_ids": ("JSON", "'[]'"),
    "popularity": ("FLOAT", None),
    "vote_average": ("FLOAT", None),
    "vote_count": ("INTEGER", None),
    "adult": ("BOOLEAN", None),
    "media_type": ("VARCHAR(16) DEFAULT ''", "''"),
}


class Database:
    """Thin wrapper managing the SQLAlchemy async engine and sessions."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_all(self) -> None:
        """Create database tables if they do not yet exist."""

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._apply_schema_migrations)

    @staticmethod
    def _apply_schema_migrations(sync_connection) -> None:
        """Backfill TMDB metadata columns on legacy ``contents`` tables."""

        inspector = inspect(sync_connection)
        if "contents" not in inspector.get_table_names():
            return

        existing_columns = {
            column["name"] for column in inspector.get_columns("contents")
        }
        for name, (ddl_type, initial) in CONTENT_METADATA_COLUMNS.items():
            if name in existing_columns:
                continue
            sync_connection.execute(
                text(f"ALTER TABLE contents ADD COLUMN {name} {ddl_type}")
            )
            if initial is not None:
                sync_connection.execute(
                    text(f"UPDATE contents SET {name} = {initial} WHERE {name} IS NULL")
                )
            existing_columns.add(name)

    async def dispose(self) -> None:
        """Dispose of the underlying database engine."""

        await self._engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations."""

        async with self.session_factory() as session:
            yield session
