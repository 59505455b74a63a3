"""
PostgreSQL Client
=================

Async engine and session management for the compliance store
(SQLAlchemy 2.0 on asyncpg). The ORM tables live in the ``compliance``
schema and are declared in ``shared.repository.tables``.

Version: 0.1.0
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from shared.config import settings
from shared.logging import get_logger


logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by every compliance table."""


class PostgresClient:
    """
    Process-wide holder for the compliance store engine.

    One engine per process; Celery workers close it between task event
    loops (see ``shared.workers.utils``).
    """

    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            pg = settings.postgres
            cls._engine = create_async_engine(
                pg.async_url,
                echo=settings.debug and not settings.is_testing,
                pool_size=pg.pool_size,
                max_overflow=pg.max_overflow,
                pool_pre_ping=True,
            )
            logger.info("compliance_store_engine_created", host=pg.host, database=pg.db)
        return cls._engine

    @classmethod
    def get_session_factory(cls) -> async_sessionmaker[AsyncSession]:
        if cls._session_factory is None:
            cls._session_factory = async_sessionmaker(
                cls.get_engine(), expire_on_commit=False, autoflush=False
            )
        return cls._session_factory

    @classmethod
    async def create_tables(cls) -> list[str]:
        """
        Create the compliance schema and its tables if missing.

        Returns:
            Qualified names of the tables known to the metadata
        """
        from shared.repository.tables import SCHEMA  # registers tables on Base

        async with cls.get_engine().begin() as conn:
            await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
            await conn.run_sync(Base.metadata.create_all)

        tables = sorted(Base.metadata.tables)
        logger.info("compliance_tables_created", schema=SCHEMA, tables=len(tables))
        return tables

    @classmethod
    async def close(cls) -> None:
        if cls._engine is None:
            return
        await cls._engine.dispose()
        cls._engine = None
        cls._session_factory = None
        logger.info("compliance_store_engine_closed")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """
        Report server version and how many compliance tables exist.

        Never raises; failures come back as ``{"status": "unhealthy"}``.
        """
        from shared.repository.tables import SCHEMA

        start = time.perf_counter()
        try:
            async with cls.get_engine().connect() as conn:
                version = (await conn.execute(text("SHOW server_version"))).scalar()
                table_count = (
                    await conn.execute(
                        text(
                            "SELECT count(*) FROM information_schema.tables "
                            "WHERE table_schema = :schema"
                        ),
                        {"schema": SCHEMA},
                    )
                ).scalar()
        except (SQLAlchemyError, OSError) as e:
            logger.error("compliance_store_health_check_failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "server_version": version,
            "schema": SCHEMA,
            "tables": table_count,
        }


@asynccontextmanager
async def postgres_session(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Unit of work against the compliance store.

    Commits when the block exits cleanly, rolls back otherwise.
    """
    factory = session_factory or PostgresClient.get_session_factory()
    async with factory() as session:
        try:
            yield session
        except BaseException:
            await session.rollback()
            raise
        await session.commit()
