# app/core/database.py

import ssl
from typing import AsyncGenerator

from loguru import logger
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import text

from app.core.config import settings

DATABASE_URL = settings.DATABASE_URL


# ----------------------------------------------------
# SSL for managed Postgres poolers
# ----------------------------------------------------
def make_ssl():
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


# ----------------------------------------------------
# Engine
# SQLite (tests, local) shares one in-memory connection;
# Postgres goes through an external pooler, so no local pooling.
# ----------------------------------------------------
if DATABASE_URL.startswith("sqlite"):
    logger.info("Configuring database (SQLite, static pool)")
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    logger.info("Configuring database (Pooler mode)")
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,
        connect_args={
            "ssl": make_ssl() if settings.ENV == "prod" else None,
            "statement_cache_size": 0,  # disable prepared statements
        },
        pool_pre_ping=True,
        poolclass=NullPool,
    )


# ----------------------------------------------------
# Sessions
# ----------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ----------------------------------------------------
# Create tables
# ----------------------------------------------------
async def init_db():
    # Register every table on SQLModel.metadata before create_all
    from app.models import audit, feedback, submission  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def drop_db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)


# ----------------------------------------------------
# Test Connection
# ----------------------------------------------------
async def test_connection():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        logger.debug("DB connection OK")
