import os
from datetime import datetime, timezone
from fastapi import Depends
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from dotenv import load_dotenv

load_dotenv()

# Every settlement table lives in one schema; SQLite maps it away (see build_engine)
SCHEMA = "settlement_schema"

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "settlement")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)


def build_engine(url: str, echo: bool = False, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("execution_options", {"schema_translate_map": {SCHEMA: None}})
    return create_async_engine(url, echo=echo, **kwargs)


engine = build_engine(DATABASE_URL, echo=os.getenv("DB_ECHO", "false").lower() == "true")

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_session_factory() -> async_sessionmaker:
    """Overridable in tests; background tasks open their own sessions from it."""
    return AsyncSessionLocal


async def get_db(session_factory: async_sessionmaker = Depends(get_session_factory)):
    async with session_factory() as session:
        yield session
