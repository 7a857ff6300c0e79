from typing import AsyncGenerator, Dict, List
import logging
import ssl

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.core.config import DATABASE_URL, DB_TYPE

logger = logging.getLogger(__name__)

Base = declarative_base()

# Bump whenever a mapped table or column is added or removed.
SCHEMA_VERSION = 3


class SchemaMismatchError(RuntimeError):
    """The live database is missing tables or columns the models rely on."""

    def __init__(self, missing: Dict[str, List[str]]):
        self.missing = missing
        parts = [f"{table}({', '.join(cols) if cols else '*'})" for table, cols in missing.items()]
        super().__init__(f"Database schema v{SCHEMA_VERSION} not satisfied; missing: {'; '.join(parts)}")


def _engine_kwargs() -> dict:
    if DB_TYPE != "postgres":
        return {}

    # SSL setup for Supabase
    ssl_ctx = ssl.create_default_context()
    ssl_ctx.check_hostname = False
    ssl_ctx.verify_mode = ssl.CERT_NONE

    return {
        "pool_size": 5,
        "max_overflow": 10,
        "connect_args": {
            # Disable prepared statements (PgBouncer)
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
            "server_settings": {"prepareThreshold": "0"},  # must be string!
            "ssl": ssl_ctx,
        },
    }


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    **_engine_kwargs(),
)

AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# SQLite foreign key enforcement
if DB_TYPE == "sqlite":
    from sqlalchemy import event

    @event.listens_for(engine.sync_engine, "connect")
    def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


import app.models  # noqa: E402,F401


async def init_models(bind=None):
    """Create all tables (dev / tests only; production schema is managed in Supabase)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _missing_columns(sync_conn) -> Dict[str, List[str]]:
    inspector = inspect(sync_conn)
    existing_tables = set(inspector.get_table_names())
    missing: Dict[str, List[str]] = {}
    for table in Base.metadata.sorted_tables:
        if table.name not in existing_tables:
            missing[table.name] = []
            continue
        live_cols = {col["name"] for col in inspector.get_columns(table.name)}
        absent = [col.name for col in table.columns if col.name not in live_cols]
        if absent:
            missing[table.name] = absent
    return missing


async def verify_schema(bind=None) -> None:
    """Compare the live database with the mapped models; raise on any gap."""
    async with (bind or engine).connect() as conn:
        missing = await conn.run_sync(_missing_columns)
    if missing:
        raise SchemaMismatchError(missing)
    logger.info("Database schema v%s verified", SCHEMA_VERSION)
