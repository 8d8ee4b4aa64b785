"""
learnlite/database.py
Async engine, session factory and schema bootstrap
"""
import logging

from sqlalchemy import event, func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker

from learnlite.config.settings import settings
from learnlite.orm.base import Base
import learnlite.orm  # ensures all models are registered

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

# SQLSTATE for unique_violation on PostgreSQL
UNIQUE_VIOLATION_SQLSTATE = "23505"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **kwargs) -> AsyncEngine:
    """Create an async engine with the pool settings suited to the backend."""
    if "sqlite" in database_url.lower():
        kwargs.setdefault("connect_args", {"timeout": 30.0})
        new_engine = create_async_engine(database_url, echo=False, future=True, **kwargs)
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return new_engine

    return create_async_engine(
        database_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        pool_size=kwargs.pop("pool_size", 10),
        max_overflow=kwargs.pop("max_overflow", 20),
        pool_timeout=30,
        pool_recycle=3600,
        **kwargs
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(DATABASE_URL)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def is_unique_violation(exc: IntegrityError) -> bool:
    """
    True when an IntegrityError was caused by a unique constraint.

    PostgreSQL drivers expose the SQLSTATE; SQLite only reports it in the
    message text.
    """
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == UNIQUE_VIOLATION_SQLSTATE:
            return True
    message = str(orig if orig is not None else exc)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


async def fetch_page(session: AsyncSession, stmt, page: int, limit: int):
    """
    Run a select for one page and count the full result set.

    Returns (rows, total). Rows are whatever the statement yields: scalars
    for single-entity selects, tuples otherwise.
    """
    total = (await session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )).scalar() or 0

    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    if len(stmt.selected_columns) == 1:
        return list(result.scalars().all()), total
    return list(result.all()), total


async def check_database(session: AsyncSession) -> dict:
    """Run the readiness queries and report what was found."""
    await session.execute(text("SELECT 1"))
    users = await session.execute(text("SELECT COUNT(*) FROM users"))
    return {"status": "ok", "users": users.scalar() or 0}


async def init_db(bind: AsyncEngine = None):
    """Create all tables that do not exist yet."""
    bind = bind or engine
    logger.info("Initializing database...")
    try:
        logger.info(f"Database dialect: {bind.url.get_backend_name()}")
        async with bind.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialization complete")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


async def close_db():
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")
