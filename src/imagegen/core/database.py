"""Database engine and session factory setup."""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create an engine and session factory for one database credential.

    The application calls this once for DATABASE_URL and, when configured,
    once more for SERVICE_DATABASE_URL, so each credential has its own pool.

    Args:
        db_url: Connection URL (postgresql+psycopg://... in production)
        pool_size: Connections kept per credential; ignored for SQLite

    Returns:
        Session factory; sessions do not expire objects on commit
    """
    engine_kwargs: dict = {"pool_pre_ping": True}
    if make_url(db_url).get_backend_name() != "sqlite":
        engine_kwargs.update(pool_size=pool_size, max_overflow=0)

    engine = create_async_engine(db_url, **engine_kwargs)

    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
