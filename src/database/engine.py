from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from src.config.settings import get_settings


settings = get_settings()


def _async_url(database_url: str) -> str:
    """Force the psycopg 3 async driver on plain postgres URLs."""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+psycopg://" + database_url[len(prefix):]
    return database_url


def create_app_engine() -> AsyncEngine:
    """Create the async engine for direct Postgres or the Supabase pooler.

    - Direct (local docker:5432): standard pool with pre-ping.
    - Supabase pooler (pooler.supabase.*:6543): small pool so we don't hog sessions,
      and no prepared statements since transaction poolers do not support them.
    """
    database_url = _async_url(settings.DATABASE_URL)

    # Any Supabase pooler URL contains either ".supabase." or ".pooler."
    using_pooler = ".supabase." in database_url or ".pooler." in database_url

    if using_pooler:
        pool_size = 3
        max_overflow = 2
        pool_recycle = 1800  # ~30m
        connect_args = {"connect_timeout": 10, "prepare_threshold": None}
    else:
        pool_size = 10
        max_overflow = 10
        pool_recycle = 3600  # ~1h
        connect_args = {"connect_timeout": 10}

    return create_async_engine(
        database_url,
        echo=settings.DEBUG,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,
        pool_use_lifo=True,
        connect_args=connect_args,
    )


engine: AsyncEngine = create_app_engine()
