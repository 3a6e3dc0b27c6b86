"""Database initialization - creates extensions, tables and updated_at triggers."""

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

# Import all models to register them with Base metadata
from src.formations.models import Formation  # noqa: F401
from src.organizations.models import Organization, OrganizationMember, Profile  # noqa: F401
from src.progress.models import UserProgress  # noqa: F401
from src.quizzes.models import Quiz, QuizAnswer, QuizQuestion, UserQuizResult  # noqa: F401

from .base import Base
from .engine import engine


logger = logging.getLogger(__name__)

# Tables whose updated_at column is bumped by the database on every UPDATE
UPDATED_AT_TABLES = ("formations", "quizzes", "user_progress")

UPDATED_AT_FUNCTION = """
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql
"""


async def init_database(db_engine: AsyncEngine) -> None:
    """Enable extensions, create all tables and install updated_at triggers."""
    async with db_engine.begin() as conn:
        logger.info("Enabling required PostgreSQL extensions...")
        # gen_random_uuid() for rows inserted outside the application
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pgcrypto"))

        logger.info("Creating database tables from models...")
        await conn.run_sync(Base.metadata.create_all)

        logger.info("Installing updated_at triggers...")
        await _ensure_updated_at_triggers(conn)

        logger.info("Database initialization completed successfully")


async def _ensure_updated_at_triggers(conn: AsyncConnection) -> None:
    await conn.exec_driver_sql(UPDATED_AT_FUNCTION)
    for table in UPDATED_AT_TABLES:
        trigger = f"update_{table}_updated_at"
        await conn.exec_driver_sql(f"DROP TRIGGER IF EXISTS {trigger} ON {table}")
        await conn.exec_driver_sql(
            f"CREATE TRIGGER {trigger} BEFORE UPDATE ON {table} "
            "FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()"
        )
        logger.info("Trigger %s installed", trigger)


async def main() -> None:
    """Run the initialization."""
    from src.config.logging import setup_logging

    setup_logging()
    try:
        await init_database(engine)
    except Exception:
        logger.exception("Database initialization failed")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
