"""Report which formations tables exist, their columns and foreign keys.

Run with ``python -m src.database.check_tables``.
"""
import asyncio
import logging
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from src.database.engine import engine


logger = logging.getLogger(__name__)

EXPECTED_TABLES = (
    "profiles",
    "organizations",
    "organization_members",
    "formations",
    "quizzes",
    "quiz_questions",
    "quiz_answers",
    "user_progress",
    "user_quiz_results",
)


def _inspect_tables(sync_conn: Connection) -> dict[str, dict[str, Any]]:
    inspector = inspect(sync_conn)
    existing = set(inspector.get_table_names())

    report: dict[str, dict[str, Any]] = {}
    for table in EXPECTED_TABLES:
        if table not in existing:
            report[table] = {"exists": False}
            continue
        report[table] = {
            "exists": True,
            "columns": [column["name"] for column in inspector.get_columns(table)],
            "foreign_keys": [
                f"{','.join(fk['constrained_columns'])} -> {fk['referred_table']} "
                f"(ON DELETE {(fk.get('options') or {}).get('ondelete', 'NO ACTION')})"
                for fk in inspector.get_foreign_keys(table)
            ],
        }
    return report


async def check_tables(db_engine: AsyncEngine) -> dict[str, dict[str, Any]]:
    """Inspect the connected database and return a per-table report."""
    async with db_engine.connect() as conn:
        return await conn.run_sync(_inspect_tables)


async def main() -> None:
    from src.config.logging import setup_logging

    setup_logging()
    try:
        report = await check_tables(engine)
    finally:
        await engine.dispose()

    for table, info in report.items():
        if not info["exists"]:
            logger.warning("Table %s is missing", table)
            continue
        logger.info("Table %s: %s", table, ", ".join(info["columns"]))
        for fk in info["foreign_keys"]:
            logger.info("  FK %s", fk)


if __name__ == "__main__":
    asyncio.run(main())
