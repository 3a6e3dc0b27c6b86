"""Schema metadata and database bootstrap statements."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import UniqueConstraint
from sqlalchemy import inspect as sa_inspect

from src.database.base import Base
from src.database.engine import _async_url
from src.database.init import UPDATED_AT_TABLES, init_database
from src.quizzes.models import Quiz, QuizQuestion


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql://u:p@db:5432/app", "postgresql+psycopg://u:p@db:5432/app"),
        ("postgres://u:p@db:5432/app", "postgresql+psycopg://u:p@db:5432/app"),
        ("postgresql+psycopg://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
    ],
)
def test_async_url_uses_psycopg(url: str, expected: str) -> None:
    assert _async_url(url) == expected


@pytest.mark.parametrize(
    ("table", "column", "target"),
    [
        ("formations", "organization_id", "organizations"),
        ("formations", "created_by", "profiles"),
        ("quizzes", "formation_id", "formations"),
        ("quiz_questions", "quiz_id", "quizzes"),
        ("quiz_answers", "question_id", "quiz_questions"),
        ("user_progress", "formation_id", "formations"),
        ("user_quiz_results", "quiz_id", "quizzes"),
    ],
)
def test_children_cascade_with_their_parent(table: str, column: str, target: str) -> None:
    (fk,) = Base.metadata.tables[table].columns[column].foreign_keys

    assert fk.column.table.name == target
    assert fk.ondelete == "CASCADE"


def _unique_columns(table: str) -> list[tuple[str, ...]]:
    return [
        tuple(c.name for c in constraint.columns)
        for constraint in Base.metadata.tables[table].constraints
        if isinstance(constraint, UniqueConstraint)
    ]


def test_attempt_numbers_are_unique_per_user_and_quiz() -> None:
    assert ("user_id", "quiz_id", "attempt_number") in _unique_columns("user_quiz_results")


def test_one_progress_row_per_user_and_formation() -> None:
    assert ("user_id", "formation_id") in _unique_columns("user_progress")


async def test_init_database_installs_updated_at_triggers() -> None:
    conn = AsyncMock()
    db_engine = MagicMock()
    db_engine.begin.return_value.__aenter__.return_value = conn

    await init_database(db_engine)

    conn.run_sync.assert_awaited_once_with(Base.metadata.create_all)
    ddl = [call.args[0] for call in conn.exec_driver_sql.await_args_list]
    assert "CREATE OR REPLACE FUNCTION update_updated_at_column()" in ddl[0]
    for table in UPDATED_AT_TABLES:
        assert f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}" in ddl
        assert any(s.startswith(f"CREATE TRIGGER update_{table}_updated_at BEFORE UPDATE ON {table}") for s in ddl)


@pytest.mark.parametrize(
    ("model", "relationship_name", "order_column"),
    [
        (Quiz, "questions", "order_index"),
        (QuizQuestion, "answers", "order_index"),
    ],
)
def test_nested_quiz_rows_load_in_order_index_order(model, relationship_name, order_column) -> None:
    relationship = sa_inspect(model).relationships[relationship_name]

    assert [(col.name, col.table.name) for col in relationship.order_by] == [
        (order_column, relationship.mapper.local_table.name)
    ]
