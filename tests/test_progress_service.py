"""ProgressService upsert behaviour against a mocked session."""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from src.auth.config import DEFAULT_USER_ID
from src.exceptions import OperationFailedError, ResourceNotFoundError
from src.progress.schemas import ProgressUpdate
from src.progress.service import ProgressService
from tests.factories import NOW, ORG_ID


def _upsert_row(formation_id, **overrides) -> dict:
    row = {
        "id": uuid4(),
        "user_id": DEFAULT_USER_ID,
        "formation_id": formation_id,
        "progress_percentage": 40,
        "status": "in_progress",
        "started_at": NOW,
        "completed_at": None,
        "last_accessed_at": NOW,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


async def test_update_progress_requires_visible_formation(db_session) -> None:
    db_session.scalar.return_value = None

    with pytest.raises(ResourceNotFoundError):
        await ProgressService(db_session).update_progress(
            DEFAULT_USER_ID, uuid4(), ProgressUpdate(progress_percentage=10, status="in_progress"), ORG_ID
        )

    db_session.execute.assert_not_awaited()


async def test_update_progress_upserts_and_commits(db_session) -> None:
    formation_id = uuid4()
    db_session.scalar.return_value = formation_id
    result = MagicMock()
    result.mappings.return_value.one.return_value = _upsert_row(formation_id)
    db_session.execute.return_value = result

    progress = await ProgressService(db_session).update_progress(
        DEFAULT_USER_ID,
        formation_id,
        ProgressUpdate(progress_percentage=40, status="in_progress"),
        ORG_ID,
    )

    assert progress.progress_percentage == 40.0
    assert progress.started_at == NOW
    statement, params = db_session.execute.await_args.args
    sql = " ".join(statement.text.split())
    assert "ON CONFLICT (user_id, formation_id) DO UPDATE" in sql
    assert "COALESCE(EXCLUDED.started_at, user_progress.started_at)" in sql
    # Omitted timestamps are sent as NULL so the stored values survive
    assert params["started_at"] is None
    assert params["completed_at"] is None
    assert params["user_id"] == DEFAULT_USER_ID
    db_session.commit.assert_awaited_once()


async def test_update_progress_passes_explicit_timestamps(db_session) -> None:
    formation_id = uuid4()
    completed = datetime(2024, 9, 1, tzinfo=UTC)
    db_session.scalar.return_value = formation_id
    result = MagicMock()
    result.mappings.return_value.one.return_value = _upsert_row(
        formation_id, progress_percentage=100, status="completed", completed_at=completed
    )
    db_session.execute.return_value = result

    progress = await ProgressService(db_session).update_progress(
        DEFAULT_USER_ID,
        formation_id,
        ProgressUpdate(progress_percentage=100, status="completed", completed_at=completed),
    )

    assert progress.status == "completed"
    assert db_session.execute.await_args.args[1]["completed_at"] == completed


async def test_update_progress_wraps_database_errors(db_session) -> None:
    db_session.scalar.return_value = uuid4()
    db_session.execute.side_effect = OperationalError("INSERT", {}, Exception("server closed the connection"))

    with pytest.raises(OperationFailedError, match="Progress update failed"):
        await ProgressService(db_session).update_progress(
            DEFAULT_USER_ID, uuid4(), ProgressUpdate(progress_percentage=5, status="in_progress")
        )

    db_session.rollback.assert_awaited_once()


def test_progress_update_rejects_out_of_range_percentage() -> None:
    with pytest.raises(ValueError, match="less than or equal to 100"):
        ProgressUpdate(progress_percentage=120, status="in_progress")
