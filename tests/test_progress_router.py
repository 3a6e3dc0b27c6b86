"""Progress endpoints and their place among the formation routes."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from src.organizations.schemas import ProfileSummary
from src.progress.schemas import FormationProgressItem, ProgressResponse, UserProgressItem
from tests.factories import NOW


BASE = "/api/v1/formations"


def _progress(formation_id=None, **overrides) -> dict:
    data = {
        "id": uuid4(),
        "user_id": uuid4(),
        "formation_id": formation_id or uuid4(),
        "progress_percentage": 50.0,
        "status": "in_progress",
        "started_at": NOW,
        "last_accessed_at": NOW,
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return data


@pytest.fixture
def progress_service():
    with patch("src.progress.router.ProgressService") as service_cls:
        yield service_cls.return_value


async def test_progress_listing_is_not_taken_for_a_formation_id(client, progress_service, auth_context) -> None:
    progress_service.get_user_progress = AsyncMock(return_value=[UserProgressItem(**_progress())])

    response = await client.get(f"{BASE}/progress")

    assert response.status_code == 200
    assert response.json()["message"] == "Progress retrieved successfully"
    progress_service.get_user_progress.assert_awaited_once_with(auth_context.user_id, auth_context.organization_id)


async def test_update_progress(client, progress_service, auth_context) -> None:
    auth_context.role = "member"
    formation_id = uuid4()
    progress_service.update_progress = AsyncMock(
        return_value=ProgressResponse(**_progress(formation_id, progress_percentage=100.0, status="completed"))
    )

    response = await client.post(
        f"{BASE}/{formation_id}/progress",
        json={"progress_percentage": 100, "status": "completed", "completed_at": NOW.isoformat()},
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"
    user_id, called_formation, update, organization_id = progress_service.update_progress.await_args.args
    assert (user_id, called_formation, organization_id) == (
        auth_context.user_id,
        formation_id,
        auth_context.organization_id,
    )
    assert update.completed_at == NOW
    assert update.started_at is None


@pytest.mark.parametrize(
    "payload",
    [
        {"progress_percentage": 150, "status": "in_progress"},
        {"progress_percentage": -1, "status": "in_progress"},
        {"progress_percentage": 10, "status": "paused"},
    ],
)
async def test_update_progress_rejects_invalid_values(client, progress_service, payload) -> None:
    progress_service.update_progress = AsyncMock()

    response = await client.post(f"{BASE}/{uuid4()}/progress", json=payload)

    assert response.status_code == 400
    assert response.json()["success"] is False
    progress_service.update_progress.assert_not_awaited()


async def test_formation_progress_for_admins(client, progress_service) -> None:
    formation_id = uuid4()
    learner = ProfileSummary(id=uuid4(), first_name="Grace", last_name="Hopper")
    progress_service.get_formation_progress = AsyncMock(
        return_value=[FormationProgressItem(**_progress(formation_id), user=learner)]
    )

    response = await client.get(f"{BASE}/{formation_id}/progress")

    assert response.status_code == 200
    assert response.json()["data"][0]["user"]["first_name"] == "Grace"


async def test_members_cannot_view_formation_progress(client, progress_service, auth_context) -> None:
    auth_context.role = "member"
    progress_service.get_formation_progress = AsyncMock()

    response = await client.get(f"{BASE}/{uuid4()}/progress")

    assert response.status_code == 403
    progress_service.get_formation_progress.assert_not_awaited()
