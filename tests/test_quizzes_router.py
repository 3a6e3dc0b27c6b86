"""Quiz endpoints: authoring, submission and results."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from src.exceptions import ResourceNotFoundError
from src.organizations.schemas import ProfileSummary
from src.quizzes.schemas import QuizResultWithUser
from tests.factories import quiz_detail, quiz_result


BASE = "/api/v1/formations"

QUIZ_PAYLOAD = {
    "title": "Security check",
    "questions": [
        {
            "question_text": "What should you do with a suspicious email?",
            "answers": [
                {"answer_text": "Report it", "is_correct": True},
                {"answer_text": "Open the attachment", "is_correct": False},
            ],
        }
    ],
}


@pytest.fixture
def quiz_service():
    with patch("src.quizzes.router.QuizService") as service_cls:
        yield service_cls.return_value


async def test_create_quiz_returns_201(client, quiz_service, auth_context) -> None:
    formation_id = uuid4()
    quiz_service.create_quiz = AsyncMock(return_value=quiz_detail(formation_id=formation_id))

    response = await client.post(f"{BASE}/{formation_id}/quiz", json=QUIZ_PAYLOAD)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Quiz created successfully"
    assert body["data"]["formation_id"] == str(formation_id)
    called_formation, called_org, data = quiz_service.create_quiz.await_args.args
    assert called_formation == formation_id
    assert called_org == auth_context.organization_id
    assert data.passing_score == 70
    assert data.questions[0].question_type == "multiple_choice"


async def test_create_quiz_on_unknown_formation_is_404(client, quiz_service) -> None:
    quiz_service.create_quiz = AsyncMock(return_value=None)
    formation_id = uuid4()

    response = await client.post(f"{BASE}/{formation_id}/quiz", json=QUIZ_PAYLOAD)

    assert response.status_code == 404
    assert response.json()["message"] == f"Formation with ID {formation_id} not found"


@pytest.mark.parametrize(
    ("payload", "field"),
    [
        ({**QUIZ_PAYLOAD, "questions": []}, "questions"),
        ({**QUIZ_PAYLOAD, "passing_score": 120}, "passing_score"),
        ({"questions": QUIZ_PAYLOAD["questions"]}, "title"),
    ],
)
async def test_create_quiz_rejects_invalid_payload(client, quiz_service, payload, field) -> None:
    quiz_service.create_quiz = AsyncMock()

    response = await client.post(f"{BASE}/{uuid4()}/quiz", json=payload)

    assert response.status_code == 400
    assert field in {error["field"] for error in response.json()["errors"]}
    quiz_service.create_quiz.assert_not_awaited()


async def test_members_cannot_create_quizzes(client, quiz_service, auth_context) -> None:
    auth_context.role = "member"

    response = await client.post(f"{BASE}/{uuid4()}/quiz", json=QUIZ_PAYLOAD)

    assert response.status_code == 403


async def test_get_quiz_hides_answer_key_from_members(client, quiz_service, auth_context) -> None:
    auth_context.role = "member"
    quiz_service.get_quiz = AsyncMock(return_value=quiz_detail())

    response = await client.get(f"{BASE}/quiz/{uuid4()}")

    assert response.status_code == 200
    answers = response.json()["data"]["questions"][0]["answers"]
    assert [a["answer_text"] for a in answers] == ["Report it", "Open the attachment"]
    assert all(a["is_correct"] is None for a in answers)


async def test_owner_sees_answer_key(client, quiz_service, auth_context) -> None:
    auth_context.role = "owner"
    quiz_service.get_quiz = AsyncMock(return_value=quiz_detail())

    response = await client.get(f"{BASE}/quiz/{uuid4()}")

    answers = response.json()["data"]["questions"][0]["answers"]
    assert [a["is_correct"] for a in answers] == [True, False]


async def test_get_missing_quiz_is_404(client, quiz_service) -> None:
    quiz_service.get_quiz = AsyncMock(return_value=None)

    response = await client.get(f"{BASE}/quiz/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_submit_accepts_camel_case_answers(client, quiz_service, auth_context) -> None:
    auth_context.role = "member"
    quiz_id, question_id, answer_id = uuid4(), uuid4(), uuid4()
    quiz_service.submit_quiz = AsyncMock(return_value=quiz_result(quiz_id=quiz_id, attempt_number=2))

    response = await client.post(
        f"{BASE}/quiz/{quiz_id}/submit",
        json={"answers": [{"questionId": str(question_id), "answerId": str(answer_id)}], "timeSpent": 6},
    )

    assert response.status_code == 200
    assert response.json()["data"]["attempt_number"] == 2
    user_id, called_quiz, answers, time_spent = quiz_service.submit_quiz.await_args.args
    assert user_id == auth_context.user_id
    assert called_quiz == quiz_id
    assert answers[0].question_id == question_id
    assert answers[0].answer_id == answer_id
    assert time_spent == 6
    assert quiz_service.submit_quiz.await_args.kwargs == {"organization_id": auth_context.organization_id}


async def test_submit_to_unknown_quiz_is_404(client, quiz_service) -> None:
    quiz_id = uuid4()
    quiz_service.submit_quiz = AsyncMock(side_effect=ResourceNotFoundError("Quiz", quiz_id))

    response = await client.post(f"{BASE}/quiz/{quiz_id}/submit", json={"answers": []})

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": f"Quiz with ID {quiz_id} not found"}


async def test_submit_requires_answers_list(client, quiz_service) -> None:
    response = await client.post(f"{BASE}/quiz/{uuid4()}/submit", json={"timeSpent": 3})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "answers"


async def test_quiz_results_for_admins(client, quiz_service, auth_context) -> None:
    quiz_id = uuid4()
    learner = ProfileSummary(id=uuid4(), first_name="Ada", last_name="Lovelace", email="ada@example.com")
    result = QuizResultWithUser(**quiz_result(quiz_id=quiz_id).model_dump(), user=learner)
    quiz_service.get_quiz_results = AsyncMock(return_value=[result])

    response = await client.get(f"{BASE}/quiz/{quiz_id}/results")

    assert response.status_code == 200
    assert response.json()["data"][0]["user"]["email"] == "ada@example.com"
    quiz_service.get_quiz_results.assert_awaited_once_with(quiz_id, auth_context.organization_id)


async def test_members_cannot_list_quiz_results(client, quiz_service, auth_context) -> None:
    auth_context.role = "member"
    quiz_service.get_quiz_results = AsyncMock()

    response = await client.get(f"{BASE}/quiz/{uuid4()}/results")

    assert response.status_code == 403
    quiz_service.get_quiz_results.assert_not_awaited()


async def test_my_results_are_scoped_to_caller(client, quiz_service, auth_context) -> None:
    auth_context.role = "member"
    quiz_id = uuid4()
    quiz_service.get_user_quiz_results = AsyncMock(
        return_value=[quiz_result(quiz_id=quiz_id, attempt_number=2), quiz_result(quiz_id=quiz_id)]
    )

    response = await client.get(f"{BASE}/quiz/{quiz_id}/my-results")

    assert [r["attempt_number"] for r in response.json()["data"]] == [2, 1]
    quiz_service.get_user_quiz_results.assert_awaited_once_with(auth_context.user_id, quiz_id)
