"""Quiz API endpoints: authoring, taking and reviewing quizzes."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from src.auth import CurrentAuth, ManagerAuth
from src.core.responses import ApiResponse
from src.exceptions import ResourceNotFoundError
from src.middleware.security import quiz_submit_limit

from .schemas import QuizCreate, QuizDetail, QuizResultResponse, QuizResultWithUser, QuizSubmission
from .service import QuizService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/formations", tags=["quizzes"])


@router.post("/{formation_id}/quiz", status_code=status.HTTP_201_CREATED)
async def create_quiz(formation_id: UUID, data: QuizCreate, auth: ManagerAuth) -> ApiResponse[QuizDetail]:
    """Create a quiz with its questions and answers."""
    service = QuizService(auth.session)
    quiz = await service.create_quiz(formation_id, auth.organization_id, data)
    if quiz is None:
        raise ResourceNotFoundError("Formation", formation_id)
    return ApiResponse(data=quiz, message="Quiz created successfully")


@router.get("/quiz/{quiz_id}")
async def get_quiz(quiz_id: UUID, auth: CurrentAuth) -> ApiResponse[QuizDetail]:
    """Get a quiz; the answer key is only included for admins and owners."""
    service = QuizService(auth.session)
    quiz = await service.get_quiz(quiz_id, auth.organization_id)
    if quiz is None:
        raise ResourceNotFoundError("Quiz", quiz_id)

    if not auth.is_manager:
        quiz = quiz.without_answer_key()
    return ApiResponse(data=quiz, message="Quiz retrieved successfully")


@router.post("/quiz/{quiz_id}/submit", dependencies=[Depends(quiz_submit_limit)])
async def submit_quiz(quiz_id: UUID, submission: QuizSubmission, auth: CurrentAuth) -> ApiResponse[QuizResultResponse]:
    """Grade the caller's answers and store the attempt."""
    service = QuizService(auth.session)
    result = await service.submit_quiz(
        auth.user_id,
        quiz_id,
        submission.answers,
        submission.time_spent,
        organization_id=auth.organization_id,
    )
    return ApiResponse(data=result, message="Quiz submitted successfully")


@router.get("/quiz/{quiz_id}/results")
async def get_quiz_results(quiz_id: UUID, auth: ManagerAuth) -> ApiResponse[list[QuizResultWithUser]]:
    """All attempts on a quiz, for admins and owners."""
    service = QuizService(auth.session)
    results = await service.get_quiz_results(quiz_id, auth.organization_id)
    return ApiResponse(data=results, message="Quiz results retrieved successfully")


@router.get("/quiz/{quiz_id}/my-results")
async def get_my_quiz_results(quiz_id: UUID, auth: CurrentAuth) -> ApiResponse[list[QuizResultResponse]]:
    service = QuizService(auth.session)
    results = await service.get_user_quiz_results(auth.user_id, quiz_id)
    return ApiResponse(data=results, message="Quiz results retrieved successfully")
