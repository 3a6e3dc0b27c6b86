"""Business logic for quiz authoring, submission and results."""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from src.exceptions import OperationFailedError, ResourceNotFoundError
from src.formations.models import Formation

from .models import Quiz, QuizAnswer, QuizQuestion, UserQuizResult
from .schemas import (
    QuizAnswerCreate,
    QuizAnswerResponse,
    QuizCreate,
    QuizDetail,
    QuizQuestionCreate,
    QuizQuestionResponse,
    QuizResultResponse,
    QuizResultWithUser,
    SubmittedAnswer,
)
from .scoring import grade_submission


logger = logging.getLogger(__name__)

# Serializes attempt numbering per (user, quiz) for the rest of the transaction
ATTEMPT_LOCK_QUERY = "SELECT pg_advisory_xact_lock(hashtextextended(:lock_key, 0))"


def whole_minutes(time_spent: float) -> int:
    """Round minutes half up, so 2.5 is stored as 3."""
    return int(Decimal(str(time_spent)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def build_answers(answers: Sequence[QuizAnswerCreate]) -> list[QuizAnswer]:
    """Build answer rows; order_index falls back to the list position."""
    return [
        QuizAnswer(
            id=uuid4(),
            answer_text=answer.answer_text,
            is_correct=answer.is_correct,
            order_index=index if answer.order_index is None else answer.order_index,
        )
        for index, answer in enumerate(answers)
    ]


def build_questions(questions: Sequence[QuizQuestionCreate]) -> list[QuizQuestion]:
    """Build question rows with their answers attached."""
    return [
        QuizQuestion(
            id=uuid4(),
            question_text=question.question_text,
            question_type=question.question_type,
            points=question.points,
            order_index=index if question.order_index is None else question.order_index,
            answers=build_answers(question.answers),
        )
        for index, question in enumerate(questions)
    ]


class QuizService:
    """Quizzes of formations and the attempts made on them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("%s failed", action)
            raise OperationFailedError(action, e) from e

    async def _load_quiz(self, quiz_id: UUID, organization_id: UUID | None = None) -> Quiz | None:
        stmt = (
            select(Quiz)
            .options(
                joinedload(Quiz.formation),
                selectinload(Quiz.questions).selectinload(QuizQuestion.answers),
            )
            .where(Quiz.id == quiz_id)
            .execution_options(populate_existing=True)
        )
        if organization_id is not None:
            stmt = stmt.where(Quiz.formation.has(Formation.organization_id == organization_id))
        return (await self.session.execute(stmt)).scalars().first()

    async def create_quiz(self, formation_id: UUID, organization_id: UUID, data: QuizCreate) -> QuizDetail | None:
        """Create a quiz with all its questions and answers in one transaction.

        Returns None when the formation is not in the organization. Nothing is
        written if any row fails.
        """
        formation_exists = await self.session.scalar(
            select(Formation.id).where(Formation.id == formation_id, Formation.organization_id == organization_id)
        )
        if formation_exists is None:
            return None

        quiz = Quiz(
            id=uuid4(),
            formation_id=formation_id,
            title=data.title,
            description=data.description,
            passing_score=data.passing_score,
            max_attempts=data.max_attempts,
            time_limit_minutes=data.time_limit_minutes,
            questions=build_questions(data.questions),
        )
        self.session.add(quiz)
        await self._commit("Quiz creation")

        logger.info(
            "Created quiz %s on formation %s with %d question(s)", quiz.id, formation_id, len(data.questions)
        )
        return await self.get_quiz(quiz.id, organization_id)

    async def add_questions(self, quiz_id: UUID, questions: Sequence[QuizQuestionCreate]) -> list[QuizQuestionResponse]:
        """Append questions (with their answers) to an existing quiz."""
        rows = build_questions(questions)
        for row in rows:
            row.quiz_id = quiz_id
        self.session.add_all(rows)
        await self._commit("Adding questions")
        return [QuizQuestionResponse.model_validate(row) for row in rows]

    async def add_answers(self, question_id: UUID, answers: Sequence[QuizAnswerCreate]) -> list[QuizAnswerResponse]:
        """Append answer options to an existing question."""
        rows = build_answers(answers)
        for row in rows:
            row.question_id = question_id
        self.session.add_all(rows)
        await self._commit("Adding answers")
        return [QuizAnswerResponse.model_validate(row) for row in rows]

    async def get_quiz(self, quiz_id: UUID, organization_id: UUID | None = None) -> QuizDetail | None:
        """Fetch the quiz graph, questions and answers in order_index order."""
        quiz = await self._load_quiz(quiz_id, organization_id)
        if quiz is None:
            return None
        return QuizDetail.model_validate(quiz)

    async def submit_quiz(
        self,
        user_id: UUID,
        quiz_id: UUID,
        answers: Sequence[SubmittedAnswer],
        time_spent: float | None = None,
        organization_id: UUID | None = None,
    ) -> QuizResultResponse:
        """Grade a submission and store it as the caller's next attempt.

        Raises
        ------
            ResourceNotFoundError: Unknown quiz (or one outside the organization)
            OperationFailedError: The attempt could not be stored
        """
        quiz = await self._load_quiz(quiz_id, organization_id)
        if quiz is None:
            raise ResourceNotFoundError("Quiz", quiz_id)

        grade = grade_submission(quiz, answers)

        try:
            await self.session.execute(text(ATTEMPT_LOCK_QUERY), {"lock_key": f"quiz_attempt:{user_id}:{quiz_id}"})
            previous = await self.session.scalar(
                select(func.max(UserQuizResult.attempt_number)).where(
                    UserQuizResult.user_id == user_id,
                    UserQuizResult.quiz_id == quiz_id,
                )
            )
            now = datetime.now(UTC)
            result = UserQuizResult(
                id=uuid4(),
                user_id=user_id,
                quiz_id=quiz_id,
                score=grade.score,
                total_questions=grade.total_questions,
                correct_answers=grade.correct_answers,
                time_taken_minutes=None if time_spent is None else whole_minutes(time_spent),
                passed=grade.passed,
                attempt_number=(previous or 0) + 1,
                answers_data=[
                    answer.model_dump(mode="json", by_alias=True, exclude_unset=True) for answer in answers
                ],
                completed_at=now,
                created_at=now,
            )
            self.session.add(result)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Storing attempt for user %s on quiz %s failed", user_id, quiz_id)
            raise OperationFailedError("Quiz submission", e) from e

        logger.info(
            "User %s attempt %d on quiz %s: %s%% (%s)",
            user_id,
            result.attempt_number,
            quiz_id,
            grade.score,
            "passed" if grade.passed else "failed",
        )
        return QuizResultResponse.model_validate(result)

    async def get_user_quiz_results(self, user_id: UUID, quiz_id: UUID) -> list[QuizResultResponse]:
        """Return the caller's attempts on a quiz, newest first."""
        stmt = (
            select(UserQuizResult)
            .where(UserQuizResult.user_id == user_id, UserQuizResult.quiz_id == quiz_id)
            .order_by(UserQuizResult.completed_at.desc())
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [QuizResultResponse.model_validate(row) for row in rows]

    async def get_quiz_results(self, quiz_id: UUID, organization_id: UUID | None = None) -> list[QuizResultWithUser]:
        """Return every attempt on a quiz with the learner's profile, newest first."""
        stmt = (
            select(UserQuizResult)
            .options(joinedload(UserQuizResult.user))
            .where(UserQuizResult.quiz_id == quiz_id)
            .order_by(UserQuizResult.completed_at.desc())
        )
        if organization_id is not None:
            visible = select(Quiz.id).join(Quiz.formation).where(Formation.organization_id == organization_id)
            stmt = stmt.where(UserQuizResult.quiz_id.in_(visible))

        rows = (await self.session.execute(stmt)).scalars().all()
        return [QuizResultWithUser.model_validate(row) for row in rows]
