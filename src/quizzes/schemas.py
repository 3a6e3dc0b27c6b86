from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.organizations.schemas import ProfileSummary


QuestionType = Literal["multiple_choice", "true_false", "text"]


# === Authoring payloads ===


class QuizAnswerCreate(BaseModel):
    """Answer option sent when authoring a question."""

    model_config = ConfigDict(str_strip_whitespace=True)

    answer_text: str = Field(..., min_length=1, description="Answer text is required")
    is_correct: bool
    order_index: int | None = Field(None, ge=0)


class QuizQuestionCreate(BaseModel):
    """Question with its answer options."""

    model_config = ConfigDict(str_strip_whitespace=True)

    question_text: str = Field(..., min_length=1, description="Question text is required")
    question_type: QuestionType = "multiple_choice"
    points: int = Field(1, ge=1)
    order_index: int | None = Field(None, ge=0)
    answers: list[QuizAnswerCreate] = Field(..., min_length=1, description="At least one answer is required")


class QuizCreate(BaseModel):
    """Schema for creating a quiz together with its questions and answers."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    passing_score: int = Field(70, ge=0, le=100)
    max_attempts: int = Field(3, ge=1)
    time_limit_minutes: int | None = Field(None, ge=1)
    questions: list[QuizQuestionCreate] = Field(..., min_length=1, description="At least one question is required")


# === Submission payloads ===


class SubmittedAnswer(BaseModel):
    """One answer of a submission, keyed by question."""

    model_config = ConfigDict(populate_by_name=True)

    question_id: UUID = Field(..., alias="questionId")
    answer_id: UUID | None = Field(None, alias="answerId")
    text_answer: str | None = Field(None, alias="textAnswer")


class QuizSubmission(BaseModel):
    """Schema for submitting a quiz attempt."""

    model_config = ConfigDict(populate_by_name=True)

    answers: list[SubmittedAnswer]
    time_spent: float | None = Field(None, ge=0, alias="timeSpent", description="Minutes spent on the attempt")


# === Responses ===


class FormationSummary(BaseModel):
    """Parent formation embedded in a quiz payload."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    organization_id: UUID


class QuizAnswerResponse(BaseModel):
    """Answer option; is_correct is None when the answer key is hidden."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    answer_text: str
    is_correct: bool | None = None
    order_index: int


class QuizQuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    question_text: str
    question_type: QuestionType
    points: int
    order_index: int
    answers: list[QuizAnswerResponse] = Field(default_factory=list)


class QuizSummary(BaseModel):
    """Quiz line shown in formation listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    passing_score: int


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    formation_id: UUID
    title: str
    description: str | None = None
    passing_score: int
    max_attempts: int
    time_limit_minutes: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class QuizWithQuestions(QuizResponse):
    """Quiz with its ordered questions and answers."""

    questions: list[QuizQuestionResponse] = Field(default_factory=list)

    def without_answer_key(self) -> "QuizWithQuestions":
        """Return a copy with every is_correct flag removed."""
        questions = [
            question.model_copy(
                update={"answers": [answer.model_copy(update={"is_correct": None}) for answer in question.answers]}
            )
            for question in self.questions
        ]
        return self.model_copy(update={"questions": questions})


class QuizDetail(QuizWithQuestions):
    """Full quiz graph returned by GET /quiz/{quiz_id}."""

    formation: FormationSummary | None = None


class QuizResultResponse(BaseModel):
    """One stored attempt."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    quiz_id: UUID
    score: float
    total_questions: int
    correct_answers: int
    time_taken_minutes: int | None = None
    passed: bool
    attempt_number: int
    answers_data: list[dict[str, Any]] | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None


class QuizResultWithUser(QuizResultResponse):
    """Attempt with the learner's profile, for organization admins."""

    user: ProfileSummary | None = None
