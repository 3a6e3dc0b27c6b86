from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.organizations.schemas import ProfileSummary
from src.quizzes.schemas import QuizSummary, QuizWithQuestions


FormationType = Literal["video", "ppt", "pdf", "article"]
FormationStatus = Literal["draft", "active", "inactive"]


class FormationCreate(BaseModel):
    """Schema for creating a formation."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Name is required")
    type: FormationType
    description: str | None = None
    duration_minutes: int = Field(0, ge=0)
    status: FormationStatus = "draft"


class FormationUpdate(BaseModel):
    """Partial update; only fields present in the request body are written."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=255)
    type: FormationType | None = None
    description: str | None = None
    duration_minutes: int | None = Field(None, ge=0)
    status: FormationStatus | None = None


class FormationFileUpdate(BaseModel):
    """File metadata written after a successful upload."""

    file_url: str
    file_name: str
    file_size: int


class FormationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    organization_id: UUID
    name: str
    type: FormationType
    description: str | None = None
    duration_minutes: int
    status: FormationStatus
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    created_by: UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FormationListItem(FormationResponse):
    """Formation with its creator and a short quiz list."""

    created_by_profile: ProfileSummary | None = None
    quizzes: list[QuizSummary] = Field(default_factory=list)


class FormationDetail(FormationResponse):
    """Formation with the full quiz → question → answer graph."""

    created_by_profile: ProfileSummary | None = None
    quizzes: list[QuizWithQuestions] = Field(default_factory=list)

    def without_answer_key(self) -> "FormationDetail":
        return self.model_copy(update={"quizzes": [quiz.without_answer_key() for quiz in self.quizzes]})


class StoredFile(BaseModel):
    url: str
    path: str


class FormationUploadResult(BaseModel):
    """Upload outcome: updated formation and where the file landed."""

    formation: FormationResponse
    file: StoredFile
