from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.organizations.schemas import ProfileSummary


ProgressStatus = Literal["not_started", "in_progress", "completed"]


class ProgressUpdate(BaseModel):
    """Payload for POST /{formation_id}/progress.

    ``started_at`` and ``completed_at`` are optional; when omitted the stored
    values are kept.
    """

    progress_percentage: float = Field(..., ge=0, le=100)
    status: ProgressStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    formation_id: UUID
    progress_percentage: float
    status: ProgressStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProgressFormationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    type: str
    duration_minutes: int
    organization_id: UUID


class UserProgressItem(ProgressResponse):
    """Caller's progress row with the formation it belongs to."""

    formation: ProgressFormationSummary | None = None


class FormationProgressItem(ProgressResponse):
    """A learner's progress row on one formation, for organization admins."""

    user: ProfileSummary | None = None
