from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ProfileSummary(BaseModel):
    """Creator/learner identity embedded in formation, progress and result payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
