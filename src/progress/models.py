"""Per-user completion tracking for formations."""

from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003
from decimal import Decimal  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base


if TYPE_CHECKING:
    from src.formations.models import Formation
    from src.organizations.models import Profile


PROGRESS_STATUSES = ("not_started", "in_progress", "completed")


class UserProgress(Base):
    """One row per (user, formation); upserted on every progress report."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "formation_id"),
        CheckConstraint("progress_percentage >= 0 AND progress_percentage <= 100", name="progress_percentage"),
        CheckConstraint("status IN ('not_started', 'in_progress', 'completed')", name="status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    formation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("formations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    progress_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, server_default="0")
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="not_started")
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    formation: Mapped[Formation] = relationship("Formation")
    user: Mapped[Profile | None] = relationship("Profile")
