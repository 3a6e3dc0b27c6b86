from __future__ import annotations

import uuid
from datetime import datetime  # noqa: TC003
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base


if TYPE_CHECKING:
    from src.organizations.models import Profile
    from src.quizzes.models import Quiz


FORMATION_TYPES = ("video", "ppt", "pdf", "article")
FORMATION_STATUSES = ("draft", "active", "inactive")


class Formation(Base):
    """Training unit (video, slides, pdf or article) owned by an organization."""

    __tablename__ = "formations"
    __table_args__ = (
        CheckConstraint("type IN ('video', 'ppt', 'pdf', 'article')", name="type"),
        CheckConstraint("status IN ('draft', 'active', 'inactive')", name="status"),
        CheckConstraint("duration_minutes >= 0", name="duration_minutes"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", server_default="draft", index=True)

    # Uploaded file, stored in the formations bucket
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_profile: Mapped[Profile | None] = relationship("Profile")
    # Children are removed by ON DELETE CASCADE in the database
    quizzes: Mapped[list[Quiz]] = relationship(
        "Quiz",
        back_populates="formation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Quiz.created_at",
    )
