"""Business logic for formation progress tracking."""

import logging
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from src.exceptions import OperationFailedError, ResourceNotFoundError
from src.formations.models import Formation

from .models import UserProgress
from .queries import UPSERT_PROGRESS_QUERY
from .schemas import FormationProgressItem, ProgressResponse, ProgressUpdate, UserProgressItem


logger = logging.getLogger(__name__)


class ProgressService:
    """Service for reading and writing per-user formation progress."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _ensure_formation(self, formation_id: UUID, organization_id: UUID | None) -> None:
        stmt = select(Formation.id).where(Formation.id == formation_id)
        if organization_id is not None:
            stmt = stmt.where(Formation.organization_id == organization_id)
        if await self.session.scalar(stmt) is None:
            raise ResourceNotFoundError("Formation", formation_id)

    async def update_progress(
        self,
        user_id: UUID,
        formation_id: UUID,
        progress: ProgressUpdate,
        organization_id: UUID | None = None,
    ) -> ProgressResponse:
        """Create or overwrite the caller's progress on a formation.

        Percentage and status are last-write-wins; omitted timestamps keep the
        stored values.
        """
        await self._ensure_formation(formation_id, organization_id)

        try:
            result = await self.session.execute(
                text(UPSERT_PROGRESS_QUERY),
                {
                    "user_id": user_id,
                    "formation_id": formation_id,
                    "progress_percentage": progress.progress_percentage,
                    "status": progress.status,
                    "started_at": progress.started_at,
                    "completed_at": progress.completed_at,
                },
            )
            row = result.mappings().one()
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Failed to update progress for user %s on formation %s", user_id, formation_id)
            raise OperationFailedError("Progress update", e) from e

        logger.info(
            "Updated progress for user %s, formation %s: %s%% (%s)",
            user_id,
            formation_id,
            progress.progress_percentage,
            progress.status,
        )
        return ProgressResponse.model_validate(dict(row))

    async def get_user_progress(self, user_id: UUID, organization_id: UUID | None = None) -> list[UserProgressItem]:
        """Return the caller's progress rows, most recently accessed first."""
        stmt = (
            select(UserProgress)
            .join(UserProgress.formation)
            .options(joinedload(UserProgress.formation))
            .where(UserProgress.user_id == user_id)
            .order_by(UserProgress.last_accessed_at.desc())
        )
        if organization_id is not None:
            stmt = stmt.where(Formation.organization_id == organization_id)

        rows = (await self.session.execute(stmt)).scalars().all()
        return [UserProgressItem.model_validate(row) for row in rows]

    async def get_formation_progress(
        self, formation_id: UUID, organization_id: UUID | None = None
    ) -> list[FormationProgressItem]:
        """Return every learner's progress on a formation, highest percentage first."""
        await self._ensure_formation(formation_id, organization_id)

        stmt = (
            select(UserProgress)
            .options(joinedload(UserProgress.user))
            .where(UserProgress.formation_id == formation_id)
            .order_by(UserProgress.progress_percentage.desc())
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        return [FormationProgressItem.model_validate(row) for row in rows]
