"""Business logic for formations and their files."""

import logging
import re
import time
from datetime import UTC, datetime
from pathlib import PurePath
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from src.exceptions import OperationFailedError, ResourceNotFoundError
from src.quizzes.models import Quiz, QuizQuestion
from src.storage import AbstractStorage, get_storage_provider
from src.storage.exceptions import StorageError

from .models import Formation
from .schemas import (
    FormationCreate,
    FormationDetail,
    FormationFileUpdate,
    FormationListItem,
    FormationResponse,
    FormationUpdate,
    FormationUploadResult,
    StoredFile,
)


logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "pdf": "application/pdf",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Columns that may not be cleared through a partial update
_REQUIRED_FIELDS = frozenset({"name", "type", "duration_minutes", "status"})

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def content_type_for(file_name: str) -> str:
    """Return the MIME type stored with an uploaded file, by extension."""
    extension = PurePath(file_name).suffix.lstrip(".").lower()
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


def build_storage_key(organization_id: UUID, formation_id: UUID, file_name: str) -> str:
    """Build ``formations/{org}/{formation}/{epoch_ms}_{sanitized_name}``."""
    sanitized = _UNSAFE_FILENAME_CHARS.sub("_", file_name)
    return f"formations/{organization_id}/{formation_id}/{int(time.time() * 1000)}_{sanitized}"


class FormationService:
    """Formation CRUD scoped to one organization."""

    def __init__(self, session: AsyncSession, storage: AbstractStorage | None = None) -> None:
        self.session = session
        self._storage = storage

    @property
    def storage(self) -> AbstractStorage:
        if self._storage is None:
            self._storage = get_storage_provider()
        return self._storage

    async def _get_row(self, formation_id: UUID, organization_id: UUID) -> Formation | None:
        stmt = select(Formation).where(Formation.id == formation_id, Formation.organization_id == organization_id)
        return (await self.session.execute(stmt)).scalars().first()

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("%s failed", action)
            raise OperationFailedError(action, e) from e

    async def create_formation(
        self, organization_id: UUID, data: FormationCreate, created_by: UUID
    ) -> FormationResponse:
        """Insert a formation for the organization."""
        formation = Formation(organization_id=organization_id, created_by=created_by, **data.model_dump())
        self.session.add(formation)
        await self._commit("Formation creation")
        await self.session.refresh(formation)

        logger.info("Created formation %s (%s) in organization %s", formation.id, formation.name, organization_id)
        return FormationResponse.model_validate(formation)

    async def get_formations(self, organization_id: UUID, status: str | None = None) -> list[FormationListItem]:
        """List the organization's formations, newest first."""
        stmt = (
            select(Formation)
            .options(joinedload(Formation.created_by_profile), selectinload(Formation.quizzes))
            .where(Formation.organization_id == organization_id)
            .order_by(Formation.created_at.desc())
        )
        if status:
            stmt = stmt.where(Formation.status == status)

        rows = (await self.session.execute(stmt)).scalars().all()
        return [FormationListItem.model_validate(row) for row in rows]

    async def get_formation(self, formation_id: UUID, organization_id: UUID) -> FormationDetail | None:
        """Fetch one formation with its quiz → question → answer graph."""
        stmt = (
            select(Formation)
            .options(
                joinedload(Formation.created_by_profile),
                selectinload(Formation.quizzes).selectinload(Quiz.questions).selectinload(QuizQuestion.answers),
            )
            .where(Formation.id == formation_id, Formation.organization_id == organization_id)
        )
        formation = (await self.session.execute(stmt)).scalars().first()
        if formation is None:
            return None
        return FormationDetail.model_validate(formation)

    async def update_formation(
        self, formation_id: UUID, organization_id: UUID, data: FormationUpdate
    ) -> FormationResponse | None:
        """Apply the fields present in ``data``; ``updated_at`` always advances."""
        formation = await self._get_row(formation_id, organization_id)
        if formation is None:
            return None

        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in _REQUIRED_FIELDS
        }
        for key, value in changes.items():
            setattr(formation, key, value)
        formation.updated_at = datetime.now(UTC)

        await self._commit("Formation update")
        await self.session.refresh(formation)

        logger.info("Updated formation %s: %s", formation_id, sorted(changes))
        return FormationResponse.model_validate(formation)

    async def delete_formation(self, formation_id: UUID, organization_id: UUID) -> bool:
        """Hard delete; quizzes, questions, answers, progress and results cascade in the database."""
        result = await self.session.execute(
            delete(Formation).where(Formation.id == formation_id, Formation.organization_id == organization_id)
        )
        await self._commit("Formation deletion")

        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted formation %s", formation_id)
        return deleted

    async def upload_formation_file(
        self,
        formation_id: UUID,
        organization_id: UUID,
        content: bytes,
        file_name: str,
    ) -> FormationUploadResult:
        """Store a file for the formation and record its URL, name and size.

        Raises
        ------
            ResourceNotFoundError: The formation is not in the organization
            FileUploadError: Storage refused the file
            OperationFailedError: The row update failed; the stored file is removed
        """
        formation = await self._get_row(formation_id, organization_id)
        if formation is None:
            raise ResourceNotFoundError("Formation", formation_id)

        key = build_storage_key(organization_id, formation_id, file_name)
        await self.storage.upload(content, key, content_type_for(file_name))
        url = await self.storage.get_public_url(key)

        metadata = FormationFileUpdate(file_url=url, file_name=file_name, file_size=len(content))
        for field, value in metadata.model_dump().items():
            setattr(formation, field, value)
        formation.updated_at = datetime.now(UTC)

        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception("Recording upload for formation %s failed, removing %s", formation_id, key)
            try:
                await self.storage.delete(key)
            except StorageError:
                logger.exception("Could not remove orphaned file %s", key)
            raise OperationFailedError("File upload", e) from e

        await self.session.refresh(formation)
        logger.info("Uploaded %s (%d bytes) for formation %s", key, len(content), formation_id)
        return FormationUploadResult(
            formation=FormationResponse.model_validate(formation),
            file=StoredFile(url=url, path=key),
        )
