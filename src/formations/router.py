"""Formation API endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from src.auth import CurrentAuth, ManagerAuth
from src.config.settings import get_settings
from src.core.responses import ApiResponse
from src.exceptions import ResourceNotFoundError
from src.middleware.security import upload_route_limit

from .schemas import (
    FormationCreate,
    FormationDetail,
    FormationListItem,
    FormationResponse,
    FormationStatus,
    FormationUpdate,
    FormationUploadResult,
)
from .service import FormationService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/formations", tags=["formations"])

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        "video/mp4",
        "video/x-msvideo",
        "video/quicktime",
        "video/x-ms-wmv",
    }
)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_formation(data: FormationCreate, auth: ManagerAuth) -> ApiResponse[FormationResponse]:
    """Create a formation in the caller's organization."""
    service = FormationService(auth.session)
    formation = await service.create_formation(auth.organization_id, data, auth.user_id)
    return ApiResponse(data=formation, message="Formation created successfully")


@router.get("")
async def list_formations(
    auth: CurrentAuth,
    status_filter: Annotated[FormationStatus | None, Query(alias="status")] = None,
) -> ApiResponse[list[FormationListItem]]:
    """List the organization's formations, optionally filtered by status."""
    service = FormationService(auth.session)
    formations = await service.get_formations(auth.organization_id, status_filter)
    return ApiResponse(data=formations, message="Formations retrieved successfully")


@router.get("/{formation_id}")
async def get_formation(formation_id: UUID, auth: CurrentAuth) -> ApiResponse[FormationDetail]:
    """Get a formation with its quizzes, questions and answers.

    Learners do not see which answers are correct.
    """
    service = FormationService(auth.session)
    formation = await service.get_formation(formation_id, auth.organization_id)
    if formation is None:
        raise ResourceNotFoundError("Formation", formation_id)

    if not auth.is_manager:
        formation = formation.without_answer_key()
    return ApiResponse(data=formation, message="Formation retrieved successfully")


@router.put("/{formation_id}")
async def update_formation(
    formation_id: UUID, data: FormationUpdate, auth: ManagerAuth
) -> ApiResponse[FormationResponse]:
    service = FormationService(auth.session)
    formation = await service.update_formation(formation_id, auth.organization_id, data)
    if formation is None:
        raise ResourceNotFoundError("Formation", formation_id)
    return ApiResponse(data=formation, message="Formation updated successfully")


@router.delete("/{formation_id}")
async def delete_formation(formation_id: UUID, auth: ManagerAuth) -> ApiResponse[None]:
    service = FormationService(auth.session)
    if not await service.delete_formation(formation_id, auth.organization_id):
        raise ResourceNotFoundError("Formation", formation_id)
    return ApiResponse(message="Formation deleted successfully")


@router.post("/{formation_id}/upload", dependencies=[Depends(upload_route_limit)])
async def upload_formation_file(
    formation_id: UUID,
    auth: ManagerAuth,
    file: Annotated[UploadFile, File(description="Formation file (PDF, PPT, video)")],
) -> ApiResponse[FormationUploadResult]:
    """Upload the formation's file and record its public URL."""
    if file.content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed: {file.content_type}",
        )

    max_size = get_settings().MAX_UPLOAD_SIZE
    content = await file.read(max_size + 1)
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_CONTENT_TOO_LARGE,
            detail=f"File exceeds the maximum size of {max_size // (1024 * 1024)}MB",
        )

    file_name = file.filename or "upload"
    logger.info("Uploading %s (%d bytes) for formation %s", file_name, len(content), formation_id)

    service = FormationService(auth.session)
    result = await service.upload_formation_file(formation_id, auth.organization_id, content, file_name)
    return ApiResponse(data=result, message="File uploaded successfully")
