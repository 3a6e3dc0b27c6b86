"""Formation progress API endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter

from src.auth import CurrentAuth, ManagerAuth
from src.core.responses import ApiResponse

from .schemas import FormationProgressItem, ProgressResponse, ProgressUpdate, UserProgressItem
from .service import ProgressService


logger = logging.getLogger(__name__)

# Shares the formations prefix; registered before the formations router so
# "/progress" is not captured by "/{formation_id}"
router = APIRouter(prefix="/api/v1/formations", tags=["progress"])


@router.get("/progress")
async def get_my_progress(auth: CurrentAuth) -> ApiResponse[list[UserProgressItem]]:
    """Caller's progress across the organization's formations."""
    service = ProgressService(auth.session)
    progress = await service.get_user_progress(auth.user_id, auth.organization_id)
    return ApiResponse(data=progress, message="Progress retrieved successfully")


@router.post("/{formation_id}/progress")
async def update_progress(formation_id: UUID, progress: ProgressUpdate, auth: CurrentAuth) -> ApiResponse[ProgressResponse]:
    """Record the caller's progress on a formation."""
    service = ProgressService(auth.session)
    result = await service.update_progress(auth.user_id, formation_id, progress, auth.organization_id)
    return ApiResponse(data=result, message="Progress updated successfully")


@router.get("/{formation_id}/progress")
async def get_formation_progress(formation_id: UUID, auth: ManagerAuth) -> ApiResponse[list[FormationProgressItem]]:
    """Every learner's progress on a formation, for admins and owners."""
    service = ProgressService(auth.session)
    progress = await service.get_formation_progress(formation_id, auth.organization_id)
    return ApiResponse(data=progress, message="Formation progress retrieved successfully")
