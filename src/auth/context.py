"""AuthContext and FastAPI dependencies for organization-scoped access.

An AuthContext pairs the authenticated user id with the organization and role
taken from ``organization_members`` and the request's AsyncSession. Routers
take ``CurrentAuth`` for member routes and ``ManagerAuth`` for admin/owner
routes.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Annotated
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy import select

from src.auth.dependencies import UserId
from src.auth.exceptions import NotOrganizationMemberError
from src.database.session import DbSession
from src.exceptions import PermissionDeniedError, ValidationError
from src.organizations.models import MANAGER_ROLES, OrganizationMember


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


logger = logging.getLogger(__name__)

ORGANIZATION_HEADER = "X-Organization-Id"


class AuthContext:
    """Request-scoped caller identity."""

    def __init__(self, user_id: UUID, organization_id: UUID, role: str, session: AsyncSession) -> None:
        self.user_id = user_id
        self.organization_id = organization_id
        self.role = role
        self.session = session

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    def __repr__(self) -> str:
        return f"AuthContext(user_id={self.user_id}, organization_id={self.organization_id}, role={self.role!r})"


def _requested_organization(request: Request) -> UUID | None:
    raw = request.headers.get(ORGANIZATION_HEADER)
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError as e:
        msg = f"{ORGANIZATION_HEADER} must be a valid UUID"
        raise ValidationError(msg, [{"field": ORGANIZATION_HEADER, "message": msg, "type": "uuid_parsing"}]) from e


async def get_auth_context(request: Request, user_id: UserId, session: DbSession) -> AuthContext:
    """Resolve the caller's membership.

    With several memberships the ``X-Organization-Id`` header picks one;
    otherwise the oldest membership is used.
    """
    stmt = select(OrganizationMember).where(OrganizationMember.user_id == user_id)
    organization_id = _requested_organization(request)
    if organization_id is not None:
        stmt = stmt.where(OrganizationMember.organization_id == organization_id)
    stmt = stmt.order_by(OrganizationMember.created_at).limit(1)

    membership = (await session.execute(stmt)).scalars().first()
    if membership is None:
        logger.warning("User %s has no membership (requested organization: %s)", user_id, organization_id)
        raise NotOrganizationMemberError

    return AuthContext(
        user_id=user_id,
        organization_id=membership.organization_id,
        role=membership.role,
        session=session,
    )


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]


def require_roles(*roles: str) -> Callable[[AuthContext], Awaitable[AuthContext]]:
    """Build a dependency that admits only callers holding one of ``roles``."""

    async def _check_role(auth: CurrentAuth) -> AuthContext:
        if auth.role not in roles:
            logger.info("Denied %s: role %r not in %s", auth.user_id, auth.role, roles)
            raise PermissionDeniedError
        return auth

    return _check_role


ManagerAuth = Annotated[AuthContext, Depends(require_roles(*MANAGER_ROLES))]


# Paths that bypass auth enforcement in the middleware
AUTH_SKIP_PATHS: list[str] = [
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
]
