"""
Agora Backend: Route Dependencies
==================================

What:  FastAPI dependencies for the acting identity and for each service.
Why:   Routes receive services through `Depends(...)` so tests can swap them
       with `app.dependency_overrides` (temporary upload root, test database)
       without patching module globals.

Identity:
    Authentication is an external collaborator. It hands the backend the
    acting user's id in the `X-User-ID` header; `get_current_user_id` is the
    only place that reads it.
"""

from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import async_session_factory
from app.exceptions import ForbiddenError, UnauthorizedError
from app.models import User
from app.services.association_service import AssociationService, association_service
from app.services.cascade_service import CascadeDeletionService, cascade_service
from app.services.file_service import FileService, file_service
from app.services.social_service import SocialService, social_service
from app.services.sweeper import OrphanSweeper, orphan_sweeper
from app.services.user_service import UserService, user_service


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> UUID:
    if not x_user_id:
        raise UnauthorizedError(message="Missing X-User-ID header")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise UnauthorizedError(message="Malformed X-User-ID header")


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


async def require_admin(
    user_id: UUID = Depends(get_current_user_id),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> UUID:
    """Acting user must exist and carry the admin flag."""
    # Short-lived session: closed before the handler opens its own transaction
    async with session_factory() as db:
        user = await db.get(User, user_id)
    if user is None or not user.is_admin:
        raise ForbiddenError(
            message="Administrator privileges required.",
            context={"user_id": str(user_id)},
        )
    return user_id


# ── Service Providers ─────────────────────────────────────────────────────

def get_file_service() -> FileService:
    return file_service


def get_association_service() -> AssociationService:
    return association_service


def get_cascade_service() -> CascadeDeletionService:
    return cascade_service


def get_social_service() -> SocialService:
    return social_service


def get_user_service() -> UserService:
    return user_service


def get_orphan_sweeper() -> OrphanSweeper:
    return orphan_sweeper
