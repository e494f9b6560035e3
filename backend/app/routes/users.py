"""
Agora Backend: User Route Handlers
===================================

Endpoints:
    POST   /api/users              register an account
    PUT    /api/users/me/avatar    upload or replace the acting user's avatar
    DELETE /api/users/me           delete the acting user's account and everything they own
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_cascade_service, get_current_user_id, get_user_service
from app.routes.posts import deletion_response
from app.schemas.common import DeletionResponse, ErrorResponse
from app.schemas.user import AvatarResponse, UserCreate, UserResponse
from app.services.cascade_service import CascadeDeletionService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "",
    status_code=201,
    response_model=UserResponse,
    responses={400: {"description": "Account name or e-mail taken", "model": ErrorResponse}},
    summary="Register an account",
)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db_session),
    users: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await users.create_user(
        db,
        account_name=body.account_name,
        email=body.email,
        username=body.username,
    )
    return UserResponse.model_validate(user)


@router.put(
    "/me/avatar",
    response_model=AvatarResponse,
    responses={
        400: {"description": "Invalid image", "model": ErrorResponse},
        404: {"description": "Unknown user", "model": ErrorResponse},
    },
    summary="Upload or replace the avatar",
)
async def replace_avatar(
    file: UploadFile = File(..., description="Avatar image (PNG or JPEG)"),
    user_id: UUID = Depends(get_current_user_id),
    users: UserService = Depends(get_user_service),
) -> AvatarResponse:
    content = await file.read()
    try:
        update = await users.replace_avatar(user_id, content, content_length=file.size)
    finally:
        await file.close()

    return AvatarResponse(
        user=UserResponse.model_validate(update.user),
        previous_avatar=update.previous,
        cleanup_warning=update.cleanup_warning.message if update.cleanup_warning else None,
    )


@router.delete(
    "/me",
    response_model=DeletionResponse,
    responses={
        404: {"description": "Unknown user", "model": ErrorResponse},
        500: {"description": "Transaction rolled back", "model": ErrorResponse},
    },
    summary="Delete the account with all posts, comments, likes and files",
)
async def delete_me(
    user_id: UUID = Depends(get_current_user_id),
    cascade: CascadeDeletionService = Depends(get_cascade_service),
) -> DeletionResponse:
    result = await cascade.delete_user(user_id)
    logger.info("Account %s deleted by its owner", user_id)
    return deletion_response(result)
