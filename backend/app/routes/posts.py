"""
Agora Backend: Post Route Handlers
===================================

What:  Create and delete posts; add comments and likes.
How:   Creation runs on the request session (`get_db_session`, committed
       after the handler returns). Deletion goes through the cascade service,
       which owns its transaction so the attachment file is removed only
       after the commit.

Endpoints:
    POST   /api/posts                    create (optionally attach an upload)
    DELETE /api/posts/{post_id}          delete own post with everything under it
    POST   /api/posts/{post_id}/comments
    POST   /api/posts/{post_id}/likes
    DELETE /api/posts/{post_id}/likes
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_cascade_service, get_current_user_id, get_social_service
from app.schemas.common import CleanupWarningSchema, DeletionResponse, ErrorResponse
from app.schemas.post import CommentCreate, CommentResponse, LikeResponse, PostCreate, PostResponse
from app.services.cascade_service import CascadeDeletionService, DeletionResult
from app.services.social_service import SocialService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])


def deletion_response(result: DeletionResult) -> DeletionResponse:
    return DeletionResponse(
        deleted=result.deleted,
        removed_files=result.removed_files,
        cleanup_warnings=[CleanupWarningSchema.from_warning(w) for w in result.cleanup_warnings],
    )


@router.post(
    "",
    status_code=201,
    response_model=PostResponse,
    responses={
        400: {"description": "Upload already attached elsewhere", "model": ErrorResponse},
        404: {"description": "Unknown user or upload", "model": ErrorResponse},
    },
    summary="Create a post",
)
async def create_post(
    body: PostCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    social: SocialService = Depends(get_social_service),
) -> PostResponse:
    post = await social.create_post(
        db,
        user_id=user_id,
        content=body.content,
        file_id=body.file_id,
        is_public=body.is_public,
    )
    response = PostResponse.model_validate(post)
    response.file_id = body.file_id
    return response


@router.delete(
    "/{post_id}",
    response_model=DeletionResponse,
    responses={
        403: {"description": "Not the author", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
        500: {"description": "Transaction rolled back", "model": ErrorResponse},
    },
    summary="Delete a post with its comments, likes and attachment",
)
async def delete_post(
    post_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    cascade: CascadeDeletionService = Depends(get_cascade_service),
) -> DeletionResponse:
    result = await cascade.delete_post(post_id, acting_user_id=user_id)
    return deletion_response(result)


@router.post(
    "/{post_id}/comments",
    status_code=201,
    response_model=CommentResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Comment on a post",
)
async def add_comment(
    post_id: UUID,
    body: CommentCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    social: SocialService = Depends(get_social_service),
) -> CommentResponse:
    comment = await social.add_comment(db, post_id=post_id, user_id=user_id, content=body.content)
    return CommentResponse.model_validate(comment)


@router.post(
    "/{post_id}/likes",
    status_code=201,
    response_model=LikeResponse,
    responses={
        400: {"description": "Already liked", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Like a post",
)
async def add_like(
    post_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    social: SocialService = Depends(get_social_service),
) -> LikeResponse:
    like = await social.add_like(db, post_id=post_id, user_id=user_id)
    return LikeResponse.model_validate(like)


@router.delete(
    "/{post_id}/likes",
    status_code=204,
    responses={404: {"description": "Like not found", "model": ErrorResponse}},
    summary="Remove a like",
)
async def remove_like(
    post_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    social: SocialService = Depends(get_social_service),
) -> Response:
    await social.remove_like(db, post_id=post_id, user_id=user_id)
    return Response(status_code=204)
