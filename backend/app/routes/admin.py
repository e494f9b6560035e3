"""
Agora Backend: Admin Route Handlers
====================================

What:  Moderation deletes and on-demand storage reconciliation.
Who:   Users with `is_admin`; every route depends on `require_admin`.

Endpoints:
    DELETE /api/admin/posts/{post_id}   delete any post (no ownership check)
    DELETE /api/admin/users/{user_id}   delete any account
    POST   /api/admin/sweep             run the orphan sweeper now
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from app.dependencies import get_cascade_service, get_orphan_sweeper, require_admin
from app.routes.posts import deletion_response
from app.schemas.common import CleanupWarningSchema, DeletionResponse, ErrorResponse, SweepResponse
from app.services.cascade_service import CascadeDeletionService
from app.services.sweeper import OrphanSweeper

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    responses={403: {"description": "Not an administrator", "model": ErrorResponse}},
)


@router.delete("/posts/{post_id}", response_model=DeletionResponse, summary="Delete any post")
async def delete_post(
    post_id: UUID,
    admin_id: UUID = Depends(require_admin),
    cascade: CascadeDeletionService = Depends(get_cascade_service),
) -> DeletionResponse:
    result = await cascade.delete_post(post_id, acting_user_id=admin_id, is_admin=True)
    return deletion_response(result)


@router.delete("/users/{user_id}", response_model=DeletionResponse, summary="Delete any account")
async def delete_user(
    user_id: UUID,
    admin_id: UUID = Depends(require_admin),
    cascade: CascadeDeletionService = Depends(get_cascade_service),
) -> DeletionResponse:
    result = await cascade.delete_user(user_id)
    logger.info("Account %s deleted by admin %s", user_id, admin_id)
    return deletion_response(result)


@router.post("/sweep", response_model=SweepResponse, summary="Remove orphan files now")
async def run_sweep(
    admin_id: UUID = Depends(require_admin),
    sweeper: OrphanSweeper = Depends(get_orphan_sweeper),
) -> SweepResponse:
    report = await sweeper.run()
    return SweepResponse(
        removed_count=report.removed_count,
        removed=[{"category": c, "filename": f} for c, f in report.removed],
        purged_records=report.purged_records,
        warnings=[CleanupWarningSchema.from_warning(w) for w in report.warnings],
    )
