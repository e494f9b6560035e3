"""
Agora Backend: File Record Store
=================================

What:  CRUD over `files` metadata rows.
How:   Plain async functions taking the caller's `AsyncSession`. None of them
       commits: the caller owns the transaction, so a file row can be created,
       re-linked or deleted as one step of a larger unit of work.
Who:   Association service, cascade deletion service, orphan sweeper.
"""

from datetime import datetime
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import delete as sql_delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import File, Post


async def create(db: AsyncSession, filename: str, file_type: str) -> File:
    """Insert an unassociated file row and flush to assign its id."""
    record = File(filename=filename, file_type=file_type, post_id=None)
    db.add(record)
    await db.flush()
    return record


async def get(db: AsyncSession, file_id: UUID) -> Optional[File]:
    result = await db.execute(select(File).where(File.id == file_id))
    return result.scalar_one_or_none()


async def get_for_post(db: AsyncSession, post_id: UUID) -> Optional[File]:
    result = await db.execute(select(File).where(File.post_id == post_id))
    return result.scalar_one_or_none()


async def delete(db: AsyncSession, file_id: UUID) -> int:
    """
    Delete one row by id.

    Returns the number of rows removed; 0 means another transaction removed
    it first, which callers treat as already done.
    """
    result = await db.execute(_delete_stmt().where(File.id == file_id))
    return result.rowcount or 0


async def delete_for_post(db: AsyncSession, post_id: UUID) -> Optional[str]:
    """
    Delete the post's attachment row, returning its filename.

    The filename is captured BEFORE the delete so the physical file can be
    removed after the enclosing transaction commits.
    """
    result = await db.execute(select(File.filename).where(File.post_id == post_id))
    filename = result.scalar_one_or_none()
    if filename is not None:
        await db.execute(_delete_stmt().where(File.post_id == post_id))
    return filename


async def filenames_for_user_posts(db: AsyncSession, user_id: UUID) -> List[str]:
    result = await db.execute(
        select(File.filename).join(Post, File.post_id == Post.id).where(Post.user_id == user_id)
    )
    return list(result.scalars().all())


async def live_filenames(db: AsyncSession) -> Set[str]:
    """Every filename the database still references (associated or not)."""
    result = await db.execute(select(File.filename))
    return set(result.scalars().all())


async def list_unassociated_before(db: AsyncSession, cutoff: datetime) -> List[File]:
    """Uploads never attached to a post and older than `cutoff`."""
    result = await db.execute(
        select(File)
        .where(File.post_id.is_(None))
        .where(File.upload_date < cutoff)
        .order_by(File.upload_date)
    )
    return list(result.scalars().all())


def _delete_stmt():
    # Bulk DELETE without ORM session synchronization; the session never
    # holds these rows afterwards
    return sql_delete(File).execution_options(synchronize_session=False)
