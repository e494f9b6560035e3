"""
Agora Backend: Association Service
===================================

What:  Binds uploaded files to their owning post, and un-binds/removes them.
Why:   A file lives in two stores at once: a `files` row in the database and
       a physical file on disk. Every transition between "uploaded",
       "attached" and "deleted" must keep those two in agreement, or leave
       only a disagreement the orphan sweeper can repair.
How:   Database first, filesystem second, always.

Ordering rules:
    Upload:   write the file to disk → insert the row.
              Crash in between leaves a file with no row (an orphan the
              sweeper removes). Never a row pointing at a missing file.
    Attach:   update the row only. No disk side effect.
    Delete:   delete the row → COMMIT → remove the file.
              Crash in between again leaves only an orphan on disk.

Failure policy for the physical delete:
    The row is gone regardless. A file already absent counts as success; any
    other OS error is returned as a StorageCleanupWarning and logged, never
    raised.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import async_session_factory
from app.exceptions import NotFoundError, PersistenceError, StorageCleanupWarning, ValidationError
from app.models import File, Post
from app.services import file_record_store
from app.services.file_service import FileService, file_service
from app.services.storage_paths import FileCategory

logger = logging.getLogger(__name__)


class AssociationService:
    """
    Post attachment lifecycle: upload, associate, detach-and-delete.

    Stateless apart from its collaborators; one instance serves every request.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        files: FileService,
    ):
        self.session_factory = session_factory
        self.files = files

    async def store_post_attachment(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> File:
        """
        Validate and store an upload as an unassociated post attachment.

        Returns the committed File row (post_id = None). The client passes
        its id when creating the post.

        Raises:
            ValidationError: bad extension, size or content type
            FileStorageError: the file could not be written
            PersistenceError: the row could not be inserted (file removed again)
        """
        mime_type = self.files.validate_upload(filename, content, content_length)
        stored_name = await self.files.write_file(FileCategory.POST_ATTACHMENT, content, mime_type)

        try:
            async with self.session_factory() as db, db.begin():
                record = await file_record_store.create(db, stored_name, mime_type)
        except SQLAlchemyError as e:
            logger.error("Could not record upload %s: %s", stored_name, str(e))
            await self.files.remove_file(FileCategory.POST_ATTACHMENT, stored_name)
            raise PersistenceError(
                message="Failed to save uploaded image. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Upload recorded: file %s (%s)", record.id, mime_type)
        return record

    async def associate_file_to_post(self, db: AsyncSession, file_id: UUID, post_id: UUID) -> File:
        """
        Link a previously uploaded file to its post, inside the caller's transaction.

        Re-associating a file with the post it already belongs to is a no-op.

        Raises:
            NotFoundError: unknown file id or post id
            ValidationError: the file belongs to another post, or the post
                             already has a different attachment
        """
        record = await file_record_store.get(db, file_id)
        if record is None:
            raise NotFoundError(resource="file", resource_id=str(file_id))

        if record.post_id == post_id:
            return record

        if record.post_id is not None:
            raise ValidationError(
                message="This file is already attached to another post.",
                field="file_id",
                context={"file_id": str(file_id)},
            )

        post_exists = await db.execute(select(Post.id).where(Post.id == post_id))
        if post_exists.scalar_one_or_none() is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))

        existing = await file_record_store.get_for_post(db, post_id)
        if existing is not None:
            raise ValidationError(
                message="This post already has an attachment.",
                field="file_id",
                context={"post_id": str(post_id)},
            )

        record.post_id = post_id
        await db.flush()
        logger.info("File %s associated to post %s", file_id, post_id)
        return record

    async def detach_and_delete_file(self, file_id: UUID) -> Optional[StorageCleanupWarning]:
        """
        Delete a file row, commit, then delete its physical file.

        Returns:
            None if the physical file is gone, else the cleanup warning.
        Raises:
            NotFoundError: unknown file id (nothing is touched)
            PersistenceError: the row delete could not commit (nothing is touched)
        """
        try:
            async with self.session_factory() as db, db.begin():
                record = await file_record_store.get(db, file_id)
                if record is None:
                    raise NotFoundError(resource="file", resource_id=str(file_id))
                filename = record.filename
                removed = await file_record_store.delete(db, file_id)
        except SQLAlchemyError as e:
            logger.error("Could not delete file row %s: %s", file_id, str(e))
            raise PersistenceError(context={"file_id": str(file_id)})

        if not removed:
            logger.info("File row %s was already deleted by a concurrent request", file_id)

        # Committed: only now is it safe to touch the disk
        return await self.files.remove_file(FileCategory.POST_ATTACHMENT, filename)


# ── Singleton Instance ────────────────────────────────────────────────────
association_service = AssociationService(async_session_factory, file_service)
