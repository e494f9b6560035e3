"""
Agora Backend: Association Service Tests
=========================================

What:  Upload → associate → detach-and-delete, and the ordering between the
       `files` row and the physical file at each step.
"""

from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import NotFoundError, PersistenceError, StorageCleanupWarning, ValidationError
from app.models import File
from app.services.storage_paths import FileCategory


class TestStorePostAttachment:

    @pytest.mark.asyncio
    async def test_upload_writes_file_then_unassociated_row(self, association_service, seed, png_bytes):
        record = await association_service.store_post_attachment("photo.png", png_bytes, len(png_bytes))

        assert record.post_id is None
        assert record.file_type == "image/png"
        assert record.filename.endswith(".png")
        assert seed.attachment_path(record.filename).read_bytes() == png_bytes
        assert await seed.count(File, File.id == record.id) == 1

    @pytest.mark.asyncio
    async def test_invalid_upload_touches_nothing(self, association_service, file_service):
        with pytest.raises(ValidationError):
            await association_service.store_post_attachment("photo.png", b"not an image", None)

        assert await file_service.list_files(FileCategory.POST_ATTACHMENT) == []

    @pytest.mark.asyncio
    async def test_row_insert_failure_removes_written_file(self, association_service, file_service, png_bytes):
        failure = OperationalError("INSERT INTO files", {}, Exception("disk I/O error"))
        with patch("app.services.file_record_store.create", side_effect=failure):
            with pytest.raises(PersistenceError):
                await association_service.store_post_attachment("photo.png", png_bytes, None)

        assert await file_service.list_files(FileCategory.POST_ATTACHMENT) == []


class TestAssociateFileToPost:

    @pytest.mark.asyncio
    async def test_associate_sets_post_id(self, association_service, session_factory, seed):
        owner = await seed.user()
        post = await seed.post(owner)
        upload = await seed.upload("abc123.png")

        async with session_factory() as db, db.begin():
            record = await association_service.associate_file_to_post(db, upload.id, post.id)

        assert record.post_id == post.id
        assert await seed.count(File, File.post_id == post.id) == 1

    @pytest.mark.asyncio
    async def test_reassociating_same_post_is_noop(self, association_service, session_factory, seed):
        owner = await seed.user()
        post = await seed.post(owner, filename="abc123.png")
        record = await seed.file_for(post)

        async with session_factory() as db, db.begin():
            again = await association_service.associate_file_to_post(db, record.id, post.id)

        assert again.post_id == post.id

    @pytest.mark.asyncio
    async def test_file_attached_elsewhere_is_rejected(self, association_service, session_factory, seed):
        owner = await seed.user()
        first = await seed.post(owner)
        second = await seed.post(owner)
        upload = await seed.upload("abc123.png")

        async with session_factory() as db, db.begin():
            await association_service.associate_file_to_post(db, upload.id, first.id)

        with pytest.raises(ValidationError, match="another post"):
            async with session_factory() as db, db.begin():
                await association_service.associate_file_to_post(db, upload.id, second.id)

        assert await seed.count(File, File.post_id == first.id) == 1

    @pytest.mark.asyncio
    async def test_post_with_attachment_rejects_second_file(self, association_service, session_factory, seed):
        owner = await seed.user()
        post = await seed.post(owner, filename="first.png")
        upload = await seed.upload("second.png")

        with pytest.raises(ValidationError, match="already has an attachment"):
            async with session_factory() as db, db.begin():
                await association_service.associate_file_to_post(db, upload.id, post.id)

    @pytest.mark.asyncio
    async def test_unknown_file(self, association_service, session_factory, seed):
        owner = await seed.user()
        post = await seed.post(owner)

        with pytest.raises(NotFoundError) as exc_info:
            async with session_factory() as db, db.begin():
                await association_service.associate_file_to_post(db, uuid4(), post.id)
        assert exc_info.value.resource == "file"

    @pytest.mark.asyncio
    async def test_unknown_post(self, association_service, session_factory, seed):
        upload = await seed.upload("abc123.png")

        with pytest.raises(NotFoundError) as exc_info:
            async with session_factory() as db, db.begin():
                await association_service.associate_file_to_post(db, upload.id, uuid4())
        assert exc_info.value.resource == "post"


class TestDetachAndDeleteFile:

    @pytest.mark.asyncio
    async def test_removes_row_and_file(self, association_service, seed):
        upload = await seed.upload("abc123.png")

        warning = await association_service.detach_and_delete_file(upload.id)

        assert warning is None
        assert await seed.count(File) == 0
        assert not seed.attachment_path("abc123.png").exists()

    @pytest.mark.asyncio
    async def test_missing_physical_file_is_reconciled(self, association_service, seed):
        upload = await seed.upload("abc123.png")
        seed.attachment_path("abc123.png").unlink()

        assert await association_service.detach_and_delete_file(upload.id) is None
        assert await seed.count(File) == 0

    @pytest.mark.asyncio
    async def test_physical_delete_failure_keeps_row_deleted(self, association_service, seed):
        upload = await seed.upload("abc123.png")

        with patch("aiofiles.os.remove", side_effect=PermissionError("denied")):
            warning = await association_service.detach_and_delete_file(upload.id)

        assert isinstance(warning, StorageCleanupWarning)
        assert await seed.count(File) == 0
        assert seed.attachment_path("abc123.png").exists()

    @pytest.mark.asyncio
    async def test_unknown_id(self, association_service):
        with pytest.raises(NotFoundError):
            await association_service.detach_and_delete_file(uuid4())
