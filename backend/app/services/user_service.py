"""
Agora Backend: User Service
============================

What:  Account creation and avatar replacement.

Avatar replacement order:
    1. Validate and write the new file (new opaque name, never overwrites)
    2. Point users.avatar at it and COMMIT
    3. Remove the previous avatar file, best-effort

    A failure at 2 removes the new file again. A failure at 3 leaves the old
    file as an orphan for the sweeper. At no point does users.avatar name a
    file that is not on disk.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import async_session_factory
from app.exceptions import NotFoundError, PersistenceError, StorageCleanupWarning, ValidationError
from app.models import User
from app.services.file_service import FileService, file_service
from app.services.storage_paths import FileCategory

logger = logging.getLogger(__name__)


@dataclass
class AvatarUpdate:
    user: User
    previous: Optional[str] = None
    cleanup_warning: Optional[StorageCleanupWarning] = None


class UserService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        files: FileService,
    ):
        self.session_factory = session_factory
        self.files = files

    async def create_user(
        self,
        db: AsyncSession,
        account_name: str,
        email: str,
        username: str = "User",
        is_admin: bool = False,
    ) -> User:
        """
        Raises:
            ValidationError: account name or e-mail already taken
        """
        taken = await db.execute(
            select(User.id).where((User.account_name == account_name) | (User.email == email))
        )
        if taken.first() is not None:
            raise ValidationError(
                message="Account name or e-mail is already registered.",
                field="account_name",
            )

        user = User(account_name=account_name, email=email, username=username, is_admin=is_admin)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race against a concurrent registration
            raise ValidationError(
                message="Account name or e-mail is already registered.",
                field="account_name",
            )
        logger.info("User %s created (%s)", user.id, account_name)
        return user

    async def store_avatar(self, content: bytes, content_length: Optional[int] = None) -> str:
        """Validate and write an avatar image. Returns the stored filename."""
        mime_type = self.files.validate_upload(None, content, content_length)
        return await self.files.write_file(FileCategory.AVATAR, content, mime_type)

    async def replace_avatar(
        self,
        user_id: UUID,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> AvatarUpdate:
        """
        Store a new avatar for the user and drop the previous one.

        Raises:
            ValidationError: the image was rejected (nothing is touched)
            NotFoundError: unknown user (the new file is removed again)
            PersistenceError: the update could not commit (new file removed)
        """
        new_name = await self.store_avatar(content, content_length)

        try:
            async with self.session_factory() as db, db.begin():
                user = await db.get(User, user_id)
                if user is None:
                    raise NotFoundError(resource="user", resource_id=str(user_id))
                previous = user.avatar
                user.avatar = new_name
        except NotFoundError:
            await self.files.remove_file(FileCategory.AVATAR, new_name)
            raise
        except SQLAlchemyError as e:
            logger.error("Could not update avatar of user %s: %s", user_id, str(e))
            await self.files.remove_file(FileCategory.AVATAR, new_name)
            raise PersistenceError(context={"user_id": str(user_id)})

        update = AvatarUpdate(user=user, previous=previous)
        if previous and previous != new_name:
            update.cleanup_warning = await self.files.remove_file(FileCategory.AVATAR, previous)
        logger.info("Avatar of user %s replaced", user_id)
        return update


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService(async_session_factory, file_service)
