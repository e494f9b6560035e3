"""
Agora Backend: Social Service
==============================

What:  Creation paths for posts, comments and likes.
Why:   These are the rows the cascade deletion service later removes; they
       must be created with the same invariants it relies on (one file per
       post, one like per user and post, every row owned by an existing user
       and post).
How:   Functions on the caller's `AsyncSession` (the request session from
       `get_db_session`, committed after the route returns). Nothing here
       touches the disk, so nothing has to happen after the commit.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, ValidationError
from app.models import Comment, Like, Post, User
from app.services.association_service import AssociationService, association_service

logger = logging.getLogger(__name__)


class SocialService:
    def __init__(self, associations: AssociationService):
        self.associations = associations

    async def create_post(
        self,
        db: AsyncSession,
        user_id: UUID,
        content: str,
        file_id: Optional[UUID] = None,
        is_public: bool = True,
    ) -> Post:
        """
        Insert a post and, if given, attach the uploaded file to it.

        Both happen in the caller's transaction: a failed association rolls
        back the post as well.
        """
        await self._require_user(db, user_id)

        post = Post(user_id=user_id, content=content, is_public=is_public)
        db.add(post)
        await db.flush()

        if file_id is not None:
            await self.associations.associate_file_to_post(db, file_id, post.id)

        logger.info("Post %s created by %s (file: %s)", post.id, user_id, file_id)
        return post

    async def add_comment(self, db: AsyncSession, post_id: UUID, user_id: UUID, content: str) -> Comment:
        await self._require_post(db, post_id)
        await self._require_user(db, user_id)

        comment = Comment(post_id=post_id, user_id=user_id, content=content)
        db.add(comment)
        await db.flush()
        return comment

    async def add_like(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> Like:
        """
        Like a post once.

        Raises:
            NotFoundError: unknown post or user
            ValidationError: the user already likes this post
        """
        await self._require_post(db, post_id)
        await self._require_user(db, user_id)

        duplicate = ValidationError(
            message="You already like this post.",
            field="post_id",
            context={"post_id": str(post_id), "user_id": str(user_id)},
        )
        existing = await db.get(Like, (user_id, post_id))
        if existing is not None:
            raise duplicate

        like = Like(post_id=post_id, user_id=user_id)
        db.add(like)
        try:
            await db.flush()
        except IntegrityError:
            # Concurrent like won the primary key; the request rolls back
            raise duplicate
        return like

    async def remove_like(self, db: AsyncSession, post_id: UUID, user_id: UUID) -> None:
        result = await db.execute(
            delete(Like).where(Like.post_id == post_id, Like.user_id == user_id)
        )
        if not result.rowcount:
            raise NotFoundError(resource="like", resource_id=str(post_id))

    async def _require_post(self, db: AsyncSession, post_id: UUID) -> None:
        found = await db.execute(select(Post.id).where(Post.id == post_id))
        if found.scalar_one_or_none() is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))

    async def _require_user(self, db: AsyncSession, user_id: UUID) -> None:
        found = await db.execute(select(User.id).where(User.id == user_id))
        if found.scalar_one_or_none() is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))


# ── Singleton Instance ────────────────────────────────────────────────────
social_service = SocialService(association_service)
