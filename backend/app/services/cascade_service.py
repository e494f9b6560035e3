"""
Agora Backend: Cascade Deletion Service
========================================

What:  Deletes a user or a post together with everything that exists only in
       relation to it, across the database and the upload directories.
Why:   The two stores fail independently and cannot share a transaction.
       This service fixes the order of operations so that every possible
       failure leaves either the full subtree or none of it in the database,
       and at worst an orphan file on disk.
How:   Explicit cascade functions run inside ONE relational transaction;
       physical files are removed only after that transaction commits.

Ownership tree (for deletion purposes):
    User
    ├── Like      (liked by the user, on anyone's post)
    ├── Comment   (written by the user, on anyone's post)
    ├── avatar    (physical file only, referenced by users.avatar)
    └── Post
        ├── Comment   (on the post, by anyone)
        ├── Like      (on the post, by anyone)
        └── File      (row + physical attachment)

    Comments and likes reference both a user and a post, so they are reached
    by two independent triggers: by-post (delete_post_rows) and by-user
    (the first two statements of delete_user_rows). Children are always
    deleted before parents, so foreign keys are satisfied at every
    statement and no reader ever sees a comment whose post is gone.

State machine per request:
    load root ──▶ NotFoundError            (no mutation)
        │
    authorize ──▶ ForbiddenError           (posts only, no mutation)
        │
    delete rows (one transaction)
        │── error / timeout ──▶ rollback ──▶ PersistenceError
        │
    COMMIT
        │
    remove physical files, each independently
        └── failure ──▶ StorageCleanupWarning in the result (logged)

Concurrency:
    Nothing here takes an in-process lock. The transaction is the unit of
    isolation. A statement that finds its rows already deleted by a
    concurrent request is treated as "already absent", not as an error.
    Transient lock conflicts (OperationalError) are retried with tenacity;
    the whole transaction is re-run from the load step on each attempt.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings
from app.database import async_session_factory
from app.exceptions import (
    ForbiddenError,
    NotFoundError,
    PersistenceError,
    StorageCleanupWarning,
)
from app.models import Comment, Like, Post, User
from app.services import file_record_store
from app.services.file_service import FileService, file_service
from app.services.storage_paths import FileCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DeletionResult:
    """
    Outcome of a committed cascade.

    `deleted` is a snapshot of the root row taken inside the transaction.
    `cleanup_warnings` lists physical files that could not be removed; it
    never turns a committed deletion into a failure.
    """

    deleted: Dict[str, Any]
    removed_files: List[str] = field(default_factory=list)
    cleanup_warnings: List[StorageCleanupWarning] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Relational cascade steps (caller owns the transaction)
# ══════════════════════════════════════════════════════════════════════════

async def delete_post_rows(db: AsyncSession, post_id: UUID) -> Optional[str]:
    """
    Delete a post and its comments, likes and file row.

    Returns the attachment's filename (captured before its row is deleted),
    or None if the post had no attachment.
    """
    await db.execute(delete(Comment).where(Comment.post_id == post_id))
    await db.execute(delete(Like).where(Like.post_id == post_id))
    filename = await file_record_store.delete_for_post(db, post_id)

    result = await db.execute(delete(Post).where(Post.id == post_id))
    if not result.rowcount:
        logger.info("Post %s was already deleted by a concurrent request", post_id)
    return filename


async def delete_user_rows(db: AsyncSession, user_id: UUID) -> List[str]:
    """
    Delete a user's likes, comments and posts (with their subtrees), then the user.

    Returns the filenames of every attachment that belonged to the user's posts.
    """
    await db.execute(delete(Like).where(Like.user_id == user_id))
    await db.execute(delete(Comment).where(Comment.user_id == user_id))

    filenames = await file_record_store.filenames_for_user_posts(db, user_id)
    post_ids = (await db.execute(select(Post.id).where(Post.user_id == user_id))).scalars().all()
    for post_id in post_ids:
        await delete_post_rows(db, post_id)

    result = await db.execute(delete(User).where(User.id == user_id))
    if not result.rowcount:
        logger.info("User %s was already deleted by a concurrent request", user_id)
    return filenames


def _user_snapshot(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "account_name": user.account_name,
        "username": user.username,
        "email": user.email,
        "avatar": user.avatar,
    }


def _post_snapshot(post: Post) -> Dict[str, Any]:
    return {
        "id": post.id,
        "user_id": post.user_id,
        "content": post.content,
        "is_public": post.is_public,
        "created_at": post.created_at,
    }


# ══════════════════════════════════════════════════════════════════════════
# Orchestrator
# ══════════════════════════════════════════════════════════════════════════

class CascadeDeletionService:
    """
    Entry points for user and post deletion.

    Each call opens its own session and transaction from `session_factory`
    (it cannot reuse the request session: the filesystem step must run after
    the commit, and the request session commits after the handler returns).
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        files: FileService,
        transaction_timeout: float = settings.db_transaction_timeout,
        retry_max_attempts: int = settings.retry_max_attempts,
        retry_min_wait: float = settings.retry_min_wait,
        retry_max_wait: float = settings.retry_max_wait,
    ):
        self.session_factory = session_factory
        self.files = files
        self.transaction_timeout = transaction_timeout
        self.retry_max_attempts = retry_max_attempts
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait

    async def delete_user(self, user_id: UUID) -> DeletionResult:
        """
        Delete a user, everything they own, and their files.

        Raises:
            NotFoundError: no such user
            PersistenceError: the transaction failed or timed out (rolled back)
        """

        async def transaction():
            async with self.session_factory() as db, db.begin():
                user = await db.get(User, user_id)
                if user is None:
                    raise NotFoundError(resource="user", resource_id=str(user_id))
                snapshot = _user_snapshot(user)
                filenames = await delete_user_rows(db, user_id)
            return snapshot, filenames

        snapshot, filenames = await self._run_transaction(transaction, "user", user_id)
        logger.info(
            "User %s deleted with %d attachment(s); removing files",
            user_id,
            len(filenames),
        )

        result = DeletionResult(deleted=snapshot)
        if snapshot["avatar"]:
            await self._remove_file(result, FileCategory.AVATAR, snapshot["avatar"])
        for filename in filenames:
            await self._remove_file(result, FileCategory.POST_ATTACHMENT, filename)
        return result

    async def delete_post(
        self,
        post_id: UUID,
        acting_user_id: UUID,
        is_admin: bool = False,
    ) -> DeletionResult:
        """
        Delete a post with its comments, likes and attachment.

        Only the author may delete a post; `is_admin` (admin routes) skips
        the ownership check.

        Raises:
            NotFoundError: no such post
            ForbiddenError: acting user is not the author
            PersistenceError: the transaction failed or timed out (rolled back)
        """

        async def transaction():
            async with self.session_factory() as db, db.begin():
                post = await db.get(Post, post_id)
                if post is None:
                    raise NotFoundError(resource="post", resource_id=str(post_id))
                if post.user_id != acting_user_id and not is_admin:
                    raise ForbiddenError(
                        message="Only the author can delete this post.",
                        context={"post_id": str(post_id), "user_id": str(acting_user_id)},
                    )
                snapshot = _post_snapshot(post)
                filename = await delete_post_rows(db, post_id)
            return snapshot, filename

        snapshot, filename = await self._run_transaction(transaction, "post", post_id)
        snapshot["file"] = filename
        logger.info("Post %s deleted by %s", post_id, acting_user_id)

        result = DeletionResult(deleted=snapshot)
        if filename is not None:
            await self._remove_file(result, FileCategory.POST_ATTACHMENT, filename)
        return result

    # ── Internals ─────────────────────────────────────────────────────────

    async def _run_transaction(
        self,
        transaction: Callable[[], Awaitable[T]],
        resource: str,
        resource_id: UUID,
    ) -> T:
        """
        Run one cascade transaction under the timeout and retry policy.

        `transaction` must open and close its own session so every attempt
        starts from a clean, rolled-back state.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(OperationalError),
            stop=stop_after_attempt(self.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry_min_wait,
                max=self.retry_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    outcome = await asyncio.wait_for(transaction(), timeout=self.transaction_timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Deleting %s %s exceeded %.1fs; transaction rolled back",
                resource,
                resource_id,
                self.transaction_timeout,
            )
            raise PersistenceError(
                context={"resource": resource, "resource_id": str(resource_id), "reason": "timeout"},
            )
        except SQLAlchemyError as e:
            logger.error(
                "Deleting %s %s failed; transaction rolled back: %s",
                resource,
                resource_id,
                str(e),
            )
            raise PersistenceError(
                context={"resource": resource, "resource_id": str(resource_id), "error_type": type(e).__name__},
            )
        return outcome

    async def _remove_file(self, result: DeletionResult, category: FileCategory, filename: str) -> None:
        warning = await self.files.remove_file(category, filename)
        if warning is None:
            result.removed_files.append(filename)
        else:
            result.cleanup_warnings.append(warning)


# ── Singleton Instance ────────────────────────────────────────────────────
cascade_service = CascadeDeletionService(async_session_factory, file_service)
