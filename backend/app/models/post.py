"""
Agora Backend: Post SQLAlchemy Model
=====================================

What:  ORM model for the `posts` table.

Ownership:
    A post belongs to exactly one user (`user_id`, required) and owns its
    comments, likes and at most one attached file. All of those reference the
    post by `post_id`; deleting a post deletes them first (children before
    parents), see `delete_post_rows` in the cascade service.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # user_id index: every user deletion enumerates the user's posts
    __table_args__ = (
        Index("idx_posts_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id={self.user_id})>"
