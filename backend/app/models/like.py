"""
Agora Backend: Like SQLAlchemy Model
=====================================

What:  A user's like on a post.

Uniqueness:
    The primary key is (user_id, post_id), so the store itself guarantees at
    most one like per user and post. A second insert fails with an
    IntegrityError, which the social service reports as a validation error.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Like(Base):
    __tablename__ = "likes"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), primary_key=True
    )
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("posts.id"), primary_key=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # The composite PK already indexes user_id first; post deletion needs post_id
    __table_args__ = (
        Index("idx_likes_post_id", "post_id"),
    )

    def __repr__(self) -> str:
        return f"<Like(user_id={self.user_id}, post_id={self.post_id})>"
