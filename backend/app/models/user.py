"""
Agora Backend: User SQLAlchemy Model
=====================================

What:  ORM model for the `users` table; the root of the deletion tree.
Who:   Loaded by the cascade orchestrator, UserService and the sweeper.

Avatar:
    `avatar` is a bare filename inside the avatar directory, NOT a foreign
    key. There is no avatar metadata table; the sweeper treats every
    non-null `users.avatar` value as a live reference.

Deletion:
    Removing a user removes their likes, comments, posts (and everything the
    posts own) and the avatar file. That cascade is performed explicitly by
    `CascadeDeletionService.delete_user`; the schema itself declares no
    ON DELETE CASCADE and the model declares no ORM cascades.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Unique handle used for mentions and profile URLs
    account_name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    username: Mapped[str] = mapped_column(String(64), nullable=False, default="User")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    is_admin: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # Opaque filename under <upload_root>/<avatar_dir>; None = no avatar
    avatar: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, account_name='{self.account_name}')>"
