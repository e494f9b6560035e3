"""
Agora Backend: File SQLAlchemy Model
=====================================

What:  Metadata row for one physical post attachment.
Why:   The database is the source of truth for which attachment files are
       live. The orphan sweeper deletes any file in the post directory whose
       name has no row here.

Lifecycle:
    1. Upload: the file is written to disk, then a row is inserted with
       post_id = NULL (unassociated).
    2. Association: creating a post sets post_id (one file per post,
       enforced by the unique constraint on post_id).
    3. Deletion: the row is deleted inside the post's cascade transaction;
       the physical file is removed only after that transaction commits.
    4. Never associated: rows older than the configured age are purged by
       the sweeper together with their files.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class File(Base):
    __tablename__ = "files"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Opaque token + extension, e.g. "4b7a2d...e1.png"; unique on disk and here
    filename: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # NULL until the upload is attached to a post
    post_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("posts.id"), nullable=True, unique=True, default=None
    )

    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Detected MIME type, e.g. "image/png"
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # Stale-upload purge scans unassociated rows by age
    __table_args__ = (
        Index("idx_files_upload_date", "upload_date"),
    )

    def __repr__(self) -> str:
        return f"<File(id={self.id}, filename='{self.filename}', post_id={self.post_id})>"
