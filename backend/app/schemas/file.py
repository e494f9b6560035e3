"""
Agora Backend: Upload Schemas
==============================
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FileRecordResponse(BaseModel):
    """
    Returned by POST /api/files/posts.

    The upload is unassociated until a post is created with this `id` as
    its `file_id`; unassociated uploads are purged after a configured age.
    """

    id: uuid.UUID = Field(description="Pass as file_id when creating the post")
    filename: str = Field(description="Stored (opaque) filename")
    file_type: str = Field(description="Detected MIME type")
    post_id: Optional[uuid.UUID] = None
    upload_date: datetime

    model_config = {"from_attributes": True}
