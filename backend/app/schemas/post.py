"""
Agora Backend: Post, Comment and Like Schemas
==============================================

What:  Request bodies and responses for /api/posts.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PostCreate(BaseModel):
    content: str = Field(default="", max_length=10_000)
    is_public: bool = Field(default=True)
    file_id: Optional[uuid.UUID] = Field(
        default=None,
        description="Id returned by POST /api/files/posts; attached to the new post",
    )


class PostResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    content: str
    is_public: bool
    created_at: datetime
    file_id: Optional[uuid.UUID] = None

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2_000)


class CommentResponse(BaseModel):
    id: uuid.UUID
    post_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class LikeResponse(BaseModel):
    post_id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}
