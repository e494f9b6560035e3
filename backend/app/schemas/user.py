"""
Agora Backend: User Schemas
============================
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    account_name: str = Field(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_]+$")
    email: str = Field(min_length=3, max_length=255)
    username: str = Field(default="User", min_length=1, max_length=64)


class UserResponse(BaseModel):
    id: uuid.UUID
    account_name: str
    username: str
    email: str
    is_admin: bool
    avatar: Optional[str] = Field(default=None, description="Avatar filename, if any")
    created_at: datetime

    model_config = {"from_attributes": True}


class AvatarResponse(BaseModel):
    user: UserResponse
    previous_avatar: Optional[str] = None
    cleanup_warning: Optional[str] = Field(
        default=None,
        description="Set when the previous avatar file could not be removed",
    )
