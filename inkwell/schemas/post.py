from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PostBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    markdown: str = Field(..., min_length=1)


class PostCreate(PostBase):
    pass


class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    markdown: Optional[str] = Field(None, min_length=1)


class Post(PostBase):
    id: UUID
    slug: str
    content: str
    excerpt: str
    view_count: int
    is_published: bool
    author_id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SuccessMessage(BaseModel):
    success: str


class ErrorMessage(BaseModel):
    error: str
