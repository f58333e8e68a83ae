from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=255)


class PostCreate(BaseModel):
    user_id: int
    title: str = Field(min_length=1, max_length=200)
    body: str | None = None
    published_at: datetime | None = None


class CommentCreate(BaseModel):
    post_id: int
    user_id: int
    body: str = Field(min_length=1)
    published_at: datetime | None = None
