"""Query builders for the blog models."""

from __future__ import annotations

from typing import Any, ClassVar

from sqlalchemy import or_

from tapscopes.models.blog import Comment, Post, User
from tapscopes.queries.base import BaseQuery


class UserQuery(BaseQuery[User]):
    model_class = User
    ordering_fields: ClassVar[dict[str, Any]] = {
        "created_at": User.created_at,
        "name": User.name,
        "email": User.email,
    }


class PostQuery(BaseQuery[Post]):
    """Query builder for Post model.

    Usage:
        posts = (
            PostQuery(db)
            .tap(OwnedBy(user_id), Published())
            .search("release notes")
            .order_by("published_at", "desc")
            .paginate(20, 0)
            .all()
        )
    """

    model_class = Post
    ordering_fields: ClassVar[dict[str, Any]] = {
        "created_at": Post.created_at,
        "updated_at": Post.updated_at,
        "published_at": Post.published_at,
        "title": Post.title,
    }

    def search(self, term: str | None) -> PostQuery:
        """Search by title or body."""
        if not term or not term.strip():
            return self
        pattern = f"%{term.strip()}%"
        return self._apply_filter(or_(Post.title.ilike(pattern), Post.body.ilike(pattern)))


class CommentQuery(BaseQuery[Comment]):
    model_class = Comment
    ordering_fields: ClassVar[dict[str, Any]] = {
        "created_at": Comment.created_at,
        "published_at": Comment.published_at,
    }

    def by_post(self, post_id: int | None) -> CommentQuery:
        """Filter by post ID."""
        if not post_id:
            return self
        return self.where("post_id", post_id)
