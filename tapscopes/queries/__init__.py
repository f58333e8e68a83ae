"""Query builders and the modifiers applied to them.

Usage:
    from tapscopes.queries import LatestPosts, PostQuery

    rows = PostQuery(db).tap(LatestPosts(limit=5, published_comments=False)).all()
    for row in rows:
        print(row.Post.title, row.user_name, row.comments_count)
"""

from tapscopes.queries.base import BaseQuery, RelatedQuery
from tapscopes.queries.blog import CommentQuery, PostQuery, UserQuery
from tapscopes.queries.modifiers import (
    Chain,
    LatestPosts,
    Limit,
    Modifier,
    OrderBy,
    OwnedBy,
    Published,
    WhereTimestamp,
    tap,
)

__all__ = [
    "BaseQuery",
    "RelatedQuery",
    "UserQuery",
    "PostQuery",
    "CommentQuery",
    "Modifier",
    "WhereTimestamp",
    "Published",
    "OwnedBy",
    "OrderBy",
    "Limit",
    "LatestPosts",
    "Chain",
    "tap",
]
