"""Invokable query modifiers ("tappable scopes").

A modifier captures a few parameters when it is built and encodes one
reusable piece of query logic. Builders apply them with ``tap``:

    posts = (
        PostQuery(db)
        .tap(OwnedBy(user.id), Published())
        .order_by("published_at", "desc")
        .all()
    )

Modifiers only call the builder's clause methods. They never execute the
query and never keep a reference to the builder they were applied to, so a
single instance can be shared between unrelated queries and models.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from tapscopes.errors import InvalidModifierError
from tapscopes.logging import get_logger
from tapscopes.queries.base import COMPARISON_OPERATORS

logger = get_logger(__name__)

DEFAULT_LATEST_LIMIT = 10


def utcnow() -> datetime:
    return datetime.now(UTC)


def _require_name(value: Any, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidModifierError("invalid_column", f"{field} must be a non-empty column name.")


def _require_count(value: Any, field: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidModifierError("invalid_limit", f"{field} must be an integer.")
    if value < 0:
        raise InvalidModifierError("invalid_limit", f"{field} must not be negative.")


def _require_instant(value: Any) -> None:
    if value is not None and not isinstance(value, datetime):
        raise InvalidModifierError("invalid_instant", "at must be a datetime or None.")


class Modifier(ABC):
    """One reusable piece of query logic.

    ``apply`` receives a builder and returns the builder its clauses
    produce. Calling the modifier directly is the same as ``apply``.
    """

    @abstractmethod
    def apply(self, query):
        raise NotImplementedError

    def __call__(self, query):
        return self.apply(query)


def tap(query, *modifiers: Modifier):
    """Apply ``modifiers`` to ``query`` left to right.

    Each modifier receives the builder returned by the previous one. The
    first failure stops the sequence and is re-raised as is.
    """
    for modifier in modifiers:
        if not isinstance(modifier, Modifier):
            raise InvalidModifierError(
                "not_a_modifier",
                f"Expected a query modifier, got {type(modifier).__name__}.",
            )
    for position, modifier in enumerate(modifiers):
        logger.debug("Applying query modifier %r", modifier)
        try:
            query = modifier.apply(query)
        except Exception:
            logger.warning(
                "Query modifier %r failed; %d remaining modifier(s) not applied",
                modifier,
                len(modifiers) - position - 1,
            )
            raise
    return query


@dataclass(frozen=True)
class WhereTimestamp(Modifier):
    """Compare a timestamp column against a reference instant.

    ``at=None`` means "now", read when the modifier is applied.
    """

    column: str
    operator: str = "<="
    at: datetime | None = None

    def __post_init__(self):
        _require_name(self.column, "column")
        if self.operator not in COMPARISON_OPERATORS:
            raise InvalidModifierError("invalid_operator", f"Unsupported operator '{self.operator}'.")
        _require_instant(self.at)

    def apply(self, query):
        at = self.at if self.at is not None else utcnow()
        return query.where_compare(self.column, self.operator, at)


@dataclass(frozen=True)
class Published(Modifier):
    """Rows whose publication time is at or before ``at``."""

    at: datetime | None = None
    column: str = "published_at"

    def __post_init__(self):
        _require_instant(self.at)
        _require_name(self.column, "column")

    def apply(self, query):
        return WhereTimestamp(self.column, "<=", self.at).apply(query)


@dataclass(frozen=True)
class OwnedBy(Modifier):
    """Rows belonging to one user. Works on any model with the column."""

    user_id: Any
    column: str = "user_id"

    def __post_init__(self):
        if self.user_id is None or isinstance(self.user_id, bool):
            raise InvalidModifierError("invalid_owner", "user_id is required.")
        _require_name(self.column, "column")

    def apply(self, query):
        return query.where(self.column, self.user_id)


@dataclass(frozen=True)
class OrderBy(Modifier):
    field: str
    direction: str = "asc"

    def __post_init__(self):
        _require_name(self.field, "field")
        if self.direction not in {"asc", "desc"}:
            raise InvalidModifierError("invalid_direction", "direction must be 'asc' or 'desc'.")

    def apply(self, query):
        return query.order_by(self.field, self.direction)


@dataclass(frozen=True)
class Limit(Modifier):
    n: int

    def __post_init__(self):
        _require_count(self.n, "n")

    def apply(self, query):
        return query.limit(self.n)


@dataclass(frozen=True)
class LatestPosts(Modifier):
    """Latest published posts with their author's name and comment count.

    Clause order matters for the joined projection: select posts.*, join
    users, add the author name, add the comment count, filter, sort, limit.
    When ``published_comments`` is false every comment is counted.
    """

    limit: int = DEFAULT_LATEST_LIMIT
    published_comments: bool = True
    at: datetime | None = None

    def __post_init__(self):
        _require_count(self.limit, "limit")
        if not isinstance(self.published_comments, bool):
            raise InvalidModifierError("invalid_flag", "published_comments must be a bool.")
        _require_instant(self.at)

    def apply(self, query):
        # One instant for both the post filter and the comment count.
        published = Published(at=self.at if self.at is not None else utcnow())

        def constrain_comments(comments):
            if not self.published_comments:
                return comments
            return comments.tap(published)

        return (
            query.select()
            .join("users", "user_id", "id")
            .with_aggregate("user", "name")
            .with_count("comments", constrain_comments)
            .tap(published)
            .order_by("published_at", "desc")
            .limit(self.limit)
        )


@dataclass(frozen=True, init=False)
class Chain(Modifier):
    """Several modifiers applied in order, usable as one."""

    modifiers: tuple[Modifier, ...]

    def __init__(self, *modifiers: Modifier):
        for modifier in modifiers:
            if not isinstance(modifier, Modifier):
                raise InvalidModifierError(
                    "not_a_modifier",
                    f"Expected a query modifier, got {type(modifier).__name__}.",
                )
        object.__setattr__(self, "modifiers", tuple(modifiers))

    def apply(self, query):
        return tap(query, *self.modifiers)
