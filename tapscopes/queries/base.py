"""Base query builder class.

Provides the clause surface that query modifiers are written against,
plus the ``tap`` operation that applies modifiers in order.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Self, TypeVar

from sqlalchemy import asc, desc, func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Query

from tapscopes.db import Base
from tapscopes.errors import SchemaMismatchError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from sqlalchemy.sql import Select

    from tapscopes.queries.modifiers import Modifier

T = TypeVar("T")

COMPARISON_OPERATORS = frozenset({"=", "!=", "<", "<=", ">", ">="})


def compare(column, operator: str, value: Any):
    if operator == "=":
        return column == value
    if operator == "!=":
        return column != value
    if operator == "<":
        return column < value
    if operator == "<=":
        return column <= value
    if operator == ">":
        return column > value
    if operator == ">=":
        return column >= value
    raise ValueError(f"Unsupported operator '{operator}'.")


def model_for_table(table: str | type) -> type:
    """Return the mapped class for a table name (or the class itself)."""
    if isinstance(table, type):
        return table
    for mapper in Base.registry.mappers:
        local_table = mapper.local_table
        if local_table is not None and getattr(local_table, "name", None) == table:
            return mapper.class_
    raise SchemaMismatchError("unknown_table", f"Table '{table}' is not mapped.")


def column_on(model: type, field: str):
    if field not in sa_inspect(model).column_attrs:
        raise SchemaMismatchError(
            "unknown_column",
            f"Column '{field}' does not exist on '{model.__tablename__}'.",
        )
    return getattr(model, field)


class _Clauses:
    """Column resolution and predicates shared by every builder.

    Column names are either bare (``published_at``), resolved against the
    builder's own model, or table-qualified (``users.name``).
    """

    model_class: type
    _models: frozenset[type]

    def _apply_filter(self, clause) -> Self:
        raise NotImplementedError

    def _column(self, name: str):
        if "." in name:
            table, field = name.split(".", 1)
            model = model_for_table(table)
            if model not in self._models:
                raise SchemaMismatchError(
                    "unjoined_table",
                    f"Table '{table}' is not part of this query; join it first.",
                )
            return column_on(model, field)
        return column_on(self.model_class, name)

    def where(self, column: str, value: Any) -> Self:
        """Add an equality predicate (``IS NULL`` when value is None)."""
        col = self._column(column)
        if value is None:
            return self._apply_filter(col.is_(None))
        return self._apply_filter(col == value)

    def where_compare(self, column: str, operator: str, value: Any) -> Self:
        """Add a comparison predicate, e.g. ``("published_at", "<=", now)``."""
        return self._apply_filter(compare(self._column(column), operator, value))

    def tap(self, *modifiers: Modifier) -> Self:
        """Apply each modifier in order and return the resulting builder."""
        from tapscopes.queries.modifiers import tap

        return tap(self, *modifiers)


class RelatedQuery(_Clauses):
    """Builder over a subquery of a related model.

    Passed to ``BaseQuery.with_count`` constraints, so the modifiers that
    filter a top-level query can also restrict the counted rows.
    """

    def __init__(self, model_class: type, statement: Select):
        self.model_class = model_class
        self._models = frozenset({model_class})
        self._statement = statement

    def _apply_filter(self, clause) -> RelatedQuery:
        return RelatedQuery(self.model_class, self._statement.where(clause))

    @property
    def statement(self) -> Select:
        return self._statement


class BaseQuery(_Clauses, Generic[T]):
    """Base class for composable query builders.

    Provides a fluent interface for building SQLAlchemy queries with:
    - Chainable predicates, joins and projections
    - Ordering support
    - Pagination
    - ``tap`` for applying reusable query modifiers

    Every clause method returns a new builder; the receiver is unchanged.

    Subclasses should:
    1. Set `model_class` to the SQLAlchemy model
    2. Define `ordering_fields` mapping sort keys to model attributes
    """

    model_class: type[T]
    ordering_fields: ClassVar[dict[str, Any]] = {}

    def __init__(self, db: Session):
        self.db = db
        self._query: Query = db.query(self.model_class)
        self._models = frozenset({self.model_class})

    def _clone(self) -> Self:
        """Create a copy of this query builder with current state."""
        new = self.__class__.__new__(self.__class__)
        new.db = self.db
        new._query = self._query
        new._models = self._models
        return new

    def _apply_filter(self, clause) -> Self:
        clone = self._clone()
        clone._query = clone._query.filter(clause)
        return clone

    def _relationship(self, relation: str):
        relationships = sa_inspect(self.model_class).relationships
        if relation not in relationships:
            raise SchemaMismatchError(
                "unknown_relation",
                f"Relation '{relation}' does not exist on '{self.model_class.__tablename__}'.",
            )
        return relationships[relation]

    # -------------------------------------------------------------------------
    # Common filters
    # -------------------------------------------------------------------------

    def by_id(self, id: int) -> Self:
        """Filter by primary key ID."""
        return self.where("id", id)

    def by_ids(self, ids: list[int]) -> Self:
        """Filter by multiple IDs."""
        if not ids:
            return self._clone()
        return self._apply_filter(self._column("id").in_(ids))

    # -------------------------------------------------------------------------
    # Projection and joins
    # -------------------------------------------------------------------------

    def select(self, *columns: str) -> Self:
        """Select the model's own columns plus any extra named columns.

        Replaces whatever projection the builder had before.
        """
        extra = [self._column(column) for column in columns]
        clone = self._clone()
        clone._query = clone._query.with_entities(self.model_class, *extra)
        return clone

    def join(self, table: str | type, left_key: str, right_key: str) -> Self:
        """Inner join ``table`` on ``left_key = right_key``.

        A bare ``left_key`` belongs to this builder's model, a bare
        ``right_key`` to the joined table.
        """
        target = model_for_table(table)
        clone = self._clone()
        clone._models = self._models | {target}
        left = clone._column(left_key)
        right = clone._column(right_key) if "." in right_key else column_on(target, right_key)
        clone._query = clone._query.join(target, left == right)
        return clone

    def with_aggregate(
        self,
        relation: str,
        column: str,
        function: str | None = None,
        label: str | None = None,
    ) -> Self:
        """Project one value from a related model as a correlated subquery.

        Without ``function`` the raw column is selected, which suits
        many-to-one relations. The result column is labelled
        ``<relation>_<column>`` (``<relation>_<function>_<column>`` with a
        function) unless ``label`` is given.
        """
        prop = self._relationship(relation)
        target = prop.mapper.class_
        value = column_on(target, column)
        if function is not None:
            value = getattr(func, function)(value)
            default_label = f"{relation}_{function}_{column}"
        else:
            default_label = f"{relation}_{column}"
        subquery = (
            select(value)
            .where(prop.primaryjoin)
            .correlate(self.model_class.__table__)
            .scalar_subquery()
        )
        clone = self._clone()
        clone._query = clone._query.add_columns(subquery.label(label or default_label))
        return clone

    def with_count(
        self,
        relation: str,
        constrain: Callable[[RelatedQuery], RelatedQuery] | None = None,
        label: str | None = None,
    ) -> Self:
        """Project the number of related rows, labelled ``<relation>_count``.

        ``constrain`` receives a ``RelatedQuery`` over the related model and
        returns it with any extra predicates the count should respect.
        """
        prop = self._relationship(relation)
        target = prop.mapper.class_
        related = RelatedQuery(
            target,
            select(func.count()).select_from(target).where(prop.primaryjoin),
        )
        if constrain is not None:
            related = constrain(related)
        subquery = related.statement.correlate(self.model_class.__table__).scalar_subquery()
        clone = self._clone()
        clone._query = clone._query.add_columns(subquery.label(label or f"{relation}_count"))
        return clone

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def order_by(self, field: str, direction: str = "asc") -> Self:
        """Apply ordering to the query.

        Args:
            field: Key in ordering_fields, or a column name
            direction: 'asc' or 'desc'
        """
        column = self.ordering_fields.get(field)
        if column is None:
            column = self._column(field)
        clone = self._clone()
        if direction.lower() == "desc":
            clone._query = clone._query.order_by(desc(column))
        else:
            clone._query = clone._query.order_by(asc(column))
        return clone

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    def limit(self, limit: int) -> Self:
        if limit < 0:
            raise ValueError("limit must not be negative.")
        clone = self._clone()
        clone._query = clone._query.limit(limit)
        return clone

    def paginate(self, limit: int = 50, offset: int = 0) -> Self:
        """Apply pagination to the query. A zero limit or offset is skipped."""
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must not be negative.")
        clone = self._clone()
        if limit > 0:
            clone._query = clone._query.limit(limit)
        if offset > 0:
            clone._query = clone._query.offset(offset)
        return clone

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def all(self) -> list[Any]:
        """Execute query and return all results."""
        return self._query.all()

    def first(self) -> Any | None:
        """Execute query and return first result."""
        return self._query.first()

    def one(self) -> Any:
        """Execute query and return exactly one result (raises if not found)."""
        return self._query.one()

    def one_or_none(self) -> Any | None:
        """Execute query and return one result or None."""
        return self._query.one_or_none()

    def count(self) -> int:
        """Return count of matching records."""
        return self._query.count()

    def exists(self) -> bool:
        """Check if any matching records exist."""
        return self.db.query(self._query.exists()).scalar()

    def query(self) -> Query:
        """Return the underlying SQLAlchemy Query object."""
        return self._query

    @property
    def statement(self):
        """The SELECT statement this builder would run."""
        return self._query.statement
