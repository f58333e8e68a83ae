"""Error taxonomy for query composition and the blog services."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TapscopesError(Exception):
    code: str
    detail: str

    def __str__(self) -> str:
        return self.detail


class InvalidModifierError(TapscopesError):
    """A modifier was constructed with parameters it can never apply."""

    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail)


class SchemaMismatchError(TapscopesError, ValueError):
    """A column, relation or table is not part of the mapped schema."""

    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail)


class NotFoundError(TapscopesError):
    def __init__(self, code: str, detail: str):
        super().__init__(code=code, detail=detail)
