"""Composable, invokable query modifiers for SQLAlchemy query builders."""

__version__ = "0.1.0"
