"""
Database package: declarative base, ORM models and async engine helpers.

Import submodules explicitly (``tussles.database.connection``,
``tussles.database.models``) to keep model imports free of engine setup.
"""

__all__ = []
