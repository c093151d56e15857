"""Core database access helpers.

Provides the shared declarative `Base`, the application engine, `SessionLocal`,
the `get_db` dependency, and the `atomic` transaction helper.
"""

from app.models.base import Base

from .session import SessionLocal, atomic, build_engine, engine, get_db

__all__ = ["Base", "SessionLocal", "engine", "get_db", "build_engine", "atomic"]
