"""Database-aware helpers for SQL column defaults and portable column types."""

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import ARRAY as PG_ARRAY
from sqlalchemy.sql import text


def timestamp_default():
    """Return a server-side timestamp default portable across dialects."""
    return text("CURRENT_TIMESTAMP")


def string_list_type():
    """
    Return a string ARRAY type that automatically falls back to JSON for SQLite.
    """
    base = PG_ARRAY(String)
    return base.with_variant(JSON, "sqlite")


__all__ = ["timestamp_default", "string_list_type"]
