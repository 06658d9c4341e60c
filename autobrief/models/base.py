"""Declarative base shared by all SQLAlchemy models."""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests).
JsonColumnType = JSON().with_variant(JSONB(), "postgresql")

__all__ = ["Base", "JsonColumnType"]
