"""Persistence layer for cacheaside.

This module provides:
- Async PostgreSQL engine and session factory
- SQLAlchemy ORM model for products
- Product sources consulted on cache misses
"""

from cacheaside.persistence.db import get_engine, get_session, init_db, session_context
from cacheaside.persistence.repositories import (
    InMemoryProductSource,
    ProductRepository,
    ProductSource,
)
from cacheaside.persistence.tables import Base, ProductTable

__all__ = [
    # DB
    "get_engine",
    "get_session",
    "init_db",
    "session_context",
    # Tables
    "Base",
    "ProductTable",
    # Sources
    "ProductSource",
    "ProductRepository",
    "InMemoryProductSource",
]
