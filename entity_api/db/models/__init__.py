"""
SQLAlchemy models for the bundled entities.

Exposes `Base`, `now_utc`, and all ORM classes.
"""

from .base import Base, now_utc  # re-export

from .users import User
from .articles import Article

__all__ = [
    "Base",
    "now_utc",
    "User",
    "Article",
]
