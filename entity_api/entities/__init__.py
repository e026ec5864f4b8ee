"""
Bundled entities.

Importing this package registers every entity with `entity_api.registry`.
"""

from .users import UserAPI
from .articles import ArticleAPI

__all__ = [
    "UserAPI",
    "ArticleAPI",
]
