"""Core module for configuration and utilities."""

from vidshelf.core.config import settings
from vidshelf.core.database import Base, get_db

__all__ = [
    "settings",
    "Base",
    "get_db",
]
