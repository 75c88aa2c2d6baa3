"""
Utility modules for the bookmark tree.

This package contains the exception hierarchy and logging setup.
"""

from .error_handler import (
    BookmarkTreeError,
    ConfigurationError,
    NotFoundError,
    ParseError,
    StorageIOError,
    ValidationError,
)

__all__ = [
    "BookmarkTreeError",
    "ConfigurationError",
    "NotFoundError",
    "ParseError",
    "StorageIOError",
    "ValidationError",
]
