"""
Exception hierarchy for the bookmark tree engine.

All custom exceptions raised by the store, the mutation engine, the legacy
format codec and the configuration layer are defined here. Import them from
bookmark_tree.utils.error_handler.
"""

# ============================================================================
# Unified Exception Hierarchy
# ============================================================================


class BookmarkTreeError(Exception):
    """Base exception for all bookmark tree errors."""

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(BookmarkTreeError):
    """Configuration-related errors."""

    pass


# ============================================================================
# Storage Errors
# ============================================================================


class StorageIOError(BookmarkTreeError):
    """The bookmark document could not be read or written."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


# ============================================================================
# Data Errors
# ============================================================================


class ValidationError(BookmarkTreeError):
    """An item was rejected before reaching the engine."""

    pass


class NotFoundError(BookmarkTreeError):
    """An operation addressed an id that is not in the tree."""

    def __init__(self, item_id: str, message: str = ""):
        super().__init__(message or f"No item with id '{item_id}'")
        self.item_id = item_id


class ParseError(BookmarkTreeError):
    """A legacy bookmark file could not be read."""

    pass


__all__ = [
    "BookmarkTreeError",
    "ConfigurationError",
    "StorageIOError",
    "ValidationError",
    "NotFoundError",
    "ParseError",
]
