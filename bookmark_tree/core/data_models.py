"""
Data models for the bookmark tree.

This module defines the Bookmark/Folder tagged union that makes up the
persisted tree, together with the conversion to and from the JSON document
shape and the validation applied before items reach the engine.
"""

import copy
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union
from urllib.parse import urlparse

from ..utils.error_handler import ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Schemes that carry no host component but are still absolute URLs
OPAQUE_SCHEMES = {"mailto", "javascript", "data", "about", "place", "tel", "file"}

# Seconds fraction of an ISO-8601 time; fromisoformat before 3.11 wants 3 or 6 digits
FRACTION_PATTERN = re.compile(r"(T\d{2}:\d{2}:\d{2})\.(\d+)")


def new_item_id() -> str:
    """Generate a fresh item identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Format a datetime the way the bookmark document stores it.

    Args:
        value: Timezone-aware (or naive UTC) datetime

    Returns:
        ISO-8601 string with millisecond precision and a 'Z' suffix
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from the bookmark document.

    Args:
        value: Raw value from the document

    Returns:
        UTC datetime, or None if the value is missing or unparsable
    """
    if not value or not isinstance(value, str):
        return None

    try:
        text = FRACTION_PATTERN.sub(_pad_fraction, value.strip().replace("Z", "+00:00"))
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _pad_fraction(match) -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


@dataclass
class Bookmark:
    """A link in the tree."""

    type: ClassVar[str] = "bookmark"

    id: str
    title: str
    url: str
    created_at: datetime = field(default_factory=utc_now)
    tags: List[str] = field(default_factory=list)
    is_favorite: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert bookmark to the persisted document shape.

        Returns:
            Dictionary representation of the bookmark
        """
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "url": self.url,
            "tags": list(self.tags),
            "isFavorite": self.is_favorite,
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass
class Folder:
    """A folder holding an ordered sequence of child items."""

    type: ClassVar[str] = "folder"

    id: str
    title: str
    created_at: datetime = field(default_factory=utc_now)
    children: List["BookmarkItem"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert folder (and its whole subtree) to the persisted document shape.

        Returns:
            Dictionary representation of the folder
        """
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "createdAt": format_timestamp(self.created_at),
            "children": [child.to_dict() for child in self.children],
        }


BookmarkItem = Union[Bookmark, Folder]
Tree = List[BookmarkItem]


def item_from_dict(data: Dict[str, Any]) -> Tuple[BookmarkItem, int]:
    """
    Build an item (recursively for folders) from its document form.

    Nodes without a usable createdAt get the Unix epoch.

    Args:
        data: Dictionary from the persisted document

    Returns:
        Tuple of (item, number of nodes whose createdAt was back-filled)

    Raises:
        ValidationError: If the node is not a recognizable bookmark or folder
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Expected an object, got {type(data).__name__}")

    item_type = data.get("type")
    item_id = str(data.get("id") or "")
    if not item_id:
        raise ValidationError("Item is missing its id")

    backfilled = 0
    created_at = parse_timestamp(data.get("createdAt"))
    if created_at is None:
        created_at = EPOCH
        backfilled += 1

    title = str(data.get("title") or "")

    if item_type == "bookmark":
        tags = data.get("tags") or []
        if not isinstance(tags, list):
            raise ValidationError(f"Bookmark {item_id} has malformed tags")
        bookmark = Bookmark(
            id=item_id,
            title=title,
            url=str(data.get("url") or ""),
            created_at=created_at,
            tags=[str(tag) for tag in tags],
            is_favorite=bool(data.get("isFavorite", False)),
        )
        return bookmark, backfilled

    if item_type == "folder":
        children, child_backfilled = tree_from_dicts(data.get("children") or [])
        folder = Folder(
            id=item_id, title=title, created_at=created_at, children=children
        )
        return folder, backfilled + child_backfilled

    raise ValidationError(f"Unknown item type '{item_type}' for item {item_id}")


def tree_from_dicts(data: List[Any]) -> Tuple[Tree, int]:
    """
    Build a tree from the persisted top-level array.

    Args:
        data: List of node dictionaries

    Returns:
        Tuple of (tree, number of nodes whose createdAt was back-filled)
    """
    if not isinstance(data, list):
        raise ValidationError("Expected an array of bookmark items")

    tree: Tree = []
    backfilled = 0
    for entry in data:
        item, count = item_from_dict(entry)
        tree.append(item)
        backfilled += count
    return tree, backfilled


def tree_to_dicts(tree: Tree) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in tree]


def copy_item(item: BookmarkItem) -> BookmarkItem:
    """Deep-copy an item and its subtree."""
    return copy.deepcopy(item)


def copy_tree(tree: Tree) -> Tree:
    return copy.deepcopy(tree)


def is_absolute_url(url: str) -> bool:
    """
    Check if a string is an absolute URL.

    Args:
        url: Candidate URL

    Returns:
        True if the URL has a scheme and, for hierarchical schemes, a host
    """
    if not url or not isinstance(url, str) or url != url.strip():
        return False

    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if not parsed.scheme:
        return False
    if parsed.scheme.lower() in OPAQUE_SCHEMES:
        return True
    return bool(parsed.netloc)


def validate_item(item: BookmarkItem) -> None:
    """
    Reject items that must never reach the engine.

    Args:
        item: Bookmark or folder supplied by a caller

    Raises:
        ValidationError: If the title is empty or the bookmark URL is invalid
    """
    if not isinstance(item, (Bookmark, Folder)):
        raise ValidationError(f"Not a bookmark item: {item!r}")

    if not item.title or not item.title.strip():
        raise ValidationError(f"{item.type.title()} title must not be empty")

    if isinstance(item, Bookmark):
        if not is_absolute_url(item.url):
            raise ValidationError(f"Not an absolute URL: '{item.url}'")
        if any(not isinstance(tag, str) for tag in item.tags):
            raise ValidationError("Tags must be strings")
