"""
URL Normalization and Index

Canonical URL form used to decide whether two bookmarks point at the same
page, and the URL -> id index built from it for deduplication and merging.
"""

import logging
import re
from typing import Dict, Optional
from urllib.parse import urlparse

from .data_models import Bookmark, Tree
from .tree_queries import iter_bookmarks

SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")

DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21}

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """
    Normalize URL for duplicate comparison.

    The scheme (https assumed when missing), the scheme's default port,
    query and fragment are dropped; the host is lowercased without a leading
    "www." and keeps any other port; the path is kept as-is minus one
    trailing slash. Never raises.

    Args:
        url: URL to normalize

    Returns:
        Normalized host + path string
    """
    if not url:
        return ""

    raw = url.strip()
    candidate = raw if SCHEME_PATTERN.match(raw) else f"https://{raw}"

    try:
        parsed = urlparse(candidate)
        host = (parsed.hostname or "").lower()
        port = parsed.port
        path = parsed.path
    except ValueError as e:
        logger.debug(f"Falling back to textual normalization for {url}: {e}")
        return _strip_textually(raw)

    if host.startswith("www."):
        host = host[4:]
    if port is not None and port != DEFAULT_PORTS.get(parsed.scheme.lower()):
        host = f"{host}:{port}"

    normalized = f"{host}{path}"
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def _strip_textually(url: str) -> str:
    """Best-effort normalization for strings urlparse rejects."""
    text = SCHEME_PATTERN.sub("", url)
    if text.lower().startswith("www."):
        text = text[4:]
    if text.endswith("/"):
        text = text[:-1]
    return text


def build_url_index(tree: Tree) -> Dict[str, str]:
    """
    Map normalized URLs to bookmark ids.

    The first bookmark met in pre-order keeps the slot; later duplicates are
    not indexed.

    Args:
        tree: Tree to index

    Returns:
        Dictionary of normalized URL -> bookmark id
    """
    index: Dict[str, str] = {}
    for bookmark in iter_bookmarks(tree):
        index.setdefault(normalize_url(bookmark.url), bookmark.id)
    return index


def find_duplicate(
    tree: Tree, url: str, exclude_id: Optional[str] = None
) -> Optional[Bookmark]:
    """
    Find a bookmark that already points at the same page.

    Args:
        tree: Tree to search
        url: URL about to be saved
        exclude_id: Id of the bookmark being edited, which never counts

    Returns:
        The first matching bookmark in pre-order, or None
    """
    target = normalize_url(url)
    for bookmark in iter_bookmarks(tree):
        if bookmark.id != exclude_id and normalize_url(bookmark.url) == target:
            return bookmark
    return None
