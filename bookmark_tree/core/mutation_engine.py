"""
Mutation Engine

Id-addressed edits applied in place to a working copy of the tree: upsert,
single and batch delete, favorite toggle and reorder. Every function reports
whether it changed anything so callers can tell a no-op from a success.
"""

import logging
from typing import Iterable, List, Optional, Set

from ..utils.error_handler import NotFoundError, ValidationError
from .data_models import Bookmark, BookmarkItem, Folder, Tree, utc_now
from .tree_queries import descendant_ids, find_container, find_folder, find_item

ROOT_ID = "root"

logger = logging.getLogger(__name__)


def upsert(tree: Tree, item: BookmarkItem, parent_id: Optional[str] = None) -> bool:
    """
    Insert a new item or replace an existing one with the same id.

    Replacing keeps the existing node's created_at, and when both the old
    and new nodes are folders the existing children are kept as well. A
    folder never brings children of its own into the tree. New items are
    stamped with the current time and appended to the parent folder, or to
    the root when the parent is absent or missing.

    Args:
        tree: Working tree, modified in place
        item: Item to store
        parent_id: Folder to append a new item to

    Returns:
        True if the item was created, False if it replaced an existing one
    """
    location = find_container(tree, item.id)

    if location is not None:
        container, index = location
        existing = container[index]
        item.created_at = existing.created_at
        if isinstance(item, Folder):
            item.children = existing.children if isinstance(existing, Folder) else []
        container[index] = item
        logger.debug(f"Updated {item.type} {item.id}")
        return False

    item.created_at = utc_now()
    if isinstance(item, Folder):
        item.children = []

    parent = find_folder(tree, parent_id) if parent_id and parent_id != ROOT_ID else None
    if parent is not None:
        parent.children.append(item)
    else:
        if parent_id and parent_id != ROOT_ID:
            logger.info(f"Parent folder {parent_id} not found, adding {item.id} at root")
        tree.append(item)

    logger.debug(f"Created {item.type} {item.id}")
    return True


def delete_by_id(tree: Tree, item_id: str) -> bool:
    """
    Remove an item, together with its whole subtree if it is a folder.

    Args:
        tree: Working tree, modified in place
        item_id: Id of the item to remove

    Returns:
        True if something was removed
    """
    location = find_container(tree, item_id)
    if location is None:
        return False

    container, index = location
    removed = container.pop(index)
    logger.debug(f"Deleted {removed.type} {item_id} ({len(descendant_ids(removed))} nodes)")
    return True


def delete_many(tree: Tree, item_ids: Iterable[str]) -> Set[str]:
    """
    Remove every item whose id is in the given set, in a single pass.

    Args:
        tree: Working tree, modified in place
        item_ids: Ids to remove

    Returns:
        Ids of the subtree roots that were actually removed
    """
    targets = set(item_ids)
    removed: Set[str] = set()
    if targets:
        _prune(tree, targets, removed)
    return removed


def _prune(items: List[BookmarkItem], targets: Set[str], removed: Set[str]) -> None:
    kept: List[BookmarkItem] = []
    for item in items:
        if item.id in targets:
            removed.add(item.id)
            continue
        if isinstance(item, Folder):
            _prune(item.children, targets, removed)
        kept.append(item)
    items[:] = kept


def toggle_favorite(tree: Tree, item_id: str) -> Optional[bool]:
    """
    Flip the favorite flag of a bookmark.

    Args:
        tree: Working tree, modified in place
        item_id: Bookmark id

    Returns:
        The new flag value, or None if the id is absent or names a folder
    """
    item = find_item(tree, item_id)
    if not isinstance(item, Bookmark):
        return None
    item.is_favorite = not item.is_favorite
    return item.is_favorite


def move_item(
    tree: Tree,
    item_id: str,
    new_index: int,
    target_parent_id: Optional[str] = None,
) -> bool:
    """
    Move an item to a position in a folder or in the root sequence.

    The item is extracted from wherever it lives and reinserted at
    new_index clamped to [0, len(target children)].

    Args:
        tree: Working tree, modified in place
        item_id: Id of the item to move
        new_index: Requested position in the target sequence
        target_parent_id: Destination folder; None or "root" for the root

    Returns:
        True if the item was moved, False if the id is not in the tree

    Raises:
        NotFoundError: If the destination folder does not exist
        ValidationError: If a folder would be moved into its own subtree
    """
    location = find_container(tree, item_id)
    if location is None:
        return False

    container, index = location
    item = container[index]

    if target_parent_id and target_parent_id != ROOT_ID:
        if target_parent_id in descendant_ids(item):
            raise ValidationError(
                f"Cannot move {item.type} {item_id} into itself or its own subtree"
            )
        target_folder = find_folder(tree, target_parent_id)
        if target_folder is None:
            raise NotFoundError(target_parent_id, f"Target folder '{target_parent_id}' not found")
        target = target_folder.children
    else:
        target = tree

    container.pop(index)
    position = max(0, min(new_index, len(target)))
    target.insert(position, item)
    logger.debug(f"Moved {item_id} to index {position} of {target_parent_id or ROOT_ID}")
    return True
