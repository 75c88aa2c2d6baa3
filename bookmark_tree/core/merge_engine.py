"""
Merge/Diff Engine

Reconciles an imported tree with the existing one: diff_new() finds the
bookmarks not yet present (by normalized URL) and apply_merge() folds an
approved tree into the existing one, matching folders by title.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .data_models import BookmarkItem, Folder, Tree, copy_item, copy_tree, new_item_id
from .tree_queries import collect_ids, iter_bookmarks
from .url_normalizer import build_url_index, normalize_url

logger = logging.getLogger(__name__)


def diff_new(existing: Tree, imported: Tree) -> Tree:
    """
    Keep only the part of an imported tree that is new.

    A bookmark survives when its normalized URL is not in the existing tree;
    a folder survives when anything below it survives. Neither input is
    modified.

    Args:
        existing: Current tree
        imported: Tree parsed from an import file

    Returns:
        New tree holding copies of the surviving nodes
    """
    url_index = build_url_index(existing)
    result = _filter_new(imported, url_index)
    logger.info(
        f"Import diff: {count_bookmarks(result)} of {count_bookmarks(imported)} "
        f"bookmarks are new"
    )
    return result


def _filter_new(items: List[BookmarkItem], url_index: Dict[str, str]) -> List[BookmarkItem]:
    result: List[BookmarkItem] = []
    for item in items:
        if isinstance(item, Folder):
            children = _filter_new(item.children, url_index)
            if children:
                result.append(
                    Folder(
                        id=item.id,
                        title=item.title,
                        created_at=item.created_at,
                        children=children,
                    )
                )
        elif normalize_url(item.url) not in url_index:
            result.append(copy_item(item))
    return result


@dataclass
class _MergeState:
    """Bookkeeping shared across one apply_merge() call."""

    url_index: Dict[str, str]
    known_ids: Set[str]
    dedupe_within_batch: bool
    added_bookmarks: int = 0
    added_folders: int = 0
    skipped_bookmarks: int = 0


def apply_merge(existing: Tree, approved: Tree, dedupe_within_batch: bool = False) -> Tree:
    """
    Merge an approved tree into the existing one.

    Incoming folders are matched by title against the current target's
    immediate child folders (first match wins) and created empty when no
    match exists. Incoming bookmarks are appended unless their normalized
    URL is in the index built at the start of the call. With the default
    dedupe_within_batch=False that index is not refreshed, so two new
    bookmarks sharing a URL in the same batch are both added.

    Args:
        existing: Current tree (not modified)
        approved: Caller-approved subset of an imported tree
        dedupe_within_batch: Refresh the index after every inserted bookmark

    Returns:
        The merged tree
    """
    merged = copy_tree(existing)
    state = _MergeState(
        url_index=build_url_index(merged),
        known_ids=collect_ids(merged),
        dedupe_within_batch=dedupe_within_batch,
    )

    _merge_into(merged, approved, state)

    logger.info(
        f"Merged {state.added_bookmarks} bookmarks and {state.added_folders} new "
        f"folders ({state.skipped_bookmarks} already present)"
    )
    return merged


def _merge_into(target: List[BookmarkItem], incoming: List[BookmarkItem], state: _MergeState) -> None:
    for item in incoming:
        if isinstance(item, Folder):
            folder = _find_folder_by_title(target, item.title)
            if folder is None:
                folder = Folder(
                    id=_claim_id(item.id, state),
                    title=item.title,
                    created_at=item.created_at,
                    children=[],
                )
                target.append(folder)
                state.added_folders += 1
            _merge_into(folder.children, item.children, state)
            continue

        key = normalize_url(item.url)
        if key in state.url_index:
            state.skipped_bookmarks += 1
            continue

        bookmark = copy_item(item)
        bookmark.id = _claim_id(item.id, state)
        target.append(bookmark)
        state.added_bookmarks += 1
        if state.dedupe_within_batch:
            state.url_index[key] = bookmark.id


def _find_folder_by_title(items: List[BookmarkItem], title: str) -> Optional[Folder]:
    for item in items:
        if isinstance(item, Folder) and item.title == title:
            return item
    return None


def _claim_id(candidate: str, state: _MergeState) -> str:
    """Keep the incoming id unless the merged tree already uses it."""
    item_id = candidate if candidate and candidate not in state.known_ids else new_item_id()
    state.known_ids.add(item_id)
    return item_id


def count_bookmarks(tree: Tree) -> int:
    return sum(1 for _ in iter_bookmarks(tree))
