"""
Read-only queries over the bookmark tree.

Lookups, breadcrumbs, search filtering and presentation ordering. None of
these functions modify the tree they are given.
"""

from typing import Iterable, Iterator, List, Optional, Set, Tuple

from .data_models import Bookmark, BookmarkItem, Folder, Tree

SORT_ORDERS = ("date-asc", "date-desc", "alpha-asc", "alpha-desc")


def iter_items(tree: Iterable[BookmarkItem]) -> Iterator[BookmarkItem]:
    """Yield every node of the tree in pre-order (depth-first)."""
    for item in tree:
        yield item
        if isinstance(item, Folder):
            yield from iter_items(item.children)


def iter_bookmarks(tree: Iterable[BookmarkItem]) -> Iterator[Bookmark]:
    for item in iter_items(tree):
        if isinstance(item, Bookmark):
            yield item


def find_item(tree: Tree, item_id: str) -> Optional[BookmarkItem]:
    """
    Find an item anywhere in the tree.

    Args:
        tree: Tree to search
        item_id: Id to look for

    Returns:
        First pre-order match, or None
    """
    if not item_id:
        return None
    for item in iter_items(tree):
        if item.id == item_id:
            return item
    return None


def find_folder(tree: Tree, folder_id: str) -> Optional[Folder]:
    item = find_item(tree, folder_id)
    return item if isinstance(item, Folder) else None


def find_container(tree: Tree, item_id: str) -> Optional[Tuple[List[BookmarkItem], int]]:
    """
    Locate the sequence that owns an item.

    Args:
        tree: Tree to search
        item_id: Id to look for

    Returns:
        Tuple of (owning list, index within it), or None if absent
    """
    for index, item in enumerate(tree):
        if item.id == item_id:
            return tree, index
        if isinstance(item, Folder):
            found = find_container(item.children, item_id)
            if found is not None:
                return found
    return None


def find_path(tree: Tree, item_id: str) -> List[Folder]:
    """
    Build the breadcrumb path to an item.

    Args:
        tree: Tree to search
        item_id: Id of the folder or bookmark

    Returns:
        Ancestor folders from the root down; a folder's own node is the last
        element. Empty if the id is absent.
    """

    def _walk(items: List[BookmarkItem], path: List[Folder]) -> Optional[List[Folder]]:
        for item in items:
            if item.id == item_id:
                return path + [item] if isinstance(item, Folder) else path
            if isinstance(item, Folder):
                result = _walk(item.children, path + [item])
                if result is not None:
                    return result
        return None

    return _walk(tree, []) or []


def descendant_ids(item: BookmarkItem) -> List[str]:
    """Return the item's id followed by the ids of its whole subtree."""
    ids = [item.id]
    if isinstance(item, Folder):
        for child in item.children:
            ids.extend(descendant_ids(child))
    return ids


def collect_ids(tree: Tree) -> Set[str]:
    return {item.id for item in iter_items(tree)}


def count_items(tree: Tree) -> Tuple[int, int]:
    """
    Count the folders and bookmarks in a tree.

    Returns:
        Tuple of (folder count, bookmark count)
    """
    folders = bookmarks = 0
    for item in iter_items(tree):
        if isinstance(item, Folder):
            folders += 1
        else:
            bookmarks += 1
    return folders, bookmarks


def filter_items(items: List[BookmarkItem], term: str) -> List[BookmarkItem]:
    """
    Filter a tree by a search term.

    A node whose title matches is kept (folders with their filtered children);
    otherwise a folder is kept only if something below it matches, and a
    bookmark only if its URL matches.

    Args:
        items: Items to filter
        term: Case-insensitive search term; empty keeps everything

    Returns:
        Filtered tree made of new folder nodes; bookmarks are shared
    """
    if not term:
        return items

    needle = term.lower()
    result: List[BookmarkItem] = []

    for item in items:
        if needle in item.title.lower():
            if isinstance(item, Folder):
                result.append(_with_children(item, filter_items(item.children, term)))
            else:
                result.append(item)
            continue

        if isinstance(item, Folder):
            matching = filter_items(item.children, term)
            if matching:
                result.append(_with_children(item, matching))
        elif needle in item.url.lower():
            result.append(item)

    return result


def sort_items(items: List[BookmarkItem], order: str = "date-desc") -> List[BookmarkItem]:
    """
    Order one level of items for presentation.

    Folders always come before bookmarks. The input list is left untouched.

    Args:
        items: Sibling items
        order: One of date-asc, date-desc, alpha-asc, alpha-desc

    Returns:
        New sorted list
    """
    if order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order '{order}'. Use one of {SORT_ORDERS}")

    field_name, direction = order.split("-")
    reverse = direction == "desc"

    if field_name == "date":
        key = lambda item: item.created_at  # noqa: E731
    else:
        key = lambda item: item.title.casefold()  # noqa: E731

    folders = sorted((i for i in items if isinstance(i, Folder)), key=key, reverse=reverse)
    bookmarks = sorted((i for i in items if isinstance(i, Bookmark)), key=key, reverse=reverse)
    return folders + bookmarks


def _with_children(folder: Folder, children: List[BookmarkItem]) -> Folder:
    return Folder(
        id=folder.id, title=folder.title, created_at=folder.created_at, children=children
    )
