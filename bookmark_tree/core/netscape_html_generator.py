"""
Netscape Bookmark HTML Generator

This module renders a bookmark tree as a Netscape-Bookmark-file-1 document,
either whole or restricted to a selected set of ids.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Set, Union

from ..utils.error_handler import StorageIOError
from .data_models import Bookmark, BookmarkItem, Folder, Tree

INDENT = "    "

# Written on favorite bookmarks only; the parser does not read it back
FAVORITE_ICON = "data:image/png;base64,FAVORITE"


class NetscapeHTMLGenerator:
    """
    Generator for Netscape bookmark HTML documents.

    Output keeps the tree's own order and nests each level four spaces
    deeper than its parent.
    """

    def __init__(self):
        """Initialize the Netscape HTML generator."""
        self.logger = logging.getLogger(__name__)

    def generate_html(self, tree: Tree, title: str = "Bookmarks") -> str:
        """
        Render the whole tree.

        Args:
            tree: Tree to export
            title: Title for the bookmark file

        Returns:
            Complete HTML document
        """
        html_parts = self._header(title)
        for item in tree:
            html_parts.extend(self._generate_item_html(item, depth=1))
        html_parts.append("</DL><p>")

        self.logger.info(f"Generated bookmark HTML for {len(tree)} top-level items")
        return "\n".join(html_parts) + "\n"

    def generate_selected_html(
        self, tree: Tree, selected_ids: Iterable[str], title: str = "Bookmarks"
    ) -> str:
        """
        Render only the selected part of the tree.

        Args:
            tree: Tree to export
            selected_ids: Ids chosen by the caller
            title: Title for the bookmark file

        Returns:
            Complete HTML document for the selected subset
        """
        return self.generate_html(select_items(tree, set(selected_ids)), title)

    def write_file(
        self, tree: Tree, output_path: Union[str, Path], title: str = "Bookmarks"
    ) -> None:
        """
        Write the rendered tree to a file.

        Args:
            tree: Tree to export
            output_path: Path where to save the HTML file
            title: Title for the bookmark file

        Raises:
            StorageIOError: If the file cannot be written
        """
        output_path = Path(output_path)
        try:
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(self.generate_html(tree, title))
        except OSError as e:
            raise StorageIOError(f"Failed to write {output_path}: {e}", output_path) from e

        self.logger.info(f"Wrote bookmark HTML file: {output_path}")

    def _header(self, title: str) -> List[str]:
        return [
            "<!DOCTYPE NETSCAPE-Bookmark-file-1>",
            "<!-- This is an automatically generated file.",
            "     It will be read and overwritten.",
            "     DO NOT EDIT! -->",
            '<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">',
            f"<TITLE>{self._escape_html(title)}</TITLE>",
            f"<H1>{self._escape_html(title)}</H1>",
            "<DL><p>",
        ]

    def _generate_item_html(self, item: BookmarkItem, depth: int) -> List[str]:
        """
        Generate HTML lines for one item and, for folders, its contents.

        Args:
            item: Item to render
            depth: Nesting level (1 for root items)

        Returns:
            List of HTML lines
        """
        indent = INDENT * depth

        if isinstance(item, Bookmark):
            return [f"{indent}<DT>{self._generate_bookmark_html(item)}"]

        timestamp = self._timestamp(item)
        html_lines = [
            f'{indent}<DT><H3 ADD_DATE="{timestamp}" LAST_MODIFIED="{timestamp}">'
            f"{self._escape_html(item.title)}</H3>",
            f"{indent}<DL><p>",
        ]
        for child in item.children:
            html_lines.extend(self._generate_item_html(child, depth + 1))
        html_lines.append(f"{indent}</DL><p>")
        return html_lines

    def _generate_bookmark_html(self, bookmark: Bookmark) -> str:
        """
        Generate HTML for a single bookmark.

        Args:
            bookmark: Bookmark to generate HTML for

        Returns:
            HTML anchor tag as string
        """
        timestamp = self._timestamp(bookmark)
        attrs = [
            f'HREF="{self._escape_html(bookmark.url)}"',
            f'ADD_DATE="{timestamp}"',
            f'LAST_MODIFIED="{timestamp}"',
        ]

        if bookmark.tags:
            attrs.append(f'TAGS="{self._escape_html(",".join(bookmark.tags))}"')

        if bookmark.is_favorite:
            attrs.append(f'ICON="{FAVORITE_ICON}"')

        return f"<A {' '.join(attrs)}>{self._escape_html(bookmark.title)}</A>"

    def _timestamp(self, item: BookmarkItem) -> int:
        return int(item.created_at.timestamp())

    def _escape_html(self, text: str) -> str:
        """
        Escape HTML special characters.

        Args:
            text: Text to escape

        Returns:
            HTML-escaped text
        """
        if not text:
            return ""

        text = text.replace("&", "&amp;")
        text = text.replace("<", "&lt;")
        text = text.replace(">", "&gt;")
        text = text.replace('"', "&quot;")
        text = text.replace("'", "&#x27;")

        return text


def select_items(items: List[BookmarkItem], selected_ids: Set[str]) -> List[BookmarkItem]:
    """
    Restrict a tree to the selected ids.

    A selected node is kept with its whole subtree. An unselected folder is
    kept, with only its selected descendants, when something below it is
    selected. Everything else is dropped.

    Args:
        items: Items to filter
        selected_ids: Ids chosen by the caller

    Returns:
        Pruned tree (selected subtrees are shared, pruned folders are new)
    """
    result: List[BookmarkItem] = []

    for item in items:
        if item.id in selected_ids:
            result.append(item)
            continue

        if isinstance(item, Folder):
            children = select_items(item.children, selected_ids)
            if children:
                result.append(
                    Folder(
                        id=item.id,
                        title=item.title,
                        created_at=item.created_at,
                        children=children,
                    )
                )

    return result

