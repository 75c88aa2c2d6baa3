"""
Netscape bookmark HTML parser module.

This module turns a Netscape Bookmark File (the legacy nested-list HTML
dialect browsers export) into a bookmark tree. Folders are <H3> headers
followed by a nested <DL>; bookmarks are <A HREF> anchors.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from bs4 import BeautifulSoup

from ..utils.error_handler import ParseError
from .data_models import Bookmark, BookmarkItem, Folder, Tree, new_item_id, utc_now

DEFAULT_FOLDER_TITLE = "Untitled Folder"
DEFAULT_BOOKMARK_TITLE = "Untitled Bookmark"


class NetscapeHTMLParser:
    """
    Parser for Netscape bookmark HTML documents.

    Every parsed node gets a fresh id; ids are never read from the file.
    """

    DOCTYPE_PATTERN = r"<!DOCTYPE\s+NETSCAPE-Bookmark-file-1>"
    SUPPORTED_ENCODINGS = ["utf-8", "utf-16", "iso-8859-1"]

    def __init__(self):
        """Initialize the Netscape HTML parser."""
        self.logger = logging.getLogger(__name__)

    def parse_file(self, file_path: Union[str, Path]) -> Tree:
        """
        Parse a bookmark HTML file.

        Args:
            file_path: Path to the bookmark file

        Returns:
            Parsed tree (empty if the file holds no bookmark list)

        Raises:
            ParseError: If the file cannot be read
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise ParseError(f"File not found: {file_path}")

        html_content = self._read_html_file(file_path)
        tree = self.parse_html(html_content)
        self.logger.info(f"Parsed {file_path}")
        return tree

    def parse_html(self, html_content: str) -> Tree:
        """
        Parse bookmark HTML text into a tree.

        Args:
            html_content: Raw document text

        Returns:
            Parsed tree; empty when no top-level <DL> is present
        """
        if not re.search(self.DOCTYPE_PATTERN, html_content or "", re.IGNORECASE):
            self.logger.debug("Document has no Netscape bookmark DOCTYPE")

        soup = BeautifulSoup(html_content or "", "html.parser")

        root_dl = soup.find("dl")
        if root_dl is None:
            self.logger.warning("No bookmark data found (missing <DL> element)")
            return []

        tree = self._parse_list(root_dl)
        self.logger.info(f"Parsed {self._count(tree)} items from bookmark HTML")
        return tree

    def _read_html_file(self, file_path: Path) -> str:
        """
        Read HTML file, trying the supported encodings in turn.

        Args:
            file_path: Path to the HTML file

        Returns:
            HTML content as string

        Raises:
            ParseError: If file cannot be read
        """
        first_decoded: Optional[str] = None
        last_error: Optional[Exception] = None

        for encoding in self.SUPPORTED_ENCODINGS:
            try:
                with open(file_path, "r", encoding=encoding) as f:
                    content = f.read()
            except UnicodeError as e:
                last_error = e
                continue
            except OSError as e:
                raise ParseError(f"Error reading file: {str(e)}") from e

            if first_decoded is None:
                first_decoded = content
            if "<dl" in content.lower():
                return content

        if first_decoded is None:
            raise ParseError(
                f"Unable to read file with supported encodings: {str(last_error)}"
            )

        return first_decoded

    def _parse_list(self, dl_element) -> List[BookmarkItem]:
        """
        Convert the entries of one <DL> into tree items.

        html.parser leaves <DT> and <p> unclosed, so entries are located by
        their nearest enclosing <DL> instead of by direct parentage.

        Args:
            dl_element: BeautifulSoup DL element

        Returns:
            Items in document order
        """
        items: List[BookmarkItem] = []

        for element in dl_element.find_all(["h3", "a"]):
            if element.find_parent("dl") is not dl_element:
                continue
            if element.find_parent("h3") is not None:
                continue

            if element.name == "h3":
                items.append(self._parse_folder(element, dl_element))
            else:
                bookmark = self._parse_bookmark_link(element)
                if bookmark is not None:
                    items.append(bookmark)

        return items

    def _parse_folder(self, h3, parent_dl) -> Folder:
        """
        Parse a folder header and its nested list.

        Args:
            h3: BeautifulSoup H3 element
            parent_dl: The DL the header belongs to

        Returns:
            Folder with its parsed children
        """
        title = h3.get_text().strip() or DEFAULT_FOLDER_TITLE
        nested_dl = self._find_folder_list(h3, parent_dl)

        return Folder(
            id=new_item_id(),
            title=title,
            created_at=self._created_at(h3),
            children=self._parse_list(nested_dl) if nested_dl is not None else [],
        )

    def _find_folder_list(self, h3, parent_dl):
        """
        Find the <DL> holding a folder's children.

        It is the first element after the header, skipping the header's own
        text, provided no other entry comes in between.

        Args:
            h3: Folder header element
            parent_dl: The DL the header belongs to

        Returns:
            Nested DL element or None for an empty folder
        """
        following = h3.find_next(["h3", "a", "dl"])
        if following is None or following.name != "dl":
            return None
        if following.find_parent("dl") is not parent_dl:
            return None
        return following

    def _parse_bookmark_link(self, a_tag) -> Optional[Bookmark]:
        """
        Parse a bookmark link element into a Bookmark.

        Args:
            a_tag: BeautifulSoup A element

        Returns:
            Bookmark, or None when the anchor has no href
        """
        url = a_tag.get("href")
        if not url:
            self.logger.debug("Bookmark found without URL, skipping")
            return None

        title = a_tag.get_text().strip() or DEFAULT_BOOKMARK_TITLE

        return Bookmark(
            id=new_item_id(),
            title=title,
            url=url,
            created_at=self._created_at(a_tag),
            tags=self._parse_tags(a_tag.get("tags")),
        )

    def _parse_tags(self, tags_attr: Optional[str]) -> List[str]:
        """Split the comma-separated TAGS attribute, keeping order."""
        if not tags_attr:
            return []
        return [tag.strip() for tag in tags_attr.split(",") if tag.strip()]

    def _created_at(self, element) -> datetime:
        return self._parse_timestamp(element.get("add_date")) or utc_now()

    def _parse_timestamp(self, timestamp_str: Optional[str]) -> Optional[datetime]:
        """
        Parse Unix timestamp string to datetime object.

        Args:
            timestamp_str: Unix timestamp (seconds) as string

        Returns:
            datetime object or None if parsing fails
        """
        if not timestamp_str:
            return None

        try:
            timestamp = int(timestamp_str.strip())
            return datetime.fromtimestamp(timestamp, tz=timezone.utc)
        except (ValueError, OverflowError, OSError) as e:
            self.logger.warning(f"Invalid timestamp format: {timestamp_str} - {str(e)}")
            return None

    def _count(self, items: List[BookmarkItem]) -> int:
        total = 0
        for item in items:
            total += 1
            if isinstance(item, Folder):
                total += self._count(item.children)
        return total

    def validate_file(self, file_path: Union[str, Path]) -> bool:
        """
        Validate if a file looks like a Netscape bookmark export.

        Args:
            file_path: Path to the file to validate

        Returns:
            True if the file starts with the Netscape bookmark DOCTYPE
        """
        file_path = Path(file_path)

        if not file_path.exists() or file_path.suffix.lower() not in (".html", ".htm"):
            return False

        try:
            with open(file_path, "r", encoding="utf-8", errors="ignore") as f:
                header = f.read(1024)
        except OSError:
            return False

        return bool(re.search(self.DOCTYPE_PATTERN, header, re.IGNORECASE))
