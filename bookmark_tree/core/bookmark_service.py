"""
Bookmark Service

The operations collaborators call: load and edit the tree, import and merge
legacy bookmark files, export, back up, check links and suggest tags. Every
edit runs as one load-mutate-save transaction on the store.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set, Union

from ..config.pydantic_config import BookmarkTreeConfig
from ..utils.error_handler import NotFoundError
from .bookmark_store import BookmarkStore
from .data_models import Bookmark, BookmarkItem, Tree, copy_tree, validate_item
from .link_checker import LinkChecker, LinkCheckReport
from .merge_engine import apply_merge, count_bookmarks, diff_new
from .mutation_engine import delete_by_id, delete_many, move_item, toggle_favorite, upsert
from .netscape_html_generator import NetscapeHTMLGenerator
from .netscape_html_parser import NetscapeHTMLParser
from .tag_suggester import KeywordTagSuggester, TagSuggester, suggest_tags_safely
from .tree_queries import find_item
from .url_normalizer import find_duplicate


class BookmarkService:
    """Facade over the store, the mutation engine and the legacy codec."""

    def __init__(
        self,
        store: BookmarkStore,
        config: Optional[BookmarkTreeConfig] = None,
        tag_suggester: Optional[TagSuggester] = None,
        link_checker: Optional[LinkChecker] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Store holding the bookmark document
            config: Application configuration (defaults when omitted)
            tag_suggester: Tag suggestion collaborator; defaults to the
                keyword suggester when suggestions are enabled
            link_checker: Dead-link prober; built from the network settings
                when omitted
        """
        self.store = store
        self.config = config or BookmarkTreeConfig()
        self.logger = logging.getLogger(__name__)

        if tag_suggester is None and self.config.tag_suggestions:
            tag_suggester = KeywordTagSuggester()
        self.tag_suggester = tag_suggester

        network = self.config.network
        self.link_checker = link_checker or LinkChecker(
            timeout=network.timeout,
            max_concurrent=network.concurrent_requests,
            verify_ssl=network.verify_ssl,
            user_agent=network.user_agent,
        )

        self.parser = NetscapeHTMLParser()
        self.generator = NetscapeHTMLGenerator()

    @classmethod
    def from_config(cls, config: BookmarkTreeConfig) -> "BookmarkService":
        """Build a service and its store from configuration."""
        storage = config.storage
        store = BookmarkStore(
            data_file=storage.data_file,
            backup_dir=storage.backup_dir,
            backup_retention=storage.backup_retention,
        )
        return cls(store, config)

    # ------------------------------------------------------------------ #
    # Tree edits
    # ------------------------------------------------------------------ #

    def load(self) -> Tree:
        return self.store.load()

    def save(self, item: BookmarkItem, parent_id: Optional[str] = None) -> bool:
        """
        Create or update an item.

        Args:
            item: Bookmark or folder to store
            parent_id: Folder a new item goes into (root when absent or unknown)

        Returns:
            True if the item was created, False if it was updated

        Raises:
            ValidationError: If the item has an empty title or invalid URL
        """
        validate_item(item)
        with self.store.transaction() as tree:
            return upsert(tree, item, parent_id)

    def delete(self, item_id: str) -> None:
        """
        Delete an item and everything below it.

        Raises:
            NotFoundError: If no item has this id
        """
        with self.store.transaction() as tree:
            if not delete_by_id(tree, item_id):
                raise NotFoundError(item_id)
        self.logger.info(f"Deleted {item_id}")

    def delete_many(self, item_ids: Iterable[str]) -> Set[str]:
        """
        Delete several items in one pass.

        Args:
            item_ids: Ids to delete; unknown ids are ignored

        Returns:
            Ids that were actually removed
        """
        with self.store.transaction() as tree:
            removed = delete_many(tree, item_ids)
        self.logger.info(f"Deleted {len(removed)} items")
        return removed

    def toggle_favorite(self, item_id: str) -> bool:
        """
        Flip a bookmark's favorite flag.

        Returns:
            The new flag value

        Raises:
            NotFoundError: If no bookmark has this id
        """
        with self.store.transaction() as tree:
            flag = toggle_favorite(tree, item_id)
            if flag is None:
                raise NotFoundError(item_id, f"No bookmark with id '{item_id}'")
        return flag

    def reorder(self, item_id: str, new_index: int, parent_id: Optional[str] = None) -> None:
        """
        Move an item to a position inside a folder or the root.

        Raises:
            NotFoundError: If the item or the target folder does not exist
            ValidationError: If a folder would be moved into its own subtree
        """
        with self.store.transaction() as tree:
            if not move_item(tree, item_id, new_index, parent_id):
                raise NotFoundError(item_id)

    def get(self, item_id: str) -> BookmarkItem:
        """Look up a single item, raising NotFoundError when absent."""
        item = find_item(self.store.load(), item_id)
        if item is None:
            raise NotFoundError(item_id)
        return item

    def find_duplicate(self, url: str, exclude_id: Optional[str] = None) -> Optional[Bookmark]:
        """Return a stored bookmark pointing at the same page as `url`, if any."""
        return find_duplicate(self.store.load(), url, exclude_id)

    # ------------------------------------------------------------------ #
    # Import / merge
    # ------------------------------------------------------------------ #

    def parse_import_file(self, text: str) -> Tree:
        return self.parser.parse_html(text)

    def read_import_file(self, path: Union[str, Path]) -> Tree:
        """Parse a bookmark HTML file from disk."""
        if not self.parser.validate_file(path):
            self.logger.warning(f"{path} does not look like a Netscape bookmark file")
        return self.parser.parse_file(path)

    def diff_for_merge(self, text: str) -> Tree:
        """
        Parse an import document and keep only the bookmarks not yet stored.

        Args:
            text: Netscape bookmark HTML

        Returns:
            Tree of new bookmarks, in their original folders
        """
        return self.diff_imported(self.parse_import_file(text))

    def diff_imported(self, imported: Tree) -> Tree:
        """Same as diff_for_merge() for an already parsed tree."""
        return diff_new(self.store.load(), imported)

    def apply_merge(self, approved: Tree) -> int:
        """
        Merge an approved import tree into the stored tree.

        Args:
            approved: Tree the caller accepted, usually from diff_for_merge()

        Returns:
            Number of bookmarks in the tree after the merge minus before
        """
        dedupe = self.config.merge.dedupe_within_batch
        with self.store.lock:
            existing = self.store.load()
            merged = apply_merge(existing, approved, dedupe_within_batch=dedupe)
            self.store.save(merged)
        return count_bookmarks(merged) - count_bookmarks(existing)

    def replace_all(self, tree: Tree) -> Optional[Path]:
        """
        Replace the whole stored tree.

        Args:
            tree: New tree

        Returns:
            Path of the backup taken first, if any
        """
        backup_path = None
        with self.store.lock:
            if self.config.storage.backup_before_replace:
                backup_path = self.store.backup()
            self.store.save(copy_tree(tree))
        self.logger.info(f"Replaced bookmark tree ({count_bookmarks(tree)} bookmarks)")
        return backup_path

    # ------------------------------------------------------------------ #
    # Export / backup
    # ------------------------------------------------------------------ #

    def export_all(self) -> str:
        return self.generator.generate_html(self.store.load())

    def export_selected(self, item_ids: Iterable[str]) -> str:
        """Export the selected items plus the folders leading to them."""
        return self.generator.generate_selected_html(self.store.load(), item_ids)

    def backup(self) -> Optional[Path]:
        return self.store.backup()

    # ------------------------------------------------------------------ #
    # Enrichment
    # ------------------------------------------------------------------ #

    def check_dead_links(self) -> LinkCheckReport:
        """Probe every stored bookmark; blocks until all probes settle."""
        return self.link_checker.check_tree_sync(self.store.load())

    def suggest_tags(self, url: str, title: str) -> List[str]:
        return suggest_tags_safely(self.tag_suggester, url, title)
