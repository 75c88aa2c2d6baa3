"""
Bookmark Store Module

Owns the single JSON document that holds the whole bookmark tree. Every
load-mutate-save cycle runs behind one lock, writes replace the document
atomically, and reads are served from a cached copy that is dropped on
every successful write.
"""

import json
import logging
import shutil
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union

from ..utils.error_handler import StorageIOError, ValidationError
from .data_models import Tree, copy_tree, tree_from_dicts, tree_to_dicts

BACKUP_PREFIX = "bookmarks_backup_"
UNREADABLE_PREFIX = "bookmarks_unreadable_"


class BookmarkStore:
    """Persists the bookmark tree as one JSON document."""

    def __init__(
        self,
        data_file: Union[str, Path] = "bookmarks.json",
        backup_dir: Union[str, Path, None] = None,
        backup_retention: Optional[int] = None,
    ):
        """
        Initialize the store.

        Args:
            data_file: Path of the JSON document
            backup_dir: Directory for snapshots (defaults to <data dir>/backups)
            backup_retention: Number of snapshots to keep; None keeps all
        """
        self.data_file = Path(data_file)
        self.backup_dir = Path(backup_dir) if backup_dir else self.data_file.parent / "backups"
        self.backup_retention = backup_retention

        self.lock = threading.RLock()
        self._cache: Optional[Tree] = None
        self.logger = logging.getLogger(__name__)

        self.logger.debug(
            f"Bookmark store initialized (file={self.data_file}, "
            f"backups={self.backup_dir}, retention={backup_retention})"
        )

    def load(self) -> Tree:
        """
        Load the tree.

        A missing or unreadable document is replaced by an empty tree, and
        nodes without createdAt are back-filled with the epoch; both fixes are
        written back immediately.

        Returns:
            Independent copy of the stored tree

        Raises:
            StorageIOError: If the document exists but cannot be accessed
        """
        with self.lock:
            if self._cache is None:
                self._cache = self._read_document()
            return copy_tree(self._cache)

    def save(self, tree: Tree) -> None:
        """
        Replace the whole document with the given tree.

        Args:
            tree: Tree to persist

        Raises:
            StorageIOError: If the document cannot be written
        """
        with self.lock:
            self._write_document(tree)
            self._cache = None

    @contextmanager
    def transaction(self) -> Iterator[Tree]:
        """
        Run a load-mutate-save cycle under the store lock.

        The yielded working copy is saved when the block exits normally and
        discarded if it raises.

        Yields:
            Working copy of the tree
        """
        with self.lock:
            tree = self.load()
            yield tree
            self.save(tree)

    def invalidate(self) -> None:
        """Drop the cached tree so the next load re-reads the document."""
        with self.lock:
            self._cache = None

    def backup(self) -> Optional[Path]:
        """
        Copy the current document into a timestamped snapshot.

        Returns:
            Path of the snapshot, or None when the tree is empty

        Raises:
            StorageIOError: If the snapshot cannot be written
        """
        with self.lock:
            if not self.load():
                self.logger.info("Bookmark tree is empty, no backup taken")
                return None

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_path = self.backup_dir / f"{BACKUP_PREFIX}{timestamp}.json"

            try:
                self.backup_dir.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(self.data_file, backup_path)
            except OSError as e:
                raise StorageIOError(f"Failed to write backup {backup_path}: {e}", backup_path) from e

            self.logger.info(f"Backup written: {backup_path}")

            if self.backup_retention:
                self.cleanup_old_backups(self.backup_retention)

            return backup_path

    def list_backups(self) -> List[Path]:
        """Return existing snapshots, newest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}*.json"), reverse=True)

    def cleanup_old_backups(self, keep_count: int) -> int:
        """
        Delete all but the newest snapshots.

        Args:
            keep_count: Number of recent snapshots to keep

        Returns:
            Number of snapshots removed
        """
        backups = self.list_backups()
        removed = 0
        for old_file in backups[keep_count:]:
            try:
                old_file.unlink()
                removed += 1
                self.logger.debug(f"Removed old backup: {old_file.name}")
            except OSError as e:
                self.logger.warning(f"Failed to remove old backup {old_file}: {e}")

        if removed:
            self.logger.info(f"Cleaned up {removed} old backups")
        return removed

    def _read_document(self) -> Tree:
        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            self.logger.info(f"No bookmark file at {self.data_file}, creating an empty one")
            return self._initialize_empty()
        except UnicodeDecodeError as e:
            return self._reset_unreadable(e)
        except OSError as e:
            raise StorageIOError(f"Cannot read {self.data_file}: {e}", self.data_file) from e

        try:
            data = json.loads(raw)
            tree, backfilled = tree_from_dicts(data)
        except (json.JSONDecodeError, ValidationError) as e:
            return self._reset_unreadable(e)

        if backfilled:
            self.logger.info(f"Back-filled createdAt on {backfilled} items, saving")
            self._write_document(tree)

        return tree

    def _reset_unreadable(self, error: Exception) -> Tree:
        """Keep a copy of an unreadable document, then start over empty."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        saved_path = self.backup_dir / f"{UNREADABLE_PREFIX}{timestamp}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.data_file, saved_path)
        except OSError as e:
            raise StorageIOError(
                f"Cannot keep a copy of unreadable {self.data_file}: {e}", saved_path
            ) from e

        self.logger.warning(
            f"Bookmark file {self.data_file} is unreadable ({error}), "
            f"copied to {saved_path} and reset to empty"
        )
        return self._initialize_empty()

    def _initialize_empty(self) -> Tree:
        self._write_document([])
        return []

    def _write_document(self, tree: Tree) -> None:
        temp_file = self.data_file.with_suffix(self.data_file.suffix + ".tmp")
        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(tree_to_dicts(tree), f, indent=2, ensure_ascii=False)
            temp_file.replace(self.data_file)
        except OSError as e:
            raise StorageIOError(f"Cannot write {self.data_file}: {e}", self.data_file) from e

        self.logger.debug(f"Saved bookmark tree to {self.data_file}")
