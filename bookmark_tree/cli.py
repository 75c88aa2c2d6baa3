"""
Command-line interface for the bookmark tree.

This module exposes the bookmark service as sub-commands: browsing and
editing the stored tree, importing and exporting Netscape bookmark files,
backups, dead-link checks and configuration templates.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from bookmark_tree.config.configuration import Configuration
from bookmark_tree.config.pydantic_config import ConfigurationManager
from bookmark_tree.core.bookmark_service import BookmarkService
from bookmark_tree.core.data_models import Bookmark, BookmarkItem, Folder, new_item_id
from bookmark_tree.core.merge_engine import count_bookmarks
from bookmark_tree.core.tag_suggester import merge_tags
from bookmark_tree.core.tree_queries import (
    SORT_ORDERS,
    count_items,
    filter_items,
    find_path,
    iter_items,
    sort_items,
)
from bookmark_tree.utils.error_handler import BookmarkTreeError
from bookmark_tree.utils.logging_setup import setup_logging


class CLIInterface:
    """Command line interface over BookmarkService."""

    def __init__(self):
        self.parser = self._create_parser()
        self.logger = logging.getLogger(__name__)

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser with one sub-parser per operation."""
        parser = argparse.ArgumentParser(
            prog="bookmark-tree",
            description="Manage a hierarchical bookmark collection stored as JSON",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  bookmark-tree list --search python
  bookmark-tree add https://docs.python.org "Python docs" --parent <folder-id>
  bookmark-tree add-folder "Reading"
  bookmark-tree move <id> 0 --parent <folder-id>
  bookmark-tree import browser_export.html --dry-run
  bookmark-tree import browser_export.html --mode replace --yes
  bookmark-tree export bookmarks.html --select <id> <id>
  bookmark-tree check-links
            """,
        )

        parser.add_argument(
            "--config", "-c", type=Path, help="Configuration file (TOML or JSON)"
        )
        parser.add_argument(
            "--data-file", "-d", type=Path, help="Bookmark JSON document to operate on"
        )
        parser.add_argument(
            "--backup-dir", type=Path, help="Directory for backups (default: next to the data file)"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable debug logging"
        )

        subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
        subparsers.required = True

        list_parser = subparsers.add_parser("list", help="Show the bookmark tree")
        list_parser.add_argument("--search", "-s", help="Only show items matching this text")
        list_parser.add_argument(
            "--sort", choices=SORT_ORDERS, help="Sort the top level (folders first)"
        )

        add_parser = subparsers.add_parser("add", help="Add or update a bookmark")
        add_parser.add_argument("url", help="Absolute URL")
        add_parser.add_argument("title", help="Bookmark title")
        add_parser.add_argument("--parent", "-p", help="Folder id (default: root)")
        add_parser.add_argument("--id", help="Existing bookmark id to update")
        add_parser.add_argument("--tags", "-t", nargs="*", default=[], help="Tags")
        add_parser.add_argument("--favorite", action="store_true", help="Mark as favorite")
        add_parser.add_argument(
            "--suggest-tags", action="store_true", help="Add suggested tags"
        )

        folder_parser = subparsers.add_parser("add-folder", help="Add or rename a folder")
        folder_parser.add_argument("title", help="Folder title")
        folder_parser.add_argument("--parent", "-p", help="Parent folder id (default: root)")
        folder_parser.add_argument("--id", help="Existing folder id to rename")

        delete_parser = subparsers.add_parser(
            "delete", help="Delete items (folders with everything inside)"
        )
        delete_parser.add_argument("ids", nargs="+", help="Item ids")

        favorite_parser = subparsers.add_parser("favorite", help="Toggle a bookmark's favorite flag")
        favorite_parser.add_argument("id", help="Bookmark id")

        move_parser = subparsers.add_parser("move", help="Move an item to a position")
        move_parser.add_argument("id", help="Item id")
        move_parser.add_argument("index", type=int, help="Target position (clamped)")
        move_parser.add_argument("--parent", "-p", help="Target folder id (default: root)")

        import_parser = subparsers.add_parser("import", help="Import a Netscape bookmark file")
        import_parser.add_argument("file", type=Path, help="Bookmark HTML file")
        import_parser.add_argument(
            "--mode",
            choices=["merge", "replace"],
            default="merge",
            help="Merge new bookmarks or replace the whole tree (default: merge)",
        )
        import_parser.add_argument(
            "--dry-run", action="store_true", help="Show what would change and stop"
        )
        import_parser.add_argument(
            "--yes", "-y", action="store_true", help="Do not ask for confirmation"
        )

        export_parser = subparsers.add_parser("export", help="Export to a Netscape bookmark file")
        export_parser.add_argument("output", type=Path, help="Output HTML file")
        export_parser.add_argument(
            "--select", nargs="+", metavar="ID", help="Only export these items"
        )

        subparsers.add_parser("backup", help="Write a timestamped backup")

        check_parser = subparsers.add_parser("check-links", help="Probe every bookmark URL")
        check_parser.add_argument("--timeout", type=float, help="Per-probe timeout in seconds")
        check_parser.add_argument("--concurrency", type=int, help="Maximum concurrent probes")

        config_parser = subparsers.add_parser("create-config", help="Write a sample configuration")
        config_parser.add_argument(
            "output", type=Path, nargs="?", default=Path("bookmark_tree.toml")
        )
        config_parser.add_argument("--format", choices=["toml", "json"], default="toml")

        return parser

    def parse_args(self, args=None) -> argparse.Namespace:
        """Parse command line arguments."""
        return self.parser.parse_args(args)

    def process_arguments(self, args: argparse.Namespace) -> Configuration:
        """
        Load configuration, apply command-line overrides and set up logging.

        Args:
            args: Parsed arguments

        Returns:
            Loaded Configuration
        """
        config = Configuration(args.config)
        config.update_from_args(
            {
                "data_file": args.data_file,
                "backup_dir": args.backup_dir,
                "verbose": args.verbose,
                "timeout": getattr(args, "timeout", None),
                "concurrency": getattr(args, "concurrency", None),
            }
        )
        setup_logging(config.config.logging)
        self.logger.debug(
            f"Bookmark file: {config.get_data_file()}, backups: {config.get_backup_dir()}"
        )
        return config

    def run(self, args=None) -> int:
        """Execute CLI interface."""
        parsed_args = self.parse_args(args)

        try:
            if parsed_args.command == "create-config":
                return self._handle_create_config(parsed_args)

            config = self.process_arguments(parsed_args)
            service = BookmarkService.from_config(config.config)

            self.logger.debug(f"Running command: {parsed_args.command}")
            handler = getattr(self, "_handle_" + parsed_args.command.replace("-", "_"))
            return handler(service, parsed_args)

        except BookmarkTreeError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            print("Interrupted", file=sys.stderr)
            return 130

    # ------------------------------------------------------------------ #
    # Command handlers
    # ------------------------------------------------------------------ #

    def _handle_list(self, service: BookmarkService, args: argparse.Namespace) -> int:
        tree = service.load()
        if args.search:
            tree = filter_items(tree, args.search)
        if args.sort:
            tree = sort_items(tree, args.sort)

        if not tree:
            print("No bookmarks found")
            return 0

        for line in format_tree(tree):
            print(line)
        folders, bookmarks = count_items(tree)
        print(f"{bookmarks} bookmarks in {folders} folders")
        return 0

    def _handle_add(self, service: BookmarkService, args: argparse.Namespace) -> int:
        duplicate = service.find_duplicate(args.url, exclude_id=args.id)
        if duplicate is not None:
            print(f"Note: {duplicate.title} [{duplicate.id}] already points at this page")

        tags = list(args.tags)
        if args.suggest_tags:
            tags = merge_tags(tags, service.suggest_tags(args.url, args.title))

        bookmark = Bookmark(
            id=args.id or new_item_id(),
            title=args.title,
            url=args.url,
            tags=tags,
            is_favorite=args.favorite,
        )
        created = service.save(bookmark, args.parent)
        print(f"{'Added' if created else 'Updated'} bookmark {bookmark.id}")
        return 0

    def _handle_add_folder(self, service: BookmarkService, args: argparse.Namespace) -> int:
        folder = Folder(id=args.id or new_item_id(), title=args.title)
        created = service.save(folder, args.parent)
        print(f"{'Added' if created else 'Updated'} folder {folder.id}")
        return 0

    def _handle_delete(self, service: BookmarkService, args: argparse.Namespace) -> int:
        if len(args.ids) == 1:
            service.delete(args.ids[0])
            print(f"Deleted {args.ids[0]}")
            return 0

        removed = service.delete_many(args.ids)
        missing = [item_id for item_id in args.ids if item_id not in removed]
        print(f"Deleted {len(removed)} items")
        if missing:
            print(f"Not found: {', '.join(missing)}", file=sys.stderr)
        return 0

    def _handle_favorite(self, service: BookmarkService, args: argparse.Namespace) -> int:
        flag = service.toggle_favorite(args.id)
        print(f"{args.id} is {'now' if flag else 'no longer'} a favorite")
        return 0

    def _handle_move(self, service: BookmarkService, args: argparse.Namespace) -> int:
        service.reorder(args.id, args.index, args.parent)
        print(f"Moved {args.id}")
        return 0

    def _handle_import(self, service: BookmarkService, args: argparse.Namespace) -> int:
        imported = service.read_import_file(args.file)
        total = count_bookmarks(imported)

        if args.mode == "replace":
            print(f"{args.file} holds {total} bookmarks; they will replace the current tree")
            if args.dry_run or not self._confirm(args, "Replace all bookmarks?"):
                return 0
            backup_path = service.replace_all(imported)
            if backup_path:
                print(f"Previous tree backed up to {backup_path}")
            print(f"Imported {total} bookmarks")
            return 0

        new_items = service.diff_imported(imported)
        new_count = count_bookmarks(new_items)
        print(f"{new_count} of {total} bookmarks in {args.file} are new")
        if new_count == 0:
            return 0

        for line in format_tree(new_items, show_ids=False):
            print(line)

        if args.dry_run or not self._confirm(args, "Merge these bookmarks?"):
            return 0

        added = service.apply_merge(new_items)
        print(f"Merged {added} bookmarks")
        return 0

    def _handle_export(self, service: BookmarkService, args: argparse.Namespace) -> int:
        if args.select:
            html = service.export_selected(args.select)
        else:
            html = service.export_all()

        try:
            args.output.write_text(html, encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot write {args.output}: {e}", file=sys.stderr)
            return 1

        print(f"Exported bookmarks to {args.output}")
        return 0

    def _handle_backup(self, service: BookmarkService, args: argparse.Namespace) -> int:
        backup_path = service.backup()
        if backup_path is None:
            print("Nothing to back up")
        else:
            print(f"Backup written to {backup_path}")
        return 0

    def _handle_check_links(self, service: BookmarkService, args: argparse.Namespace) -> int:
        tree = service.load()
        report = service.check_dead_links()

        titles = {item.id: item.title for item in iter_items(tree)}

        for item_id in report.dead_ids:
            result = report.results[item_id]
            print(f"[{result.status.value}] {titles.get(item_id, item_id)} <{result.url}>")

        for folder_id in sorted(report.flagged_folders):
            path = " / ".join(folder.title for folder in find_path(tree, folder_id))
            print(f"Folder with dead links: {path or folder_id}")

        print(
            f"Checked {len(report.statuses)} links: {len(report.dead_ids)} dead "
            f"({report.processing_time:.1f}s)"
        )
        return 2 if report.dead_ids else 0

    def _handle_create_config(self, args: argparse.Namespace) -> int:
        """Write a sample configuration file without loading any config."""
        if args.output.exists():
            print(f"Error: {args.output} already exists", file=sys.stderr)
            return 1

        ConfigurationManager.create_sample_config(args.output, args.format)
        print(f"Sample configuration written to {args.output}")
        return 0

    def _confirm(self, args: argparse.Namespace, question: str) -> bool:
        if args.yes:
            return True
        try:
            answer = input(f"{question} [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")


def format_tree(
    items: List[BookmarkItem], depth: int = 0, show_ids: bool = True
) -> List[str]:
    """
    Render a tree as indented text lines.

    Args:
        items: Items to render
        depth: Current nesting level
        show_ids: Whether to append each item's id

    Returns:
        One line per item
    """
    lines = []
    indent = "  " * depth
    for item in items:
        suffix = f"  [{item.id}]" if show_ids else ""
        if isinstance(item, Folder):
            lines.append(f"{indent}+ {item.title}/{suffix}")
            lines.extend(format_tree(item.children, depth + 1, show_ids))
        else:
            star = "* " if item.is_favorite else ""
            tags = f" #{' #'.join(item.tags)}" if item.tags else ""
            lines.append(f"{indent}- {star}{item.title} <{item.url}>{tags}{suffix}")
    return lines


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    cli = CLIInterface()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
