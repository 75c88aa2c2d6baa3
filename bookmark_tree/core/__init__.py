"""
Core bookmark tree modules.

This package contains the data model, the JSON store, the mutation and
merge engines, URL normalization, the Netscape HTML parser and generator,
the dead-link checker and tag suggestion.
"""

from .bookmark_service import BookmarkService
from .bookmark_store import BookmarkStore
from .data_models import Bookmark, BookmarkItem, Folder, Tree
from .link_checker import LinkChecker, LinkCheckReport, LinkStatus
from .netscape_html_generator import NetscapeHTMLGenerator
from .netscape_html_parser import NetscapeHTMLParser
from .url_normalizer import normalize_url

__all__ = [
    'Bookmark',
    'BookmarkItem',
    'BookmarkService',
    'BookmarkStore',
    'Folder',
    'LinkChecker',
    'LinkCheckReport',
    'LinkStatus',
    'NetscapeHTMLGenerator',
    'NetscapeHTMLParser',
    'Tree',
    'normalize_url',
]
