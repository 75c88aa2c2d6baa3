"""
Bookmark Tree

A hierarchical bookmark collection kept in one JSON document, with Netscape
bookmark HTML import/export, merge of imported files and dead-link checks.
"""

__version__ = "1.0.0"
