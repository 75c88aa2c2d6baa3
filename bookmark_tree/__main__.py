#!/usr/bin/env python3
"""
Package entry point for the bookmark tree command-line tool.

This allows the package to be executed with: python -m bookmark_tree
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
