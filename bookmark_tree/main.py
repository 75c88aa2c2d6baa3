#!/usr/bin/env python3
"""
Main entry point for the bookmark tree command-line tool.
"""

import sys
from bookmark_tree.cli import main


if __name__ == "__main__":
    sys.exit(main())
