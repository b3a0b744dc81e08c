"""Command-line interface module for the row flattener.

This module provides the ``xml-row-flattener`` tool that turns one XML export
into line-delimited JSON rows.
"""

from .main import main

__all__ = ["main"]
