"""Main CLI module for treefilter.

This module re-exports the CLI for convenience. The main implementation
is in __main__.py.
"""

from treefilter.__main__ import cli

__all__ = ["cli"]
