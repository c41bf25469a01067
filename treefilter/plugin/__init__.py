"""Plugin system for treefilter.

This module provides the plugin infrastructure using pluggy.
Plugins implement hooks defined in hookspec.py to load test node trees.

Usage:
    from treefilter.plugin import TreeFilterPlugin, hookimpl

    class MyPlugin(TreeFilterPlugin):
        name = "my-plugin"

        @hookimpl
        def can_handle(self, path):
            return 0.9 if path.suffix == ".mytests" else 0.0

        @hookimpl
        def load_nodes(self, path):
            return [...]
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pluggy

from treefilter.plugin.hookspec import TreeFilterHookSpec

if TYPE_CHECKING:
    from treefilter.models.filter_def import FilterDefinition
    from treefilter.models.test_node import TestNode

hookimpl = pluggy.HookimplMarker("treefilter")

__all__ = ["TreeFilterPlugin", "hookimpl", "TreeFilterHookSpec"]


class TreeFilterPlugin:
    """Base class for treefilter plugins.

    Subclasses must define:
        name: Unique identifier for the plugin (str)

    Optional hooks (have defaults):
        can_handle(): Detection (default: 0.0)
        load_nodes(): Loading (default: empty list)
        get_filters(): Pre-defined filters (default: empty list)

    Optional attributes:
        version: Plugin version string (str)
        description: Human-readable description (str)
    """

    name: str = "base"
    version: str = "0.0.0"
    description: str = ""

    @hookimpl
    def can_handle(self, path: Path) -> float:
        """Default implementation: cannot handle any files."""
        return 0.0

    @hookimpl
    def load_nodes(self, path: Path) -> list["TestNode"]:
        """Default implementation: returns empty list."""
        return []

    @hookimpl
    def get_filters(self) -> list["FilterDefinition"]:
        """Default implementation: returns empty list."""
        return []
