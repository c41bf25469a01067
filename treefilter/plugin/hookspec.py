"""Hook specifications for treefilter plugins.

Plugins load test node trees from files produced by a discovery tool, so the
filters can run over them. Plugins use the @hookimpl decorator to register
their implementations.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from treefilter.models.filter_def import FilterDefinition
    from treefilter.models.test_node import TestNode

hookspec = pluggy.HookspecMarker("treefilter")


class TreeFilterHookSpec:
    """Hook specification defining the plugin interface."""

    @hookspec
    def can_handle(self, path: Path) -> float:
        """Determine if this plugin can load the given node file.

        Args:
            path: Path to the file to check.

        Returns:
            Confidence score from 0.0 to 1.0:
            - 0.0: Cannot handle this file
            - 0.5: Might be able to handle (ambiguous)
            - 1.0: Definitely can handle this file

            The plugin with the highest confidence score will be selected.
            If no plugin has confidence >= 0.5, an error is raised.
        """

    @hookspec
    def load_nodes(self, path: Path) -> list["TestNode"]:
        """Load the test node trees stored in a file.

        Args:
            path: Path to the file to load.

        Returns:
            The root nodes, with their children populated.
        """

    @hookspec
    def get_filters(self) -> list["FilterDefinition"]:
        """Get filter definitions provided by this plugin.

        Returns:
            List of FilterDefinition objects users can select by id.
        """
