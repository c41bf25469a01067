"""JSON test tree loader plugin for treefilter.

Reads test node trees exported as JSON. The document is either a list of root
nodes or an object holding them under ``"nodes"``::

    {
      "nodes": [
        {
          "uid": "MyModule",
          "display_name": "MyModule",
          "children": [
            {
              "uid": "MyModule.MathTests.Adds",
              "display_name": "Adds",
              "properties": {"Category": ["Fast", "Math"]},
              "method_identifier": {
                "namespace": "MyModule", "type_name": "MathTests", "method_name": "Adds"
              }
            }
          ]
        }
      ]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from treefilter.core.plugin import PluginError
from treefilter.models.filter_def import FilterDefinition
from treefilter.models.test_node import TestNode
from treefilter.plugin import TreeFilterPlugin, hookimpl


def _root_list(document: Any) -> list | None:
    """Return the list of root node objects held by a document, if any."""
    if isinstance(document, list):
        return document
    if isinstance(document, dict) and isinstance(document.get("nodes"), list):
        return document["nodes"]
    return None


def _looks_like_node(obj: Any) -> bool:
    return isinstance(obj, dict) and "uid" in obj and "display_name" in obj


class JsonNodesPlugin(TreeFilterPlugin):
    """Loader for JSON test tree exports.

    Attributes:
        name: Plugin identifier ("json")
        version: Plugin version
        description: Human-readable description
    """

    name = "json"
    version = "1.0.0"
    description = "Loads test node trees from JSON exports"

    @hookimpl
    def can_handle(self, path: Path) -> float:
        """Score a file by extension and by the shape of its content."""
        path = Path(path)
        if path.suffix.lower() != ".json":
            return 0.0

        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return 0.1

        roots = _root_list(document)
        if roots is None:
            return 0.1
        if not roots or all(_looks_like_node(obj) for obj in roots):
            return 0.9
        return 0.3

    @hookimpl
    def load_nodes(self, path: Path) -> list[TestNode]:
        """Load the root nodes stored in a JSON file.

        Raises:
            PluginError: If the file is not valid JSON or does not describe
                test nodes.
        """
        path = Path(path)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PluginError(f"Invalid JSON in {path}: {e}") from e

        roots = _root_list(document)
        if roots is None:
            raise PluginError(
                f"{path} must hold a list of nodes or an object with a 'nodes' list"
            )

        try:
            return [TestNode.model_validate(obj) for obj in roots]
        except ValidationError as e:
            raise PluginError(f"Invalid test node in {path}: {e}") from e

    @hookimpl
    def get_filters(self) -> list[FilterDefinition]:
        """Filters that make sense for any test tree."""
        return [
            FilterDefinition(
                id="all",
                name="All tests",
                pattern="/**",
                source=f"plugin:{self.name}",
                description="Select every test node",
            ),
        ]
