"""TestNode and related data models for treefilter.

These models describe the tree of discovered tests that filters select from.
Discovery itself happens elsewhere; loader plugins turn its output into
TestNode instances and the filters only read them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Namespace segment used when a test type lives in the global namespace
GLOBAL_NAMESPACE = "<global namespace>"


class NodeProperty(BaseModel):
    """A key/value metadata property attached to a test node.

    A node may carry several properties with the same key (e.g. more than
    one ``Category``).
    """

    model_config = ConfigDict(frozen=True)

    key: str
    value: str


class MethodIdentifier(BaseModel):
    """Hierarchical identity of the method behind a test node.

    Attributes:
        assembly: Name of the module or assembly holding the test.
        namespace: Namespace of the declaring type ("" for the global namespace).
        type_name: Name of the declaring type.
        method_name: Name of the test method.
    """

    model_config = ConfigDict(frozen=True)

    assembly: str = ""
    namespace: str = ""
    type_name: str
    method_name: str

    def path_names(self) -> list[str]:
        """Return the unencoded names making up this method's filter path."""
        namespace = self.namespace or GLOBAL_NAMESPACE
        return [namespace, self.type_name, self.method_name]


class TestNode(BaseModel):
    """A node of the discovered test tree.

    Attributes:
        uid: Stable unique identifier of the node.
        display_name: Name shown to users; also the node's path segment when
            walking a tree.
        properties: Metadata properties. A ``{key: value}`` or
            ``{key: [values]}`` mapping is accepted on input.
        method_identifier: Identity of the test method, when the node is one.
        children: Child nodes.
    """

    __test__ = False

    model_config = ConfigDict(frozen=False)

    uid: str
    display_name: str
    properties: list[NodeProperty] = []
    method_identifier: Optional[MethodIdentifier] = None
    children: list[TestNode] = []

    @field_validator("properties", mode="before")
    @classmethod
    def normalize_properties(cls, v: Any) -> Any:
        """Expand a mapping into a list of key/value properties."""
        if isinstance(v, Mapping):
            expanded: list[dict[str, str]] = []
            for key, raw in v.items():
                values = raw if isinstance(raw, (list, tuple)) else [raw]
                for value in values:
                    expanded.append({"key": str(key), "value": str(value)})
            return expanded
        return v

    @property
    def is_leaf(self) -> bool:
        """True if the node has no children."""
        return not self.children

    def get_property_values(self, key: str) -> list[str]:
        """Get every value stored under ``key``, in declaration order."""
        return [prop.value for prop in self.properties if prop.key == key]

    def property_pairs(self) -> list[tuple[str, str]]:
        """Return the properties as ``(key, value)`` pairs."""
        return [(prop.key, prop.value) for prop in self.properties]
