"""Data models for treefilter."""

from treefilter.models.filter_def import FilterDefinition
from treefilter.models.test_node import (
    GLOBAL_NAMESPACE,
    MethodIdentifier,
    NodeProperty,
    TestNode,
)

__all__ = [
    "FilterDefinition",
    "GLOBAL_NAMESPACE",
    "MethodIdentifier",
    "NodeProperty",
    "TestNode",
]
