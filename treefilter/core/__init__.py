"""Core logic for treefilter.

This module provides the core functionality:
- compile_pattern: Filter string compiler
- matches / matches_prefix: Evaluation of compiled patterns
- TreeNodeFilter, NopFilter, UidListFilter: Execution filters
- FilterEngine: Filtering of flat node lists with statistics
- BFSTestNodeVisitor: Filtered breadth-first walk of test trees
- PluginManager: Plugin discovery and registration
- ConfigLoader: Configuration file loading
"""

from treefilter.core.config import (
    Config,
    ConfigError,
    ConfigLoader,
    GeneralConfig,
    OutputConfig,
)
from treefilter.core.expressions import (
    And,
    Equals,
    Expression,
    FilterPattern,
    Glob,
    Literal,
    Not,
    NotEquals,
    Or,
)
from treefilter.core.filter import (
    ExecutionFilter,
    FilterEngine,
    FilterStats,
    NopFilter,
    PatternCache,
    TreeNodeFilter,
    UidListFilter,
    derive_node_path,
)
from treefilter.core.matcher import PropertyLookup, matches, matches_prefix
from treefilter.core.parser import PatternSyntaxError, compile_pattern
from treefilter.core.plugin import (
    NoPluginFoundError,
    PluginConflictError,
    PluginError,
    PluginManager,
)
from treefilter.core.visitor import BFSTestNodeVisitor, VisitedNode

__all__ = [
    "And",
    "BFSTestNodeVisitor",
    "Config",
    "ConfigError",
    "ConfigLoader",
    "Equals",
    "ExecutionFilter",
    "Expression",
    "FilterEngine",
    "FilterPattern",
    "FilterStats",
    "GeneralConfig",
    "Glob",
    "Literal",
    "NoPluginFoundError",
    "NopFilter",
    "Not",
    "NotEquals",
    "Or",
    "OutputConfig",
    "PatternCache",
    "PatternSyntaxError",
    "PluginConflictError",
    "PluginError",
    "PluginManager",
    "PropertyLookup",
    "TreeNodeFilter",
    "UidListFilter",
    "VisitedNode",
    "compile_pattern",
    "derive_node_path",
    "matches",
    "matches_prefix",
]
