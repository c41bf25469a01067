"""treefilter - select tests from a discovered test tree.

Filters match a hierarchical node path and the node's properties::

    from treefilter import TreeNodeFilter

    flt = TreeNodeFilter("/MyNamespace/*Tests/**[Category=Fast]")
    flt.matches("/MyNamespace/MathTests/Adds", {"Category": "Fast"})
"""

from treefilter.core.filter import NopFilter, PatternCache, TreeNodeFilter, UidListFilter
from treefilter.core.matcher import matches
from treefilter.core.parser import PatternSyntaxError, compile_pattern

__version__ = "0.1.0"

__all__ = [
    "NopFilter",
    "PatternCache",
    "PatternSyntaxError",
    "TreeNodeFilter",
    "UidListFilter",
    "__version__",
    "compile_pattern",
    "matches",
]
