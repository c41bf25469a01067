"""Tests for the breadth-first test tree visitor."""

from treefilter.core.filter import NopFilter, TreeNodeFilter, UidListFilter
from treefilter.core.visitor import BFSTestNodeVisitor, VisitedNode
from treefilter.models.test_node import TestNode


def _node(uid, name, *children, **properties):
    return TestNode(uid=uid, display_name=name, properties=properties, children=list(children))


def _visit(roots, node_filter=None):
    return [visited.node.uid for visited in BFSTestNodeVisitor(roots, node_filter).visit()]


def _leaves(roots, node_filter=None):
    return [v.node.uid for v in BFSTestNodeVisitor(roots, node_filter).selected_leaves()]


class TestTraversal:
    """Tests for traversal order and reported paths."""

    def test_breadth_first_order(self, tree):
        assert _visit(tree) == [
            "MyModule",
            "MyModule.MathTests",
            "MyModule.StringTests",
            "MyModule.MathTests.Adds",
            "MyModule.MathTests.Subtracts",
            "MyModule.MathTests.DividesZero",
            "MyModule.StringTests.Concat",
        ]

    def test_default_filter_is_nop(self, tree):
        visitor = BFSTestNodeVisitor(tree)
        assert isinstance(visitor.node_filter, NopFilter)

    def test_paths_and_parents(self, tree):
        visited = {v.node.uid: v for v in BFSTestNodeVisitor(tree).visit()}

        assert visited["MyModule"] == VisitedNode(
            node=tree[0], parent_uid=None, path="/MyModule"
        )
        assert visited["MyModule.MathTests"].parent_uid == "MyModule"
        assert visited["MyModule.MathTests.Adds"].path == "/MyModule/MathTests/Adds"
        assert visited["MyModule.MathTests.Adds"].parent_uid == "MyModule.MathTests"
        assert (
            visited["MyModule.MathTests.DividesZero"].path
            == "/MyModule/MathTests/Divides%2FZero"
        )

    def test_multiple_roots(self):
        roots = [_node("a", "A"), _node("b", "B")]
        assert _visit(roots) == ["a", "b"]

    def test_visit_can_be_repeated(self, tree):
        visitor = BFSTestNodeVisitor(tree)
        assert list(visitor.visit()) == list(visitor.visit())


class TestFiltering:
    """Tests for pruning with a filter."""

    def test_prunes_unmatched_containers(self, tree):
        flt = TreeNodeFilter("/MyModule/MathTests/Adds")
        assert _visit(tree, flt) == [
            "MyModule",
            "MyModule.MathTests",
            "MyModule.MathTests.Adds",
        ]

    def test_selected_leaves(self, tree):
        flt = TreeNodeFilter("/MyModule/**[Category=Fast]")
        assert _leaves(tree, flt) == [
            "MyModule.MathTests.Adds",
            "MyModule.StringTests.Concat",
        ]

    def test_recursive_tail_selects_subtree(self, tree):
        flt = TreeNodeFilter("/MyModule/StringTests/**")
        assert _leaves(tree, flt) == ["MyModule.StringTests.Concat"]

    def test_nothing_selected(self, tree):
        assert _visit(tree, TreeNodeFilter("/Other/**")) == []

    def test_uid_list_filter(self, tree):
        flt = UidListFilter(["MyModule.StringTests.Concat"])
        assert _leaves(tree, flt) == ["MyModule.StringTests.Concat"]


class TestSlashInDisplayName:
    """A display name holding '/' is one segment, addressed with %2F."""

    def _tree(self):
        # A
        #   B/C        (leaf)
        #   B
        #     C        (leaf)
        return [
            _node(
                "a",
                "A",
                _node("a.bc", "B/C"),
                _node("a.b", "B", _node("a.b.c", "C")),
            )
        ]

    def test_encoded_filter_selects_slash_name(self):
        assert _leaves(self._tree(), TreeNodeFilter("/A/B%2FC")) == ["a.bc"]

    def test_plain_filter_selects_nested_node(self):
        assert _leaves(self._tree(), TreeNodeFilter("/A/B/C")) == ["a.b.c"]

    def test_glob_sees_encoded_name(self):
        assert _leaves(self._tree(), TreeNodeFilter("/A/B*")) == ["a.bc"]

    def test_percent_in_name_is_encoded(self):
        roots = [_node("x", "X%2FY")]
        visited = list(BFSTestNodeVisitor(roots).visit())
        assert visited[0].path == "/X%252FY"
        assert _leaves(roots, TreeNodeFilter("/X%252FY")) == ["x"]
        assert _leaves(roots, TreeNodeFilter("/X%2FY")) == []

    def test_empty_display_names(self):
        roots = [_node("root", "", _node("child", ""))]
        visited = list(BFSTestNodeVisitor(roots).visit())
        assert [v.path for v in visited] == ["/", "//"]
        assert _leaves(roots, TreeNodeFilter("/**")) == ["child"]
        assert _leaves(roots, TreeNodeFilter("/A/**")) == []
