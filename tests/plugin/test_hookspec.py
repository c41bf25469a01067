"""Tests for the plugin hook specification.

Tests verify that:
- TreeFilterHookSpec defines all required hooks
- hookimpl decorator is available for plugins
- TreeFilterPlugin base class provides sensible defaults
"""

from pathlib import Path

import pluggy

from treefilter.models.test_node import TestNode
from treefilter.plugin import TreeFilterPlugin, hookimpl, TreeFilterHookSpec


def test_hookspec_defines_required_hooks():
    """TreeFilterHookSpec should define all required hooks."""
    spec = TreeFilterHookSpec()
    assert hasattr(spec, "can_handle")
    assert hasattr(spec, "load_nodes")
    assert hasattr(spec, "get_filters")


def test_base_plugin_has_defaults():
    """TreeFilterPlugin should provide default implementations."""

    class TestPlugin(TreeFilterPlugin):
        name = "test"

    plugin = TestPlugin()
    assert plugin.can_handle(Path("tests.json")) == 0.0
    assert plugin.load_nodes(Path("tests.json")) == []
    assert plugin.get_filters() == []


def test_hookimpl_decorator_available():
    """hookimpl decorator should be importable and usable."""

    class TestPlugin(TreeFilterPlugin):
        name = "test"

        @hookimpl
        def can_handle(self, path):
            return 0.5

    plugin = TestPlugin()
    assert plugin.can_handle(Path("tests.json")) == 0.5
    assert hasattr(TestPlugin.can_handle, "treefilter_impl")


def test_hooks_callable_through_pluggy():
    """A plugin registered with pluggy answers load_nodes through the hook."""

    class TreePlugin(TreeFilterPlugin):
        name = "tree"

        @hookimpl
        def load_nodes(self, path):
            return [TestNode(uid="root", display_name=path.stem)]

    pm = pluggy.PluginManager("treefilter")
    pm.add_hookspecs(TreeFilterHookSpec)
    pm.register(TreePlugin())

    results = pm.hook.load_nodes(path=Path("suite.json"))
    assert [node.display_name for nodes in results for node in nodes] == ["suite"]
