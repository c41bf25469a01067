"""Loader plugin registry for treefilter.

Loader plugins turn a file written by some test discovery tool into TestNode
trees. They are found through the ``treefilter.plugins`` entry point group or
registered by hand, and a file is routed to the single plugin that claims it
with enough confidence.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from pathlib import Path
from typing import TYPE_CHECKING

import pluggy

from treefilter.plugin import TreeFilterHookSpec, TreeFilterPlugin

if TYPE_CHECKING:
    from treefilter.models.filter_def import FilterDefinition

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "treefilter.plugins"

# A plugin must score at least this much to be picked without --plugin
CONFIDENCE_THRESHOLD = 0.5


class PluginError(Exception):
    """A node file could not be routed to, or loaded by, a plugin."""


class PluginConflictError(PluginError):
    """More than one plugin claims a node file."""


class NoPluginFoundError(PluginError):
    """No plugin claims a node file."""


class PluginManager:
    """Registry of loader plugins, keyed by plugin name.

    Example:
        manager = PluginManager()
        manager.register(JsonNodesPlugin())
        manager.discover()

        plugin = manager.get_plugin(manager.auto_detect(path))
        roots = plugin.load_nodes(path)
    """

    def __init__(self) -> None:
        self.pm = pluggy.PluginManager("treefilter")
        self.pm.add_hookspecs(TreeFilterHookSpec)
        self._plugins: dict[str, TreeFilterPlugin] = {}

    def register(self, plugin: TreeFilterPlugin) -> bool:
        """Add a plugin under its ``name``.

        Returns:
            False if a plugin of that name was already registered; the
            earlier one is kept.
        """
        if plugin.name in self._plugins:
            logger.debug("Plugin %r already registered, keeping the first", plugin.name)
            return False
        self._plugins[plugin.name] = plugin
        self.pm.register(plugin, name=plugin.name)
        return True

    def unregister(self, name: str) -> None:
        plugin = self._plugins.pop(name, None)
        if plugin is not None:
            self.pm.unregister(plugin)

    def discover(self) -> list[str]:
        """Register the plugins advertised under ``treefilter.plugins``.

        An entry point that cannot be imported or instantiated is logged and
        skipped, so one broken package does not take the CLI down.

        Returns:
            Names of the plugins this call added.
        """
        added = []
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                plugin = ep.load()()
            except Exception as e:
                logger.warning("Skipping plugin entry point %r: %s", ep.name, e)
                continue
            if self.register(plugin):
                added.append(plugin.name)

        logger.debug("Discovered plugins: %s", added)
        return added

    def list_plugins(self) -> list[str]:
        """Registered plugin names, in registration order."""
        return list(self._plugins)

    def get_plugin(self, name: str) -> TreeFilterPlugin | None:
        return self._plugins.get(name)

    def get_plugin_info(self, name: str) -> dict[str, str] | None:
        """Name, version and description of a plugin, or None if unknown."""
        plugin = self._plugins.get(name)
        if plugin is None:
            return None
        return {
            "name": plugin.name,
            "version": getattr(plugin, "version", "0.0.0"),
            "description": getattr(plugin, "description", ""),
        }

    def collect_filters(self) -> dict[str, FilterDefinition]:
        """Gather the filter definitions offered by every registered plugin.

        Returns:
            Definitions keyed by id. When two plugins offer the same id, the
            one registered first is kept.
        """
        collected: dict[str, FilterDefinition] = {}
        for name, plugin in self._plugins.items():
            for definition in plugin.get_filters() or []:
                if definition.id in collected:
                    logger.debug(
                        "Filter %r from plugin %r shadowed by %r",
                        definition.id,
                        name,
                        collected[definition.id].source,
                    )
                    continue
                collected[definition.id] = definition
        return collected

    def score(self, path: Path) -> list[tuple[str, float]]:
        """Ask every plugin how confident it is that it can load ``path``.

        A plugin whose ``can_handle`` raises is logged and left out.

        Returns:
            ``(name, confidence)`` pairs, highest confidence first.
        """
        scores = []
        for name, plugin in self._plugins.items():
            try:
                confidence = plugin.can_handle(path)
            except Exception as e:
                logger.warning("Plugin %r failed to check %s: %s", name, path, e)
                continue
            if confidence is not None:
                scores.append((name, float(confidence)))
        return sorted(scores, key=lambda item: item[1], reverse=True)

    def auto_detect(self, path: Path) -> str:
        """Pick the one plugin that claims ``path``.

        Returns:
            Name of the only plugin scoring at least CONFIDENCE_THRESHOLD.

        Raises:
            NoPluginFoundError: If no plugin reaches the threshold.
            PluginConflictError: If several plugins reach it.
        """
        if not self._plugins:
            raise NoPluginFoundError(
                f"No plugins registered. Cannot detect plugin for {path}"
            )

        scores = self.score(path)
        if not scores:
            raise NoPluginFoundError(f"No plugin could analyze {path}")

        claims = [(name, s) for name, s in scores if s >= CONFIDENCE_THRESHOLD]

        if not claims:
            best_name, best_score = scores[0]
            raise NoPluginFoundError(
                f"No plugin has confidence >= {CONFIDENCE_THRESHOLD} for {path}. "
                f"Best match: {best_name} with confidence {best_score:.2f}"
            )

        if len(claims) > 1:
            listed = ", ".join(f"{name} ({s:.2f})" for name, s in claims)
            raise PluginConflictError(
                f"Multiple plugins claim {path}: {listed}. "
                f"Use --plugin to choose one."
            )

        logger.debug("Selected plugin %r for %s", claims[0][0], path)
        return claims[0][0]
