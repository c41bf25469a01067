"""Entry point for treefilter CLI."""

import json
import logging
from pathlib import Path

import rich_click as click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from treefilter.core.config import OUTPUT_FORMATS, Config, ConfigError, ConfigLoader
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
    flatten_operands,
)
from treefilter.core.filter import PatternCache, TreeNodeFilter
from treefilter.core.lexical import decode_segment
from treefilter.core.matcher import matches
from treefilter.core.parser import PatternSyntaxError
from treefilter.core.plugin import (
    NoPluginFoundError,
    PluginConflictError,
    PluginError,
    PluginManager,
)
from treefilter.core.visitor import BFSTestNodeVisitor
from treefilter.plugins.json_nodes import JsonNodesPlugin

click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True


def _configure_logging(verbose: bool) -> None:
    """Send library logging to stderr, at DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _get_plugin_manager() -> PluginManager:
    """Create and configure the plugin manager.

    The built-in JSON loader is always available; further plugins are
    discovered via entry points.

    Returns:
        Configured PluginManager instance.
    """
    manager = PluginManager()
    manager.register(JsonNodesPlugin())
    manager.discover()
    return manager


def _load_config(config_path: str | None) -> Config:
    """Load the explicit config file, or merge the discovered ones."""
    loader = ConfigLoader()
    if config_path:
        return loader.load(Path(config_path))
    return loader.load_merged()


def _parse_properties(props: tuple[str, ...]) -> dict[str, list[str]]:
    """Turn repeated KEY=VALUE options into a multi-valued mapping.

    Raises:
        click.BadParameter: If an option has no '=' or an empty key.
    """
    properties: dict[str, list[str]] = {}
    for prop in props:
        key, sep, value = prop.partition("=")
        if not sep or not key:
            raise click.BadParameter(
                f"Expected KEY=VALUE, got '{prop}'",
                param_hint="'--prop'",
            )
        properties.setdefault(key, []).append(value)
    return properties


def _print_syntax_error(console: Console, error: PatternSyntaxError) -> None:
    """Print a syntax error with a caret under the offending character."""
    console.print(f"[red]Error:[/red] Invalid filter: {escape(error.message)}")
    if error.source is not None and error.position is not None:
        console.print(f"  {error.source}", markup=False, highlight=False)
        console.print("  " + " " * error.position + "^", markup=False, highlight=False)


def _describe_expression(expr: Expression, tree: Tree) -> None:
    """Add ``expr`` and its operands below ``tree``."""
    if isinstance(expr, (And, Or)):
        label = "AND" if isinstance(expr, And) else "OR"
        branch = tree.add(f"[bold magenta]{label}[/bold magenta]")
        for operand in flatten_operands(expr, type(expr)):
            _describe_expression(operand, branch)
    elif isinstance(expr, Not):
        _describe_expression(expr.inner, tree.add("[bold magenta]NOT[/bold magenta]"))
    elif isinstance(expr, Glob):
        tree.add(f"glob [green]{escape(expr.to_string())}[/green]")
    elif isinstance(expr, Literal):
        label = f"literal [green]{escape(repr(expr.text))}[/green]"
        display_name = decode_segment(expr.text)
        if display_name != expr.text:
            label += f" [dim](display name {escape(repr(display_name))})[/dim]"
        tree.add(label)
    elif isinstance(expr, (Equals, NotEquals)):
        op = "=" if isinstance(expr, Equals) else "!="
        tree.add(f"property [cyan]{escape(repr(expr.key))}[/cyan] {op} [green]{escape(repr(expr.value))}[/green]")
    else:
        tree.add(escape(expr.to_string()))


def _explain(pattern: FilterPattern) -> Tree:
    """Build a printable tree of a compiled filter."""
    tree = Tree(f"[bold]{escape(pattern.source)}[/bold]", highlight=False)
    for index, segment in enumerate(pattern.segments, start=1):
        _describe_expression(segment, tree.add(f"segment {index}"))
    if pattern.is_recursive_tail:
        tree.add("[yellow]**[/yellow] any remaining segments")
    if pattern.property_predicate is not None:
        _describe_expression(pattern.property_predicate, tree.add("properties"))
    return tree


def _output_selection(
    console: Console,
    selection: list[dict],
    total: int,
    output_format: str,
) -> None:
    """Output selected candidates in the specified format.

    Args:
        console: Rich console for output.
        selection: One dict per selected candidate (always holds "path").
        total: Number of candidates considered.
        output_format: Output format (text, json, count).
    """
    if output_format.lower() == "json":
        # JSONL format: one JSON object per line
        for obj in selection:
            print(json.dumps(obj))

    elif output_format.lower() == "count":
        console.print(f"selected={len(selection)} total={total}")

    else:
        # markup=False: node names may contain [brackets]
        for obj in selection:
            line = obj["path"]
            if "uid" in obj:
                line = f"{line}  ({obj['uid']})"
            console.print(line, markup=False, highlight=False)


def _select_from_file(
    ctx: click.Context,
    console: Console,
    nodes_file: str,
    plugin_name: str | None,
    node_filter: TreeNodeFilter,
) -> tuple[list[dict], int]:
    """Load a node file with a plugin and select its leaves.

    Returns:
        Tuple of (selected leaves as dicts, number of leaves in the file).
    """
    manager = _get_plugin_manager()
    path = Path(nodes_file)

    if plugin_name:
        plugin = manager.get_plugin(plugin_name)
        if plugin is None:
            console.print(f"[red]Error:[/red] Plugin '{plugin_name}' not found.")
            console.print("\nAvailable plugins:")
            for name in manager.list_plugins():
                console.print(f"  - {name}")
            ctx.exit(1)
    else:
        try:
            plugin = manager.get_plugin(manager.auto_detect(path))
        except NoPluginFoundError as e:
            console.print("[red]Error:[/red] No plugin can handle this file.")
            console.print(f"  {escape(str(e))}")
            console.print("\nInstalled plugins:")
            for name in manager.list_plugins():
                console.print(f"  - {name}")
            console.print("\nUse --plugin to specify a plugin manually.")
            ctx.exit(1)
        except PluginConflictError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            ctx.exit(1)

    try:
        roots = plugin.load_nodes(path)
    except PluginError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)

    total = len(BFSTestNodeVisitor(roots).selected_leaves())
    selection = [
        {
            "path": visited.path,
            "uid": visited.node.uid,
            "display_name": visited.node.display_name,
            "parent_uid": visited.parent_uid,
        }
        for visited in BFSTestNodeVisitor(roots, node_filter).selected_leaves()
    ]
    return selection, total


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("filter_string", metavar="FILTER", required=False)
@click.argument("nodes", required=False, type=click.Path(exists=True))
@click.option("--version", is_flag=True, help="Show version and exit.")
@click.option(
    "--list-plugins",
    is_flag=True,
    help="List all available plugins and exit."
)
@click.option(
    "--plugin",
    type=str,
    help="Force a specific plugin for loading NODES (bypasses auto-detection)."
)
@click.option(
    "--path",
    "paths",
    type=str,
    multiple=True,
    help="Encoded node path to match, e.g. '/MyTests/Adds' (can be repeated)."
)
@click.option(
    "--prop",
    "props",
    type=str,
    multiple=True,
    help="Property KEY=VALUE given to every --path (can be repeated)."
)
@click.option(
    "--explain",
    is_flag=True,
    help="Print the compiled filter as a tree."
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default=None,
    help="Output format: text, json (JSONL), or count. Default from config, else text."
)
@click.option(
    "--check",
    is_flag=True,
    help="Exit 1 if the filter selects nothing."
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Use this config file instead of the discovered ones."
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show debug logging on stderr."
)
@click.pass_context
def cli(
    ctx: click.Context,
    filter_string: str | None,
    nodes: str | None,
    version: bool,
    list_plugins: bool,
    plugin: str | None,
    paths: tuple[str, ...],
    props: tuple[str, ...],
    explain: bool,
    output_format: str | None,
    check: bool,
    config_path: str | None,
    verbose: bool,
) -> None:
    """Treefilter - select tests from a test tree with filter expressions.

    FILTER is a filter such as [bold]/MyNamespace/*Tests/**\\[Category=Fast][/bold],
    or [bold]@name[/bold] for a filter named in the config. Candidates come from a
    NODES file loaded by a plugin, or from --path options.
    """
    console = Console()
    _configure_logging(verbose)

    if version:
        from treefilter import __version__
        click.echo(f"treefilter {__version__}")
        return

    if list_plugins:
        manager = _get_plugin_manager()
        plugins = manager.list_plugins()

        if not plugins:
            console.print("[yellow]No plugins found.[/yellow]")
            return

        table = Table(title="Available Plugins")
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Version", style="green")
        table.add_column("Description")
        table.add_column("Filters", style="magenta")

        for name in sorted(plugins):
            info = manager.get_plugin_info(name)
            if info:
                table.add_row(
                    info["name"],
                    info.get("version", "unknown"),
                    info.get("description", ""),
                    ", ".join(
                        f"@{definition.id}"
                        for definition in manager.get_plugin(name).get_filters()
                    ),
                )

        console.print(table)
        return

    if not filter_string:
        console.print("[red]Error:[/red] Missing FILTER argument.")
        console.print("\nRun 'treefilter --help' for usage.")
        ctx.exit(1)

    try:
        config = _load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)

    if not config.output.color:
        console = Console(no_color=True)

    if filter_string.startswith("@"):
        plugin_filters = {
            filter_id: definition.pattern
            for filter_id, definition in _get_plugin_manager().collect_filters().items()
        }
        try:
            filter_string = config.resolve_filter(filter_string, plugin_filters)
        except ConfigError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            ctx.exit(1)

    try:
        node_filter = TreeNodeFilter(filter_string, cache=PatternCache())
    except PatternSyntaxError as e:
        _print_syntax_error(console, e)
        ctx.exit(1)

    if explain:
        console.print(_explain(node_filter.pattern))
        if not nodes and not paths:
            return

    if not nodes and not paths:
        console.print("[red]Error:[/red] Nothing to match. Give a NODES file or --path.")
        ctx.exit(1)

    output_format = output_format or config.output.format
    properties = _parse_properties(props)

    selection: list[dict] = []
    total = 0

    for candidate in paths:
        total += 1
        if matches(node_filter.pattern, candidate, properties):
            selection.append({"path": candidate})

    if nodes:
        file_selection, file_total = _select_from_file(
            ctx,
            console,
            nodes,
            plugin or config.general.default_plugin,
            node_filter,
        )
        selection.extend(file_selection)
        total += file_total

    _output_selection(console, selection, total, output_format)

    if check and not selection:
        ctx.exit(1)


if __name__ == "__main__":
    cli()
