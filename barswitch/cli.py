"""
CLI interface for bookmark-bar switching.

Usage:
    barswitch list
    barswitch create Work
    barswitch select Work
    barswitch tree
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from typing_extensions import Annotated

from .api import BarSwitcher
from .config import get_default_store_path
from .errors import StoreUnavailable, UnknownCollection
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .types import Node


# Configure quiet mode by default
# Set BARSWITCH_VERBOSE=1 to enable debug mode via environment
if os.environ.get("BARSWITCH_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"barswitch {version('barswitch')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    if value is not None:
        _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="barswitch",
    help="Switch between named bookmark bars.",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode=None,
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="BARSWITCH_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Switch between named bookmark bars."""
    # If no subcommand provided, list the bars
    if ctx.invoked_subcommand is None:
        list_cmd(store=None)


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        envvar="BARSWITCH_STORE_PATH",
        help="Path to the store directory (default: ~/.barswitch/)"
    )
]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _run(store: Optional[Path], action: Callable[[BarSwitcher], Awaitable[Any]]) -> Any:
    """Open the switcher, run *action*, and wait for reconciliation to finish."""
    path = store if store is not None else _get_store_override()
    if path is None:
        path = get_default_store_path()

    async def go():
        switcher = await BarSwitcher.open(path)
        handler = configure_ops_log(switcher.config.path)
        try:
            result = await action(switcher)
            await switcher.settle()
            return result
        finally:
            switcher.close()
            logging.getLogger("barswitch").removeHandler(handler)
            handler.close()

    try:
        return asyncio.run(go())
    except StoreUnavailable as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _format_collections(names: tuple[str, ...], current: str) -> str:
    lines = []
    for name in names:
        marker = "*" if name == current else " "
        lines.append(f"{marker} {name}")
    if current not in names:
        lines.append(f"* {current} (no storage folder)")
    return "\n".join(lines)


async def _tree(switcher: BarSwitcher, folder_id: str) -> list[dict]:
    out = []
    for node in await switcher.store.list_children(folder_id):
        entry: dict = {"id": node.id, "title": node.title}
        if node.is_folder:
            entry["children"] = await _tree(switcher, node.id)
        else:
            entry["url"] = node.url
        out.append(entry)
    return out


def _format_tree(entries: list[dict], depth: int = 0) -> list[str]:
    lines = []
    indent = "    " * depth
    for entry in entries:
        if "children" in entry:
            lines.append(f"{indent}[{entry['id']}] {entry['title']}/")
            lines.extend(_format_tree(entry["children"], depth + 1))
        else:
            lines.append(f"{indent}[{entry['id']}] {entry['title']}  {entry['url']}")
    return lines


def _format_node(node: Node) -> str:
    if node.is_folder:
        return f"[{node.id}] {node.title}/"
    return f"[{node.id}] {node.title}  {node.url}"


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command("list")
def list_cmd(
    store: StoreOption = None,
):
    """List bookmark bars; the current one is marked with *."""
    collections = _run(store, lambda sw: sw.list_collections())
    if _get_json_output():
        typer.echo(json.dumps(collections.to_dict(), indent=2))
    else:
        typer.echo(_format_collections(collections.names, collections.current))


@app.command()
def select(
    name: Annotated[str, typer.Argument(help="Bookmark bar to show")],
    store: StoreOption = None,
):
    """Switch the bookmark bar to NAME."""
    async def action(sw: BarSwitcher):
        try:
            return await sw.select(name)
        except UnknownCollection:
            return None

    switched = _run(store, action)
    if switched is None:
        typer.echo(f"Error: No bookmark bar named {name!r}", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps({"current": name, "switched": switched}))
    elif switched:
        typer.echo(f"Switched to {name}")
    else:
        typer.echo(f"Already on {name}")


@app.command()
def create(
    name: Annotated[str, typer.Argument(help="Name of the new bookmark bar")],
    store: StoreOption = None,
):
    """Create a new, empty bookmark bar."""
    result = _run(store, lambda sw: sw.create_collection(name))
    if not result.ok:
        typer.echo(f"Error: {result.error.message}", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        typer.echo(json.dumps({"created": name}))
    else:
        typer.echo(f"Created {name}")


@app.command()
def tree(
    store: StoreOption = None,
):
    """Show the whole bookmark store with node ids."""
    entries = _run(store, lambda sw: _tree(sw, sw.store.root_id))
    if _get_json_output():
        typer.echo(json.dumps(entries, indent=2))
    else:
        typer.echo("\n".join(_format_tree(entries)))


@app.command()
def add(
    title: Annotated[str, typer.Argument(help="Bookmark title")],
    url: Annotated[str, typer.Argument(help="Bookmark URL")],
    folder: Annotated[Optional[str], typer.Option(
        "--folder", "-f",
        help="Folder id to add to (default: the bookmark bar)"
    )] = None,
    store: StoreOption = None,
):
    """Add a bookmark, by default to the visible bookmark bar."""
    async def action(sw: BarSwitcher):
        return await sw.store.create_node(folder or sw.registry.active_slot_id, title, url)

    try:
        node = _run(store, action)
    except (KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(_format_node(node))


@app.command()
def rename(
    node_id: Annotated[str, typer.Argument(help="Node id (see: barswitch tree)")],
    title: Annotated[str, typer.Argument(help="New title")],
    store: StoreOption = None,
):
    """
    Retitle a node directly in the store, as a bookmark manager would.

    Renaming a storage folder renames that bar; retitling the pointer
    bookmark to CurrentBB:<name> switches bars. Invalid edits snap back.
    """
    async def action(sw: BarSwitcher):
        await sw.store.update_node(node_id, title)
        await sw.settle()
        return await sw.store.get_node(node_id)

    try:
        node = _run(store, action)
    except (KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if node.title != title:
        typer.echo(f"Rejected; title restored to {node.title!r}", err=True)
    typer.echo(_format_node(node))


@app.command()
def remove(
    node_id: Annotated[str, typer.Argument(help="Node id (see: barswitch tree)")],
    store: StoreOption = None,
):
    """Remove a node (and its contents) directly from the store."""
    try:
        _run(store, lambda sw: sw.store.remove_node(node_id))
    except (KeyError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Removed {node_id}")


@app.command()
def mcp(
    store: StoreOption = None,
):
    """Start MCP stdio server for AI agent integration."""
    if store is not None:
        os.environ["BARSWITCH_STORE_PATH"] = str(store)
    elif _get_store_override() is not None:
        os.environ["BARSWITCH_STORE_PATH"] = str(_get_store_override())
    from .mcp import main as mcp_main
    mcp_main()


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="barswitch CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
