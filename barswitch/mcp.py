"""
MCP stdio server for barswitch: bookmark-bar switching tools for AI agents.

Usage:
    barswitch mcp                              # stdio server (via CLI)
    claude --mcp-server barswitch="barswitch mcp"

All switcher calls are serialized through a single asyncio.Lock.
"""

import asyncio
import os
from pathlib import Path
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .api import BarSwitcher
from .errors import StoreUnavailable, UnknownCollection

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "barswitch",
    instructions=(
        "Named bookmark bars for the user's browser. "
        "List the bars, switch the visible bar, or create a new empty bar."
    ),
)

_switcher: Optional[BarSwitcher] = None
_lock = asyncio.Lock()


async def _get_switcher() -> BarSwitcher:
    """Lazy-open the switcher (respects BARSWITCH_STORE_PATH env).

    Must be called inside ``async with _lock``.
    """
    global _switcher
    if _switcher is None:
        store_path = os.environ.get("BARSWITCH_STORE_PATH")
        _switcher = await BarSwitcher.open(Path(store_path) if store_path else None)
    return _switcher


# ---------------------------------------------------------------------------
# Tool annotations
# ---------------------------------------------------------------------------

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_IDEMPOTENT = ToolAnnotations(idempotentHint=True, destructiveHint=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "List the user's bookmark bars. "
        "The current (visible) bar is marked with '*'."
    ),
    annotations=_READ_ONLY,
)
async def barswitch_list() -> str:
    """List bookmark bars."""
    async with _lock:
        try:
            switcher = await _get_switcher()
            collections = await switcher.list_collections()
        except StoreUnavailable as e:
            return f"Error: {e}"

    lines = [
        f"{'*' if name == collections.current else '-'} {name}"
        for name in collections.names
    ]
    return "\n".join(lines) if lines else "No bookmark bars."


@mcp.tool(
    description=(
        "Show a different bookmark bar. The visible bar's bookmarks are stored "
        "away and the chosen bar's bookmarks take their place."
    ),
    annotations=_IDEMPOTENT,
)
async def barswitch_select(
    name: Annotated[str, Field(
        description="Name of the bookmark bar to show (see barswitch_list).",
    )],
) -> str:
    """Switch bookmark bars."""
    async with _lock:
        try:
            switcher = await _get_switcher()
            switched = await switcher.select(name)
            await switcher.settle()
        except UnknownCollection:
            return f"Error: No bookmark bar named {name!r}"
        except StoreUnavailable as e:
            return f"Error: {e}"

    return f"Switched to {name}" if switched else f"Already on {name}"


@mcp.tool(
    description=(
        "Create a new, empty bookmark bar. Names must be non-empty, unique, "
        "and may not contain ':'."
    ),
    annotations=ToolAnnotations(idempotentHint=False, destructiveHint=False),
)
async def barswitch_create(
    name: Annotated[str, Field(
        description="Name of the new bookmark bar.",
    )],
) -> str:
    """Create a bookmark bar."""
    async with _lock:
        try:
            switcher = await _get_switcher()
            result = await switcher.create_collection(name)
        except StoreUnavailable as e:
            return f"Error: {e}"

    if not result.ok:
        return f"Error: {result.error.message}"
    return f"Created: {name}"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """Run the MCP stdio server."""
    import signal
    # The stdio reader blocks task cancellation; exit hard on Ctrl+C.
    signal.signal(signal.SIGINT, lambda *_: os._exit(130))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
