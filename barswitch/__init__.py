"""
barswitch

Keep several named bookmark bars and switch which one is shown in the
host's single bookmark bar. Each inactive bar lives in its own storage
folder; a pointer bookmark records which bar is current, so the state
travels with the bookmarks when the host syncs them.

Quick Start:
    from barswitch import BarSwitcher

    switcher = await BarSwitcher.open()   # uses ~/.barswitch/
    names, current = await switcher.list_collections()
    await switcher.select("Work")

CLI Usage:
    barswitch list
    barswitch create Work
    barswitch select Work

Environment Variables:
    BARSWITCH_STORE_PATH  - Override default store location
    BARSWITCH_VERBOSE     - Set to 1 for debug logging
"""

from .api import BarSwitcher
from .errors import (
    Result,
    StoreUnavailable,
    UnknownCollection,
    ValidationError,
    ValidationReason,
)
from .types import Collections, Node

__version__ = "0.1.0"
__all__ = [
    "BarSwitcher",
    "Collections",
    "Node",
    "Result",
    "StoreUnavailable",
    "UnknownCollection",
    "ValidationError",
    "ValidationReason",
]
