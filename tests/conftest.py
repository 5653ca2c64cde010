"""
Shared pytest fixtures for barswitch tests.

Every test gets its own SQLite bookmark store under tmp_path, laid out
like a fresh browser profile: the bookmark bar is node "1" and the other
bookmarks folder is node "2".
"""

from pathlib import Path

import pytest
import pytest_asyncio

from barswitch.api import BarSwitcher
from barswitch.config import StoreConfig
from barswitch.node_store import NodeStore


@pytest.fixture
def store(tmp_path: Path):
    """A fresh host store."""
    s = NodeStore(tmp_path / "bookmarks.db")
    yield s
    s.close()


@pytest.fixture
def config(tmp_path: Path) -> StoreConfig:
    """Default configuration rooted at tmp_path (not written to disk)."""
    return StoreConfig(path=tmp_path)


@pytest_asyncio.fixture
async def switcher(store: NodeStore, config: StoreConfig):
    """A bootstrapped switcher over the fresh store."""
    sw = await BarSwitcher.open(store=store, config=config)
    yield sw
    await sw.settle()
    sw.close()

