"""
Tests for the BarSwitcher presentation boundary.
"""

import json

import pytest

from barswitch import BarSwitcher, Collections, StoreUnavailable, ValidationReason
from barswitch.config import CONFIG_FILENAME
from barswitch.mirror import MIRROR_FILENAME
from barswitch.node_store import NodeStore

ACTIVE_SLOT = "1"


async def _add(store, folder_id, *titles):
    for title in titles:
        await store.create_node(folder_id, title, f"https://example.com/{title}")


async def _titles(store, folder_id):
    return [n.title for n in await store.list_children(folder_id)]


class FailingStore(NodeStore):
    async def list_children(self, folder_id):
        raise OSError("permission denied")


class TestListCollections:

    @pytest.mark.asyncio
    async def test_fresh(self, switcher):
        collections = await switcher.list_collections()
        assert isinstance(collections, Collections)
        assert collections.names == ("Default",)
        assert collections.current == "Default"

    @pytest.mark.asyncio
    async def test_repeated_calls_agree(self, switcher):
        assert await switcher.list_collections() == await switcher.list_collections()


class TestCreateCollection:

    @pytest.mark.asyncio
    async def test_create(self, switcher):
        result = await switcher.create_collection("Work")
        assert result.ok
        names, current = await switcher.list_collections()
        assert names == ("Default", "Work")
        assert current == "Default"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,reason", [
        ("", ValidationReason.EMPTY),
        ("a:b", ValidationReason.RESERVED_CHARACTER),
        ("Default", ValidationReason.DUPLICATE),
    ])
    async def test_rejected_names_change_nothing(self, switcher, store, name, reason):
        root = switcher.registry.collections_root_id
        before = await store.list_children(root)

        result = await switcher.create_collection(name)

        assert not result.ok
        assert result.error.reason is reason
        assert await store.list_children(root) == before

    @pytest.mark.asyncio
    async def test_create_then_select(self, switcher, store):
        await _add(store, ACTIVE_SLOT, "a")
        await switcher.create_collection("Empty")
        assert await switcher.select("Empty")
        assert await _titles(store, ACTIVE_SLOT) == []


class TestOpen:

    @pytest.mark.asyncio
    async def test_open_store_path(self, tmp_path):
        async with await BarSwitcher.open(tmp_path) as sw:
            await sw.create_collection("Work")
            await sw.select("Work")

        assert (tmp_path / CONFIG_FILENAME).exists()
        assert (tmp_path / "bookmarks.db").exists()
        mirrored = json.loads((tmp_path / MIRROR_FILENAME).read_text())
        assert mirrored["current"] == "Work"
        assert mirrored["collections"] == ["Default", "Work"]

    @pytest.mark.asyncio
    async def test_state_survives_reopen(self, tmp_path):
        async with await BarSwitcher.open(tmp_path) as sw:
            await _add(sw.store, ACTIVE_SLOT, "a")
            await sw.create_collection("Work")
            await sw.select("Work")
            await _add(sw.store, ACTIVE_SLOT, "w")

        async with await BarSwitcher.open(tmp_path) as sw:
            names, current = await sw.list_collections()
            assert names == ("Default", "Work")
            assert current == "Work"
            assert await _titles(sw.store, ACTIVE_SLOT) == ["w"]

            await sw.select("Default")
            assert await _titles(sw.store, ACTIVE_SLOT) == ["a"]

    @pytest.mark.asyncio
    async def test_env_store_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BARSWITCH_STORE_PATH", str(tmp_path / "env"))
        async with await BarSwitcher.open() as sw:
            assert sw.config.path == tmp_path / "env"
        assert (tmp_path / "env" / "bookmarks.db").exists()

    @pytest.mark.asyncio
    async def test_unavailable_store(self, tmp_path, config):
        s = FailingStore(tmp_path / "f.db")
        try:
            with pytest.raises(StoreUnavailable):
                await BarSwitcher.open(store=s, config=config)
        finally:
            s.close()

    @pytest.mark.asyncio
    async def test_supplied_store_not_closed(self, store, config):
        sw = await BarSwitcher.open(store=store, config=config)
        await sw.settle()
        sw.close()
        # Still usable by its owner
        assert len(await store.list_children("0")) == 2
