"""
Tests for reconciling direct edits to the bookmark store.

Edits go straight to the store, as a bookmark manager or a synced device
would make them; settle() then waits for the reconciler to react.
"""

import pytest

ACTIVE_SLOT = "1"


async def _add(store, folder_id, *titles):
    for title in titles:
        await store.create_node(folder_id, title, f"https://example.com/{title}")


async def _titles(store, folder_id):
    return [n.title for n in await store.list_children(folder_id)]


async def _pointer_titles(switcher):
    children = await switcher.store.list_children(switcher.registry.collections_root_id)
    return [n.title for n in children if n.title.startswith("CurrentBB:")]


# -----------------------------------------------------------------------------
# Pointer record
# -----------------------------------------------------------------------------

class TestPointerEdits:

    @pytest.mark.asyncio
    async def test_deleted_pointer_recreated(self, switcher, store):
        await switcher.create_collection("Work")
        await switcher.select("Work")
        await switcher.settle()

        await store.remove_node(switcher.registry.pointer_id)
        await switcher.settle()

        assert await _pointer_titles(switcher) == ["CurrentBB:Work"]
        assert switcher.current == "Work"

    @pytest.mark.asyncio
    async def test_retitle_switches(self, switcher, store):
        await _add(store, ACTIVE_SLOT, "a")
        await switcher.create_collection("Work")
        work_id = switcher.registry.find_folder("Work")
        await _add(store, work_id, "w")

        await store.update_node(switcher.registry.pointer_id, "CurrentBB:Work")
        await switcher.settle()

        assert switcher.current == "Work"
        assert await _titles(store, ACTIVE_SLOT) == ["w"]
        assert await _titles(store, switcher.registry.find_folder("Default")) == ["a"]
        assert await _pointer_titles(switcher) == ["CurrentBB:Work"]

    @pytest.mark.asyncio
    async def test_retitle_to_unknown_reverts(self, switcher, store):
        await _add(store, ACTIVE_SLOT, "a")
        await store.update_node(switcher.registry.pointer_id, "CurrentBB:Nope")
        await switcher.settle()

        assert switcher.current == "Default"
        assert await _pointer_titles(switcher) == ["CurrentBB:Default"]
        assert await _titles(store, ACTIVE_SLOT) == ["a"]

    @pytest.mark.asyncio
    async def test_retitle_garbage_reverts(self, switcher, store):
        pointer_id = switcher.registry.pointer_id
        await store.update_node(pointer_id, "my bookmark")
        await switcher.settle()

        assert (await store.get_node(pointer_id)).title == "CurrentBB:Default"

    @pytest.mark.asyncio
    async def test_retitle_with_suffix_is_normalized(self, switcher, store):
        pointer_id = switcher.registry.pointer_id
        await store.update_node(pointer_id, "CurrentBB:Default:junk")
        await switcher.settle()

        assert (await store.get_node(pointer_id)).title == "CurrentBB:Default"
        assert switcher.current == "Default"

    @pytest.mark.asyncio
    async def test_retitle_to_removed_collection_reverts(self, switcher, store):
        await _add(store, ACTIVE_SLOT, "a")
        await switcher.create_collection("Work")
        await store.remove_node(switcher.registry.find_folder("Work"))
        await switcher.settle()

        await store.update_node(switcher.registry.pointer_id, "CurrentBB:Work")
        await switcher.settle()

        assert switcher.current == "Default"
        assert await _pointer_titles(switcher) == ["CurrentBB:Default"]
        names, current = await switcher.list_collections()
        assert (names, current) == (("Default",), "Default")
        assert await _titles(store, ACTIVE_SLOT) == ["a"]

    @pytest.mark.asyncio
    async def test_retitle_to_folder_created_behind_our_back(self, switcher, store):
        folder = await store.create_node(switcher.registry.collections_root_id, "Later")
        await _add(store, folder.id, "l")

        await store.update_node(switcher.registry.pointer_id, "CurrentBB:Later")
        await switcher.settle()

        assert switcher.current == "Later"
        assert await _titles(store, ACTIVE_SLOT) == ["l"]

    @pytest.mark.asyncio
    async def test_stale_notification_ignored(self, switcher, store):
        await switcher.create_collection("Work")
        pointer_id = switcher.registry.pointer_id
        # Two edits land before either notification is handled
        await store.update_node(pointer_id, "CurrentBB:Work")
        await store.update_node(pointer_id, "CurrentBB:Default")
        await switcher.settle()

        assert switcher.current == "Default"
        assert await _pointer_titles(switcher) == ["CurrentBB:Default"]


# -----------------------------------------------------------------------------
# Storage folders
# -----------------------------------------------------------------------------

class TestFolderEdits:

    @pytest.mark.asyncio
    async def test_rename(self, switcher, store):
        await switcher.create_collection("Work")
        await store.update_node(switcher.registry.find_folder("Work"), "Travel")
        await switcher.settle()

        assert switcher.registry.names == ("Default", "Travel")
        names, current = await switcher.list_collections()
        assert names == ("Default", "Travel")
        assert current == "Default"

    @pytest.mark.asyncio
    async def test_rename_to_taken_name_reverts(self, switcher, store):
        await switcher.create_collection("Work")
        work_id = switcher.registry.find_folder("Work")
        await store.update_node(work_id, "Default")
        await switcher.settle()

        assert (await store.get_node(work_id)).title == "Work"
        assert switcher.registry.names == ("Default", "Work")

    @pytest.mark.asyncio
    async def test_rename_with_separator_reverts(self, switcher, store):
        await switcher.create_collection("Work")
        work_id = switcher.registry.find_folder("Work")
        await store.update_node(work_id, "Work:2")
        await switcher.settle()

        assert (await store.get_node(work_id)).title == "Work"

    @pytest.mark.asyncio
    async def test_rename_to_empty_reverts(self, switcher, store):
        await switcher.create_collection("Work")
        work_id = switcher.registry.find_folder("Work")
        await store.update_node(work_id, "")
        await switcher.settle()

        assert (await store.get_node(work_id)).title == "Work"

    @pytest.mark.asyncio
    async def test_rename_current_moves_pointer(self, switcher, store):
        await _add(store, ACTIVE_SLOT, "a")
        await store.update_node(switcher.registry.find_folder("Default"), "Home")
        await switcher.settle()

        assert switcher.current == "Home"
        assert await _pointer_titles(switcher) == ["CurrentBB:Home"]
        names, current = await switcher.list_collections()
        assert (names, current) == (("Home",), "Home")
        assert await _titles(store, ACTIVE_SLOT) == ["a"]

    @pytest.mark.asyncio
    async def test_select_after_rename(self, switcher, store):
        await switcher.create_collection("Work")
        await store.update_node(switcher.registry.find_folder("Work"), "Travel")
        await switcher.settle()
        assert await switcher.select("Travel") is True
        assert switcher.current == "Travel"

    @pytest.mark.asyncio
    async def test_rename_to_orphaned_current_name_reverts(self, switcher, store):
        await _add(store, ACTIVE_SLOT, "a")
        await switcher.create_collection("Work")
        work_id = switcher.registry.find_folder("Work")
        await _add(store, work_id, "w")
        await store.remove_node(switcher.registry.find_folder("Default"))
        await switcher.settle()
        await switcher.list_collections()

        await store.update_node(work_id, "Default")
        await switcher.settle()

        assert (await store.get_node(work_id)).title == "Work"
        assert await _titles(store, work_id) == ["w"]

        # Switching away still keeps the two collections apart
        await switcher.create_collection("Other")
        await switcher.select("Other")
        restored = switcher.registry.find_folder("Default")
        assert restored != work_id
        assert await _titles(store, restored) == ["a"]
        assert await _titles(store, work_id) == ["w"]

    @pytest.mark.asyncio
    async def test_remove_other_folder(self, switcher, store):
        await switcher.create_collection("Work")
        await store.remove_node(switcher.registry.find_folder("Work"))
        await switcher.settle()

        names, current = await switcher.list_collections()
        assert names == ("Default",)
        assert current == "Default"

    @pytest.mark.asyncio
    async def test_remove_current_folder_keeps_items(self, switcher, store, caplog):
        await _add(store, ACTIVE_SLOT, "a")
        await store.remove_node(switcher.registry.find_folder("Default"))
        await switcher.settle()

        assert "current collection has no storage folder" in caplog.text
        names, current = await switcher.list_collections()
        assert current == "Default"
        assert names == ()
        assert await _titles(store, ACTIVE_SLOT) == ["a"]


class TestRepair:

    @pytest.mark.asyncio
    async def test_surplus_pointers_removed_on_list(self, switcher, store):
        root = switcher.registry.collections_root_id
        await store.create_node(root, "CurrentBB:Default", "http://zoeetrope.com/en/bbs")
        await store.create_node(root, "CurrentBB:Other", "http://zoeetrope.com/en/bbs")

        await switcher.list_collections()
        await switcher.settle()

        assert await _pointer_titles(switcher) == ["CurrentBB:Default"]
