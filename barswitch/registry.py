"""
Metadata registry: which collections exist and which one is current.

All bookkeeping lives inside the host store, under the collections root:
one storage folder per collection plus a single pointer record whose
title is ``<tag>:<current name>``. The registry caches the last listing
of that root and rebuilds it on reload().

The registry is constructed once at bootstrap and handed to the switch
engine and the reconciler. Its ``lock`` serialises everything that
changes placement (switches, reloads, repairs); store notifications are
delivered as separate tasks, so handlers take the lock themselves.
"""

import asyncio
import dataclasses
import logging
from typing import Awaitable, Optional

from .config import LayoutConfig
from .errors import (
    Inconsistency,
    Result,
    report_inconsistency,
    validate_name,
)
from .mirror import COLLECTIONS_KEY, CURRENT_KEY, NullMirror
from .protocol import KeyValueMirrorProtocol, StoreAdapterProtocol
from .types import (
    PointerRecord,
    RegistrySnapshot,
    StorageFolder,
    classify,
    pointer_title,
)

logger = logging.getLogger(__name__)


class MetadataRegistry:
    """
    In-memory view of the collections root.

    Args:
        store: The host store
        collections_root_id: Folder holding storage folders and the pointer
        active_slot_id: The host folder whose contents are visible
        layout: Pointer tag/URL and default collection name
        mirror: Optional secondary channel for the current name
    """

    def __init__(
        self,
        store: StoreAdapterProtocol,
        collections_root_id: str,
        active_slot_id: str,
        layout: Optional[LayoutConfig] = None,
        mirror: Optional[KeyValueMirrorProtocol] = None,
    ):
        self.store = store
        self.collections_root_id = collections_root_id
        self.active_slot_id = active_slot_id
        self.layout = layout or LayoutConfig()
        self.mirror = mirror or NullMirror()
        self.lock = asyncio.Lock()

        self._current: Optional[str] = None
        self._pointer_id: Optional[str] = None
        self._snapshot = RegistrySnapshot(names=(), current=self.last_known_current)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def current(self) -> str:
        """Name of the collection materialized in the Active Slot."""
        return self._current if self._current is not None else self.last_known_current

    @property
    def last_known_current(self) -> str:
        """Name to use when no pointer record can be found."""
        if self._current is not None:
            return self._current
        mirrored = self.mirror.get(CURRENT_KEY)
        if isinstance(mirrored, str) and mirrored:
            return mirrored
        return self.layout.default_collection

    @property
    def pointer_id(self) -> Optional[str]:
        return self._pointer_id

    @property
    def snapshot(self) -> RegistrySnapshot:
        """Result of the last reload."""
        return self._snapshot

    @property
    def names(self) -> tuple[str, ...]:
        return self._snapshot.names

    def find_folder(self, name: str) -> Optional[str]:
        """Storage folder id for *name*, per the last reload."""
        return self._snapshot.folders.get(name)

    def find_name(self, folder_id: str) -> Optional[str]:
        """Collection name whose storage folder is *folder_id*."""
        for name, fid in self._snapshot.folders.items():
            if fid == folder_id:
                return name
        return None

    def is_pointer(self, node_id: str) -> bool:
        return node_id is not None and node_id == self._pointer_id

    def forget_pointer(self) -> None:
        """Drop the cached pointer id; the next reload recreates the record."""
        self._pointer_id = None

    # -------------------------------------------------------------------------
    # Reload
    # -------------------------------------------------------------------------

    async def _scan(self):
        """List the collections root once and classify its children.

        Returns:
            (names, folders, first pointer or None, surplus pointer ids)
        """
        tag = self.layout.pointer_tag
        children = await self.store.list_children(self.collections_root_id)

        names: list[str] = []
        folders: dict[str, str] = {}
        pointer: Optional[PointerRecord] = None
        surplus: list[str] = []

        for entry in (classify(child, tag) for child in children):
            if isinstance(entry, PointerRecord):
                if pointer is None:
                    pointer = entry
                else:
                    surplus.append(entry.node.id)
            elif isinstance(entry, StorageFolder):
                if entry.name in folders:
                    # Two folders with one name; the first one is used
                    logger.warning("Duplicate storage folder %r (%s)", entry.name, entry.node.id)
                    continue
                names.append(entry.name)
                folders[entry.name] = entry.node.id

        return names, folders, pointer, surplus

    async def live_folders(self) -> dict[str, str]:
        """Storage folders as the store has them now, without touching the cache.

        The cache keeps the names of the last reload so the reconciler can
        still tell which folder an unprocessed rename notification refers to.
        """
        _, folders, _, _ = await self._scan()
        return folders

    async def reload(self) -> tuple[tuple[str, ...], str]:
        """
        Rebuild the registry from one listing of the collections root.

        The pointer record's name becomes current. Creates the pointer
        record when none is found, named after the last known current
        collection.

        Returns:
            (names, current)
        """
        tag = self.layout.pointer_tag
        names, folders, pointer, surplus = await self._scan()

        if surplus:
            report_inconsistency(
                Inconsistency.DUPLICATE_POINTER,
                f"keeping {pointer.node.id}, surplus {', '.join(surplus)}",
            )

        if pointer is not None:
            self._current = pointer.name
            self._pointer_id = pointer.node.id
        else:
            current = self.last_known_current
            if self._current is not None:
                report_inconsistency(Inconsistency.MISSING_POINTER, f"recreating for {current!r}")
            else:
                logger.info("No pointer record, creating one for %r", current)
            node = await self.store.create_node(
                self.collections_root_id,
                pointer_title(tag, current),
                self.layout.pointer_url,
            )
            self._current = current
            self._pointer_id = node.id

        if self._current not in folders:
            report_inconsistency(Inconsistency.ORPHANED_CURRENT, repr(self._current))

        self._snapshot = RegistrySnapshot(
            names=tuple(names),
            current=self._current,
            folders=folders,
            pointer_id=self._pointer_id,
            surplus_pointer_ids=tuple(surplus),
        )
        self.mirror.set(CURRENT_KEY, self._current)
        self.mirror.set(COLLECTIONS_KEY, list(names))
        logger.debug("Reloaded %d collections, current=%r", len(names), self._current)
        return self._snapshot.names, self._current

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def set_current(self, name: str) -> Awaitable:
        """
        Make *name* current.

        The in-memory name changes immediately; the returned awaitable
        rewrites the pointer record (or recreates it if its id is unknown).
        """
        self._current = name
        self._snapshot = dataclasses.replace(self._snapshot, current=name)
        self.mirror.set(CURRENT_KEY, name)
        pointer_id = self._pointer_id
        return self._write_pointer(pointer_id, name)

    async def _write_pointer(self, pointer_id: Optional[str], name: str) -> None:
        title = pointer_title(self.layout.pointer_tag, name)
        if pointer_id is None:
            node = await self.store.create_node(
                self.collections_root_id, title, self.layout.pointer_url,
            )
            self._pointer_id = node.id
            return
        try:
            await self.store.update_node(pointer_id, title)
        except KeyError:
            # Removed while we were writing; the removal handler recreates it
            logger.info("Pointer %s vanished before update to %r", pointer_id, name)

    async def create_collection(self, name: str) -> Result:
        """
        Create a storage folder for a new collection.

        The duplicate check runs against a fresh listing, not the cache.
        Validation failures are returned, not raised.
        """
        children = await self.store.list_children(self.collections_root_id)
        existing = [c.title for c in children if c.is_folder]
        error = validate_name(name, existing)
        if error is not None:
            logger.info("Rejected collection name %r: %s", name, error.message)
            return Result.failure(error)

        node = await self.store.create_node(self.collections_root_id, name)
        logger.info("Created collection %r (%s)", name, node.id)
        return Result.success()

    async def restore_folder(self, name: str) -> str:
        """Recreate the storage folder for *name* and return its id."""
        node = await self.store.create_node(self.collections_root_id, name)
        folders = dict(self._snapshot.folders)
        folders[name] = node.id
        names = self._snapshot.names
        if name not in names:
            names = names + (name,)
        self._snapshot = dataclasses.replace(self._snapshot, names=names, folders=folders)
        logger.info("Restored storage folder for %r (%s)", name, node.id)
        return node.id
