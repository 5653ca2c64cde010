"""
Reconciler: keep the registry consistent with direct edits to the store.

Users (or other clients syncing the same store) can rename and delete
bookmarks behind our back. The rules:

- Pointer record removed: recreate it from the in-memory current name.
- Pointer record retitled: a valid ``<tag>:<known name>`` is a switch
  request; anything else snaps back to ``<tag>:<current>``.
- Storage folder retitled: accept valid names (carrying the pointer along
  when it was the current collection), revert invalid ones.
- Storage folder removed: nothing to do until the next reload.

Handlers run as independent notification tasks, possibly long after the
edit they describe; a title that no longer matches the store is skipped.
Store failures inside a handler are logged and left for the next reload
to repair.
"""

import logging

from .errors import Inconsistency, UnknownCollection, report_inconsistency, validate_name
from .protocol import StoreAdapterProtocol
from .registry import MetadataRegistry
from .switcher import SwitchEngine
from .types import parse_pointer_title, pointer_title

logger = logging.getLogger(__name__)


class Reconciler:
    """Reacts to store notifications on behalf of the registry."""

    def __init__(self, registry: MetadataRegistry, engine: SwitchEngine):
        self.registry = registry
        self.engine = engine

    def attach(self, store: StoreAdapterProtocol) -> None:
        """Subscribe to the store's title and removal notifications."""
        store.add_title_listener(self.on_title_changed)
        store.add_remove_listener(self.on_removed)

    # -------------------------------------------------------------------------
    # Notification entry points
    # -------------------------------------------------------------------------

    async def on_title_changed(self, node_id: str, title: str) -> None:
        async with self.registry.lock:
            try:
                if (await self.registry.store.get_node(node_id)).title != title:
                    # Superseded by a later edit with its own notification
                    logger.debug("Skipping stale title %r on %s", title, node_id)
                    return
                if self.registry.is_pointer(node_id):
                    await self._pointer_retitled(node_id, title)
                elif self.registry.find_name(node_id) is not None:
                    await self._folder_retitled(node_id, title)
            except (KeyError, ValueError) as e:
                logger.warning("Could not reconcile title change on %s: %s", node_id, e)

    async def on_removed(self, node_id: str) -> None:
        async with self.registry.lock:
            try:
                if self.registry.is_pointer(node_id):
                    await self._pointer_removed(node_id)
                elif (name := self.registry.find_name(node_id)) is not None:
                    self._folder_removed(node_id, name)
            except (KeyError, ValueError) as e:
                logger.warning("Could not reconcile removal of %s: %s", node_id, e)

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def _pointer_removed(self, node_id: str) -> None:
        logger.info("Pointer record %s removed, recreating for %r",
                    node_id, self.registry.current)
        self.registry.forget_pointer()
        await self.registry.reload()

    async def _pointer_retitled(self, node_id: str, title: str) -> None:
        registry = self.registry
        current = registry.current
        tag = registry.layout.pointer_tag
        name = parse_pointer_title(tag, title)

        if name == current and title == pointer_title(tag, current):
            return
        # The cache may still list a folder removed since the last reload
        if name is not None and name != current and name in await registry.live_folders():
            logger.info("Pointer retitled to %r, switching collections", name)
            try:
                await self.engine.select_locked(name)
                return
            except UnknownCollection:
                logger.info("Collection %r vanished before the switch", name)

        logger.info("Rejected pointer title %r, restoring %r", title, current)
        await registry.store.update_node(node_id, pointer_title(tag, current))

    async def _folder_retitled(self, node_id: str, title: str) -> None:
        registry = self.registry
        old_name = registry.find_name(node_id)
        if title == old_name:
            return

        others = [n for n in registry.names if n != old_name]
        if old_name != registry.current:
            # An orphaned current name still owns the Active Slot
            others.append(registry.current)
        error = validate_name(title, others)
        if error is not None:
            logger.info("Rejected rename of %r to %r: %s", old_name, title, error.message)
            await registry.store.update_node(node_id, old_name)
            return

        logger.info("Collection %r renamed to %r", old_name, title)
        if old_name == registry.current:
            await registry.set_current(title)
        await registry.reload()

    def _folder_removed(self, node_id: str, name: str) -> None:
        if name == self.registry.current:
            # Items are in the Active Slot; only the name lost its folder
            report_inconsistency(Inconsistency.ORPHANED_CURRENT, f"folder {node_id} of {name!r} removed")
        else:
            logger.info("Storage folder of %r removed", name)

    # -------------------------------------------------------------------------
    # Repair
    # -------------------------------------------------------------------------

    async def repair(self) -> int:
        """Remove surplus pointer records found by the last reload."""
        removed = 0
        for node_id in self.registry.snapshot.surplus_pointer_ids:
            try:
                await self.registry.store.remove_node(node_id)
                removed += 1
            except KeyError:
                pass  # Already gone
        if removed:
            logger.info("Removed %d surplus pointer record(s)", removed)
        return removed
