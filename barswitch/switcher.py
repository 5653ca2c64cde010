"""
Switch engine: swap which collection occupies the Active Slot.

A switch is two batches of moves. The evacuation batch moves everything
in the Active Slot into the previous collection's storage folder; the
import batch moves everything out of the target's storage folder into
the Active Slot. The store gives no ordering between independent calls,
so the import batch is only listed and issued after every evacuation
move has been acknowledged. Otherwise a still-running evacuation could
sweep freshly imported items back out.
"""

import asyncio
import logging

from .errors import Inconsistency, UnknownCollection, report_inconsistency
from .registry import MetadataRegistry

logger = logging.getLogger(__name__)


class SwitchEngine:
    """Moves items between storage folders and the Active Slot."""

    def __init__(self, registry: MetadataRegistry):
        self.registry = registry

    async def select(self, name: str) -> bool:
        """
        Make *name* the current collection.

        Returns:
            True if a switch happened, False if *name* was already current

        Raises:
            UnknownCollection: If *name* has no storage folder
        """
        async with self.registry.lock:
            return await self.select_locked(name)

    async def select_locked(self, name: str) -> bool:
        """select() for callers already holding the registry lock."""
        registry = self.registry
        if name == registry.current:
            return False

        # Captured before any await: handlers may run between store calls
        previous = registry.current
        active_slot = registry.active_slot_id

        # Folders may have been created, renamed or removed since the last reload
        live = await registry.live_folders()
        target_id = live.get(name)
        if target_id is None:
            raise UnknownCollection(name)

        previous_id = live.get(previous)
        if previous_id is None:
            cached = registry.find_folder(previous)
            if cached is not None and cached in live.values():
                # Renamed, and the rename has not been reconciled yet
                previous_id = cached
            else:
                report_inconsistency(Inconsistency.MISSING_FOLDER, f"restoring {previous!r}")
                previous_id = await registry.restore_folder(previous)

        logger.info("Switching %r -> %r", previous, name)

        evacuated = await self._move_children(active_slot, previous_id)

        incoming = await registry.store.list_children(target_id)
        imports = [
            asyncio.ensure_future(registry.store.move_node(item.id, active_slot))
            for item in incoming
        ]
        pointer_write = registry.set_current(name)
        await asyncio.gather(*imports, pointer_write)

        logger.info(
            "Switched to %r: %d items stored in %r, %d items loaded",
            name, evacuated, previous, len(imports),
        )
        return True

    async def _move_children(self, source_id: str, destination_id: str) -> int:
        """Move every child of *source_id* and wait for all acknowledgements."""
        items = await self.registry.store.list_children(source_id)
        await asyncio.gather(*(
            self.registry.store.move_node(item.id, destination_id)
            for item in items
        ))
        return len(items)
