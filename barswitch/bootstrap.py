"""
Collection registry builder: find or create the collections root.

Runs once at startup. Host layouts differ between versions and locales,
so the two permanent folders are found by title when the configured
title is present and by position (Active Slot first, other items second)
otherwise.
"""

import logging
from typing import Optional

from .config import LayoutConfig
from .errors import StoreUnavailable
from .protocol import StoreAdapterProtocol
from .types import Node

logger = logging.getLogger(__name__)


class CollectionRegistryBuilder:
    """
    Locates the Active Slot and the collections root.

    Any store failure during build() is fatal and raised as
    StoreUnavailable; there is no retry.
    """

    def __init__(self, store: StoreAdapterProtocol, layout: Optional[LayoutConfig] = None):
        self.store = store
        self.layout = layout or LayoutConfig()
        self._result: Optional[tuple[str, str]] = None

    async def build(self) -> tuple[str, str]:
        """
        Returns:
            (collections_root_id, active_slot_id)

        Raises:
            StoreUnavailable: If the store cannot be read or written
        """
        if self._result is not None:
            return self._result
        try:
            self._result = await self._build()
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"Bookmark store unavailable: {e}") from e
        return self._result

    async def _build(self) -> tuple[str, str]:
        layout = self.layout
        roots = [n for n in await self.store.list_children(self.store.root_id) if n.is_folder]
        active_slot = _locate(roots, layout.active_slot_title, 0)
        other_root = _locate(roots, layout.other_root_title, 1)
        if active_slot is None or other_root is None:
            raise StoreUnavailable(
                f"Host store has no usable permanent folders (found {len(roots)})"
            )
        if active_slot.id == other_root.id:
            raise StoreUnavailable(f"Ambiguous permanent folders: {active_slot.title!r}")

        collections_root = await self._find_collections_root(other_root.id, active_slot.id)
        if collections_root is None:
            collections_root = await self.store.create_node(
                other_root.id, layout.collections_root_title,
            )
            logger.info("Created collections root %s under %r",
                        collections_root.id, other_root.title)

        children = await self.store.list_children(collections_root.id)
        if not any(c.is_folder for c in children):
            await self.store.create_node(collections_root.id, layout.default_collection)
            logger.info("Created default collection %r", layout.default_collection)

        return collections_root.id, active_slot.id

    async def _find_collections_root(self, other_root_id: str, active_slot_id: str) -> Optional[Node]:
        title = self.layout.collections_root_title
        for child in await self.store.list_children(other_root_id):
            if child.is_folder and child.title == title:
                return child
        # The user may have moved it elsewhere, but not onto the visible bar
        for node in await self.store.search_by_title_prefix(title):
            if node.is_folder and node.title == title and node.parent_id != active_slot_id:
                logger.info("Found collections root %s outside %s", node.id, other_root_id)
                return node
        return None


def _locate(roots: list[Node], title: str, position: int) -> Optional[Node]:
    """Find a permanent folder by title, falling back to its position."""
    for node in roots:
        if node.title == title:
            return node
    if position < len(roots):
        return roots[position]
    return None


async def bootstrap(
    store: StoreAdapterProtocol,
    layout: Optional[LayoutConfig] = None,
) -> tuple[str, str]:
    """Build the collections root; returns (collections_root_id, active_slot_id)."""
    return await CollectionRegistryBuilder(store, layout).build()
