"""
Core API for bookmark-bar switching.

BarSwitcher is the surface the presentation layers (CLI, MCP server)
talk to: list the collections, switch to one, create a new one. It wires
the bootstrap, registry, switch engine and reconciler together once per
process.

Usage:
    switcher = await BarSwitcher.open()
    names, current = await switcher.list_collections()
    await switcher.select("Work")
    result = await switcher.create_collection("Travel")
"""

import logging
from pathlib import Path
from typing import Optional

from .bootstrap import CollectionRegistryBuilder
from .config import StoreConfig, get_default_store_path, load_or_create_config
from .errors import Result
from .mirror import MIRROR_FILENAME, FileMirror, NullMirror
from .node_store import NodeStore
from .protocol import KeyValueMirrorProtocol, StoreAdapterProtocol
from .reconciler import Reconciler
from .registry import MetadataRegistry
from .switcher import SwitchEngine
from .types import Collections

logger = logging.getLogger(__name__)


class BarSwitcher:
    """
    Named bookmark bars sharing one Active Slot.

    Construct with ``await BarSwitcher.open(...)``; the constructor only
    wires already-built parts together.
    """

    def __init__(
        self,
        store: StoreAdapterProtocol,
        registry: MetadataRegistry,
        engine: SwitchEngine,
        reconciler: Reconciler,
        *,
        config: Optional[StoreConfig] = None,
        owns_store: bool = False,
    ):
        self.store = store
        self.registry = registry
        self.engine = engine
        self.reconciler = reconciler
        self.config = config
        self._owns_store = owns_store

    @classmethod
    async def open(
        cls,
        store_path: Optional[Path] = None,
        *,
        store: Optional[StoreAdapterProtocol] = None,
        config: Optional[StoreConfig] = None,
        mirror: Optional[KeyValueMirrorProtocol] = None,
    ) -> "BarSwitcher":
        """
        Bootstrap against a store and load the registry.

        Args:
            store_path: Store directory (default: BARSWITCH_STORE_PATH or ~/.barswitch)
            store: An existing host store; when omitted a local NodeStore
                is opened in the store directory
            config: Explicit configuration (skips reading barswitch.toml)
            mirror: Explicit metadata mirror

        Raises:
            StoreUnavailable: If bootstrap cannot reach the store
        """
        owns_store = store is None
        if config is None:
            path = Path(store_path) if store_path is not None else get_default_store_path()
            config = load_or_create_config(path) if owns_store else StoreConfig(path=path)

        layout = config.layout
        if store is None:
            store = NodeStore(
                config.database_path,
                active_slot_title=layout.active_slot_title,
                other_root_title=layout.other_root_title,
            )
        if mirror is None:
            if owns_store and config.mirror_enabled:
                mirror = FileMirror(config.path / MIRROR_FILENAME)
            else:
                mirror = NullMirror()

        try:
            collections_root_id, active_slot_id = await CollectionRegistryBuilder(store, layout).build()
        except Exception:
            if owns_store:
                store.close()
            raise

        registry = MetadataRegistry(
            store, collections_root_id, active_slot_id, layout=layout, mirror=mirror,
        )
        engine = SwitchEngine(registry)
        reconciler = Reconciler(registry, engine)
        reconciler.attach(store)

        switcher = cls(
            store, registry, engine, reconciler, config=config, owns_store=owns_store,
        )
        await switcher.list_collections()
        logger.debug("Opened store %s, current=%r", config.path, registry.current)
        return switcher

    # -------------------------------------------------------------------------
    # Presentation boundary
    # -------------------------------------------------------------------------

    @property
    def current(self) -> str:
        return self.registry.current

    async def list_collections(self) -> Collections:
        """Reload from the store and return every name plus the current one."""
        async with self.registry.lock:
            names, current = await self.registry.reload()
            await self.reconciler.repair()
        return Collections(names=names, current=current)

    async def select(self, name: str) -> bool:
        """
        Switch the Active Slot to collection *name*.

        Returns False (and touches nothing) when *name* is already current.

        Raises:
            UnknownCollection: If no collection has that name
        """
        return await self.engine.select(name)

    async def create_collection(self, name: str) -> Result:
        """Create an empty collection. Invalid names come back as a failed Result."""
        async with self.registry.lock:
            result = await self.registry.create_collection(name)
            if result.ok:
                await self.registry.reload()
        return result

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def settle(self) -> None:
        """Wait for pending store notifications to be reconciled."""
        settle = getattr(self.store, "settle", None)
        if settle is not None:
            await settle()

    def close(self) -> None:
        self.registry.mirror.close()
        if self._owns_store:
            self.store.close()

    async def __aenter__(self) -> "BarSwitcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.settle()
        self.close()
