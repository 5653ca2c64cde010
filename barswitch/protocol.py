"""
Protocol definitions for the host store and the metadata mirror.

Defines interface contracts at two levels:
- StoreAdapterProtocol: the host's hierarchical bookmark store
  (SQLite locally, a browser bookmarks API in an extension host)
- KeyValueMirrorProtocol: a small secondary channel for metadata
"""

from typing import Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

from .types import Node

TitleListener = Callable[[str, str], Awaitable[None]]
RemoveListener = Callable[[str], Awaitable[None]]


@runtime_checkable
class StoreAdapterProtocol(Protocol):
    """
    Asynchronous capability surface over the host store.

    Every call completes independently. Nothing orders two calls against
    different nodes; callers that need ordering must await the first.

    Implemented by:
    - NodeStore (local SQLite)
    """

    @property
    def root_id(self) -> str: ...

    # -- Reads --

    async def get_node(self, node_id: str) -> Node: ...

    async def list_children(self, folder_id: str) -> list[Node]: ...

    async def search_by_title_prefix(self, prefix: str) -> list[Node]: ...

    # -- Writes --

    async def create_node(
        self,
        parent_id: str,
        title: str,
        url: Optional[str] = None,
    ) -> Node: ...

    async def move_node(self, node_id: str, new_parent_id: str) -> Node: ...

    async def update_node(self, node_id: str, title: str) -> Node: ...

    async def remove_node(self, node_id: str) -> None: ...

    # -- Change notifications --

    def add_title_listener(self, listener: TitleListener) -> None: ...

    def add_remove_listener(self, listener: RemoveListener) -> None: ...


@runtime_checkable
class KeyValueMirrorProtocol(Protocol):
    """
    Secondary key/value channel for registry metadata.

    Advisory only: the store's folder listing always wins.

    Implemented by:
    - FileMirror (JSON file in the store directory)
    - NullMirror (disabled)
    """

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def close(self) -> None: ...
