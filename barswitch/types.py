"""
Data types for bookmark-bar switching.

A node in the host store is either a folder (no URL) or a bookmark.
Children of the collections root are classified once per reload into
pointer records, storage folders, and everything else.
"""

from dataclasses import dataclass, field
from typing import Optional, Union


# Separator between the pointer tag and the collection name.
# Collection names may never contain it.
POINTER_SEPARATOR = ":"

DEFAULT_POINTER_TAG = "CurrentBB"


@dataclass(frozen=True)
class Node:
    """
    A read-only snapshot of one node in the host store.

    Attributes:
        id: Store-assigned identifier
        parent_id: Identifier of the containing folder (None for the tree root)
        title: Display title
        url: Bookmark URL, or None for folders
        index: Position among the parent's children
    """
    id: str
    parent_id: Optional[str]
    title: str
    url: Optional[str] = None
    index: int = 0

    @property
    def is_folder(self) -> bool:
        return self.url is None


def pointer_title(tag: str, name: str) -> str:
    """Title of the pointer record naming *name* as current: ``tag:name``."""
    return f"{tag}{POINTER_SEPARATOR}{name}"


def parse_pointer_title(tag: str, title: str) -> Optional[str]:
    """Extract the collection name encoded in a pointer title.

    Returns None if the title is not tagged with *tag*. Only the text up
    to a second separator counts as the name.
    """
    prefix = tag + POINTER_SEPARATOR
    if not title.startswith(prefix):
        return None
    return title[len(prefix):].split(POINTER_SEPARATOR, 1)[0]


# ---------------------------------------------------------------------------
# Classification of collections-root children
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PointerRecord:
    """The record whose title names the current collection."""
    node: Node
    name: str


@dataclass(frozen=True)
class StorageFolder:
    """A folder holding a collection's items while it is not active."""
    node: Node

    @property
    def name(self) -> str:
        return self.node.title


@dataclass(frozen=True)
class Ignored:
    """Any other child (stray bookmarks the user dropped in the root)."""
    node: Node


Classified = Union[PointerRecord, StorageFolder, Ignored]


def classify(node: Node, tag: str) -> Classified:
    """Classify one child of the collections root."""
    name = parse_pointer_title(tag, node.title)
    if name is not None:
        return PointerRecord(node=node, name=name)
    if node.is_folder:
        return StorageFolder(node=node)
    return Ignored(node=node)


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Result of one reload of the collections root.

    Attributes:
        names: Collection names in store order
        current: Name of the collection materialized in the Active Slot
        folders: Collection name -> storage folder id
        pointer_id: Id of the authoritative pointer record
        surplus_pointer_ids: Extra pointer records awaiting removal
    """
    names: tuple[str, ...]
    current: str
    folders: dict[str, str] = field(default_factory=dict)
    pointer_id: Optional[str] = None
    surplus_pointer_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Collections:
    """What the presentation layer shows: every name and the current one."""
    names: tuple[str, ...]
    current: str

    def to_dict(self) -> dict:
        return {"names": list(self.names), "current": self.current}

    def __iter__(self):
        # Allows ``names, current = switcher.list_collections()``
        return iter((self.names, self.current))
