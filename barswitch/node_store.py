"""
Hierarchical bookmark store using SQLite.

Stands in for the host browser's bookmark tree: folders and bookmarks
under a fixed root with two permanent folders, the Active Slot (the
bookmark bar) and the "other items" folder. Exposes the asynchronous
StoreAdapterProtocol surface, including change notifications.

Notifications are dispatched as independent tasks on the running loop,
never inline, the way a host delivers events. Use settle() to wait until
every listener (and anything those listeners triggered) has finished.
"""

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .protocol import RemoveListener, TitleListener
from .types import Node

logger = logging.getLogger(__name__)

ROOT_ID = "0"
ACTIVE_SLOT_TITLE = "Bookmarks Bar"
OTHER_ROOT_TITLE = "Other Bookmarks"


class NodeStore:
    """
    SQLite-backed store of bookmark nodes.

    Node ids are decimal strings and are never reused. The tree root and
    its two permanent children can be listed and written into, but never
    moved, renamed or removed.
    """

    def __init__(
        self,
        store_path: Path,
        *,
        active_slot_title: str = ACTIVE_SLOT_TITLE,
        other_root_title: str = OTHER_ROOT_TITLE,
    ):
        """
        Args:
            store_path: Path to SQLite database file
            active_slot_title: Title given to the Active Slot on first open
            other_root_title: Title given to the other-items folder on first open
        """
        self._db_path = store_path
        self._conn: Optional[sqlite3.Connection] = None
        self._title_listeners: list[TitleListener] = []
        self._remove_listeners: list[RemoveListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._init_db(active_slot_title, other_root_title)

    def _init_db(self, active_slot_title: str, other_root_title: str) -> None:
        """Initialize the SQLite database and the permanent folders."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS nodes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                parent_id INTEGER,
                title TEXT NOT NULL,
                url TEXT,
                idx INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_nodes_parent
            ON nodes(parent_id, idx)
        """)

        count = self._conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]
        if count == 0:
            now = self._now()
            self._conn.executemany("""
                INSERT INTO nodes (id, parent_id, title, url, idx, created_at, updated_at)
                VALUES (?, ?, ?, NULL, ?, ?, ?)
            """, [
                (0, None, "", 0, now, now),
                (1, 0, active_slot_title, 0, now, now),
                (2, 0, other_root_title, 1, now, now),
            ])

        self._conn.commit()

    def _now(self) -> str:
        """Current timestamp in ISO format."""
        return datetime.now(timezone.utc).isoformat()

    @property
    def root_id(self) -> str:
        return ROOT_ID

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_to_node(row: sqlite3.Row) -> Node:
        parent = row["parent_id"]
        return Node(
            id=str(row["id"]),
            parent_id=str(parent) if parent is not None else None,
            title=row["title"],
            url=row["url"],
            index=row["idx"],
        )

    def _get_row(self, node_id: str) -> sqlite3.Row:
        try:
            key = int(node_id)
        except (TypeError, ValueError):
            raise KeyError(f"Node not found: {node_id!r}") from None
        row = self._conn.execute(
            "SELECT * FROM nodes WHERE id = ?", (key,)
        ).fetchone()
        if row is None:
            raise KeyError(f"Node not found: {node_id!r}")
        return row

    def _get_folder_row(self, folder_id: str) -> sqlite3.Row:
        row = self._get_row(folder_id)
        if row["url"] is not None:
            raise ValueError(f"Not a folder: {folder_id!r}")
        return row

    def _check_mutable(self, row: sqlite3.Row) -> None:
        if row["id"] == 0 or row["parent_id"] == 0:
            raise ValueError(f"Permanent folder cannot be modified: {row['title']!r}")

    def _child_count(self, parent: int, exclude: Optional[int] = None) -> int:
        if exclude is None:
            sql, params = "SELECT COUNT(*) FROM nodes WHERE parent_id = ?", (parent,)
        else:
            sql = "SELECT COUNT(*) FROM nodes WHERE parent_id = ? AND id != ?"
            params = (parent, exclude)
        return self._conn.execute(sql, params).fetchone()[0]

    def _compact_after(self, parent: int, idx: int) -> None:
        """Close the gap left at *idx* among *parent*'s children."""
        self._conn.execute(
            "UPDATE nodes SET idx = idx - 1 WHERE parent_id = ? AND idx > ?",
            (parent, idx),
        )

    def _subtree_ids(self, node_id: int) -> list[int]:
        rows = self._conn.execute("""
            WITH RECURSIVE subtree(id) AS (
                SELECT ?
                UNION ALL
                SELECT n.id FROM nodes n JOIN subtree s ON n.parent_id = s.id
            )
            SELECT id FROM subtree
        """, (node_id,)).fetchall()
        return [r[0] for r in rows]

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    async def get_node(self, node_id: str) -> Node:
        await asyncio.sleep(0)
        return self._row_to_node(self._get_row(node_id))

    async def list_children(self, folder_id: str) -> list[Node]:
        await asyncio.sleep(0)
        row = self._get_folder_row(folder_id)
        rows = self._conn.execute(
            "SELECT * FROM nodes WHERE parent_id = ? ORDER BY idx",
            (row["id"],),
        ).fetchall()
        return [self._row_to_node(r) for r in rows]

    async def search_by_title_prefix(self, prefix: str) -> list[Node]:
        await asyncio.sleep(0)
        rows = self._conn.execute("""
            SELECT * FROM nodes
            WHERE id != 0 AND substr(title, 1, ?) = ?
            ORDER BY id
        """, (len(prefix), prefix)).fetchall()
        return [self._row_to_node(r) for r in rows]

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    async def create_node(
        self,
        parent_id: str,
        title: str,
        url: Optional[str] = None,
    ) -> Node:
        await asyncio.sleep(0)
        parent = self._get_folder_row(parent_id)
        if parent["id"] == 0:
            raise ValueError("Cannot create nodes directly under the tree root")
        now = self._now()
        idx = self._child_count(parent["id"])
        cursor = self._conn.execute("""
            INSERT INTO nodes (parent_id, title, url, idx, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (parent["id"], title, url, idx, now, now))
        self._conn.commit()
        logger.debug("Created node %s %r under %s", cursor.lastrowid, title, parent_id)
        return Node(
            id=str(cursor.lastrowid),
            parent_id=str(parent["id"]),
            title=title,
            url=url,
            index=idx,
        )

    async def move_node(self, node_id: str, new_parent_id: str) -> Node:
        """Move a node to the end of *new_parent_id*'s children."""
        await asyncio.sleep(0)
        row = self._get_row(node_id)
        self._check_mutable(row)
        parent = self._get_folder_row(new_parent_id)
        if parent["id"] == 0:
            raise ValueError("Cannot move nodes directly under the tree root")
        if parent["id"] in self._subtree_ids(row["id"]):
            raise ValueError(f"Cannot move {node_id!r} into its own subtree")

        self._compact_after(row["parent_id"], row["idx"])
        idx = self._child_count(parent["id"], exclude=row["id"])
        self._conn.execute(
            "UPDATE nodes SET parent_id = ?, idx = ?, updated_at = ? WHERE id = ?",
            (parent["id"], idx, self._now(), row["id"]),
        )
        self._conn.commit()
        return Node(
            id=str(row["id"]),
            parent_id=str(parent["id"]),
            title=row["title"],
            url=row["url"],
            index=idx,
        )

    async def update_node(self, node_id: str, title: str) -> Node:
        """Rename a node. Listeners only hear about real changes."""
        await asyncio.sleep(0)
        row = self._get_row(node_id)
        self._check_mutable(row)
        if row["title"] != title:
            self._conn.execute(
                "UPDATE nodes SET title = ?, updated_at = ? WHERE id = ?",
                (title, self._now(), row["id"]),
            )
            self._conn.commit()
            self._notify(self._title_listeners, str(row["id"]), title)
        return self._row_to_node(self._get_row(node_id))

    async def remove_node(self, node_id: str) -> None:
        """Remove a node and everything beneath it."""
        await asyncio.sleep(0)
        row = self._get_row(node_id)
        self._check_mutable(row)
        ids = self._subtree_ids(row["id"])
        self._conn.executemany("DELETE FROM nodes WHERE id = ?", [(i,) for i in ids])
        self._compact_after(row["parent_id"], row["idx"])
        self._conn.commit()
        logger.debug("Removed node %s (%d in subtree)", node_id, len(ids))
        self._notify(self._remove_listeners, str(row["id"]))

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def add_title_listener(self, listener: TitleListener) -> None:
        self._title_listeners.append(listener)

    def add_remove_listener(self, listener: RemoveListener) -> None:
        self._remove_listeners.append(listener)

    def _notify(self, listeners: list, *args) -> None:
        loop = asyncio.get_running_loop()
        for listener in listeners:
            task = loop.create_task(listener(*args))
            self._tasks.add(task)
            task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Store listener failed: %s", exc, exc_info=exc)

    async def settle(self) -> None:
        """Wait for all pending notifications, including cascaded ones."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
