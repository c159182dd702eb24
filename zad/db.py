from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from . import settings as settings_mod
from .models import Node, NodeType, Version


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (e.g. a bind mount Docker created
    for a missing file), the DB file is placed inside it.
    """

    p = os.path.abspath(settings_mod.settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "zad.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS nodes (
              hostname TEXT PRIMARY KEY,
              type TEXT NOT NULL,
              current_version TEXT, -- reported by the node
              wanted_version TEXT,  -- from the node's cluster membership
              updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              job TEXT,
              version TEXT,
              message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS inactive_jobs (
              name TEXT PRIMARY KEY,
              since TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, job: str | None = None, version: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, job, version, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level.upper(), job, version, message),
        )


def latest_events(limit: int = 100) -> list[dict[str, Any]]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]


@dataclass(frozen=True)
class NodeRow:
    hostname: str
    type: str
    current_version: str | None
    wanted_version: str | None
    updated_at: str

    def to_node(self) -> Node:
        return Node(
            hostname=self.hostname,
            type=NodeType(self.type),
            current_version=Version.from_string(self.current_version) if self.current_version else None,
            wanted_version=Version.from_string(self.wanted_version) if self.wanted_version else None,
        )


def _rows_to_dataclass(rows: Iterable[sqlite3.Row], cls: Any) -> list[Any]:
    return [cls(**dict(r)) for r in rows]


def upsert_node(
    hostname: str,
    node_type: NodeType,
    current_version: Version | None = None,
    wanted_version: Version | None = None,
) -> NodeRow:
    with connect() as conn:
        conn.execute(
            """
            INSERT INTO nodes (hostname, type, current_version, wanted_version, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(hostname) DO UPDATE SET
              type=excluded.type,
              current_version=excluded.current_version,
              wanted_version=excluded.wanted_version,
              updated_at=excluded.updated_at
            """,
            (
                hostname,
                NodeType(node_type).value,
                current_version.to_full_string() if current_version else None,
                wanted_version.to_full_string() if wanted_version else None,
                utc_now(),
            ),
        )
        row = conn.execute("SELECT * FROM nodes WHERE hostname=?", (hostname,)).fetchone()
        return NodeRow(**dict(row))


def list_node_rows() -> list[NodeRow]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM nodes ORDER BY hostname").fetchall()
        return _rows_to_dataclass(rows, NodeRow)


def delete_node(hostname: str) -> bool:
    with connect() as conn:
        cur = conn.execute("DELETE FROM nodes WHERE hostname=?", (hostname,))
        return cur.rowcount > 0


class SqliteNodeRepository:
    """Node repository backed by the local sqlite database."""

    def list_nodes(self) -> list[Node]:
        # Single SELECT, so the snapshot is consistent for one tick.
        return [r.to_node() for r in list_node_rows()]


def set_job_active(name: str, active: bool) -> None:
    with connect() as conn:
        if active:
            conn.execute("DELETE FROM inactive_jobs WHERE name=?", (name,))
        else:
            conn.execute(
                "INSERT INTO inactive_jobs (name, since) VALUES (?, ?) ON CONFLICT(name) DO NOTHING",
                (name, utc_now()),
            )


def is_job_active(name: str) -> bool:
    with connect() as conn:
        row = conn.execute("SELECT 1 FROM inactive_jobs WHERE name=?", (name,)).fetchone()
        return row is None
