# Lumen Agent
# Copyright (C) 2025 The Lumen Agent Authors. All Rights Reserved.
#
# This file is part of Lumen Agent.
#
# Lumen Agent is dual-licensed:
#
# 1. Open Source: GNU Affero General Public License v3.0 (AGPL-3.0)
#    You may use, modify, and distribute this file under AGPL-3.0.
#    See LICENSE for the full text.
#
# 2. Commercial: Available from The Lumen Agent Authors
#    For proprietary use, SaaS deployment, or enterprise licensing.
#    See LICENSE-ENTERPRISE.md for terms.
#
# Contributions require a signed CLA. See COPYRIGHT.md and CLA.md.
"""
Lumen Agent -- Memory Store (v1.0.0)

Durable repository of MemoryEntry records keyed by (agent, user).

TIERS:
    Primary:  SQLiteMemoryStore   ~/.lumen/memory.db
    Fallback: JSONFileMemoryStore ~/.lumen/memory/<agent_id>.json

TieredMemoryStore wires the two together:
    store()  primary -> fallback -> log and return the entry (never raises)
    query()  primary -> fallback -> StorageError
    touch()  primary -> fallback -> log
    purge()  applied to both tiers

Every backend failure surfaces as StorageError so the fallback decision is
made in exactly one place. That includes rows that cannot be decoded.

OWNERSHIP:
    Reads are scoped to one (agent, user) pair. user_id=None is the
    anonymous owner and matches only entries stored without a user.
    Reading across users needs all_users=True, which only the stats
    view passes.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterable

from lumen.core.errors import StorageError
from lumen.core.memory.models import MemoryEntry, utcnow

logger = logging.getLogger("lumen.memory.store")

DEFAULT_QUERY_LIMIT = 50

Clock = Callable[[], datetime]


# =============================================================================
# CONTRACT
# =============================================================================


class MemoryStore(ABC):
    """Insert-by-fields, query-by-(agent, user, type, time window)."""

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or utcnow

    @abstractmethod
    def store(self, entry: MemoryEntry) -> MemoryEntry:
        """Persist a new entry. Raises StorageError when unreachable."""

    @abstractmethod
    def query(
        self,
        agent_id: str | None,
        user_id: str | None,
        types: Iterable[str] | None = None,
        time_window_hours: float | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        all_users: bool = False,
    ) -> list[MemoryEntry]:
        """Entries ordered by stored relevance desc, then newest first."""

    @abstractmethod
    def touch(self, entry_ids: Iterable[str], when: datetime) -> None:
        """Record a successful recall: bump frequency, move last_accessed."""

    @abstractmethod
    def purge(self, agent_id: str, entry_id: str) -> bool:
        """Administrative delete. Returns True if something was removed."""

    @abstractmethod
    def count_by_type(
        self, agent_id: str | None, user_id: str | None, all_users: bool = False
    ) -> dict[str, int]:
        """Entry totals grouped by type."""

    def _cutoff(self, time_window_hours: float | None) -> datetime | None:
        if time_window_hours is None:
            return None
        if time_window_hours <= 0:
            raise StorageError(f"time window must be positive, got {time_window_hours}")
        return self._clock() - timedelta(hours=time_window_hours)


def _ts(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _sort_key(entry: MemoryEntry):
    base = entry.relevance_score if entry.relevance_score is not None else 1.0
    return (base, entry.created_at)


def _owner_sql(agent_id: str | None, user_id: str | None, all_users: bool) -> tuple[str, list]:
    sql = ""
    params: list = []
    if agent_id is not None:
        sql += " AND agent_id = ?"
        params.append(agent_id)
    if all_users:
        return sql, params
    if user_id is None:
        sql += " AND user_id IS NULL"
    else:
        sql += " AND user_id = ?"
        params.append(user_id)
    return sql, params


def _owned_by(entry: MemoryEntry, user_id: str | None, all_users: bool) -> bool:
    return all_users or entry.user_id == user_id


# =============================================================================
# PRIMARY: SQLITE
# =============================================================================


class SQLiteMemoryStore(MemoryStore):
    """SQLite-backed store. One connection per operation."""

    def __init__(self, db_path: str | Path, clock: Clock | None = None):
        super().__init__(clock)
        self._db_path = str(db_path)
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def store(self, entry: MemoryEntry) -> MemoryEntry:
        try:
            conn = sqlite3.connect(self._db_path)
            try:
                conn.execute(
                    """INSERT INTO memories
                    (id, agent_id, user_id, type, input, summary, context, relevance_score,
                     frequency, created_at, last_accessed, tags, metadata,
                     goal_id, goal_summary, goal_status)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        entry.id,
                        entry.agent_id,
                        entry.user_id,
                        entry.type,
                        entry.input,
                        entry.summary,
                        entry.context,
                        entry.relevance_score,
                        entry.frequency,
                        _ts(entry.created_at),
                        _ts(entry.last_accessed),
                        json.dumps(entry.tags),
                        json.dumps(entry.metadata),
                        entry.goal_id,
                        entry.goal_summary,
                        entry.goal_status,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"sqlite store failed: {e}") from e
        return entry

    def query(
        self,
        agent_id: str | None,
        user_id: str | None,
        types: Iterable[str] | None = None,
        time_window_hours: float | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        all_users: bool = False,
    ) -> list[MemoryEntry]:
        owner_sql, params = _owner_sql(agent_id, user_id, all_users)
        sql = "SELECT * FROM memories WHERE 1=1" + owner_sql
        type_list = list(types or [])
        if type_list:
            sql += f" AND type IN ({', '.join('?' for _ in type_list)})"
            params.extend(type_list)
        cutoff = self._cutoff(time_window_hours)
        if cutoff is not None:
            sql += " AND created_at >= ?"
            params.append(_ts(cutoff))
        sql += " ORDER BY COALESCE(relevance_score, 1.0) DESC, created_at DESC LIMIT ?"
        params.append(int(limit))

        try:
            conn = sqlite3.connect(self._db_path)
            conn.row_factory = sqlite3.Row
            try:
                rows = conn.execute(sql, params).fetchall()
            finally:
                conn.close()
            return [self._row_to_entry(r) for r in rows]
        except sqlite3.Error as e:
            raise StorageError(f"sqlite query failed: {e}") from e
        except (ValueError, TypeError, KeyError) as e:
            raise StorageError(f"sqlite row could not be decoded: {e}") from e

    def touch(self, entry_ids: Iterable[str], when: datetime) -> None:
        ids = list(entry_ids)
        if not ids:
            return
        try:
            conn = sqlite3.connect(self._db_path)
            try:
                conn.executemany(
                    """UPDATE memories
                    SET frequency = frequency + 1,
                        last_accessed = MAX(last_accessed, ?)
                    WHERE id = ?""",
                    [(_ts(when), i) for i in ids],
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"sqlite touch failed: {e}") from e

    def purge(self, agent_id: str, entry_id: str) -> bool:
        try:
            conn = sqlite3.connect(self._db_path)
            try:
                cur = conn.execute(
                    "DELETE FROM memories WHERE agent_id = ? AND id = ?", (agent_id, entry_id)
                )
                conn.commit()
                return cur.rowcount > 0
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"sqlite purge failed: {e}") from e

    def count_by_type(
        self, agent_id: str | None, user_id: str | None, all_users: bool = False
    ) -> dict[str, int]:
        owner_sql, params = _owner_sql(agent_id, user_id, all_users)
        sql = "SELECT type, COUNT(*) FROM memories WHERE 1=1" + owner_sql + " GROUP BY type"
        try:
            conn = sqlite3.connect(self._db_path)
            try:
                rows = conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"sqlite count failed: {e}") from e
        return {t: n for t, n in rows}

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _init_db(self):
        try:
            conn = sqlite3.connect(self._db_path)
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS memories (
                        id TEXT PRIMARY KEY,
                        agent_id TEXT NOT NULL,
                        user_id TEXT,
                        type TEXT NOT NULL,
                        input TEXT DEFAULT '',
                        summary TEXT DEFAULT '',
                        context TEXT DEFAULT '',
                        relevance_score REAL,
                        frequency INTEGER DEFAULT 1,
                        created_at TEXT NOT NULL,
                        last_accessed TEXT NOT NULL,
                        tags TEXT DEFAULT '[]',
                        metadata TEXT DEFAULT '{}',
                        goal_id TEXT,
                        goal_summary TEXT,
                        goal_status TEXT
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_memories_owner
                    ON memories(agent_id, user_id, type)
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_memories_created ON memories(created_at)
                """)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"sqlite init failed: {e}") from e

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> MemoryEntry:
        data = dict(row)
        data["tags"] = json.loads(data.get("tags") or "[]")
        data["metadata"] = json.loads(data.get("metadata") or "{}")
        return MemoryEntry.from_dict(data)


# =============================================================================
# FALLBACK: JSON FILES
# =============================================================================


class JSONFileMemoryStore(MemoryStore):
    """One JSON file per agent. Whole-file rewrite on every change."""

    def __init__(self, directory: str | Path, clock: Clock | None = None):
        super().__init__(clock)
        self._dir = Path(directory)
        self._lock = threading.Lock()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def store(self, entry: MemoryEntry) -> MemoryEntry:
        with self._lock:
            entries = self._load(entry.agent_id)
            entries.append(entry)
            self._save(entry.agent_id, entries)
        return entry

    def query(
        self,
        agent_id: str | None,
        user_id: str | None,
        types: Iterable[str] | None = None,
        time_window_hours: float | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        all_users: bool = False,
    ) -> list[MemoryEntry]:
        type_set = set(types or [])
        cutoff = self._cutoff(time_window_hours)
        with self._lock:
            candidates = self._load_all(agent_id)
        results = [
            e
            for e in candidates
            if _owned_by(e, user_id, all_users)
            and (not type_set or e.type in type_set)
            and (cutoff is None or e.created_at >= cutoff)
        ]
        results.sort(key=_sort_key, reverse=True)
        return results[: int(limit)]

    def touch(self, entry_ids: Iterable[str], when: datetime) -> None:
        ids = set(entry_ids)
        if not ids:
            return
        with self._lock:
            for agent_id in self._agent_ids():
                entries = self._load(agent_id)
                changed = False
                for e in entries:
                    if e.id in ids:
                        e.frequency += 1
                        e.last_accessed = max(e.last_accessed, when)
                        changed = True
                if changed:
                    self._save(agent_id, entries)

    def purge(self, agent_id: str, entry_id: str) -> bool:
        with self._lock:
            entries = self._load(agent_id)
            kept = [e for e in entries if e.id != entry_id]
            if len(kept) == len(entries):
                return False
            self._save(agent_id, kept)
            return True

    def count_by_type(
        self, agent_id: str | None, user_id: str | None, all_users: bool = False
    ) -> dict[str, int]:
        with self._lock:
            entries = self._load_all(agent_id)
        return dict(Counter(e.type for e in entries if _owned_by(e, user_id, all_users)))

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _path(self, agent_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in agent_id)
        return self._dir / f"{safe}.json"

    def _agent_ids(self) -> list[str]:
        if not self._dir.exists():
            return []
        return [p.stem for p in self._dir.glob("*.json")]

    def _load_all(self, agent_id: str | None) -> list[MemoryEntry]:
        if agent_id is not None:
            return self._load(agent_id)
        entries: list[MemoryEntry] = []
        for aid in self._agent_ids():
            entries.extend(self._load(aid))
        return entries

    def _load(self, agent_id: str) -> list[MemoryEntry]:
        path = self._path(agent_id)
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return [MemoryEntry.from_dict(d) for d in raw.get("entries", [])]
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise StorageError(f"file store read failed for {path}: {e}") from e

    def _save(self, agent_id: str, entries: list[MemoryEntry]):
        path = self._path(agent_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(
                json.dumps({"entries": [e.to_dict() for e in entries]}, indent=2),
                encoding="utf-8",
            )
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"file store write failed for {path}: {e}") from e


# =============================================================================
# TWO-TIER FALLBACK
# =============================================================================


class TieredMemoryStore(MemoryStore):
    """Primary store with an explicit, best-effort fallback tier."""

    def __init__(self, primary: MemoryStore, fallback: MemoryStore, clock: Clock | None = None):
        super().__init__(clock)
        self.primary = primary
        self.fallback = fallback

    def store(self, entry: MemoryEntry) -> MemoryEntry:
        try:
            return self.primary.store(entry)
        except StorageError as e:
            logger.warning(
                "Primary store failed, writing to fallback: %s (agent=%s user=%s)",
                e, entry.agent_id, entry.user_id,
            )
        try:
            return self.fallback.store(entry)
        except StorageError as e:
            logger.error(
                "Fallback store failed, entry not persisted: %s (agent=%s user=%s id=%s)",
                e, entry.agent_id, entry.user_id, entry.id,
            )
            return entry

    def query(
        self,
        agent_id: str | None,
        user_id: str | None,
        types: Iterable[str] | None = None,
        time_window_hours: float | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        all_users: bool = False,
    ) -> list[MemoryEntry]:
        try:
            return self.primary.query(agent_id, user_id, types, time_window_hours, limit, all_users)
        except StorageError as e:
            logger.warning(
                "Primary query failed, reading fallback: %s (agent=%s user=%s)",
                e, agent_id, user_id,
            )
        return self.fallback.query(agent_id, user_id, types, time_window_hours, limit, all_users)

    def touch(self, entry_ids: Iterable[str], when: datetime) -> None:
        ids = list(entry_ids)
        try:
            self.primary.touch(ids, when)
            return
        except StorageError as e:
            logger.warning("Primary touch failed: %s", e)
        try:
            self.fallback.touch(ids, when)
        except StorageError as e:
            logger.error("Fallback touch failed: %s", e)

    def purge(self, agent_id: str, entry_id: str) -> bool:
        removed = False
        for tier in (self.primary, self.fallback):
            try:
                removed = tier.purge(agent_id, entry_id) or removed
            except StorageError as e:
                logger.error("Purge failed on %s: %s", type(tier).__name__, e)
        return removed

    def count_by_type(
        self, agent_id: str | None, user_id: str | None, all_users: bool = False
    ) -> dict[str, int]:
        try:
            return self.primary.count_by_type(agent_id, user_id, all_users)
        except StorageError as e:
            logger.warning("Primary count failed, reading fallback: %s", e)
        return self.fallback.count_by_type(agent_id, user_id, all_users)


def create_default_store(
    db_path: str | Path, fallback_dir: str | Path, clock: Clock | None = None
) -> MemoryStore:
    """SQLite primary with JSON-file fallback.

    If the SQLite file cannot even be initialised, the file store alone is used.
    """
    fallback = JSONFileMemoryStore(fallback_dir, clock=clock)
    try:
        primary = SQLiteMemoryStore(db_path, clock=clock)
    except StorageError as e:
        logger.error("SQLite store unavailable, using file store only: %s", e)
        return fallback
    return TieredMemoryStore(primary, fallback, clock=clock)


__all__ = [
    "MemoryStore",
    "SQLiteMemoryStore",
    "JSONFileMemoryStore",
    "TieredMemoryStore",
    "create_default_store",
]
