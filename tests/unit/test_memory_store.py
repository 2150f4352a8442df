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
"""Tests for lumen.core.memory.store -- SQLite, JSON-file and tiered stores."""

import sqlite3
from datetime import timedelta

import pytest

from lumen.core.errors import StorageError
from lumen.core.memory.models import MemoryEntry
from lumen.core.memory.store import (
    JSONFileMemoryStore,
    MemoryStore,
    SQLiteMemoryStore,
    TieredMemoryStore,
    create_default_store,
)

# =============================================================================
# FIXTURES
# =============================================================================


def _entry(clock, **overrides) -> MemoryEntry:
    fields = dict(
        agent_id="research",
        user_id="u1",
        type="summary",
        input="How should I price my handmade candles?",
        summary="Discussed cost-plus and value-based pricing",
        context="pricing",
        tags=["pricing", "candles"],
        created_at=clock(),
    )
    fields.update(overrides)
    return MemoryEntry(**fields)


class BrokenStore(MemoryStore):
    """Store whose every operation fails."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StorageError("backend unreachable")

    store = _fail
    query = _fail
    touch = _fail
    purge = _fail
    count_by_type = _fail


@pytest.fixture
def sqlite_store(tmp_path, clock):
    return SQLiteMemoryStore(tmp_path / "memory.db", clock=clock)


@pytest.fixture
def json_store(tmp_path, clock):
    return JSONFileMemoryStore(tmp_path / "memory", clock=clock)


@pytest.fixture(params=["sqlite", "json"])
def store(request, sqlite_store, json_store):
    return sqlite_store if request.param == "sqlite" else json_store


# =============================================================================
# STORE CONTRACT (both backends)
# =============================================================================


class TestStoreContract:
    def test_round_trip_preserves_input_summary_tags(self, store, clock):
        entry = _entry(clock)
        store.store(entry)
        results = store.query("research", "u1", ["summary"])
        assert len(results) == 1
        got = results[0]
        assert got.id == entry.id
        assert got.input == entry.input
        assert got.summary == entry.summary
        assert got.tags == entry.tags

    def test_round_trip_preserves_goal_fields_and_metadata(self, store, clock):
        entry = _entry(
            clock,
            type="goal",
            goal_id="g1",
            goal_summary="Launch the candle shop",
            goal_status="in_progress",
            metadata={"source_confidence": 0.8},
        )
        store.store(entry)
        got = store.query("research", "u1", ["goal"])[0]
        assert got.goal_id == "g1"
        assert got.goal_status == "in_progress"
        assert got.metadata == {"source_confidence": 0.8}
        assert got.created_at == entry.created_at

    def test_filters_by_user_and_type(self, store, clock):
        store.store(_entry(clock))
        store.store(_entry(clock, user_id="u2"))
        store.store(_entry(clock, type="correction"))
        assert len(store.query("research", "u1", ["summary"])) == 1
        assert len(store.query("research", "u2", ["summary"])) == 1
        assert len(store.query("research", "u1", ["correction"])) == 1
        assert len(store.query("research", "u1")) == 2

    def test_none_agent_matches_any_agent(self, store, clock):
        store.store(_entry(clock))
        store.store(_entry(clock, agent_id="creative"))
        assert len(store.query(None, "u1")) == 2

    def test_none_user_matches_only_anonymous_entries(self, store, clock):
        store.store(_entry(clock, summary="private"))
        store.store(_entry(clock, user_id=None, summary="anonymous"))
        assert [e.summary for e in store.query("research", None)] == ["anonymous"]
        assert [e.summary for e in store.query("research", "u1")] == ["private"]

    def test_all_users_reads_across_users(self, store, clock):
        store.store(_entry(clock))
        store.store(_entry(clock, user_id="u2"))
        store.store(_entry(clock, user_id=None))
        assert len(store.query("research", None, all_users=True)) == 3

    def test_orders_by_relevance_then_newest(self, store, clock):
        low = _entry(clock, relevance_score=0.3, summary="low")
        old = _entry(clock, created_at=clock() - timedelta(hours=2), summary="old")
        new = _entry(clock, summary="new")
        for e in (low, old, new):
            store.store(e)
        summaries = [e.summary for e in store.query("research", "u1")]
        assert summaries == ["new", "old", "low"]

    def test_limit_caps_results(self, store, clock):
        for i in range(5):
            store.store(_entry(clock, summary=f"s{i}"))
        assert len(store.query("research", "u1", limit=3)) == 3

    def test_time_window_excludes_older_entries(self, store, clock):
        store.store(_entry(clock, created_at=clock() - timedelta(hours=5), summary="old"))
        store.store(_entry(clock, summary="fresh"))
        results = store.query("research", "u1", time_window_hours=2)
        assert [e.summary for e in results] == ["fresh"]

    def test_non_positive_time_window_raises(self, store, clock):
        with pytest.raises(StorageError):
            store.query("research", "u1", time_window_hours=0)

    def test_touch_bumps_frequency_and_last_accessed(self, store, clock):
        entry = _entry(clock)
        store.store(entry)
        later = clock() + timedelta(minutes=10)
        store.touch([entry.id], later)
        got = store.query("research", "u1")[0]
        assert got.frequency == 2
        assert got.last_accessed == later

    def test_purge_removes_entry(self, store, clock):
        entry = _entry(clock)
        store.store(entry)
        assert store.purge("research", entry.id) is True
        assert store.purge("research", entry.id) is False
        assert store.query("research", "u1") == []

    def test_count_by_type(self, store, clock):
        store.store(_entry(clock))
        store.store(_entry(clock))
        store.store(_entry(clock, type="goal", goal_id="g1"))
        assert store.count_by_type("research", "u1") == {"summary": 2, "goal": 1}

    def test_count_by_type_is_scoped_to_owner(self, store, clock):
        store.store(_entry(clock))
        store.store(_entry(clock, user_id="u2", type="goal", goal_id="g2"))
        assert store.count_by_type("research", None) == {}
        assert store.count_by_type("research", "u2") == {"goal": 1}
        assert store.count_by_type("research", None, all_users=True) == {"summary": 1, "goal": 1}


# =============================================================================
# BACKEND SPECIFICS
# =============================================================================


class TestJSONFileStore:
    def test_one_file_per_agent(self, json_store, tmp_path, clock):
        json_store.store(_entry(clock))
        json_store.store(_entry(clock, agent_id="creative"))
        files = sorted(p.name for p in (tmp_path / "memory").glob("*.json"))
        assert files == ["creative.json", "research.json"]

    def test_corrupt_file_raises_storage_error(self, json_store, tmp_path, clock):
        json_store.store(_entry(clock))
        (tmp_path / "memory" / "research.json").write_text("{not json")
        with pytest.raises(StorageError):
            json_store.query("research", "u1")

    def test_missing_directory_reads_empty(self, tmp_path, clock):
        store = JSONFileMemoryStore(tmp_path / "nowhere", clock=clock)
        assert store.query("research", "u1") == []


class TestSQLiteStore:
    def test_survives_reopen(self, tmp_path, clock):
        entry = _entry(clock)
        SQLiteMemoryStore(tmp_path / "m.db", clock=clock).store(entry)
        reopened = SQLiteMemoryStore(tmp_path / "m.db", clock=clock)
        assert reopened.query("research", "u1")[0].id == entry.id

    def test_duplicate_id_raises_storage_error(self, sqlite_store, clock):
        entry = _entry(clock)
        sqlite_store.store(entry)
        with pytest.raises(StorageError):
            sqlite_store.store(entry)

    @pytest.mark.parametrize(
        "column, value",
        [("tags", "{not json"), ("metadata", "[1, 2"), ("type", "mystery")],
    )
    def test_undecodable_row_raises_storage_error(self, sqlite_store, tmp_path, clock, column, value):
        sqlite_store.store(_entry(clock))
        _corrupt(tmp_path / "memory.db", column, value)
        with pytest.raises(StorageError):
            sqlite_store.query("research", "u1")


def _corrupt(db_path, column, value):
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute(f"UPDATE memories SET {column} = ?", (value,))
        conn.commit()
    finally:
        conn.close()


# =============================================================================
# TWO-TIER FALLBACK
# =============================================================================


class TestTieredStore:
    def test_writes_primary_when_healthy(self, sqlite_store, json_store, clock):
        tiered = TieredMemoryStore(sqlite_store, json_store)
        tiered.store(_entry(clock))
        assert len(sqlite_store.query("research", "u1")) == 1
        assert json_store.query("research", "u1") == []

    def test_store_falls_back_when_primary_fails(self, json_store, clock):
        tiered = TieredMemoryStore(BrokenStore(), json_store)
        entry = tiered.store(_entry(clock))
        assert json_store.query("research", "u1")[0].id == entry.id

    def test_store_never_raises_when_both_tiers_fail(self, clock):
        tiered = TieredMemoryStore(BrokenStore(), BrokenStore())
        entry = _entry(clock)
        assert tiered.store(entry) is entry

    def test_query_falls_back_when_primary_fails(self, json_store, clock):
        json_store.store(_entry(clock))
        tiered = TieredMemoryStore(BrokenStore(), json_store)
        assert len(tiered.query("research", "u1")) == 1

    def test_query_falls_back_when_primary_row_is_corrupt(self, sqlite_store, json_store, tmp_path, clock):
        sqlite_store.store(_entry(clock, summary="damaged"))
        _corrupt(tmp_path / "memory.db", "tags", "{not json")
        json_store.store(_entry(clock, summary="intact"))
        tiered = TieredMemoryStore(sqlite_store, json_store)
        assert [e.summary for e in tiered.query("research", "u1")] == ["intact"]

    def test_query_raises_when_both_tiers_fail(self):
        tiered = TieredMemoryStore(BrokenStore(), BrokenStore())
        with pytest.raises(StorageError):
            tiered.query("research", "u1")

    def test_fallback_not_consulted_when_primary_reads(self, sqlite_store):
        fallback = BrokenStore()
        tiered = TieredMemoryStore(sqlite_store, fallback)
        assert tiered.query("research", "u1") == []
        assert fallback.calls == 0

    def test_purge_applies_to_both_tiers(self, sqlite_store, json_store, clock):
        entry = _entry(clock)
        sqlite_store.store(entry)
        json_store.store(entry)
        tiered = TieredMemoryStore(sqlite_store, json_store)
        assert tiered.purge("research", entry.id) is True
        assert sqlite_store.query("research", "u1") == []
        assert json_store.query("research", "u1") == []

    def test_touch_is_best_effort(self, clock):
        tiered = TieredMemoryStore(BrokenStore(), BrokenStore())
        tiered.touch(["mem_1"], clock())


class TestCreateDefaultStore:
    def test_builds_sqlite_with_file_fallback(self, tmp_path, clock):
        store = create_default_store(tmp_path / "m.db", tmp_path / "files", clock)
        assert isinstance(store, TieredMemoryStore)
        assert isinstance(store.primary, SQLiteMemoryStore)
        assert isinstance(store.fallback, JSONFileMemoryStore)
