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
"""E2E tests for the HTTP API.

Tests the full request -> DialogueEngine -> response cycle via FastAPI
TestClient, with the engine dependency swapped for one backed by a
temporary SQLite store and the live log redirected to tmp.
Covers: /health, /ready, /api/plan, /api/memory/*, /api/session/*.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import lumen.api._shared as shared
from lumen.api._shared import get_engine
from lumen.api.server import app
from lumen.core.config import EngineConfig
from lumen.core.logging import LumenLogger
from lumen.core.memory.store import SQLiteMemoryStore
from lumen.core.planning.engine import DialogueEngine


class ExplodingRegistry:
    def detect(self, text):
        raise RuntimeError("registry corrupted")


@pytest.fixture()
def live_log(tmp_path, monkeypatch):
    log = LumenLogger(log_dir=tmp_path / "logs")
    monkeypatch.setattr(shared, "_lumen_log", log)
    yield log
    log.close()


@pytest.fixture()
def engine(tmp_path, clock):
    store = SQLiteMemoryStore(tmp_path / "memory.db", clock=clock)
    eng = DialogueEngine.from_config(config=EngineConfig(), store=store, clock=clock)
    yield eng
    eng.close()


@pytest.fixture()
def client(engine, live_log):
    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _log_text(live_log):
    with open(live_log.log_file, encoding="utf-8") as f:
        return f.read()


# ═══════════════════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════════════════


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "version": "1.0.0"}

    def test_ready_counts_sessions(self, client):
        assert client.get("/ready").json()["active_sessions"] == 0
        client.post(
            "/api/session/response",
            json={"user_id": "u1", "agent_id": "research", "response": "Hello"},
        )
        assert client.get("/ready").json()["active_sessions"] == 1


# ═══════════════════════════════════════════════════════════════════════
# POST /api/plan
# ═══════════════════════════════════════════════════════════════════════


class TestPlan:
    def test_plans_turn(self, client):
        resp = client.post(
            "/api/plan",
            json={"message": "I want to learn to code", "agent_id": "research", "user_id": "u1"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["intent"] == "learn"
        assert data["response_strategy"] == "clarification_first"
        assert data["confidence"] == 0.7
        assert data["tools"]["use_knowledge"] is True

    def test_clarifying_questions_returned(self, client):
        data = client.post("/api/plan", json={"message": "help", "agent_id": "creative"}).json()
        assert data["intent"] == "clarify"
        assert "What type of creative project are you envisioning?" in data["clarifying_questions"]

    def test_routing_metadata_continuation(self, client):
        client.post(
            "/api/session/response",
            json={"user_id": "u1", "agent_id": "research", "response": "Part one of three."},
        )
        data = client.post(
            "/api/plan",
            json={
                "message": "Plan a trip to Japan",
                "agent_id": "research",
                "user_id": "u1",
                "routing_metadata": {"is_continuation": True},
            },
        ).json()
        assert data["intent"] == "continue"
        assert data["response_strategy"] == "direct_answer"

    def test_empty_agent_rejected(self, client):
        resp = client.post("/api/plan", json={"message": "hi", "agent_id": ""})
        assert resp.status_code == 400

    def test_missing_message_rejected(self, client):
        resp = client.post("/api/plan", json={"agent_id": "research"})
        assert resp.status_code == 422

    def test_planner_error_is_500(self, tmp_path, clock, live_log):
        broken = DialogueEngine.from_config(
            config=EngineConfig(),
            store=SQLiteMemoryStore(tmp_path / "broken.db", clock=clock),
            domains=ExplodingRegistry(),
            clock=clock,
        )
        app.dependency_overrides[get_engine] = lambda: broken
        try:
            with TestClient(app) as c:
                resp = c.post("/api/plan", json={"message": "explain caching", "agent_id": "research"})
        finally:
            app.dependency_overrides.clear()
            broken.close()
        assert resp.status_code == 500
        assert "registry corrupted" in resp.json()["detail"]

    def test_requests_logged(self, client, live_log):
        client.get("/health")
        client.post("/api/plan", json={"message": "explain caching", "agent_id": "research"})
        text = _log_text(live_log)
        assert "POST /api/plan -> 200" in text
        assert "GET /health" not in text


# ═══════════════════════════════════════════════════════════════════════
# /api/memory
# ═══════════════════════════════════════════════════════════════════════


class TestMemory:
    def _remember(self, client, **overrides):
        body = {
            "agent_id": "research",
            "user_id": "u1",
            "input": "How do I price handmade candles",
            "summary": "Use cost-plus pricing for candles",
        }
        body.update(overrides)
        return client.post("/api/memory/remember", json=body)

    def test_remember_then_recall(self, client):
        stored = self._remember(client)
        assert stored.status_code == 200
        entry_id = stored.json()["id"]

        resp = client.post(
            "/api/memory/recall",
            json={"agent_id": "research", "user_id": "u1", "query": "candle pricing"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [e["id"] for e in data["entries"]] == [entry_id]
        assert data["cache_hit"] is False

        again = client.post(
            "/api/memory/recall",
            json={"agent_id": "research", "user_id": "u1", "query": "candle pricing"},
        ).json()
        assert again["cache_hit"] is True

    def test_recall_without_user_reads_no_user_memories(self, client):
        self._remember(client)
        data = client.post(
            "/api/memory/recall", json={"agent_id": "research", "query": "candle pricing"}
        ).json()
        assert data["entries"] == []

    def test_stats_across_users_needs_flag(self, client):
        self._remember(client)
        self._remember(client, user_id="u2")
        scoped = client.get("/api/memory/stats", params={"agent_id": "research"}).json()
        assert scoped["total_entries"] == 0
        everyone = client.get(
            "/api/memory/stats", params={"agent_id": "research", "all_users": "true"}
        ).json()
        assert everyone["total_entries"] == 2
        assert all(set(p) == {"pattern", "frequency"} for p in everyone["top_patterns"])

    def test_bad_matching_mode_degrades_to_unranked(self, client):
        self._remember(client)
        data = client.post(
            "/api/memory/recall",
            json={"agent_id": "research", "user_id": "u1", "query": "x", "matching_mode": "bogus"},
        ).json()
        assert len(data["entries"]) == 1

    def test_remember_unknown_type(self, client):
        resp = self._remember(client, type="diary")
        assert resp.status_code == 400

    def test_remember_goal(self, client):
        data = self._remember(
            client, type="goal", goal_id="g1", goal_summary="Open a candle shop", goal_status="new"
        ).json()
        assert data["goal_status"] == "new"

    def test_stats(self, client):
        self._remember(client)
        self._remember(client, type="goal", goal_id="g1")
        stats = client.get("/api/memory/stats", params={"agent_id": "research", "user_id": "u1"}).json()
        assert stats["total_entries"] == 2
        assert stats["entries_by_type"] == {"summary": 1, "goal": 1}


# ═══════════════════════════════════════════════════════════════════════
# /api/session
# ═══════════════════════════════════════════════════════════════════════


class TestSession:
    def test_record_get_clear(self, client):
        resp = client.post(
            "/api/session/response",
            json={
                "user_id": "u1",
                "agent_id": "creative",
                "response": "Here are three logo concepts.",
                "reasoning_level": "basic",
            },
        )
        assert resp.status_code == 200
        assert resp.json()["last_agent_id"] == "creative"

        state = client.get("/api/session/u1").json()
        assert state["last_reasoning_level"] == "basic"

        assert client.delete("/api/session/u1").json() == {"cleared": True}
        assert client.get("/api/session/u1").status_code == 404
        assert client.delete("/api/session/u1").json() == {"cleared": False}

    def test_unknown_reasoning_level(self, client):
        resp = client.post(
            "/api/session/response",
            json={"user_id": "u1", "agent_id": "research", "response": "x", "reasoning_level": "expert"},
        )
        assert resp.status_code == 400

    def test_user_input_is_remembered(self, client):
        client.post(
            "/api/session/response",
            json={
                "user_id": "u1",
                "agent_id": "research",
                "response": "Hello!\nFor candles, cost-plus pricing works well.",
                "user_input": "pricing candles",
            },
        )
        data = client.post(
            "/api/memory/recall",
            json={"agent_id": "research", "user_id": "u1", "query": "candles"},
        ).json()
        assert data["entries"][0]["summary"] == "For candles, cost-plus pricing works well."

    def test_continue_after_recorded_response(self, client):
        client.post(
            "/api/session/response",
            json={"user_id": "u1", "agent_id": "research", "response": "Step one: pick a niche."},
        )
        data = client.post(
            "/api/plan", json={"message": "continue", "agent_id": "research", "user_id": "u1"}
        ).json()
        assert data["intent"] == "continue"
        assert data["plan_steps"][0] == "resume_previous_thread"
