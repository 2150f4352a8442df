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
"""Tests for lumen.core.session.tracker -- previous-turn state per user."""

import threading

import pytest

from lumen.core.config import SessionConfig
from lumen.core.session.tracker import SessionTracker


@pytest.fixture
def tracker(clock):
    return SessionTracker(SessionConfig(ttl_minutes=30, max_sessions=3), clock=clock)


class TestSetAndGet:
    def test_round_trip(self, tracker, clock):
        tracker.set_last_response("u1", "research", "Here are three sources.", "advanced")
        state = tracker.get_last_response("u1")
        assert state.last_agent_id == "research"
        assert state.last_agent_response == "Here are three sources."
        assert state.last_reasoning_level == "advanced"
        assert state.last_response_time == clock()

    def test_absent_user(self, tracker):
        assert tracker.get_last_response("nobody") is None

    def test_overwrite_is_unconditional(self, tracker):
        tracker.set_last_response("u1", "research", "first")
        tracker.set_last_response("u1", "creative", "second")
        assert tracker.get_last_response("u1").last_agent_id == "creative"

    def test_continuation_context_is_response_tail(self, tracker):
        response = "x" * 150 + "y" * 100
        tracker.set_last_response("u1", "research", response)
        context = tracker.get_last_response("u1").continuation_context
        assert len(context) == 200
        assert context.endswith("y" * 100)

    def test_explicit_continuation_context(self, tracker):
        tracker.set_last_response(
            "u1", "research", "full text", metadata={"continuation_context": "step 2 of 5", "k": 1}
        )
        state = tracker.get_last_response("u1")
        assert state.continuation_context == "step 2 of 5"
        assert state.metadata == {"k": 1}

    def test_returned_state_is_a_copy(self, tracker):
        tracker.set_last_response("u1", "research", "text", metadata={"k": 1})
        tracker.get_last_response("u1").metadata["k"] = 2
        assert tracker.get_last_response("u1").metadata == {"k": 1}

    def test_clear_session(self, tracker):
        tracker.set_last_response("u1", "research", "text")
        assert tracker.clear_session("u1") is True
        assert tracker.get_last_response("u1") is None
        assert tracker.clear_session("u1") is False


class TestBounds:
    def test_expired_state_reads_as_absent(self, tracker, clock):
        tracker.set_last_response("u1", "research", "text")
        clock.advance(minutes=31)
        assert tracker.get_last_response("u1") is None
        assert tracker.active_sessions() == 0

    def test_state_within_ttl_survives(self, tracker, clock):
        tracker.set_last_response("u1", "research", "text")
        clock.advance(minutes=29)
        assert tracker.get_last_response("u1") is not None

    def test_lru_eviction(self, tracker):
        for user in ("u1", "u2", "u3"):
            tracker.set_last_response(user, "research", "text")
        tracker.get_last_response("u1")
        tracker.set_last_response("u4", "research", "text")
        assert tracker.get_last_response("u2") is None
        assert tracker.get_last_response("u1") is not None
        assert tracker.active_sessions() == 3

    def test_concurrent_writers(self, clock):
        tracker = SessionTracker(SessionConfig(max_sessions=1000), clock=clock)

        def write(n):
            for i in range(20):
                tracker.set_last_response(f"user-{n}", "research", f"reply {i}")

        threads = [threading.Thread(target=write, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert tracker.active_sessions() == 8
        assert tracker.get_last_response("user-3").last_agent_response == "reply 19"


class TestFollowUp:
    @pytest.mark.parametrize(
        "text", ["continue", "Tell me more!", "yes", "and then", "what about x", "also this"]
    )
    def test_follow_up_inputs(self, text):
        assert SessionTracker.is_follow_up_input(text) is True

    @pytest.mark.parametrize(
        "text",
        ["", "Explain how vaccines train the immune system", "what about the pricing model for candles"],
    )
    def test_not_follow_up(self, text):
        assert SessionTracker.is_follow_up_input(text) is False

    def test_routes_follow_up_to_last_agent(self, tracker):
        tracker.set_last_response("u1", "creative", "Three logo concepts...")
        assert tracker.should_continue_with_last_agent("u1", "more") == "creative"
        assert tracker.should_continue_with_last_agent("u1", "Plan a trip to Japan") is None
        assert tracker.should_continue_with_last_agent("u2", "more") is None
