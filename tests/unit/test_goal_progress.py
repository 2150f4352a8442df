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
"""Tests for lumen.core.understanding.goal_progress -- goal status reports."""

import random

import pytest

from lumen.core.memory.models import MemoryEntry
from lumen.core.understanding.goal_progress import (
    GOAL_PROGRESS_RULES,
    GoalProgressDetector,
    GoalProgressResult,
    most_relevant_goal,
    open_goals,
)
from lumen.core.understanding.rules import RuleSet, rule


@pytest.fixture
def detector():
    return GoalProgressDetector()


def _goal(goal_id, summary, status="in_progress", **kwargs):
    return MemoryEntry(
        agent_id="research",
        type="goal",
        goal_id=goal_id,
        goal_summary=summary,
        goal_status=status,
        **kwargs,
    )


class TestDetect:
    def test_completion_keywords(self, detector):
        result = detector.detect("I finished the project and deployed it")
        assert result.status == "completed"
        assert result.confidence == pytest.approx(0.96)
        assert result.progress_indicators == ["finished", "deployed"]
        assert result.reason == "User indicated task completion"

    def test_weak_signal_not_reported(self, detector):
        assert detector.detect("the dashboard is live").detected is False

    def test_open_goal_boosts_and_links(self, detector):
        goal = _goal("g-dash", "Launch the analytics dashboard")
        result = detector.detect("the dashboard is live", memory=[goal])
        assert result.status == "completed"
        assert result.confidence == pytest.approx(0.68)
        assert result.related_goal_id == "g-dash"

    def test_in_progress(self, detector):
        result = detector.detect("halfway done")
        assert result.status == "in_progress"

    def test_abandoned(self, detector):
        result = detector.detect("gave up on this")
        assert result.status == "abandoned"
        assert result.confidence == 1.0

    def test_short_input_ignored(self, detector):
        assert detector.detect("done").detected is False

    def test_threshold_is_inclusive(self):
        rules = RuleSet("t", [rule("in_progress", [], ["halfway"], keyword_score=0.5)])
        result = GoalProgressDetector(rules=rules).detect("we are halfway")
        assert result.status == "in_progress"
        assert result.confidence == pytest.approx(0.5)

    def test_later_category_above_cap_wins(self):
        rules = RuleSet(
            "t",
            [
                rule("completed", [], ["shipped"], keyword_score=1.0),
                rule("abandoned", [], ["dropped"], keyword_score=1.0, weight=1.2),
            ],
        )
        result = GoalProgressDetector(rules=rules).detect("shipped it, then dropped it")
        assert result.status == "abandoned"
        assert result.confidence == 1.0

    def test_seeded_reason_choice(self):
        detector = GoalProgressDetector(rng=random.Random(7))
        result = detector.detect("gave up on this")
        assert result.reason in GOAL_PROGRESS_RULES.get("abandoned").reasons


class TestGoalSelection:
    def test_closed_goals_excluded(self, clock):
        done = _goal("g1", "Ship v1", status="completed")
        active = _goal("g2", "Ship v2")
        assert open_goals([done, active]) == [active]

    def test_open_goals_most_recent_first_capped(self, clock):
        goals = []
        for i in range(7):
            clock.advance(minutes=1)
            goals.append(_goal(f"g{i}", f"goal {i}", created_at=clock()))
        result = open_goals(goals)
        assert [g.goal_id for g in result] == ["g6", "g5", "g4", "g3", "g2"]

    def test_overlap_picks_matching_goal(self):
        recent = _goal("g1", "Plan the wedding menu")
        other = _goal("g2", "Launch the analytics dashboard")
        assert most_relevant_goal("dashboard deployed", [recent, other]).goal_id == "g2"

    def test_no_overlap_falls_back_to_most_recent(self):
        recent = _goal("g1", "Plan the wedding menu")
        other = _goal("g2", "Launch the analytics dashboard")
        assert most_relevant_goal("all sorted", [recent, other]).goal_id == "g1"

    def test_no_goals(self):
        assert most_relevant_goal("anything", []) is None


class TestGoalProgressMemory:
    def test_links_related_goal(self):
        result = GoalProgressResult(status="completed", reason="done", confidence=0.9, related_goal_id="g1")
        entry = GoalProgressDetector.goal_progress_memory("shipped it", result, "research", "u1")
        assert entry.type == "goal_progress"
        assert entry.goal_id == "g1"
        assert entry.goal_status == "completed"
        assert "status_completed" in entry.tags

    def test_new_goal_id_when_unlinked(self):
        result = GoalProgressResult(status="abandoned", confidence=0.9)
        entry = GoalProgressDetector.goal_progress_memory("gave up", result, "research")
        assert entry.goal_id.startswith("goal_")

    def test_nothing_detected(self):
        assert GoalProgressDetector.goal_progress_memory("hi", GoalProgressResult(), "research") is None
