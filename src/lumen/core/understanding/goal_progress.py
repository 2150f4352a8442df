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
Lumen Agent -- Goal-Progress Detector (v1.0.0)

Notices when the user reports that a tracked goal is completed, moving
along, or abandoned, and links the report to the open goal it most likely
refers to.
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from typing import Any

from lumen.core.config import SignalConfig
from lumen.core.memory.models import MemoryEntry
from lumen.core.understanding.rules import RuleSet, rule

_MAX_OPEN_GOALS = 5

GOAL_PROGRESS_RULES = RuleSet(
    "goal_progress",
    [
        rule(
            "completed",
            [
                r"^(it's|its|i've|ive)\s+(done|finished|complete|completed|ready|working|live)$",
                r"^(i\s+)?(finished|completed|done with|wrapped up|launched|deployed|shipped)(\s+the|\s+it|\s+this|\s+that)?$",
                r"^(all\s+)?(done|finished|complete|sorted|working|ready)(\s+now|\s+finally)?(!|\.)?$",
                r"^(thanks|thank you|great|perfect|awesome),?\s+(all\s+)?(done|finished|sorted|complete|working)$",
                r"^(success|successfully|got it working|it works|working now|up and running)(!|\.)?$",
            ],
            [
                "finished", "completed", "done", "launched", "deployed", "shipped", "ready",
                "working", "live", "success", "successfully", "accomplished", "achieved",
                "wrapped up", "all set", "sorted", "complete", "finalized",
            ],
            weight=1.2,
            pattern_score=0.6,
            keyword_score=0.4,
            first_pattern_only=True,
            reasons=(
                "User indicated task completion",
                "Goal achieved successfully",
                "Project launched or deployed",
                "Work finished and functional",
            ),
        ),
        rule(
            "in_progress",
            [
                r"^(i\s+)?(finished|completed|done with)\s+(the\s+)?(first|second|third|next|\d+\w*)\s+(part|step|stage|phase)$",
                r"^(i've|ive)\s+(now|just|already)\s+(set up|configured|installed|created|built)(\s+the)?$",
                r"^(making\s+)?(good\s+)?progress(\s+on|\s+with)?(\s+the|\s+this|\s+it)?$",
                r"^(got|have)\s+(the\s+)?(first|initial|basic)\s+(part|version|setup)\s+(done|working)$",
                r"^(halfway|partway|almost)\s+(done|there|finished)$",
            ],
            [
                "progress", "halfway", "partway", "continuing", "working on", "in the middle",
                "next step", "moving forward", "making headway", "getting there", "ongoing",
                "currently working", "just finished the", "completed part", "done with the first",
            ],
            weight=1.0,
            pattern_score=0.6,
            keyword_score=0.4,
            first_pattern_only=True,
            reasons=(
                "User reported partial completion",
                "Working through multiple steps",
                "Making incremental progress",
                "Continuing previous work",
            ),
        ),
        rule(
            "abandoned",
            [
                r"^(i've|ive)\s+(decided|chosen)\s+(not\s+to|against)(\s+continue|\s+proceeding|\s+doing)(\s+this|\s+it|\s+that)?$",
                r"^(not\s+)?(relevant|needed|important|priority)\s+(anymore|any\s+more|now)$",
                r"^(gave\s+up|giving\s+up|stopped\s+working)\s+(on\s+)?(this|it|that)$",
                r"^(different\s+)?(approach|direction|priority|focus)\s+(now|instead)$",
                r"^(shelving|postponing|pausing|putting\s+on\s+hold)\s+(this|it|that)(\s+for\s+now)?$",
            ],
            [
                "gave up", "giving up", "stopped", "not relevant", "different approach",
                "changed mind", "not needed", "shelving", "postponing", "putting on hold",
                "decided against", "no longer", "different priority", "abandoned",
                "cancelled", "not pursuing", "different direction",
            ],
            weight=1.1,
            pattern_score=0.6,
            keyword_score=0.4,
            first_pattern_only=True,
            reasons=(
                "User decided to discontinue",
                "Changed priorities or approach",
                "No longer relevant or needed",
                "Project put on hold",
            ),
        ),
    ],
)


@dataclass
class GoalProgressResult:
    """A reported goal status change, or status None."""

    status: str | None = None  # completed, in_progress, abandoned
    reason: str = ""
    confidence: float = 0.0
    related_goal_id: str | None = None
    progress_indicators: list[str] = field(default_factory=list)

    @property
    def detected(self) -> bool:
        return self.status is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reason": self.reason,
            "confidence": round(self.confidence, 4),
            "related_goal_id": self.related_goal_id,
            "progress_indicators": list(self.progress_indicators),
        }


class GoalProgressDetector:
    """Scores an utterance for goal status updates."""

    def __init__(
        self,
        config: SignalConfig | None = None,
        rng: random.Random | None = None,
        rules: RuleSet = GOAL_PROGRESS_RULES,
    ):
        self.config = config or SignalConfig()
        self.rules = rules
        self._rng = rng

    def detect(self, text: str, memory: list[MemoryEntry] | None = None) -> GoalProgressResult:
        trimmed = (text or "").strip()
        if len(trimmed) < self.config.goal_min_input_chars:
            return GoalProgressResult()

        lowered = trimmed.lower()
        goals = open_goals(memory or [])

        best: GoalProgressResult | None = None
        for match in self.rules.score_all(lowered):
            score = match.score
            if score > 0 and goals:
                score += self.config.goal_context_boost
            # raw score against the capped best confidence
            confidence = min(score, 1.0)
            if score > (best.confidence if best else 0.0):
                related = most_relevant_goal(
                    trimmed, goals, floor=self.config.goal_overlap_floor
                )
                best = GoalProgressResult(
                    status=match.label,
                    reason=self._pick_reason(match.rule.reasons),
                    confidence=confidence,
                    related_goal_id=related.goal_id if related else None,
                    progress_indicators=[m for m in match.matched if m in match.rule.keywords],
                )

        if best and best.confidence >= self.config.goal_progress_threshold:
            return best
        return GoalProgressResult()

    @staticmethod
    def goal_progress_memory(
        text: str,
        result: GoalProgressResult,
        agent_id: str,
        user_id: str | None = None,
    ) -> MemoryEntry | None:
        if not result.detected:
            return None
        goal_id = result.related_goal_id or f"goal_{uuid.uuid4().hex[:12]}"
        indicators = ", ".join(result.progress_indicators) or "status change"
        return MemoryEntry(
            agent_id=agent_id,
            user_id=user_id,
            type="goal_progress",
            input=text,
            summary=f"Goal {result.status}: {result.reason}",
            context=f"Progress update detected: {indicators}",
            goal_id=goal_id,
            goal_summary=f"Goal tracked by {agent_id}",
            goal_status=result.status,
            tags=["goal_tracking", f"status_{result.status}", agent_id, "progress_update"],
            metadata={"confidence": round(result.confidence, 4)},
        )

    def _pick_reason(self, reasons: tuple[str, ...]) -> str:
        if not reasons:
            return ""
        if self._rng is None:
            return reasons[0]
        return self._rng.choice(reasons)


def open_goals(memory: list[MemoryEntry]) -> list[MemoryEntry]:
    """Open goals, most recently touched first, at most five."""
    goals = [e for e in memory if e.is_open_goal]
    goals.sort(key=lambda e: e.last_accessed, reverse=True)
    return goals[:_MAX_OPEN_GOALS]


def most_relevant_goal(
    text: str, goals: list[MemoryEntry], floor: float = 0.1
) -> MemoryEntry | None:
    """Best word-overlap goal, else the most recently touched one."""
    if not goals:
        return None
    input_words = text.lower().split()
    best_goal, best_score = None, 0.0
    for goal in goals:
        goal_words = " ".join(
            [goal.goal_summary or "", goal.summary or "", goal.input or ""]
        ).lower().split()
        if not goal_words:
            continue
        overlap = sum(
            1
            for w in input_words
            if len(w) > 3 and any(w in gw or gw in w for gw in goal_words)
        )
        score = overlap / max(len(input_words), len(goal_words))
        if score > best_score:
            best_goal, best_score = goal, score
    return best_goal if best_score > floor else goals[0]
