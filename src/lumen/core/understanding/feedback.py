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
Lumen Agent -- Feedback Analyzer (v1.0.0)

Reads the user's reaction to the previous answer: positive, confused,
asking for a retry, asking for more depth, or negative. The winning
category decides how the next answer's reasoning depth shifts:

    confused -> simplify -> basic
    expand   -> expand   -> advanced
    retry    -> retry    -> off the extreme, toward intermediate
    negative -> retry
    positive -> (none)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from lumen.core.memory.models import MemoryEntry
from lumen.core.understanding.rules import RuleSet, compile_patterns, matches_any, rule

# Declaration order is the tie-break order.
FEEDBACK_RULES = RuleSet(
    "feedback",
    [
        rule(
            "positive",
            [
                r"\b(perfect|excellent|great|awesome|helpful|thanks|thank you|exactly|spot on|brilliant)\b",
                r"\b(that's (exactly|just) what i (needed|wanted))\b",
                r"\b(love (it|this|that)|makes sense now)\b",
                r"\b(cleared? (it|that) up|got it|understand now)\b",
            ],
            ["perfect", "excellent", "great", "helpful", "thanks", "exactly", "brilliant", "awesome"],
            weight=1.0,
            outcome=None,
        ),
        rule(
            "confused",
            [
                r"\b(don't (understand|get it)|confused|confusing|lost me|unclear)\b",
                r"\b(what (do you mean|does that mean)|can you clarify)\b",
                r"\b(too (complex|complicated|technical|advanced))\b",
                r"\b(simpler|easier|basic|layman)\b",
                r"(\bhuh\?|\bwhat\?|\bi'm lost\b)",
            ],
            ["confused", "confusing", "unclear", "lost", "complicated", "complex", "don't understand"],
            weight=1.2,
            outcome="simplify",
        ),
        rule(
            "retry",
            [
                r"\b(try again|rephrase|say (it|that) differently|another way)\b",
                r"\b(can you (rephrase|reword|explain differently))\b",
                r"\b(different (explanation|approach|way))\b",
                r"\b(not what i (meant|asked|wanted))\b",
            ],
            ["try again", "rephrase", "differently", "another way", "reword"],
            weight=1.3,
            outcome="retry",
        ),
        rule(
            "expand",
            [
                r"\b(go deeper|more (detail|details|depth)|elaborate|expand)\b",
                r"\b(tell me more|can you (expand|elaborate))\b",
                r"\b(technical (details|explanation)|advanced)\b",
                r"\b(specifics|specific (details|information))\b",
            ],
            ["deeper", "more detail", "elaborate", "expand", "technical", "advanced", "specifics"],
            weight=1.0,
            outcome="expand",
        ),
        rule(
            "negative",
            [
                r"\b(wrong|incorrect|not (right|correct)|that's not)\b",
                r"\b(terrible|awful|bad|useless|unhelpful)\b",
                r"\b(didn't help|not helpful|waste)\b",
                r"\b(completely (wrong|off|missed))\b",
            ],
            ["wrong", "incorrect", "terrible", "awful", "bad", "unhelpful", "useless"],
            weight=1.5,
            outcome="retry",
        ),
    ],
)

FOLLOW_UP_PATTERNS = compile_patterns(
    r"\b(okay,? (now|so) what|next step|what('s| is) next)\b",
    r"\b(continue|go on|keep going|and then)\b",
    r"\b(what (should i do|do i do) (next|now))\b",
    r"\b(how do i (proceed|continue|go from here))\b",
    r"\b(next|proceed|continue)\b",
)

CONTINUATION_PATTERNS = compile_patterns(
    r"^(yes|yeah|yep|sure|okay|ok|continue|go on)$",
    r"^(yes|yeah|yep),? (please|thanks|go on|continue)$",
    r"\b(tell me more about that|keep going|continue with that)\b",
)

QUESTION_CONTEXT_BOOST = 0.2

_INSIGHTS = {
    "positive": "User found the explanation helpful and clear",
    "confused": "User needs simpler explanations (simplify) - prefers simple explanations, learning level: basic",
    "retry": "User requesting alternative explanation - rephrasing needed",
    "expand": "User wants more technical depth - prefers technical details, learning level: advanced",
    "negative": "Response missed the mark - need to retry with different approach",
}


@dataclass
class FeedbackResult:
    """Outcome of feedback analysis for one utterance."""

    type: str = "neutral"  # positive, confused, retry, expand, negative, neutral
    reasoning_adjustment: str | None = None  # simplify, expand, retry
    follow_up_detected: bool = False
    confidence: float = 0.0
    specific_feedback: str = ""

    @property
    def is_significant(self) -> bool:
        return self.type != "neutral" or self.reasoning_adjustment is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "reasoning_adjustment": self.reasoning_adjustment,
            "follow_up_detected": self.follow_up_detected,
            "confidence": round(self.confidence, 4),
            "specific_feedback": self.specific_feedback,
        }


@dataclass
class LearningPreferences:
    preferred_level: str = "intermediate"
    feedback_patterns: dict[str, int] = field(default_factory=dict)


class FeedbackAnalyzer:
    """Scores an utterance against the feedback rule table."""

    def __init__(self, rules: RuleSet = FEEDBACK_RULES):
        self.rules = rules

    def analyze(
        self,
        text: str,
        last_agent_message: str = "",
    ) -> FeedbackResult:
        lowered = (text or "").lower().strip()
        follow_up = matches_any(FOLLOW_UP_PATTERNS, lowered)
        result = FeedbackResult(follow_up_detected=follow_up)

        highest = 0.0
        for match in self.rules.score_all(lowered):
            score = match.score
            if match.label == "positive" and score > 0 and "?" in (last_agent_message or ""):
                score += QUESTION_CONTEXT_BOOST
            if score > highest:
                highest = score
                result = FeedbackResult(
                    type=match.label,
                    reasoning_adjustment=match.rule.outcome,
                    follow_up_detected=follow_up,
                    confidence=min(score, 1.0),
                    specific_feedback=", ".join(match.matched),
                )
        return result

    @staticmethod
    def is_continuation_request(text: str, feedback: FeedbackResult) -> bool:
        lowered = (text or "").lower().strip()
        if matches_any(CONTINUATION_PATTERNS, lowered):
            return True
        return feedback.follow_up_detected and feedback.type != "negative"

    @staticmethod
    def extract_learning_preferences(feedback_history: list[MemoryEntry]) -> LearningPreferences:
        """Preferred depth from the last 20 feedback memories."""
        counts = {"simplify": 0, "expand": 0, "positive": 0, "negative": 0, "retry": 0}
        for entry in feedback_history[-20:]:
            adjustment = entry.metadata.get("reasoning_adjustment")
            kind = entry.metadata.get("feedback_type")
            if adjustment or kind:
                if adjustment in ("simplify", "expand"):
                    counts[adjustment] += 1
                if kind in ("positive", "negative", "retry"):
                    counts[kind] += 1
                continue
            summary = entry.summary.lower()
            if "simplify" in summary:
                counts["simplify"] += 1
            if "expand" in summary or "technical depth" in summary:
                counts["expand"] += 1
            if "positive" in summary or "helpful" in summary:
                counts["positive"] += 1
            if "negative" in summary or "missed" in summary:
                counts["negative"] += 1
            if "retry" in summary or "rephras" in summary:
                counts["retry"] += 1

        level = "intermediate"
        if counts["simplify"] > counts["expand"] * 2:
            level = "basic"
        elif counts["expand"] > counts["simplify"] * 2:
            level = "advanced"
        return LearningPreferences(preferred_level=level, feedback_patterns=counts)

    @staticmethod
    def feedback_memory(
        text: str,
        last_agent_message: str,
        feedback: FeedbackResult,
        agent_id: str,
        user_id: str | None = None,
    ) -> MemoryEntry | None:
        """Memory-worthy subset of a feedback result, or None."""
        if not feedback.is_significant:
            return None
        insight = _INSIGHTS.get(feedback.type, "")
        if feedback.reasoning_adjustment == "expand":
            insight = _INSIGHTS["expand"]
        context = (last_agent_message or "")[:200]
        return MemoryEntry(
            agent_id=agent_id,
            user_id=user_id,
            type="correction",
            input=text,
            summary=f"User feedback: {feedback.type} - {insight}",
            context=context,
            tags=["feedback", f"feedback_{feedback.type}"],
            metadata={
                "feedback_type": feedback.type,
                "reasoning_adjustment": feedback.reasoning_adjustment,
                "confidence": round(feedback.confidence, 4),
            },
        )


def adjust_reasoning_level_from_feedback(current_level: str, feedback: FeedbackResult | None) -> str:
    if feedback is None or not feedback.reasoning_adjustment:
        return current_level
    if feedback.reasoning_adjustment == "simplify":
        return "basic"
    if feedback.reasoning_adjustment == "expand":
        return "advanced"
    if feedback.reasoning_adjustment == "retry" and current_level in ("basic", "advanced"):
        return "intermediate"
    return current_level


def is_feedback_memory(entry: MemoryEntry) -> bool:
    return entry.type == "correction" and "feedback" in entry.tags
