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
Lumen Agent -- Reasoning Depth (v1.0.0)

Picks how deep the next answer should go: basic, intermediate or advanced.

Precedence, first hit wins:
    1. explicit phrasing ("explain simply", "deep dive", "too complex")
    2. feedback adjustment on the previous turn's level
    3. learning level recorded in memory
    4. domain complexity table
    5. technical terms -> advanced, short simple question -> basic
    6. intermediate
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from lumen.core.memory.models import MemoryEntry
from lumen.core.understanding.feedback import FeedbackResult, adjust_reasoning_level_from_feedback

REASONING_LEVELS = ("basic", "intermediate", "advanced")

BASIC_KEYWORDS = (
    "explain simply",
    "simple terms",
    "eli5",
    "explain like i'm five",
    "basic explanation",
    "layman's terms",
    "non-technical",
    "beginner",
    "overview",
    "summarize briefly",
)

ADVANCED_KEYWORDS = (
    "go deep",
    "technical breakdown",
    "in detail",
    "deep dive",
    "technical details",
    "advanced explanation",
    "expert level",
    "comprehensive analysis",
    "theoretical background",
    "mathematical proof",
    "implementation details",
)

SIMPLIFY_KEYWORDS = (
    "simplify that",
    "break that down",
    "explain it simpler",
    "explain simpler",
    "too complex",
    "easier explanation",
    "more basic terms",
)

DOMAIN_COMPLEXITY = {
    "chat": "basic",
    "weather": "basic",
    "time": "basic",
    "python": "intermediate",
    "javascript": "intermediate",
    "web development": "intermediate",
    "business": "intermediate",
    "marketing": "intermediate",
    "react": "intermediate",
    "nodejs": "intermediate",
    "quantum mechanics": "advanced",
    "machine learning": "advanced",
    "cryptography": "advanced",
    "distributed systems": "advanced",
    "theoretical physics": "advanced",
    "advanced mathematics": "advanced",
    "compiler design": "advanced",
    "operating systems": "advanced",
}

_TECHNICAL_TERMS = re.compile(
    r"algorithm|implementation|architecture|optimization|performance|complexity|theorem|proof|equation|formula",
    re.IGNORECASE,
)
_SIMPLE_QUESTION = re.compile(r"^(what is|who is|when is|where is|how do i|can you)", re.IGNORECASE)
_SIMPLE_QUESTION_MAX_CHARS = 50
_MEMORY_WINDOW = 10


@dataclass
class ReasoningDecision:
    level: str
    source: str  # explicit, feedback, memory, domain, heuristic, default


def explicit_level(text: str) -> str | None:
    lowered = text.lower()
    if any(k in lowered for k in BASIC_KEYWORDS) or any(k in lowered for k in SIMPLIFY_KEYWORDS):
        return "basic"
    if any(k in lowered for k in ADVANCED_KEYWORDS):
        return "advanced"
    return None


def is_simplification_request(text: str) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in SIMPLIFY_KEYWORDS)


def learning_level_from_memory(memory: list[MemoryEntry]) -> str | None:
    """Most recent level recorded by feedback among the last 10 entries."""
    for entry in reversed(memory[-_MEMORY_WINDOW:]):
        content = (entry.summary or "").lower()
        if "prefers simple explanations" in content or "learning level: basic" in content:
            return "basic"
        if "prefers technical details" in content or "learning level: advanced" in content:
            return "advanced"
    return None


def heuristic_level(text: str) -> str | None:
    lowered = text.lower().strip()
    if _TECHNICAL_TERMS.search(lowered):
        return "advanced"
    if len(lowered) < _SIMPLE_QUESTION_MAX_CHARS and _SIMPLE_QUESTION.search(lowered):
        return "basic"
    return None


def decide_reasoning_level(
    text: str,
    memory: list[MemoryEntry],
    domain: str,
    feedback: FeedbackResult | None = None,
    previous_level: str | None = None,
) -> ReasoningDecision:
    level = explicit_level(text)
    if level:
        return ReasoningDecision(level, "explicit")

    if feedback is not None and feedback.reasoning_adjustment:
        current = previous_level if previous_level in REASONING_LEVELS else "intermediate"
        return ReasoningDecision(adjust_reasoning_level_from_feedback(current, feedback), "feedback")

    level = learning_level_from_memory(memory)
    if level:
        return ReasoningDecision(level, "memory")

    level = DOMAIN_COMPLEXITY.get((domain or "").lower())
    if level:
        return ReasoningDecision(level, "domain")

    level = heuristic_level(text)
    if level:
        return ReasoningDecision(level, "heuristic")

    return ReasoningDecision("intermediate", "default")
