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
Lumen Agent -- Intent Tables (v1.0.0)

Keyword ladder for turn intents, checked top to bottom; the first intent
with a whole-word hit wins. Also the artifact patterns stripped from an
utterance before it is classified.
"""

from __future__ import annotations

import re

INTENTS = (
    "learn",
    "analyze",
    "optimize",
    "create",
    "summarize",
    "compare",
    "explain",
    "explore",
    "debug",
    "plan",
    "research",
    "automate",
    "clarify",
    "continue",
)

# Priority order matters.
INTENT_LADDER: list[tuple[str, tuple[str, ...]]] = [
    ("learn", ("learn", "teach me", "get started", "beginner", "study", "tutorial")),
    (
        "compare",
        ("compare", "comparison", "versus", "vs", "difference between", "differences", "pros and cons"),
    ),
    (
        "explain",
        ("explain", "what is", "what are", "how does", "how do", "why does", "why is", "describe", "meaning of"),
    ),
    ("explore", ("explore", "possibilities", "ideas for", "what if", "alternatives")),
    ("research", ("research", "find out", "investigate", "look into", "sources", "evidence")),
    ("analyze", ("analyze", "analyse", "analysis", "evaluate", "assess", "review", "break down")),
    ("create", ("create", "make", "build", "write", "generate", "design", "come up with", "brainstorm")),
    ("optimize", ("optimize", "optimise", "improve", "speed up", "efficiency", "streamline")),
    ("automate", ("automate", "automation", "automatic", "automated", "workflow")),
    ("plan", ("plan", "roadmap", "schedule", "strategy", "steps to", "organize")),
    ("summarize", ("summarize", "summarise", "summary", "tl;dr", "recap", "key points")),
    ("debug", ("debug", "error", "bug", "fix", "broken", "not working", "crash", "troubleshoot")),
]

# Single words that stand on their own as a request
SINGLE_WORD_COMMANDS = frozenset(
    kw for _, keywords in INTENT_LADDER for kw in keywords if " " not in kw
) | {"continue", "brainstorm", "more", "next"}

_ARTIFACT_PATTERNS = [
    re.compile(r"---\s*Memory Context\s*---.*?---\s*End Memory Context\s*---", re.IGNORECASE | re.DOTALL),
    re.compile(r"\[Memory:[^\]]*\]", re.IGNORECASE),
    re.compile(r"\[\s*\d{4}-\d{2}-\d{2}[T ][\d:.]+(Z|[+-]\d{2}:?\d{2})?\s*\]"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?"),
    re.compile(r"\[\s*\d{1,2}:\d{2}(:\d{2})?\s*([ap]m)?\s*\]", re.IGNORECASE),
    re.compile(r"\(continued\)", re.IGNORECASE),
    re.compile(r"\b(continuing|continued) (from|with) (our|the|your|my) (previous|last|earlier) [^.,;:!?]*[.,;:!?]?", re.IGNORECASE),
]


def clean_utterance(text: str) -> str:
    """Strip injected memory blocks, timestamps and continuation markers."""
    cleaned = text or ""
    for pattern in _ARTIFACT_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    return " ".join(cleaned.split())


def keyword_hits(text: str, keywords: tuple[str, ...]) -> int:
    lowered = text.lower()
    return sum(1 for kw in keywords if re.search(rf"(?<!\w){re.escape(kw)}(?!\w)", lowered))


def ladder_intent(text: str) -> tuple[str, int] | None:
    """First ladder intent with a keyword hit, and its hit count."""
    for intent, keywords in INTENT_LADDER:
        hits = keyword_hits(text, keywords)
        if hits:
            return intent, hits
    return None
