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
Lumen Agent -- Clarification Detector (v1.0.0)

Decides when the agent should ask the user for more information instead
of guessing, and which clarifying questions to ask.

Decision factors (summed into one score, clarify at >= 0.8):
    - Very short stoplist inputs ("help", "what")      +0.8
    - Generic requests ("help me", "make it better")   +0.6
    - Category rules (vague_input, missing_subject,
      underspecified_goal, ambiguous_context)          0.5*w regex, 0.3*n*w keywords
    - Pronoun with no antecedent and no context        +0.4
    - No action verb / no concrete noun                +0.3 each

Greetings and confirmations short-circuit to "no clarification". If a
clarification was requested recently, the score is damped by 0.7 since
the user is most likely answering it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from lumen.core.config import SignalConfig
from lumen.core.memory.models import MemoryEntry
from lumen.core.understanding.rules import RuleSet, compile_patterns, matches_any, rule

logger = logging.getLogger("lumen.understanding.clarification")

_BASIC_EXCHANGE_PATTERNS = compile_patterns(
    r"^(hi|hello|hey|greetings|good morning|good afternoon|good evening)(\s|$)",
    r"^(yes|yeah|yep|yup|sure|okay|ok|alright|fine|sounds good)(\s|$)",
    r"^(no|nope|nah|not really|never mind)(\s|$)",
    r"^(thank you|thanks|thx|appreciate it|got it|understood)(\s|$)",
)

_VERY_SHORT_INPUTS = frozenset(
    {
        "help", "hi", "hello", "yes", "no", "ok", "sure", "maybe", "idk",
        "what", "how", "why", "when", "where", "please", "thanks",
    }
)

_GENERIC_REQUESTS = (
    "help me", "can you help", "i need help", "assist me", "support me",
    "what do you think", "any ideas", "suggestions", "advice",
    "make it better", "improve this", "optimize it", "fix it",
    "something creative", "be creative", "think of something",
)

_AMBIGUOUS_PRONOUNS = ("it", "this", "that", "they", "them", "these", "those")
_DETERMINERS = frozenset({"the", "a", "an", "my", "your", "his", "her", "our", "their"})

_ACTION_VERBS = frozenset(
    {
        "create", "make", "build", "develop", "design", "write", "generate",
        "analyze", "research", "study", "investigate", "explore", "examine",
        "improve", "optimize", "enhance", "fix", "solve", "resolve",
        "plan", "organize", "structure", "arrange", "schedule",
        "explain", "describe", "tell", "show", "demonstrate", "teach",
    }
)
_NON_NOUNS = frozenset({"with", "from", "about", "would", "could", "should", "might"})

_VERY_SHORT_BOOST = 0.8
_GENERIC_BOOST = 0.6
_PRONOUN_BOOST = 0.4
_MISSING_ELEMENT_BOOST = 0.3
_RECENT_CLARIFICATION_WINDOW = 5
_MAX_QUESTIONS = 4

CLARIFICATION_RULES = RuleSet(
    "clarification",
    [
        rule(
            "vague_input",
            [
                r"^(help|assist|support|please)$",
                r"^(what do you think|any ideas|suggestions)$",
                r"^(can you help|could you help|help me)$",
                r"^(do something|make something|create something)$",
            ],
            ["help", "assist", "something", "anything", "whatever"],
            weight=1.0,
            first_pattern_only=True,
            whole_word_keywords=True,
            questions=(
                "What specific task or goal are you working on?",
                "Could you describe what you'd like to accomplish?",
                "What area would you like help with?",
            ),
        ),
        rule(
            "missing_subject",
            [
                r"^(improve|optimize|fix|enhance|update|change) (it|this|that)$",
                r"^(make it|make this|make that) (better|good|work|nice)$",
                r"^(work on|focus on|deal with) (it|this|that)$",
                r"^(analyze|research|study) (it|this|that)$",
            ],
            ["it", "this", "that", "the thing", "the project"],
            weight=1.2,
            first_pattern_only=True,
            whole_word_keywords=True,
            questions=(
                "What specifically are you referring to?",
                "Could you tell me more about the subject you'd like me to work with?",
                'What is "it" that you\'d like me to help with?',
            ),
        ),
        rule(
            "underspecified_goal",
            [
                r"^(make it better|improve|optimize|enhance)$",
                r"^(do something creative|be creative|think of something)$",
                r"^(solve|fix|handle) (the problem|this issue)$",
                r"^(plan|organize|structure) (something|things)$",
            ],
            ["better", "improve", "optimize", "creative", "solve", "fix"],
            weight=1.1,
            first_pattern_only=True,
            whole_word_keywords=True,
            questions=(
                "What outcome are you hoping to achieve?",
                'What would "better" look like to you?',
                "What specific improvements are you looking for?",
                "What success criteria do you have in mind?",
            ),
        ),
        rule(
            "ambiguous_context",
            [
                r"^(continue|keep going|next|more|proceed)$",
                r"^(what about|how about|consider) (.{1,10})$",
                r"^(tell me about|explain) (.{1,15})$",
            ],
            ["continue", "next", "more", "about", "regarding"],
            weight=1.0,
            first_pattern_only=True,
            whole_word_keywords=True,
            questions=(
                "Could you provide more context about what you're referring to?",
                "Are you continuing from a previous topic or starting something new?",
                "What specific aspect would you like me to focus on?",
            ),
        ),
    ],
)

_DEFAULT_QUESTIONS = (
    "Could you provide more details about what you'd like help with?",
    "What specific task or goal are you working on?",
    "What outcome are you hoping to achieve?",
)

# agent -> reason -> extra questions
_AGENT_QUESTIONS: dict[str, dict[str, tuple[str, ...]]] = {
    "research": {
        "vague_input": (
            "What topic or question would you like me to research?",
            "Are you looking for background information or analysis of specific data?",
        ),
        "missing_subject": (
            "What specific subject should I focus my research on?",
            "Could you specify the topic you'd like me to investigate?",
        ),
        "underspecified_goal": (
            "What type of research outcome are you looking for - analysis, comparison, or recommendations?",
            "Should I focus on current trends, historical data, or future projections?",
        ),
    },
    "creative": {
        "vague_input": (
            "What type of creative project are you envisioning?",
            "Are you looking for ideas, names, stories, or visual concepts?",
        ),
        "missing_subject": (
            "What creative project or concept should I focus on?",
            "Could you describe the creative challenge you're facing?",
        ),
        "underspecified_goal": (
            "What creative outcome would make this a success for you?",
            "What style, tone, or mood are you aiming for?",
        ),
    },
    "automation": {
        "vague_input": (
            "What process or workflow would you like me to help optimize?",
            "Are you looking to automate a specific task or improve an existing system?",
        ),
        "missing_subject": (
            "Which specific process or system should I focus on?",
            "Could you describe the workflow that needs optimization?",
        ),
        "underspecified_goal": (
            "What efficiency gains or improvements are you hoping to achieve?",
            "Should I focus on time savings, error reduction, or scalability?",
        ),
    },
}


@dataclass
class ClarificationResult:
    """Result of clarification check."""

    needs_clarification: bool = False
    reason: str = ""
    confidence: float = 0.0
    suggested_questions: list[str] = field(default_factory=list)
    specific_issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "needs_clarification": self.needs_clarification,
            "reason": self.reason,
            "confidence": round(self.confidence, 4),
            "suggested_questions": list(self.suggested_questions),
            "specific_issues": list(self.specific_issues),
        }


class ClarificationDetector:
    """Decides whether an utterance is too vague to act on."""

    def __init__(self, config: SignalConfig | None = None, rules: RuleSet = CLARIFICATION_RULES):
        self.config = config or SignalConfig()
        self.rules = rules

    def detect(
        self,
        text: str,
        previous_memory: list[MemoryEntry] | None = None,
        has_context: bool = False,
    ) -> ClarificationResult:
        """
        Score an utterance for clarification need.

        Args:
            text: The user's raw message.
            previous_memory: Recent entries, oldest first.
            has_context: True when the turn continues an earlier exchange,
                which makes bare pronouns resolvable.
        """
        trimmed = (text or "").strip()
        lowered = trimmed.lower()

        if not trimmed:
            return ClarificationResult(
                needs_clarification=True,
                reason="vague_input",
                confidence=1.0,
                suggested_questions=list(_DEFAULT_QUESTIONS),
                specific_issues=["Empty input"],
            )

        if is_basic_exchange(lowered):
            return ClarificationResult(needs_clarification=False, reason="basic_exchange")

        score = 0.0
        issues: list[str] = []
        best_reason = ""
        best_score = 0.0
        best_questions: list[str] = []

        if len(trimmed) <= self.config.short_input_chars and lowered in _VERY_SHORT_INPUTS:
            score += _VERY_SHORT_BOOST
            issues.append("Input too brief")

        if any(g in lowered for g in _GENERIC_REQUESTS):
            score += _GENERIC_BOOST
            issues.append("Request too generic")

        for match in self.rules.score_all(lowered):
            if match.score <= 0:
                continue
            score += match.score
            if match.score > best_score:
                best_score = match.score
                best_reason = match.label
                best_questions = list(match.rule.questions)

        if not has_context and has_ambiguous_pronoun(lowered):
            score += _PRONOUN_BOOST
            issues.append("Ambiguous pronouns without context")

        missing = missing_elements(lowered)
        score += _MISSING_ELEMENT_BOOST * len(missing)
        issues.extend(missing)

        if score > self.config.clarification_damping_floor and has_recent_clarification(
            previous_memory or []
        ):
            score *= self.config.clarification_damping

        needs = score >= self.config.clarification_threshold
        if needs and not best_reason:
            best_reason = "vague_input"
            best_questions = list(_DEFAULT_QUESTIONS)

        logger.debug("Clarification score %.2f for %r (reason=%s)", score, trimmed[:80], best_reason)
        return ClarificationResult(
            needs_clarification=needs,
            reason=best_reason,
            confidence=score,
            suggested_questions=best_questions if needs else [],
            specific_issues=issues,
        )

    @staticmethod
    def generate_clarifying_questions(result: ClarificationResult, agent_id: str) -> list[str]:
        """Base questions for the reason plus agent-specific ones, at most four."""
        if not result.needs_clarification or not result.suggested_questions:
            return []
        extra = _AGENT_QUESTIONS.get(agent_id, {}).get(result.reason, ())
        return (list(result.suggested_questions) + list(extra))[:_MAX_QUESTIONS]

    @staticmethod
    def clarification_memory(
        text: str, result: ClarificationResult, agent_id: str, user_id: str | None = None
    ) -> MemoryEntry:
        """Record that clarification was requested, so the next turn is read as an answer."""
        return MemoryEntry(
            agent_id=agent_id,
            user_id=user_id,
            type="clarification",
            input=text,
            summary=(
                f"Clarification requested: {result.reason} - Agent: {agent_id} "
                "(clarification_requested)"
            ),
            context=f'Original unclear input: "{text}" - Issues: {", ".join(result.specific_issues)}',
            tags=["clarification_requested", result.reason or "vague_input"],
            metadata={"confidence": round(result.confidence, 4)},
        )


# =============================================================================
# HEURISTICS
# =============================================================================


def is_basic_exchange(lowered: str) -> bool:
    return matches_any(_BASIC_EXCHANGE_PATTERNS, lowered)


def has_ambiguous_pronoun(lowered: str) -> bool:
    """A pronoun at the start, or preceded only by determiners."""
    words = lowered.split()
    for pronoun in _AMBIGUOUS_PRONOUNS:
        if pronoun not in words:
            continue
        index = words.index(pronoun)
        if index == 0:
            return True
        previous = words[max(0, index - 3) : index]
        if all(w in _DETERMINERS for w in previous):
            return True
    return False


def missing_elements(lowered: str) -> list[str]:
    words = lowered.split()
    issues = []
    if len(words) > 2 and not any(w in _ACTION_VERBS for w in words):
        issues.append("Missing clear action or goal")
    nouns = [w for w in words if len(w) > 3 and w not in _NON_NOUNS]
    if len(words) > 3 and not nouns:
        issues.append("Missing specific subject or topic")
    return issues


def has_recent_clarification(memory: list[MemoryEntry]) -> bool:
    for entry in memory[-_RECENT_CLARIFICATION_WINDOW:]:
        if (
            entry.type == "clarification"
            or "clarification_requested" in entry.tags
            or "clarification_requested" in (entry.summary or "")
        ):
            return True
    return False
