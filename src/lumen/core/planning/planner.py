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
Lumen Agent -- Response Planner (v1.0.0)

Fuses the signal extractors, the session state and recalled memory into
one ResponsePlan. Pure computation: no I/O, no hidden state.

Pipeline, in order:
    1. clean the utterance of memory/session artifacts
    2. intent   (continuation > clarify > agent trigger > ladder > agent default)
    3. domain   (registry > coarse keywords > "general")
    4. reasoning depth
    5. confidence
    6. contextual factors
    7. tools
    8. response strategy
    9. plan steps

Feedback is only read when the previous answer came from the same agent.
An extractor that raises is logged and treated as "no signal". Anything
else that goes wrong raises PlannerError: there is no safe default plan.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from lumen.core.config import PlannerConfig, SignalConfig
from lumen.core.errors import ExtractorError, PlannerError, truncate
from lumen.core.logging import LumenLogger
from lumen.core.memory.models import MemoryEntry
from lumen.core.planning.agents import get_agent_profile
from lumen.core.planning.intents import (
    SINGLE_WORD_COMMANDS,
    clean_utterance,
    keyword_hits,
    ladder_intent,
)
from lumen.core.session.tracker import SessionState, SessionTracker
from lumen.core.understanding.clarification import ClarificationDetector, ClarificationResult
from lumen.core.understanding.domains import DomainRegistry, coarse_domain
from lumen.core.understanding.feedback import CONTINUATION_PATTERNS, FeedbackAnalyzer, FeedbackResult
from lumen.core.understanding.goal_progress import GoalProgressDetector, GoalProgressResult
from lumen.core.understanding.reasoning import decide_reasoning_level
from lumen.core.understanding.rules import matches_any

logger = logging.getLogger("lumen.planning.planner")

T = TypeVar("T")

STRATEGIES = ("direct_answer", "guided_discovery", "structured_framework", "clarification_first")

KNOWLEDGE_INTENTS = frozenset({"learn", "explain", "research", "analyze"})
SEARCH_INTENTS = frozenset({"research", "explore", "analyze"})
FRAMEWORK_INTENTS = frozenset({"learn", "research"})
DISCOVERY_INTENTS = frozenset({"create", "explore", "plan"})

_MIN_LENGTH_FOR_BONUS = 10

_STRATEGY_STEPS = {
    "clarification_first": ["ask_clarifying_questions", "reference_memory", "provide_first_step"],
    "structured_framework": [
        "outline_framework",
        "explain_components",
        "apply_to_user_context",
        "suggest_next_steps",
    ],
    "guided_discovery": [
        "explore_options",
        "ask_guiding_question",
        "build_on_user_ideas",
        "suggest_next_steps",
    ],
}


# =============================================================================
# PLAN MODEL
# =============================================================================


@dataclass
class PlanTools:
    use_memory: bool = False
    use_knowledge: bool = False
    use_search: bool = False
    ask_clarifying_questions: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "use_memory": self.use_memory,
            "use_knowledge": self.use_knowledge,
            "use_search": self.use_search,
            "ask_clarifying_questions": self.ask_clarifying_questions,
        }


@dataclass
class ContextualFactors:
    has_goal_progress: bool = False
    needs_feedback_handling: bool = False
    is_continuation: bool = False
    has_memory_context: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "has_goal_progress": self.has_goal_progress,
            "needs_feedback_handling": self.needs_feedback_handling,
            "is_continuation": self.is_continuation,
            "has_memory_context": self.has_memory_context,
        }


@dataclass
class ResponsePlan:
    """The engine's decision for one turn, handed to a response renderer."""

    agent_id: str
    intent: str
    domain: str
    reasoning_level: str
    confidence: float
    tools: PlanTools
    plan_steps: list[str]
    contextual_factors: ContextualFactors
    response_strategy: str
    clean_input: str = ""
    domain_source: str = "general"  # registry, coarse, general
    reasoning_source: str = "default"
    clarifying_questions: list[str] = field(default_factory=list)
    feedback: FeedbackResult = field(default_factory=FeedbackResult)
    clarification: ClarificationResult = field(default_factory=ClarificationResult)
    goal_progress: GoalProgressResult = field(default_factory=GoalProgressResult)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "intent": self.intent,
            "domain": self.domain,
            "domain_source": self.domain_source,
            "reasoning_level": self.reasoning_level,
            "reasoning_source": self.reasoning_source,
            "confidence": round(self.confidence, 4),
            "tools": self.tools.to_dict(),
            "plan_steps": list(self.plan_steps),
            "contextual_factors": self.contextual_factors.to_dict(),
            "response_strategy": self.response_strategy,
            "clean_input": self.clean_input,
            "clarifying_questions": list(self.clarifying_questions),
            "feedback": self.feedback.to_dict(),
            "clarification": self.clarification.to_dict(),
            "goal_progress": self.goal_progress.to_dict(),
        }


# =============================================================================
# PLANNER
# =============================================================================


class ResponsePlanner:
    """Builds a ResponsePlan from an utterance and its surrounding context."""

    def __init__(
        self,
        config: PlannerConfig | None = None,
        signals: SignalConfig | None = None,
        domains: DomainRegistry | None = None,
        feedback_analyzer: FeedbackAnalyzer | None = None,
        clarification_detector: ClarificationDetector | None = None,
        goal_detector: GoalProgressDetector | None = None,
        live_log: LumenLogger | None = None,
    ):
        self.config = config or PlannerConfig()
        signals = signals or SignalConfig()
        self.domains = domains or DomainRegistry()
        self.feedback_analyzer = feedback_analyzer or FeedbackAnalyzer()
        self.clarification_detector = clarification_detector or ClarificationDetector(signals)
        self.goal_detector = goal_detector or GoalProgressDetector(signals)
        self._live_log = live_log

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def plan(
        self,
        utterance: str,
        agent_id: str,
        session_state: SessionState | None = None,
        memory: list[MemoryEntry] | None = None,
        routing_metadata: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> ResponsePlan:
        """
        Plan a response to one user turn.

        Args:
            utterance: The user's raw message.
            agent_id: Persona answering the turn.
            session_state: Outcome of the previous turn, if any.
            memory: Recalled entries, oldest first.
            routing_metadata: Upstream hints, e.g. {"is_continuation": True}.
            user_id: Only used for log context.

        Raises:
            PlannerError: If planning fails for a reason other than an extractor.
        """
        started = time.perf_counter()
        try:
            plan = self._plan(utterance, agent_id, session_state, memory or [], routing_metadata or {}, user_id)
        except PlannerError:
            raise
        except Exception as e:
            logger.error(
                "Planning failed: %s (agent=%s user=%s input=%r)",
                e, agent_id, user_id, truncate(utterance),
            )
            raise PlannerError(f"Could not plan response: {e}") from e

        if self._live_log:
            self._live_log.plan(
                agent_id,
                plan.intent,
                plan.response_strategy,
                plan.confidence,
                int((time.perf_counter() - started) * 1000),
                domain=plan.domain,
                reasoning=plan.reasoning_level,
            )
        return plan

    @staticmethod
    def clean_utterance(text: str) -> str:
        return clean_utterance(text)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _plan(
        self,
        utterance: str,
        agent_id: str,
        session_state: SessionState | None,
        memory: list[MemoryEntry],
        routing_metadata: dict[str, Any],
        user_id: str | None,
    ) -> ResponsePlan:
        cfg = self.config
        profile = get_agent_profile(agent_id)
        clean = clean_utterance(utterance)
        last_response = session_state.last_agent_response if session_state else None

        context = (agent_id, user_id, clean)
        # Feedback only exists in reply to this agent's previous answer.
        if session_state is not None and session_state.last_agent_id == agent_id:
            feedback = self._extract(
                "feedback",
                lambda: self.feedback_analyzer.analyze(clean, last_response or ""),
                FeedbackResult,
                context,
            )
        else:
            feedback = FeedbackResult()
        goal = self._extract(
            "goal_progress",
            lambda: self.goal_detector.detect(clean, memory),
            GoalProgressResult,
            context,
        )

        is_continuation = bool(last_response) and (
            bool(routing_metadata.get("is_continuation"))
            or self._is_continuation_phrase(clean)
        )

        if is_continuation:
            # A follow-up to the previous answer is never a fresh ambiguity.
            clarification = ClarificationResult(reason="continuation")
        else:
            clarification = self._extract(
                "clarification",
                lambda: self.clarification_detector.detect(
                    clean, memory, has_context=session_state is not None
                ),
                ClarificationResult,
                context,
            )

        # -- Intent --
        too_short = self._is_too_short(clean)
        hits = 0
        if is_continuation:
            intent = "continue"
        elif clarification.needs_clarification or too_short:
            intent = "clarify"
        elif profile.trigger_intent and keyword_hits(clean, profile.trigger_words):
            intent = profile.trigger_intent
            hits = keyword_hits(clean, profile.trigger_words)
        else:
            laddered = ladder_intent(clean)
            if laddered:
                intent, hits = laddered
            else:
                intent = profile.default_intent

        # -- Domain --
        domain = self.domains.detect(clean)
        domain_source = "registry"
        if domain is None:
            domain = coarse_domain(clean)
            domain_source = "coarse"
        if domain is None:
            domain, domain_source = "general", "general"

        # -- Reasoning depth --
        previous_level = session_state.last_reasoning_level if session_state else None
        reasoning = decide_reasoning_level(clean, memory, domain, feedback, previous_level)

        # -- Confidence --
        if intent == "clarify":
            confidence = cfg.clarify_confidence
        else:
            confidence = cfg.base_confidence
            if len(clean) > _MIN_LENGTH_FOR_BONUS:
                confidence += cfg.length_bonus
            if memory:
                confidence += cfg.memory_bonus
            confidence += min(hits * cfg.keyword_bonus, cfg.keyword_bonus_cap)
            if intent in profile.aligned_intents:
                confidence += cfg.alignment_bonus
            if domain_source != "registry":
                confidence -= cfg.vague_domain_penalty
            if is_continuation:
                confidence = max(confidence, cfg.continuation_confidence)
            confidence = max(0.0, min(1.0, confidence))

        # -- Contextual factors --
        factors = ContextualFactors(
            has_goal_progress=goal.detected,
            needs_feedback_handling=feedback.is_significant,
            is_continuation=is_continuation,
            has_memory_context=bool(memory),
        )

        # -- Tools --
        vague = clarification.needs_clarification or too_short
        tools = PlanTools(
            use_memory=bool(memory) or is_continuation or goal.detected,
            use_knowledge=(
                domain != "general"
                and intent in KNOWLEDGE_INTENTS
                and reasoning.level != "basic"
            ),
            use_search=(
                intent in SEARCH_INTENTS
                and confidence > cfg.search_threshold
                and not is_continuation
            ),
            ask_clarifying_questions=(
                confidence < cfg.ask_questions_below
                or intent == "clarify"
                or (confidence < cfg.vague_clarify_ceiling and vague and not is_continuation)
            ),
        )

        # -- Strategy --
        if (
            clarification.needs_clarification
            or intent == "clarify"
            or confidence < cfg.clarification_first_below
        ):
            strategy = "clarification_first"
        elif is_continuation or confidence >= cfg.direct_answer_threshold:
            strategy = "direct_answer"
        elif intent in FRAMEWORK_INTENTS and confidence < cfg.framework_threshold:
            strategy = "structured_framework"
        elif intent in DISCOVERY_INTENTS:
            strategy = "guided_discovery"
        else:
            strategy = "direct_answer"

        questions: list[str] = []
        if tools.ask_clarifying_questions and clarification.needs_clarification:
            questions = self.clarification_detector.generate_clarifying_questions(
                clarification, agent_id
            )

        return ResponsePlan(
            agent_id=agent_id,
            intent=intent,
            domain=domain,
            domain_source=domain_source,
            reasoning_level=reasoning.level,
            reasoning_source=reasoning.source,
            confidence=confidence,
            tools=tools,
            plan_steps=self._plan_steps(strategy, factors, tools),
            contextual_factors=factors,
            response_strategy=strategy,
            clean_input=clean,
            clarifying_questions=questions,
            feedback=feedback,
            clarification=clarification,
            goal_progress=goal,
        )

    def _extract(
        self,
        name: str,
        call: Callable[[], T],
        neutral: Callable[[], T],
        context: tuple[str, str | None, str],
    ) -> T:
        """Run one extractor; a failure becomes its neutral result."""
        try:
            result = call()
        except Exception as e:
            error = ExtractorError(name, str(e))
            agent_id, user_id, text = context
            logger.warning(
                "%s (agent=%s user=%s input=%r)", error, agent_id, user_id, truncate(text)
            )
            return neutral()
        if self._live_log:
            label = getattr(result, "type", None) or getattr(result, "status", None) or getattr(result, "reason", "")
            self._live_log.signal(name, label=str(label or ""), confidence=getattr(result, "confidence", 0.0))
        return result

    @staticmethod
    def _is_continuation_phrase(text: str) -> bool:
        lowered = text.lower().strip()
        return matches_any(CONTINUATION_PATTERNS, lowered) or SessionTracker.is_follow_up_input(lowered)

    @staticmethod
    def _is_too_short(text: str) -> bool:
        words = text.lower().strip(" .!?").split()
        if not words:
            return True
        return len(words) < 2 and words[0] not in SINGLE_WORD_COMMANDS

    @staticmethod
    def _plan_steps(strategy: str, factors: ContextualFactors, tools: PlanTools) -> list[str]:
        steps = []
        if factors.needs_feedback_handling:
            steps.append("acknowledge_feedback")
        if factors.has_goal_progress:
            steps.append("acknowledge_goal_progress")

        if strategy == "direct_answer":
            if factors.is_continuation:
                steps.append("resume_previous_thread")
            steps.append("answer_directly")
            if tools.use_knowledge:
                steps.append("apply_domain_knowledge")
            steps.append("offer_next_step")
        else:
            steps.extend(_STRATEGY_STEPS[strategy])
        return steps

