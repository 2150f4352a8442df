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
Lumen Agent -- Dialogue Engine (v1.0.0)

One user turn, end to end:

    recall memory -> read session state -> plan -> persist signal memories

and, once the renderer has produced an answer, complete_turn() records it
as the user's session state (and optionally as a summary memory).

All collaborators are constructor-injected. from_config() wires the
production set: tiered SQLite/JSON store, recall cache, session tracker,
default domain registry.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Any, Callable, Iterable

from lumen.core.config import EngineConfig, load_config
from lumen.core.logging import LumenLogger
from lumen.core.memory.engine import MemoryEngine
from lumen.core.memory.models import MemoryContext, MemoryEntry, RecallOptions, utcnow
from lumen.core.memory.store import MemoryStore, create_default_store
from lumen.core.planning.planner import ResponsePlan, ResponsePlanner
from lumen.core.session.tracker import SessionState, SessionTracker
from lumen.core.understanding.clarification import ClarificationDetector
from lumen.core.understanding.domains import DomainRegistry
from lumen.core.understanding.feedback import FeedbackAnalyzer
from lumen.core.understanding.goal_progress import GoalProgressDetector

logger = logging.getLogger("lumen.planning.engine")

# Signal memories the extractors read back on later turns
SIGNAL_TYPES = ("goal", "goal_progress", "clarification", "correction", "summary")
RECENT_SIGNAL_LIMIT = 20


class DialogueEngine:
    """Facade over memory, session state and the planner."""

    def __init__(
        self,
        memory: MemoryEngine,
        sessions: SessionTracker,
        planner: ResponsePlanner,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        live_log: LumenLogger | None = None,
    ):
        self.config = config or EngineConfig()
        self._clock = clock or utcnow
        self.memory = memory
        self.sessions = sessions
        self.planner = planner
        self._live_log = live_log

    @classmethod
    def from_config(
        cls,
        config: EngineConfig | None = None,
        store: MemoryStore | None = None,
        domains: DomainRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
        live_log: LumenLogger | None = None,
    ) -> DialogueEngine:
        """Build an engine from configuration (loads the YAML file when config is None)."""
        config = config or load_config()
        clock = clock or utcnow
        store = store or create_default_store(config.memory.db_path, config.memory.fallback_dir, clock)
        memory = MemoryEngine(store, config=config.memory, clock=clock, live_log=live_log)
        sessions = SessionTracker(config.session, clock=clock, live_log=live_log)
        planner = ResponsePlanner(
            config=config.planner,
            signals=config.signals,
            domains=domains,
            feedback_analyzer=FeedbackAnalyzer(),
            clarification_detector=ClarificationDetector(config.signals),
            goal_detector=GoalProgressDetector(config.signals),
            live_log=live_log,
        )
        return cls(memory, sessions, planner, config=config, clock=clock, live_log=live_log)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def plan(
        self,
        utterance: str,
        agent_id: str,
        user_id: str | None = None,
        routing_metadata: dict[str, Any] | None = None,
    ) -> ResponsePlan:
        """
        Plan the response to one user turn.

        Memory-worthy signals (feedback, clarification requests, goal
        progress) are persisted before returning. Storage trouble never
        fails the turn.

        Raises:
            PlannerError: When no plan can be produced.
        """
        session_state = self.sessions.get_last_response(user_id) if user_id else None
        history = self._gather_memory(agent_id, user_id, utterance)

        plan = self.planner.plan(
            utterance,
            agent_id,
            session_state=session_state,
            memory=history,
            routing_metadata=routing_metadata,
            user_id=user_id,
        )

        self._persist_signals(plan, agent_id, user_id, session_state)
        return plan

    def recall(
        self,
        agent_id: str,
        user_id: str | None,
        query: str,
        options: RecallOptions | None = None,
    ) -> MemoryContext:
        return self.memory.recall(agent_id, user_id, query, options)

    def remember(
        self,
        agent_id: str,
        user_id: str | None,
        input: str,
        summary: str,
        context: str = "",
        type: str = "summary",
        tags: Iterable[str] | None = None,
        **goal_fields: Any,
    ) -> MemoryEntry:
        return self.memory.remember(
            agent_id, user_id, input, summary, context=context, type=type, tags=tags, **goal_fields
        )

    def complete_turn(
        self,
        user_id: str,
        agent_id: str,
        response: str,
        plan: ResponsePlan | None = None,
        user_input: str | None = None,
    ) -> SessionState:
        """
        Record the rendered response as the user's latest turn.

        When user_input is given the exchange is also remembered as a
        summary entry.
        """
        reasoning_level = plan.reasoning_level if plan else "intermediate"
        metadata: dict[str, Any] = {}
        if plan:
            metadata = {"intent": plan.intent, "response_strategy": plan.response_strategy}
        state = self.sessions.set_last_response(
            user_id, agent_id, response, reasoning_level=reasoning_level, metadata=metadata
        )
        if user_input:
            self.memory.remember(
                agent_id,
                user_id,
                input=user_input,
                summary=self.memory.summarize_exchange(user_input, response),
                type="summary",
                metadata=metadata,
            )
        return state

    def close(self):
        self.memory.close()

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _gather_memory(self, agent_id: str, user_id: str | None, utterance: str) -> list[MemoryEntry]:
        """Ranked recall plus recent signal memories, oldest first, no duplicates."""
        ranked = self.memory.recall(
            agent_id,
            user_id,
            utterance,
            RecallOptions(limit=self.config.memory.default_recall_limit),
        ).entries
        recent = self.memory.recent(agent_id, user_id, SIGNAL_TYPES, limit=RECENT_SIGNAL_LIMIT)

        merged: dict[str, MemoryEntry] = {}
        for entry in list(ranked) + recent:
            merged.setdefault(entry.id, entry)
        return sorted(merged.values(), key=lambda e: e.created_at)

    def _persist_signals(
        self,
        plan: ResponsePlan,
        agent_id: str,
        user_id: str | None,
        session_state: SessionState | None,
    ):
        text = plan.clean_input
        last_message = session_state.last_agent_response if session_state else ""

        entries = [
            FeedbackAnalyzer.feedback_memory(text, last_message, plan.feedback, agent_id, user_id),
            GoalProgressDetector.goal_progress_memory(text, plan.goal_progress, agent_id, user_id),
        ]
        if plan.clarification.needs_clarification:
            entries.append(
                ClarificationDetector.clarification_memory(text, plan.clarification, agent_id, user_id)
            )

        now = self._clock()
        stored = 0
        for entry in entries:
            if entry is None:
                continue
            self.memory.store_entry(dataclasses.replace(entry, created_at=now, last_accessed=now))
            stored += 1
        if stored:
            logger.debug("Persisted %d signal memories (agent=%s user=%s)", stored, agent_id, user_id)
