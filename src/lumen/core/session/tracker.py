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
Lumen Agent -- Session State Tracker (v1.0.0)

Per-user record of the previous turn: which agent answered, what it said
and at which reasoning depth. Lets a bare "continue" or "tell me more" be
routed back to the agent that was speaking.

LOCKING:
    _map_lock   short, guards the LRU map itself
    per-user    serializes writes for one user; other users never wait on it

BOUNDS:
    TTL (30 min default) -- expired states read as absent
    LRU (10 000 users)   -- least recently used state evicted first

State is process-local and lost on restart.
"""

from __future__ import annotations

import dataclasses
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from lumen.core.config import SessionConfig
from lumen.core.logging import LumenLogger
from lumen.core.memory.models import utcnow

CONTINUATION_CONTEXT_CHARS = 200

# Whole-message affirmatives that hand the turn back to the last agent
_FOLLOW_UP_PHRASES = frozenset(
    {
        "yes",
        "yeah",
        "yep",
        "ok",
        "okay",
        "sure",
        "continue",
        "go on",
        "proceed",
        "next",
        "more",
        "tell me more",
        "what else",
        "and then",
        "keep going",
    }
)

# Short additive openers (only checked on short inputs)
_SHORT_FOLLOW_UP_PATTERNS = [
    re.compile(r"^(and|then|also|plus|additionally)\b"),
    re.compile(r"^(what about|how about)\b"),
    re.compile(r"^(can you|could you) (also|too)\b"),
    re.compile(r"^(tell me|show me) (more|about)\b"),
]

_SHORT_INPUT_CHARS = 15


@dataclass
class SessionState:
    """Outcome of a user's previous turn."""

    user_id: str
    last_agent_id: str
    last_agent_response: str
    last_reasoning_level: str = "intermediate"
    continuation_context: str = ""
    last_response_time: datetime = field(default_factory=utcnow)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["last_response_time"] = self.last_response_time.isoformat()
        return data


class SessionTracker:
    """Process-wide map of user -> SessionState, bounded by TTL and LRU."""

    def __init__(
        self,
        config: SessionConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        live_log: LumenLogger | None = None,
    ):
        cfg = config or SessionConfig()
        self.ttl = timedelta(minutes=cfg.ttl_minutes)
        self.max_sessions = cfg.max_sessions
        self._clock = clock or utcnow
        self._live_log = live_log
        self._states: OrderedDict[str, SessionState] = OrderedDict()
        self._user_locks: dict[str, threading.Lock] = {}
        self._map_lock = threading.Lock()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def set_last_response(
        self,
        user_id: str,
        agent_id: str,
        response: str,
        reasoning_level: str = "intermediate",
        metadata: dict[str, Any] | None = None,
    ) -> SessionState:
        """Overwrite the user's state unconditionally."""
        metadata = dict(metadata or {})
        with self._user_lock(user_id):
            state = SessionState(
                user_id=user_id,
                last_agent_id=agent_id,
                last_agent_response=response,
                last_reasoning_level=reasoning_level,
                continuation_context=metadata.pop(
                    "continuation_context", (response or "")[-CONTINUATION_CONTEXT_CHARS:]
                ),
                last_response_time=self._clock(),
                metadata=metadata,
            )
            with self._map_lock:
                self._states[user_id] = state
                self._states.move_to_end(user_id)
                self._evict_locked()
        if self._live_log:
            self._live_log.session("update", user_id=user_id, agent_id=agent_id)
        return dataclasses.replace(state)

    def get_last_response(self, user_id: str) -> SessionState | None:
        """The user's previous turn, or None if absent or expired."""
        now = self._clock()
        with self._map_lock:
            state = self._states.get(user_id)
            if state is None:
                return None
            if now - state.last_response_time > self.ttl:
                del self._states[user_id]
                self._drop_user_lock_locked(user_id)
                return None
            self._states.move_to_end(user_id)
            return dataclasses.replace(state, metadata=dict(state.metadata))

    def clear_session(self, user_id: str) -> bool:
        with self._user_lock(user_id):
            with self._map_lock:
                removed = self._states.pop(user_id, None) is not None
        if removed and self._live_log:
            self._live_log.session("clear", user_id=user_id)
        return removed

    def active_sessions(self) -> int:
        """Number of unexpired sessions. Expired ones are dropped on the way."""
        now = self._clock()
        with self._map_lock:
            expired = [u for u, s in self._states.items() if now - s.last_response_time > self.ttl]
            for user_id in expired:
                del self._states[user_id]
                self._drop_user_lock_locked(user_id)
            return len(self._states)

    @staticmethod
    def is_follow_up_input(text: str) -> bool:
        """Bare affirmatives and short additive openers."""
        cleaned = re.sub(r"[^\w\s']", "", (text or "").lower()).strip()
        cleaned = " ".join(cleaned.split())
        if not cleaned:
            return False
        if cleaned in _FOLLOW_UP_PHRASES:
            return True
        if len(cleaned) <= _SHORT_INPUT_CHARS:
            return any(p.search(cleaned) for p in _SHORT_FOLLOW_UP_PATTERNS)
        return False

    def should_continue_with_last_agent(self, user_id: str, text: str) -> str | None:
        """Agent id to route a follow-up back to, if any."""
        state = self.get_last_response(user_id)
        if state and self.is_follow_up_input(text):
            return state.last_agent_id
        return None

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._map_lock:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = threading.Lock()
            return lock

    def _drop_user_lock_locked(self, user_id: str):
        lock = self._user_locks.get(user_id)
        if lock is not None and not lock.locked():
            del self._user_locks[user_id]

    def _evict_locked(self):
        while len(self._states) > self.max_sessions:
            user_id, _ = self._states.popitem(last=False)
            self._drop_user_lock_locked(user_id)
