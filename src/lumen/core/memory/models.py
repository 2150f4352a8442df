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
Lumen Agent -- Memory Data Model (v1.0.0)

MemoryEntry is a fact derived from one conversational turn. It is created
once, touched on each successful recall (last_accessed / frequency) and
otherwise never mutated. relevance_score on a stored entry is only a base
relevance; the ranker assigns the query-time score on a copy.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

ENTRY_TYPES = frozenset(
    {
        "log",
        "summary",
        "pattern",
        "correction",
        "goal",
        "goal_progress",
        "session_summary",
        "session_decision",
        "conversation",
        "clarification",
    }
)

GOAL_STATUSES = frozenset({"new", "in_progress", "completed", "abandoned"})
CLOSED_GOAL_STATUSES = frozenset({"completed", "abandoned"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_entry_id() -> str:
    return f"mem_{uuid.uuid4().hex[:16]}"


def parse_timestamp(value: Any) -> datetime:
    """Accept a datetime or ISO-8601 string; always return an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        return utcnow()
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class MemoryEntry:
    """A single persisted conversation fact."""

    agent_id: str
    type: str
    input: str = ""
    summary: str = ""
    context: str = ""
    user_id: str | None = None
    id: str = field(default_factory=new_entry_id)
    relevance_score: float | None = None
    frequency: int = 1
    created_at: datetime = field(default_factory=utcnow)
    last_accessed: datetime | None = None
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    goal_id: str | None = None
    goal_summary: str | None = None
    goal_status: str | None = None

    def __post_init__(self):
        if self.type not in ENTRY_TYPES:
            raise ValueError(f"Unknown memory entry type: {self.type!r}")
        if self.goal_status is not None and self.goal_status not in GOAL_STATUSES:
            raise ValueError(f"Unknown goal status: {self.goal_status!r}")
        self.created_at = parse_timestamp(self.created_at)
        self.last_accessed = parse_timestamp(self.last_accessed or self.created_at)
        if self.last_accessed < self.created_at:
            self.last_accessed = self.created_at
        self.frequency = max(1, int(self.frequency))
        # tags have set semantics; keep first-seen order
        self.tags = list(dict.fromkeys(t for t in self.tags if t))

    @property
    def source_confidence(self) -> float:
        try:
            return float(self.metadata.get("source_confidence", 1.0))
        except (TypeError, ValueError):
            return 1.0

    @property
    def is_open_goal(self) -> bool:
        return (
            self.type in ("goal", "goal_progress")
            and bool(self.goal_id)
            and self.goal_status not in CLOSED_GOAL_STATUSES
        )

    def searchable_text(self) -> str:
        return " ".join([self.summary, self.input, self.context, " ".join(self.tags)])

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["last_accessed"] = self.last_accessed.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryEntry:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class MemoryPattern:
    """A recurring theme in a user's inputs."""

    pattern: str
    frequency: int = 1
    last_seen: datetime = field(default_factory=utcnow)
    examples: list[str] = field(default_factory=list)
    corrections: list[str] = field(default_factory=list)

    MAX_EXAMPLES = 5
    MAX_CORRECTIONS = 3

    def observe(self, example: str, when: datetime):
        self.frequency += 1
        self.last_seen = when
        self.examples = (self.examples + [example])[-self.MAX_EXAMPLES:]

    def add_correction(self, correction: str):
        self.corrections = (self.corrections + [correction])[-self.MAX_CORRECTIONS:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "frequency": self.frequency,
            "last_seen": self.last_seen.isoformat(),
            "examples": list(self.examples),
            "corrections": list(self.corrections),
        }


@dataclass
class MemoryContext:
    """Result of one recall: ranked entries plus aggregate statistics."""

    entries: list[MemoryEntry] = field(default_factory=list)
    total_matches: int = 0
    average_relevance: float = 0.0
    patterns: list[MemoryPattern] = field(default_factory=list)
    cache_hit: bool = False
    processing_time_ms: float = 0.0

    @classmethod
    def empty(cls) -> MemoryContext:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "total_matches": self.total_matches,
            "average_relevance": round(self.average_relevance, 4),
            "patterns": [p.to_dict() for p in self.patterns],
            "cache_hit": self.cache_hit,
            "processing_time_ms": round(self.processing_time_ms, 3),
        }


@dataclass
class RecallOptions:
    """Shape of a recall query. Also the cache key source."""

    topic: str | None = None
    matching_mode: str = "fuzzy"
    min_confidence: float = 0.0
    tag_filter: list[str] = field(default_factory=list)
    time_window_hours: float | None = None
    limit: int = 10
    types: list[str] = field(default_factory=lambda: ["goal", "summary"])
    session_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecallOptions:
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
