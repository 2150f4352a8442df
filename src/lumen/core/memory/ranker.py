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
Lumen Agent -- Memory Relevance Ranker (v1.0.0)

Scores entries returned by the store against a recall query:

    score  = base relevance (stored value, 1.0 when absent)
    score  = (score + topic relevance) / 2          if a topic is given
    score += recency boost (linear decay over 30 days, at most 0.1)
    score += 0.2                                     if type == goal
    score  = min(score, 1.0)

Entries below min_confidence, outside the tag filter or the time window are
dropped, as are entries that end up scoring 0. Ranking never mutates the
input entries; scored copies are returned.

RecallCache holds finished MemoryContexts keyed by the normalized query
shape for a fixed TTL. A hit is served as-is: no re-scoring.
"""

from __future__ import annotations

import dataclasses
import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable

from lumen.core.config import MemoryConfig
from lumen.core.errors import RankingError
from lumen.core.memory.models import MemoryContext, MemoryEntry, RecallOptions, utcnow

MATCHING_MODES = ("strict", "fuzzy")

CacheKey = tuple


class RelevanceRanker:
    """Pure scoring over (entries, options, now)."""

    def __init__(self, config: MemoryConfig | None = None):
        cfg = config or MemoryConfig()
        self.recency_window_days = cfg.recency_window_days
        self.recency_max_boost = cfg.recency_max_boost
        self.goal_type_boost = cfg.goal_type_boost

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def rank(
        self, entries: list[MemoryEntry], options: RecallOptions, now: datetime
    ) -> list[MemoryEntry]:
        """Score, filter and order entries. Raises RankingError on bad options."""
        self.validate(options)

        cutoff = None
        if options.time_window_hours is not None:
            cutoff = now - timedelta(hours=options.time_window_hours)
        filter_tags = [t.lower() for t in options.tag_filter]

        scored: list[MemoryEntry] = []
        for entry in entries:
            if entry.source_confidence < options.min_confidence:
                continue
            if filter_tags and not _passes_tag_filter(entry, filter_tags):
                continue
            if cutoff is not None and entry.created_at < cutoff:
                continue
            score = self.score(entry, options, now)
            if score <= 0:
                continue
            scored.append(dataclasses.replace(entry, relevance_score=score))

        scored.sort(key=lambda e: (e.relevance_score, e.created_at), reverse=True)
        return scored

    def score(self, entry: MemoryEntry, options: RecallOptions, now: datetime) -> float:
        score = entry.relevance_score if entry.relevance_score is not None else 1.0
        if options.topic:
            score = (score + self.topic_relevance(entry, options.topic, options.matching_mode)) / 2
        score += self.recency_boost(entry, now)
        if entry.type == "goal":
            score += self.goal_type_boost
        return min(score, 1.0)

    def recency_boost(self, entry: MemoryEntry, now: datetime) -> float:
        age_days = (now - entry.created_at).total_seconds() / 86400
        decay = max(0.0, 1 - age_days / self.recency_window_days)
        return min(self.recency_max_boost, decay * self.recency_max_boost)

    @staticmethod
    def topic_relevance(entry: MemoryEntry, topic: str, mode: str) -> float:
        text = entry.searchable_text().lower()
        topic = topic.lower().strip()
        if mode == "strict":
            return 1.0 if topic in text else 0.0
        words = [w for w in topic.split() if len(w) > 2]
        if not words:
            return 0.0
        return sum(1 for w in words if w in text) / len(words)

    @staticmethod
    def validate(options: RecallOptions):
        if options.matching_mode not in MATCHING_MODES:
            raise RankingError(f"matching_mode must be one of {MATCHING_MODES}")
        if not isinstance(options.min_confidence, (int, float)) or not (
            0.0 <= options.min_confidence <= 1.0
        ):
            raise RankingError(f"min_confidence out of range: {options.min_confidence!r}")
        if not isinstance(options.limit, int) or options.limit <= 0:
            raise RankingError(f"limit must be a positive integer: {options.limit!r}")
        window = options.time_window_hours
        if window is not None and (not isinstance(window, (int, float)) or window <= 0):
            raise RankingError(f"time_window_hours must be positive: {options.time_window_hours!r}")
        if not all(isinstance(t, str) for t in options.tag_filter):
            raise RankingError("tag_filter must contain strings only")


def _passes_tag_filter(entry: MemoryEntry, filter_tags: list[str]) -> bool:
    return any(f in tag.lower() for tag in entry.tags for f in filter_tags)


# =============================================================================
# RECALL CACHE
# =============================================================================


class RecallCache:
    """TTL + size bounded cache of MemoryContexts, oldest evicted first."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 20,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_entries = max_entries
        self._clock = clock or utcnow
        self._items: OrderedDict[CacheKey, tuple[datetime, MemoryContext]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(
        agent_id: str | None, user_id: str | None, query: str, options: RecallOptions
    ) -> CacheKey:
        topic = (options.topic if options.topic is not None else query) or ""
        return (
            user_id,
            " ".join(topic.lower().split()),
            agent_id or "",
            options.session_id or "",
            options.matching_mode,
            options.min_confidence,
            options.limit,
            options.time_window_hours,
            tuple(sorted(options.types)),
            tuple(sorted(str(t) for t in options.tag_filter)),
        )

    def get(self, key: CacheKey) -> MemoryContext | None:
        now = self._clock()
        with self._lock:
            item = self._items.get(key)
            if item is None:
                self.misses += 1
                return None
            stored_at, context = item
            if now - stored_at >= self.ttl:
                del self._items[key]
                self.misses += 1
                return None
            self.hits += 1
        return dataclasses.replace(
            context, entries=list(context.entries), cache_hit=True, processing_time_ms=0.0
        )

    def put(self, key: CacheKey, context: MemoryContext):
        now = self._clock()
        with self._lock:
            self._items.pop(key, None)
            self._items[key] = (now, context)
            while len(self._items) > self.max_entries:
                self._items.popitem(last=False)

    def clear(self):
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
