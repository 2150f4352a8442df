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
Lumen Agent -- Memory Engine (v1.0.0)

remember / recall facade over store + ranker + cache.

RECALL PIPELINE:
    1. Cache lookup by normalized query shape (hit -> served as-is)
    2. Store query, capped at 50, under a timeout
    3. Relevance ranking (bad options -> unranked store order)
    4. Touch recalled entries (frequency, last_accessed)
    5. Attach recurring input patterns for the user

FAILURE:
    Storage errors and timeouts degrade to an empty MemoryContext. They are
    logged with agent, user and a truncated query; they never propagate.

PATTERNS:
    Every remembered input is matched against a handful of intent shapes
    (creation, explanation, troubleshooting, ...). The per-user table keeps
    frequency, the last 5 examples and the last 3 corrections per shape.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from lumen.core.config import MemoryConfig
from lumen.core.errors import RankingError, StorageError, truncate
from lumen.core.logging import LumenLogger
from lumen.core.memory.models import (
    MemoryContext,
    MemoryEntry,
    MemoryPattern,
    RecallOptions,
    utcnow,
)
from lumen.core.memory.ranker import RecallCache, RelevanceRanker
from lumen.core.memory.store import MemoryStore

logger = logging.getLogger("lumen.memory.engine")

# (label, regex) -- checked against the lowercased input
PATTERN_RULES: list[tuple[str, re.Pattern]] = [
    ("question", re.compile(r"^(help|how|what|why|when|where|which|can|could|would|should)\s+")),
    ("creation", re.compile(r"\b(create|build|make|generate|write)\b")),
    ("explanation", re.compile(r"\b(explain|describe|tell me about)\b")),
    ("troubleshooting", re.compile(r"\b(fix|debug|solve|troubleshoot)\b")),
    ("analysis", re.compile(r"\b(analyze|review|check|evaluate)\b")),
]

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can", "had",
        "her", "was", "one", "our", "out", "has", "have", "him", "his", "how", "its",
        "may", "new", "now", "old", "see", "two", "who", "did", "does", "get", "got",
        "let", "put", "say", "she", "too", "use", "way", "this", "that", "with",
        "from", "they", "will", "would", "there", "their", "what", "about", "which",
        "when", "make", "like", "time", "just", "know", "take", "into", "your",
        "some", "could", "them", "than", "then", "look", "only", "come", "over",
        "also", "back", "after", "work", "first", "well", "even", "want", "because",
        "these", "give", "most", "been", "were", "should", "where", "here", "more",
        "very", "much", "need", "tell", "please", "yes",
    }
)

MAX_KEY_TERMS = 20
MAX_TAGS = 5
SUMMARY_CHARS = 200


class MemoryEngine:
    """Stores turn facts and recalls the ones relevant to the current utterance."""

    def __init__(
        self,
        store: MemoryStore,
        config: MemoryConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        ranker: RelevanceRanker | None = None,
        cache: RecallCache | None = None,
        live_log: LumenLogger | None = None,
    ):
        self.config = config or MemoryConfig()
        self.store = store
        self._clock = clock or utcnow
        self.ranker = ranker or RelevanceRanker(self.config)
        self.cache = cache or RecallCache(
            ttl_seconds=self.config.cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
            clock=self._clock,
        )
        self._live_log = live_log
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="lumen-store")
        self._patterns: dict[tuple[str, str], dict[str, MemoryPattern]] = {}
        self._patterns_lock = threading.Lock()

    # =========================================================================
    # PUBLIC API -- Write
    # =========================================================================

    def remember(
        self,
        agent_id: str,
        user_id: str | None,
        input: str,
        summary: str,
        context: str = "",
        type: str = "summary",
        tags: Iterable[str] | None = None,
        metadata: dict[str, Any] | None = None,
        goal_id: str | None = None,
        goal_summary: str | None = None,
        goal_status: str | None = None,
    ) -> MemoryEntry:
        """Persist one turn fact. Never raises on storage failure."""
        now = self._clock()
        entry = MemoryEntry(
            agent_id=agent_id,
            user_id=user_id,
            type=type,
            input=input,
            summary=summary,
            context=context,
            relevance_score=1.0,
            created_at=now,
            last_accessed=now,
            tags=list(tags) if tags is not None else self.extract_tags(f"{input} {summary}"),
            metadata=dict(metadata or {}),
            goal_id=goal_id,
            goal_summary=goal_summary,
            goal_status=goal_status,
        )
        stored = self.store_entry(entry)
        if type in ("summary", "conversation", "log"):
            self._observe_patterns(agent_id, user_id, input, now)
        return stored

    def store_entry(self, entry: MemoryEntry) -> MemoryEntry:
        """Persist a pre-built entry (signal memories). Never raises."""
        try:
            stored = self.store.store(entry)
        except StorageError as e:
            logger.error(
                "Memory store failed: %s (agent=%s user=%s input=%r)",
                e, entry.agent_id, entry.user_id, truncate(entry.input),
            )
            return entry
        if self._live_log:
            self._live_log.memory(
                "store", agent_id=entry.agent_id, entries=1, type=entry.type, user_id=entry.user_id or ""
            )
        return stored

    def learn_from_correction(
        self,
        agent_id: str,
        user_id: str | None,
        original_input: str,
        correction: str,
        context: str = "",
    ) -> MemoryEntry:
        """Record a user correction and attach it to the matching input patterns."""
        entry = self.remember(
            agent_id,
            user_id,
            input=original_input,
            summary=f"Correction: {correction}",
            context=context,
            type="correction",
            tags=["correction"] + self.extract_tags(original_input),
        )
        key = (agent_id, user_id or "")
        with self._patterns_lock:
            table = self._patterns.get(key, {})
            for label in self._match_patterns(original_input):
                if label in table:
                    table[label].add_correction(correction)
        return entry

    def purge(self, agent_id: str, entry_id: str) -> bool:
        """Administrative delete of a single entry."""
        try:
            removed = self.store.purge(agent_id, entry_id)
        except StorageError as e:
            logger.error("Memory purge failed: %s (agent=%s id=%s)", e, agent_id, entry_id)
            return False
        if removed:
            self.cache.clear()
        return removed

    # =========================================================================
    # PUBLIC API -- Read
    # =========================================================================

    def recall(
        self,
        agent_id: str,
        user_id: str | None,
        query: str,
        options: RecallOptions | None = None,
    ) -> MemoryContext:
        """Ranked, cached recall. Degrades to an empty context on failure."""
        options = options or RecallOptions(limit=self.config.default_recall_limit)
        key = self.cache.make_key(agent_id, user_id, query, options)
        cached = self.cache.get(key)
        if cached is not None:
            if self._live_log:
                self._live_log.memory("recall", agent_id=agent_id, entries=len(cached.entries), cache_hit=True)
            return cached

        started = time.perf_counter()
        try:
            self.ranker.validate(options)
            rankable = True
        except RankingError as e:
            logger.warning(
                "Ranking skipped, returning unranked entries: %s (agent=%s user=%s query=%r)",
                e, agent_id, user_id, truncate(query),
            )
            rankable = False

        try:
            entries = self._query_with_timeout(
                agent_id,
                user_id,
                options.types,
                options.time_window_hours if rankable else None,
                self.config.query_limit,
            )
        except StorageError as e:
            logger.warning(
                "Recall degraded to empty context: %s (agent=%s user=%s query=%r)",
                e, agent_id, user_id, truncate(query),
            )
            return MemoryContext.empty()

        now = self._clock()
        if rankable:
            topic = options.topic if options.topic is not None else (query.strip() or None)
            ranked = self.ranker.rank(entries, dataclasses.replace(options, topic=topic), now)
            limit = options.limit
        else:
            ranked = list(entries)
            limit = self.config.default_recall_limit

        total = len(ranked)
        selected = ranked[:limit]
        self._touch([e.id for e in selected], now)

        scores = [e.relevance_score for e in selected if e.relevance_score is not None]
        context = MemoryContext(
            entries=selected,
            total_matches=total,
            average_relevance=sum(scores) / len(scores) if scores else 0.0,
            patterns=self.relevant_patterns(agent_id, user_id, query),
            cache_hit=False,
            processing_time_ms=(time.perf_counter() - started) * 1000,
        )
        self.cache.put(key, context)
        if self._live_log:
            self._live_log.memory(
                "recall",
                agent_id=agent_id,
                entries=len(selected),
                total_matches=total,
                cache_hit=False,
                latency_ms=int(context.processing_time_ms),
            )
        return context

    def recent(
        self,
        agent_id: str | None,
        user_id: str | None,
        types: Iterable[str] | None = None,
        limit: int = 20,
        all_users: bool = False,
    ) -> list[MemoryEntry]:
        """Newest-first, unranked entries of the given types. Empty on failure."""
        try:
            entries = self._query_with_timeout(
                agent_id, user_id, types, None, self.config.query_limit, all_users
            )
        except StorageError as e:
            logger.warning("Recent-memory lookup failed: %s (agent=%s user=%s)", e, agent_id, user_id)
            return []
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries[:limit]

    def relevant_patterns(
        self, agent_id: str, user_id: str | None, query: str
    ) -> list[MemoryPattern]:
        """Patterns overlapping the query, or frequent ones; most frequent first."""
        terms = set(self.extract_key_terms(query))
        with self._patterns_lock:
            table = dict(self._patterns.get((agent_id, user_id or ""), {}))
        relevant = []
        for pattern in table.values():
            haystack = " ".join([pattern.pattern] + pattern.examples).lower()
            if pattern.frequency > 3 or any(t in haystack for t in terms):
                relevant.append(pattern)
        relevant.sort(key=lambda p: p.frequency, reverse=True)
        return relevant[: self.config.max_patterns_returned]

    def get_stats(
        self,
        agent_id: str | None = None,
        user_id: str | None = None,
        all_users: bool = False,
    ) -> dict[str, Any]:
        """
        Totals by type, average base relevance, top patterns, recent activity.

        With all_users=True the figures cover every user of the agent and
        patterns are reported without their example inputs.
        """
        try:
            by_type = self.store.count_by_type(agent_id, user_id, all_users)
        except StorageError as e:
            logger.warning("Stats unavailable: %s (agent=%s user=%s)", e, agent_id, user_id)
            by_type = {}
        recent = self.recent(agent_id, user_id, limit=self.config.query_limit, all_users=all_users)
        now = self._clock()
        day_ago = now - timedelta(days=1)
        base = [e.relevance_score if e.relevance_score is not None else 1.0 for e in recent]

        owner = user_id or ""
        with self._patterns_lock:
            patterns = [
                p
                for (aid, uid), table in self._patterns.items()
                if (agent_id is None or aid == agent_id) and (all_users or uid == owner)
                for p in table.values()
            ]
        patterns.sort(key=lambda p: p.frequency, reverse=True)
        if all_users:
            top_patterns = [{"pattern": p.pattern, "frequency": p.frequency} for p in patterns[:5]]
        else:
            top_patterns = [p.to_dict() for p in patterns[:5]]

        return {
            "total_entries": sum(by_type.values()),
            "entries_by_type": by_type,
            "average_relevance": round(sum(base) / len(base), 4) if base else 0.0,
            "top_patterns": top_patterns,
            "recent_activity": {
                "last_24h": sum(1 for e in recent if e.created_at >= day_ago),
                "last_entry_at": recent[0].created_at.isoformat() if recent else None,
            },
            "cache": {"size": len(self.cache), "hits": self.cache.hits, "misses": self.cache.misses},
        }

    # =========================================================================
    # PUBLIC API -- Text helpers
    # =========================================================================

    @staticmethod
    def extract_key_terms(text: str) -> list[str]:
        """Lowercased content words (len > 2, no stop words), first 20."""
        cleaned = re.sub(r"[^\w\s]", " ", (text or "").lower())
        terms = [w for w in cleaned.split() if len(w) > 2 and w not in STOP_WORDS]
        return terms[:MAX_KEY_TERMS]

    def extract_tags(self, text: str) -> list[str]:
        """The five most frequent key terms."""
        return [term for term, _ in Counter(self.extract_key_terms(text)).most_common(MAX_TAGS)]

    def summarize_exchange(self, user_input: str, output: str) -> str:
        """Extractive summary: the output line sharing most terms with the input."""
        lines = [line.strip() for line in (output or "").splitlines() if line.strip()]
        if not lines:
            return (user_input or "")[:SUMMARY_CHARS]
        terms = set(self.extract_key_terms(user_input))
        best, best_hits = lines[0], -1
        for line in lines:
            lowered = line.lower()
            hits = sum(1 for t in terms if t in lowered)
            if hits > best_hits:
                best, best_hits = line, hits
        return best[:SUMMARY_CHARS]

    @staticmethod
    def build_memory_context(context: MemoryContext) -> str:
        """Prompt-ready block for downstream renderers."""
        if context.is_empty and not context.patterns:
            return ""
        lines = ["--- Memory Context ---"]
        if context.entries:
            lines.append(
                f"Relevant memories ({len(context.entries)} of {context.total_matches}, "
                f"avg relevance {context.average_relevance:.2f}):"
            )
            for e in context.entries:
                text = e.summary or e.input
                if e.goal_summary:
                    text = f"{e.goal_summary} [{e.goal_status or 'new'}]"
                lines.append(f"- [{e.type}] {text}")
        if context.patterns:
            lines.append("Recurring patterns:")
            for p in context.patterns:
                example = f' e.g. "{p.examples[-1]}"' if p.examples else ""
                lines.append(f"- {p.pattern} (x{p.frequency}){example}")
                for c in p.corrections:
                    lines.append(f"  correction: {c}")
        lines.append("--- End Memory Context ---")
        return "\n".join(lines)

    def close(self):
        self._executor.shutdown(wait=False)

    # =========================================================================
    # INTERNAL
    # =========================================================================

    def _query_with_timeout(
        self,
        agent_id: str | None,
        user_id: str | None,
        types: Iterable[str] | None,
        time_window_hours: float | None,
        limit: int,
        all_users: bool = False,
    ) -> list[MemoryEntry]:
        future = self._executor.submit(
            self.store.query, agent_id, user_id, list(types or []), time_window_hours, limit, all_users
        )
        try:
            return future.result(timeout=self.config.recall_timeout_seconds)
        except FutureTimeout as e:
            future.cancel()
            raise StorageError(
                f"store query timed out after {self.config.recall_timeout_seconds}s"
            ) from e

    def _touch(self, ids: list[str], when: datetime):
        if not ids:
            return
        try:
            self.store.touch(ids, when)
        except StorageError as e:
            logger.warning("Touch failed for %d entries: %s", len(ids), e)

    @staticmethod
    def _match_patterns(text: str) -> list[str]:
        lowered = (text or "").lower().strip()
        return [label for label, rx in PATTERN_RULES if rx.search(lowered)]

    def _observe_patterns(self, agent_id: str, user_id: str | None, text: str, when: datetime):
        labels = self._match_patterns(text)
        if not labels:
            return
        example = text.strip()[:SUMMARY_CHARS]
        with self._patterns_lock:
            table = self._patterns.setdefault((agent_id, user_id or ""), {})
            for label in labels:
                if label in table:
                    table[label].observe(example, when)
                else:
                    table[label] = MemoryPattern(
                        pattern=label, frequency=1, last_seen=when, examples=[example]
                    )
