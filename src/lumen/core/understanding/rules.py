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
Lumen Agent -- Weighted Rule Tables (v1.0.0)

Every signal extractor scores text the same way: a labelled rule holds a
set of regexes and a set of keywords, each contributing a weighted amount.
Categories are data, so adding one is a table edit.

    score  = pattern_score * weight     per matching regex
                                        (only the first one if first_pattern_only)
    score += keyword_score * hits * weight

Keyword hits are substring matches unless whole_word_keywords is set.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Rule:
    """One labelled category of patterns and keywords."""

    label: str
    patterns: tuple[re.Pattern, ...]
    keywords: tuple[str, ...]
    weight: float = 1.0
    pattern_score: float = 0.5
    keyword_score: float = 0.3
    first_pattern_only: bool = False
    whole_word_keywords: bool = False
    outcome: str | None = None
    questions: tuple[str, ...] = ()
    reasons: tuple[str, ...] = ()

    def score(self, text: str) -> RuleMatch:
        lowered = text.lower()
        total = 0.0
        matched: list[str] = []

        for rx in self.patterns:
            m = rx.search(lowered)
            if m:
                total += self.pattern_score * self.weight
                matched.append(m.group(0))
                if self.first_pattern_only:
                    break

        hits = [k for k in self.keywords if self._keyword_hit(k, lowered)]
        if hits:
            total += self.keyword_score * len(hits) * self.weight
            matched.extend(hits)

        return RuleMatch(rule=self, score=total, matched=matched)

    def _keyword_hit(self, keyword: str, lowered: str) -> bool:
        if self.whole_word_keywords:
            return re.search(rf"\b{re.escape(keyword)}\b", lowered) is not None
        return keyword in lowered


@dataclass
class RuleMatch:
    rule: Rule
    score: float
    matched: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.rule.label


class RuleSet:
    """Ordered rules. Ties on score keep the earlier rule."""

    def __init__(self, name: str, rules: list[Rule]):
        self.name = name
        self.rules = list(rules)

    def score_all(self, text: str) -> list[RuleMatch]:
        return [r.score(text) for r in self.rules]

    def best(self, text: str) -> RuleMatch | None:
        best: RuleMatch | None = None
        for match in self.score_all(text):
            if match.score > 0 and (best is None or match.score > best.score):
                best = match
        return best

    def labels(self) -> list[str]:
        return [r.label for r in self.rules]

    def get(self, label: str) -> Rule | None:
        for r in self.rules:
            if r.label == label:
                return r
        return None


def compile_patterns(*sources: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(s, re.IGNORECASE) for s in sources)


def rule(label: str, patterns: list[str], keywords: list[str], **kwargs) -> Rule:
    """Build a Rule from raw regex strings."""
    return Rule(
        label=label,
        patterns=compile_patterns(*patterns),
        keywords=tuple(k.lower() for k in keywords),
        **kwargs,
    )


def matches_any(patterns: tuple[re.Pattern, ...] | list[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def contains_any(text: str, phrases) -> bool:
    lowered = text.lower()
    return any(p in lowered for p in phrases)


def count_whole_words(text: str, words) -> int:
    lowered = text.lower()
    return sum(1 for w in words if re.search(rf"\b{re.escape(w)}\b", lowered))
