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
Lumen Agent -- Domain Registry (v1.0.0)

Maps an utterance to a knowledge domain. The registry is an injected
lookup table: keyword hits score 0.5, pattern hits 0.7, and the first
domain (in declaration order) reaching 0.5 wins. When nothing in the
registry matches, a coarse keyword classifier gives a broad label.
"""

from __future__ import annotations

import re

from lumen.core.understanding.rules import Rule, RuleSet, rule

DETECTION_THRESHOLD = 0.5

DEFAULT_DOMAINS = RuleSet(
    "domains",
    [
        rule(
            "python",
            [
                r"\bpython\b",
                r"\.py\b",
                r"\bdjango\b",
                r"\bflask\b",
                r"\bpandas\b",
                r"\bnumpy\b",
                r"\bjupyter\b",
            ],
            [
                "python", "py", "django", "flask", "pandas", "numpy", "scipy",
                "matplotlib", "jupyter", "pip", "conda", "virtual environment",
                "python programming", "python development", "python code", "python script",
                "pythonic", "pep", "python library", "python framework",
            ],
            pattern_score=0.7,
            keyword_score=0.5,
            whole_word_keywords=True,
        ),
        rule(
            "stock-trading",
            [
                r"\bstock\s+(market|trading|investment)\b",
                r"\b(buy|sell)\s+stocks?\b",
                r"\bday\s+trading\b",
                r"\bstock\s+portfolio\b",
                r"\binvest(ing|ment)\s+in\s+stocks?\b",
                r"\bequity\s+trading\b",
                r"\bmarket\s+analysis\b",
            ],
            [
                "stock", "trading", "stocks", "stock market", "investment", "investing",
                "shares", "equity", "portfolio", "dividend", "bull market", "bear market",
                "broker", "brokerage", "day trading", "swing trading", "options",
                "market analysis", "technical analysis", "fundamental analysis",
                "ticker", "nasdaq", "nyse", "s&p 500", "dow jones",
            ],
            pattern_score=0.7,
            keyword_score=0.5,
            whole_word_keywords=True,
        ),
    ],
)

# label -> whole-word keywords, checked in order
_COARSE_DOMAINS: list[tuple[str, tuple[str, ...]]] = [
    (
        "coding",
        ("code", "coding", "programming", "software", "developer", "app", "website",
         "javascript", "api", "bug", "function", "database"),
    ),
    (
        "business",
        ("business", "marketing", "sales", "revenue", "startup", "e-commerce", "ecommerce",
         "brand", "customers", "strategy", "growth"),
    ),
    (
        "design",
        ("design", "logo", "ui", "ux", "layout", "branding", "visual", "color", "typography"),
    ),
    (
        "data",
        ("data", "dataset", "statistics", "analytics", "machine learning", "model",
         "spreadsheet", "metrics", "visualization"),
    ),
]


class DomainRegistry:
    """First-match domain lookup over an injected rule table."""

    def __init__(self, rules: RuleSet = DEFAULT_DOMAINS, threshold: float = DETECTION_THRESHOLD):
        self.rules = rules
        self.threshold = threshold

    def detect(self, text: str) -> str | None:
        for match in self.rules.score_all(text or ""):
            if match.score >= self.threshold:
                return match.label
        return None

    def register(self, domain: Rule):
        self.rules = RuleSet(self.rules.name, self.rules.rules + [domain])

    @property
    def domains(self) -> list[str]:
        return self.rules.labels()


def coarse_domain(text: str) -> str | None:
    lowered = (text or "").lower()
    for label, words in _COARSE_DOMAINS:
        if any(re.search(rf"\b{re.escape(w)}\b", lowered) for w in words):
            return label
    return None
