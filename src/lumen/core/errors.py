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
Lumen Agent -- Error Taxonomy

Only PlannerError is fatal. Everything else is recovered at the seam
where it is raised and logged with agent/user/input context:

    StorageError    store/query failure      -> fallback store / empty context
    RankingError    malformed recall options -> unranked results
    ExtractorError  signal extractor failed  -> neutral signal
    PlannerError    no plan can be produced  -> surfaced to the caller
"""

from __future__ import annotations


class LumenError(Exception):
    """Base class for all engine errors."""


class StorageError(LumenError):
    """The memory store could not be written or read."""


class RankingError(LumenError):
    """Recall options could not be used to rank entries."""


class ExtractorError(LumenError):
    """A signal extractor failed on an utterance."""

    def __init__(self, extractor: str, message: str):
        super().__init__(f"{extractor}: {message}")
        self.extractor = extractor


class PlannerError(LumenError):
    """The planner could not produce a response plan."""


def truncate(text: str | None, limit: int = 80) -> str:
    """Shorten user input for log lines."""
    if not text:
        return ""
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."
