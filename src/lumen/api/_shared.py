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
Lumen Agent -- Shared API Utilities

Engine dependency, live logger and Pydantic models shared across all
route modules.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from lumen.core.logging import LumenLogger, get_logger
from lumen.core.planning.engine import DialogueEngine

logger = logging.getLogger("lumen.api.server")


# =============================================================================
# LUMEN LOGGER
# =============================================================================

_lumen_log: Optional[LumenLogger] = None


def _get_lumen_log() -> Optional[LumenLogger]:
    """Lazy-init the live logger. Logging trouble never breaks a request."""
    global _lumen_log
    if _lumen_log is None:
        try:
            _lumen_log = get_logger()
        except OSError as e:
            logger.warning("Live log unavailable: %s", e)
    return _lumen_log


# =============================================================================
# ENGINE
# =============================================================================

_engine: Optional[DialogueEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> DialogueEngine:
    """Process-wide engine, built from ~/.lumen/engine_config.yaml on first use.

    Tests swap it out with app.dependency_overrides[get_engine].
    """
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = DialogueEngine.from_config(live_log=_get_lumen_log())
        return _engine


def shutdown_engine():
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.close()
            _engine = None


# =============================================================================
# PYDANTIC MODELS
# =============================================================================


class PlanRequest(BaseModel):
    message: str
    agent_id: str
    user_id: Optional[str] = None
    routing_metadata: Dict[str, Any] = Field(default_factory=dict)


class RecallRequest(BaseModel):
    agent_id: str
    user_id: Optional[str] = None
    query: str = ""
    topic: Optional[str] = None
    matching_mode: str = "fuzzy"
    min_confidence: float = 0.0
    tag_filter: List[str] = Field(default_factory=list)
    time_window_hours: Optional[float] = None
    limit: int = 10
    types: List[str] = Field(default_factory=lambda: ["goal", "summary"])
    session_id: Optional[str] = None


class RememberRequest(BaseModel):
    agent_id: str
    user_id: Optional[str] = None
    input: str
    summary: str
    context: str = ""
    type: str = "summary"
    tags: Optional[List[str]] = None
    goal_id: Optional[str] = None
    goal_summary: Optional[str] = None
    goal_status: Optional[str] = None


class SessionResponseRequest(BaseModel):
    user_id: str
    agent_id: str
    response: str
    reasoning_level: str = "intermediate"
    user_input: Optional[str] = None
