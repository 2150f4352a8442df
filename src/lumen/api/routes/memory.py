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
"""Lumen Agent -- Memory Routes."""

from fastapi import APIRouter, Depends, HTTPException

from lumen.api._shared import RecallRequest, RememberRequest, get_engine
from lumen.core.memory.models import RecallOptions
from lumen.core.planning.engine import DialogueEngine

router = APIRouter()


@router.post("/api/memory/recall")
def recall_endpoint(request: RecallRequest, engine: DialogueEngine = Depends(get_engine)):
    """Ranked recall. Storage trouble yields an empty context, never an error."""
    options = RecallOptions.from_dict(request.model_dump())
    context = engine.recall(request.agent_id, request.user_id, request.query, options)
    return context.to_dict()


@router.post("/api/memory/remember")
def remember_endpoint(request: RememberRequest, engine: DialogueEngine = Depends(get_engine)):
    """Persist one memory entry."""
    try:
        entry = engine.remember(
            request.agent_id,
            request.user_id,
            request.input,
            request.summary,
            context=request.context,
            type=request.type,
            tags=request.tags,
            goal_id=request.goal_id,
            goal_summary=request.goal_summary,
            goal_status=request.goal_status,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return entry.to_dict()


@router.get("/api/memory/stats")
def memory_stats(agent_id: str | None = None, user_id: str | None = None, all_users: bool = False,
                 engine: DialogueEngine = Depends(get_engine)):
    """Totals by type, patterns and cache counters. all_users=true aggregates across users."""
    return engine.memory.get_stats(agent_id, user_id, all_users=all_users)
