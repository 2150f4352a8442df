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
"""Lumen Agent -- Session Routes."""

from fastapi import APIRouter, Depends, HTTPException

from lumen.api._shared import SessionResponseRequest, get_engine
from lumen.core.planning.engine import DialogueEngine
from lumen.core.understanding.reasoning import REASONING_LEVELS

router = APIRouter()


@router.post("/api/session/response")
def record_response(request: SessionResponseRequest, engine: DialogueEngine = Depends(get_engine)):
    """Record the rendered answer as the user's latest turn."""
    if request.reasoning_level not in REASONING_LEVELS:
        raise HTTPException(status_code=400, detail=f"Unknown reasoning level: {request.reasoning_level}")

    state = engine.sessions.set_last_response(
        request.user_id,
        request.agent_id,
        request.response,
        reasoning_level=request.reasoning_level,
    )
    if request.user_input:
        engine.remember(
            request.agent_id,
            request.user_id,
            request.user_input,
            engine.memory.summarize_exchange(request.user_input, request.response),
        )
    return state.to_dict()


@router.get("/api/session/{user_id}")
def get_session(user_id: str, engine: DialogueEngine = Depends(get_engine)):
    state = engine.sessions.get_last_response(user_id)
    if state is None:
        raise HTTPException(status_code=404, detail="No active session")
    return state.to_dict()


@router.delete("/api/session/{user_id}")
def clear_session(user_id: str, engine: DialogueEngine = Depends(get_engine)):
    return {"cleared": engine.sessions.clear_session(user_id)}
