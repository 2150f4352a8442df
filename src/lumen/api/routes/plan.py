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
"""Lumen Agent -- Planning Routes."""

from fastapi import APIRouter, Depends, HTTPException

from lumen.api._shared import PlanRequest, get_engine
from lumen.core.errors import PlannerError
from lumen.core.planning.engine import DialogueEngine

router = APIRouter()


@router.post("/api/plan")
def plan_endpoint(request: PlanRequest, engine: DialogueEngine = Depends(get_engine)):
    """Plan the response to one user turn."""
    if not request.agent_id:
        raise HTTPException(status_code=400, detail="No agent_id provided")

    try:
        plan = engine.plan(
            request.message,
            request.agent_id,
            user_id=request.user_id,
            routing_metadata=request.routing_metadata,
        )
    except PlannerError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return plan.to_dict()
