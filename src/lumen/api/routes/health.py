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
"""Lumen Agent -- Health Routes."""

from fastapi import APIRouter, Depends

from lumen import __version__
from lumen.api._shared import get_engine
from lumen.core.planning.engine import DialogueEngine

router = APIRouter()


@router.get("/health")
def health_check():
    """Health check endpoint (K8s compatible)."""
    return {"status": "healthy", "version": __version__}


@router.get("/ready")
def readiness_check(engine: DialogueEngine = Depends(get_engine)):
    """Readiness probe: the engine is built and sessions are countable."""
    return {
        "status": "ready",
        "version": __version__,
        "active_sessions": engine.sessions.active_sessions(),
    }
