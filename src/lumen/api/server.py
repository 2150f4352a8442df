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
Lumen Agent -- API Server (v1.0.0)

FastAPI server exposing the dialogue engine: planning, memory recall and
storage, session updates and health probes.

Run with: uvicorn lumen.api.server:app --port 8000
"""

import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from lumen import __version__
from lumen.api._shared import _get_lumen_log, shutdown_engine
from lumen.api.routes import health, memory, plan, session

logger = logging.getLogger("lumen.api.server")

app = FastAPI(
    title="Lumen Agent API",
    description="Memory-augmented dialogue planning engine",
    version=__version__,
)


# =============================================================================
# HTTP REQUEST LOGGING MIDDLEWARE
# =============================================================================


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status, and latency."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        latency_ms = int((time.time() - start) * 1000)
        log = _get_lumen_log()
        if log:
            # Skip noisy probes
            path = request.url.path
            if path not in ("/health", "/ready"):
                log.http_request(
                    method=request.method,
                    path=path,
                    status=response.status_code,
                    latency_ms=latency_ms,
                )
        return response


app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# LIFECYCLE
# =============================================================================


@app.on_event("startup")
async def _on_startup():
    log = _get_lumen_log()
    if log:
        log.server_start(version=__version__)


@app.on_event("shutdown")
async def _on_shutdown():
    shutdown_engine()
    log = _get_lumen_log()
    if log:
        log.server_stop()


# =============================================================================
# ROUTES
# =============================================================================

app.include_router(health.router)
app.include_router(plan.router)
app.include_router(memory.router)
app.include_router(session.router)
