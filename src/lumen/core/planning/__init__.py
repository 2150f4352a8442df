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
Response planning.

Planner: intent/domain/depth classification fused with the signal extractors
Engine:  per-turn orchestration over memory, session state and planner
"""

from lumen.core.planning.engine import DialogueEngine
from lumen.core.planning.planner import ContextualFactors, PlanTools, ResponsePlan, ResponsePlanner

__all__ = [
    "DialogueEngine",
    "ResponsePlanner",
    "ResponsePlan",
    "PlanTools",
    "ContextualFactors",
]
