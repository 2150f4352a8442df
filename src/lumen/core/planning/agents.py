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
Lumen Agent -- Agent Profiles (v1.0.0)

What the planner needs to know about each persona: its fallback intent,
the intents it is built for (confidence bonus), and a persona-specific
trigger that outranks the shared keyword ladder.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AgentProfile:
    agent_id: str
    default_intent: str
    aligned_intents: frozenset[str] = field(default_factory=frozenset)
    trigger_intent: str | None = None
    trigger_words: tuple[str, ...] = ()


AGENT_PROFILES: dict[str, AgentProfile] = {
    "research": AgentProfile(
        agent_id="research",
        default_intent="research",
        aligned_intents=frozenset({"research", "analyze", "compare", "summarize", "explore"}),
        trigger_intent="research",
        trigger_words=("data", "statistics", "trends", "market", "study", "evidence", "sources"),
    ),
    "creative": AgentProfile(
        agent_id="creative",
        default_intent="create",
        aligned_intents=frozenset({"create", "explore", "plan"}),
        trigger_intent="create",
        trigger_words=("ideas", "brainstorm", "name", "story", "concept"),
    ),
    "automation": AgentProfile(
        agent_id="automation",
        default_intent="automate",
        aligned_intents=frozenset({"automate", "optimize", "plan", "debug"}),
        trigger_intent="automate",
        trigger_words=("workflow", "process", "automate", "repetitive"),
    ),
    "welcome": AgentProfile(
        agent_id="welcome",
        default_intent="explore",
        aligned_intents=frozenset({"learn", "explore", "explain"}),
    ),
}


def get_agent_profile(agent_id: str) -> AgentProfile:
    """Known profile, or a neutral one that defaults to explain."""
    profile = AGENT_PROFILES.get((agent_id or "").lower())
    if profile is None:
        return AgentProfile(agent_id=agent_id, default_intent="explain")
    return profile
