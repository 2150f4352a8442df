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
"""Engine configuration.

Every weight, threshold, TTL and size the engine uses lives here so that
calibration never needs a code change.

Config location: ~/.lumen/engine_config.yaml  (override with LUMEN_HOME)
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger("lumen.core.config")

# ---------------------------------------------------------------------------
# Default paths
# ---------------------------------------------------------------------------
LUMEN_HOME = Path(os.environ.get("LUMEN_HOME", Path.home() / ".lumen"))
DEFAULT_CONFIG_PATH = LUMEN_HOME / "engine_config.yaml"


@dataclass
class MemoryConfig:
    """Store, ranking and recall-cache settings."""

    db_path: str = str(LUMEN_HOME / "memory.db")
    fallback_dir: str = str(LUMEN_HOME / "memory")
    query_limit: int = 50
    default_recall_limit: int = 10
    recall_timeout_seconds: float = 2.0
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 20
    recency_window_days: float = 30.0
    recency_max_boost: float = 0.1
    goal_type_boost: float = 0.2
    max_patterns_returned: int = 3


@dataclass
class SessionConfig:
    """Session tracker bounds."""

    ttl_minutes: float = 30.0
    max_sessions: int = 10_000


@dataclass
class SignalConfig:
    """Decision thresholds for the signal extractors."""

    clarification_threshold: float = 0.8
    clarification_damping: float = 0.7
    clarification_damping_floor: float = 0.3
    short_input_chars: int = 15
    goal_progress_threshold: float = 0.5
    goal_context_boost: float = 0.2
    goal_min_input_chars: int = 8
    goal_overlap_floor: float = 0.1


@dataclass
class PlannerConfig:
    """Confidence arithmetic and strategy cut-offs for the planner."""

    base_confidence: float = 0.5
    length_bonus: float = 0.2
    memory_bonus: float = 0.1
    keyword_bonus: float = 0.1
    keyword_bonus_cap: float = 0.3
    alignment_bonus: float = 0.15
    vague_domain_penalty: float = 0.1
    clarify_confidence: float = 0.3
    continuation_confidence: float = 0.9
    clarification_first_below: float = 0.9
    ask_questions_below: float = 0.9
    direct_answer_threshold: float = 0.9
    framework_threshold: float = 0.85
    search_threshold: float = 0.6
    vague_clarify_ceiling: float = 0.95


@dataclass
class EngineConfig:
    """Full engine configuration."""

    memory: MemoryConfig = field(default_factory=MemoryConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    signals: SignalConfig = field(default_factory=SignalConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_SECTIONS = {
    "memory": MemoryConfig,
    "session": SessionConfig,
    "signals": SignalConfig,
    "planner": PlannerConfig,
}


def load_config(path: Path | str | None = None) -> EngineConfig:
    """Load engine configuration from a YAML file.

    A missing or invalid file yields the defaults.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.info("No engine config at %s -- using defaults", config_path)
        return EngineConfig()

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            logger.warning("Invalid engine config (not a dict) -- using defaults")
            return EngineConfig()
        return _parse_config(raw)
    except Exception as exc:
        logger.error("Failed to load engine config: %s -- using defaults", exc)
        return EngineConfig()


def save_config(config: EngineConfig, path: Path | str | None = None) -> None:
    """Save engine configuration to a YAML file."""
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(
        yaml.dump(config.to_dict(), default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    logger.info("Saved engine config to %s", config_path)


def _parse_config(raw: dict) -> EngineConfig:
    """Parse a raw YAML dict into EngineConfig, ignoring unknown keys."""
    sections: dict[str, Any] = {}
    for name, cls in _SECTIONS.items():
        section_raw = raw.get(name) or {}
        if not isinstance(section_raw, dict):
            logger.warning("Config section '%s' is not a mapping -- using defaults", name)
            section_raw = {}
        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in section_raw.items():
            if key not in known:
                logger.warning("Unknown config key %s.%s -- ignored", name, key)
                continue
            values[key] = value
        sections[name] = cls(**values)
    return EngineConfig(**sections)
