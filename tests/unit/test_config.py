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
"""Tests for lumen.core.config -- YAML engine configuration."""

import logging

import yaml

from lumen.core.config import (
    EngineConfig,
    MemoryConfig,
    PlannerConfig,
    load_config,
    save_config,
)


class TestDefaults:
    def test_documented_defaults(self):
        cfg = EngineConfig()
        assert cfg.memory.cache_ttl_seconds == 300.0
        assert cfg.memory.cache_max_entries == 20
        assert cfg.memory.query_limit == 50
        assert cfg.session.ttl_minutes == 30.0
        assert cfg.session.max_sessions == 10_000
        assert cfg.signals.clarification_threshold == 0.8
        assert cfg.signals.goal_progress_threshold == 0.5
        assert cfg.planner.base_confidence == 0.5
        assert cfg.planner.direct_answer_threshold == 0.9

    def test_to_dict_has_all_sections(self):
        assert set(EngineConfig().to_dict()) == {"memory", "session", "signals", "planner"}


class TestLoadSave:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml") == EngineConfig()

    def test_round_trip(self, tmp_path):
        path = tmp_path / "engine_config.yaml"
        cfg = EngineConfig(
            memory=MemoryConfig(db_path=str(tmp_path / "m.db"), cache_ttl_seconds=60),
            planner=PlannerConfig(clarification_first_below=0.5),
        )
        save_config(cfg, path)
        loaded = load_config(path)
        assert loaded.memory.cache_ttl_seconds == 60
        assert loaded.memory.db_path == str(tmp_path / "m.db")
        assert loaded.planner.clarification_first_below == 0.5

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "engine_config.yaml"
        path.write_text(yaml.dump({"session": {"ttl_minutes": 5}}), encoding="utf-8")
        loaded = load_config(path)
        assert loaded.session.ttl_minutes == 5
        assert loaded.session.max_sessions == 10_000
        assert loaded.memory == MemoryConfig()

    def test_unknown_keys_ignored(self, tmp_path, caplog):
        path = tmp_path / "engine_config.yaml"
        path.write_text(yaml.dump({"planner": {"base_confidence": 0.4, "mystery": 1}}), encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="lumen.core.config"):
            loaded = load_config(path)
        assert loaded.planner.base_confidence == 0.4
        assert "planner.mystery" in caplog.text

    def test_non_mapping_section(self, tmp_path):
        path = tmp_path / "engine_config.yaml"
        path.write_text(yaml.dump({"memory": [1, 2, 3]}), encoding="utf-8")
        assert load_config(path).memory == MemoryConfig()

    def test_not_a_dict(self, tmp_path):
        path = tmp_path / "engine_config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        assert load_config(path) == EngineConfig()

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "engine_config.yaml"
        path.write_text("memory: [unclosed", encoding="utf-8")
        assert load_config(path) == EngineConfig()
