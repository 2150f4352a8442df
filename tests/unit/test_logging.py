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
"""Tests for lumen.core.logging -- the live engine log."""

import logging

import pytest

from lumen.core.logging import LumenLogFormatter, LumenLogger


@pytest.fixture
def live(tmp_path):
    log = LumenLogger(log_dir=tmp_path / "logs")
    yield log
    log.close()


def _lines(live):
    with open(live.log_file, encoding="utf-8") as f:
        return f.read().splitlines()


class TestLumenLogger:
    def test_creates_log_file(self, live, tmp_path):
        assert live.log_file == str(tmp_path / "logs" / "lumen.log")
        assert "Logger initialized" in _lines(live)[0]

    def test_line_format(self, live):
        live.plan("research", intent="learn", strategy="clarification_first", confidence=0.7)
        line = _lines(live)[-1]
        parts = [p.strip() for p in line.split(" | ")]
        assert parts[0].endswith("Z")
        assert parts[1] == "PLAN"
        assert parts[2] == "Planner"
        assert parts[3] == "Planned research turn"
        assert 'intent="learn"' in parts[4]
        assert "confidence=0.700" in parts[4]

    def test_memory_and_session_events(self, live):
        live.memory("recall", agent_id="research", entries=3, cache_hit=True)
        live.session("update", user_id="u1", agent_id="creative")
        lines = _lines(live)
        assert "MEM" in lines[-2] and "entries=3" in lines[-2] and "cache_hit=True" in lines[-2]
        assert "SESS" in lines[-1] and 'user_id="u1"' in lines[-1]

    def test_counters(self, live):
        live.http_request("POST", "/api/plan", status=200, latency_ms=4)
        live.http_request("POST", "/api/plan", status=500, latency_ms=4)
        live.plan("research")
        stats = live.get_log_stats()
        assert stats["requests_logged"] == 2
        assert stats["plans_logged"] == 1
        assert stats["file_count"] == 1

    def test_server_lifecycle(self, live):
        live.server_start(version="1.0.0")
        live.http_request("GET", "/api/session/u1", status=404)
        live.server_stop()
        lines = _lines(live)
        assert "BOOT" in lines[-3] and 'version="1.0.0"' in lines[-3]
        assert "WARN" not in lines[-2] and "-> 404" in lines[-2]
        assert "HALT" in lines[-1] and "requests_served=1" in lines[-1]

    def test_warnings_mirrored_to_stderr(self, tmp_path, capsys):
        live = LumenLogger(log_dir=tmp_path / "stderr-logs")
        live.warn("Store", "Primary store unavailable", error="disk full")
        assert "Primary store unavailable" in capsys.readouterr().err
        live.close()


class TestFormatter:
    def test_without_fields(self):
        record = logging.LogRecord("x", logging.INFO, "", 0, "hello", (), None)
        line = LumenLogFormatter().format(record)
        assert line.endswith("| INFO  | System       | hello")
