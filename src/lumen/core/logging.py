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
Lumen Agent -- Live Engine Logger (v1.0.0)

Every turn the engine plans is captured to a rotating log file that can be
tailed to see which memories were recalled, which signals fired and which
strategy the planner chose.

LOG LOCATION:
    $LUMEN_HOME/logs/lumen.log       (current, LUMEN_HOME defaults to ~/.lumen)
    $LUMEN_HOME/logs/lumen.log.1     (previous rotation)

FORMAT:
    TIMESTAMP | LEVEL | COMPONENT | MESSAGE | key=value ...

USAGE:
    from lumen.core.logging import get_logger
    log = get_logger()
    log.plan("research", intent="learn", strategy="clarification_first")
    log.memory("recall", agent_id="research", entries=4, cache_hit=False)
    log.error("Store", "SQLite unreachable", error=str(e))
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from lumen.core.config import LUMEN_HOME

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_LOG_FILE_BYTES = 10 * 1024 * 1024  # 10 MB per file
LOG_BACKUP_COUNT = 20
LOG_DIR = LUMEN_HOME / "logs"
LOG_FILE_NAME = "lumen.log"


# =============================================================================
# FORMATTER
# =============================================================================


class LumenLogFormatter(logging.Formatter):
    """
    Format: TIMESTAMP | LEVEL | COMPONENT | MESSAGE | {structured fields}

    Example:
    2026-02-09T17:30:45.123Z | PLAN  | Planner      | Planned research turn | intent="learn" confidence=0.700
    2026-02-09T17:30:45.130Z | MEM   | Memory       | Memory recall | entries=4 cache_hit=False
    """

    LEVEL_WIDTH = 5
    COMPONENT_WIDTH = 12

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        ts = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"

        level = getattr(record, "lumen_level", record.levelname)
        component = getattr(record, "component", "System")
        message = record.getMessage()

        fields = getattr(record, "fields", {})
        field_str = ""
        if fields:
            parts = []
            for k, v in fields.items():
                if isinstance(v, str):
                    parts.append(f'{k}="{v}"')
                elif isinstance(v, float):
                    parts.append(f"{k}={v:.3f}")
                else:
                    parts.append(f"{k}={v}")
            field_str = " | " + " ".join(parts)

        return (
            f"{ts} | {level:<{self.LEVEL_WIDTH}} | "
            f"{component:<{self.COMPONENT_WIDTH}} | {message}{field_str}"
        )


# =============================================================================
# LUMEN LOGGER
# =============================================================================


class LumenLogger:
    """
    Component-tagged logger for the dialogue engine.

    Writes to <log_dir>/lumen.log with 10 MB rotation, and mirrors
    WARNING+ to stderr.
    """

    def __init__(self, log_dir: str | Path | None = None):
        self._log_dir = Path(log_dir) if log_dir else LOG_DIR
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._log_file = self._log_dir / LOG_FILE_NAME

        self._logger = logging.getLogger(f"lumen.live.{id(self)}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._logger.handlers.clear()

        file_handler = logging.handlers.RotatingFileHandler(
            str(self._log_file),
            maxBytes=MAX_LOG_FILE_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(LumenLogFormatter())
        self._logger.addHandler(file_handler)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(LumenLogFormatter())
        self._logger.addHandler(stderr_handler)

        self._session_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self._request_count = 0
        self._plan_count = 0

        self.info("System", "Logger initialized", log_file=str(self._log_file))

    def _log(self, level: int, lumen_level: str, component: str, message: str, **fields):
        """Core log method."""
        fields["session"] = self._session_id
        record = self._logger.makeRecord(
            name=self._logger.name,
            level=level,
            fn="",
            lno=0,
            msg=message,
            args=(),
            exc_info=None,
        )
        record.component = component
        record.lumen_level = lumen_level
        record.fields = fields
        self._logger.handle(record)

    # =========================================================================
    # PUBLIC API -- Standard levels
    # =========================================================================

    def info(self, component: str, message: str, **fields):
        """Log an informational event."""
        self._log(logging.INFO, "INFO", component, message, **fields)

    def warn(self, component: str, message: str, **fields):
        """Log a warning."""
        self._log(logging.WARNING, "WARN", component, message, **fields)

    def error(self, component: str, message: str, **fields):
        """Log an error."""
        self._log(logging.ERROR, "ERROR", component, message, **fields)

    def debug(self, component: str, message: str, **fields):
        """Log a debug event."""
        self._log(logging.DEBUG, "DEBUG", component, message, **fields)

    # =========================================================================
    # PUBLIC API -- Domain-specific log methods
    # =========================================================================

    def memory(self, action: str, agent_id: str = "", entries: int = 0, **fields):
        """Log a memory store/recall event."""
        fields.update(action=action, agent_id=agent_id, entries=entries)
        self._log(logging.INFO, "MEM", "Memory", f"Memory {action}", **fields)

    def plan(
        self,
        agent_id: str,
        intent: str = "",
        strategy: str = "",
        confidence: float = 0.0,
        latency_ms: int = 0,
        **fields,
    ):
        """Log a planning decision."""
        fields.update(intent=intent, strategy=strategy, confidence=confidence, latency_ms=latency_ms)
        self._log(logging.INFO, "PLAN", "Planner", f"Planned {agent_id} turn", **fields)
        self._plan_count += 1

    def signal(self, extractor: str, label: str = "", confidence: float = 0.0, **fields):
        """Log a signal extractor result."""
        fields.update(label=label, confidence=confidence)
        self._log(logging.DEBUG, "SIG", "Signals", f"{extractor} -> {label or 'none'}", **fields)

    def session(self, action: str, user_id: str = "", agent_id: str = "", **fields):
        """Log a session tracker event."""
        fields.update(action=action, user_id=user_id, agent_id=agent_id)
        self._log(logging.INFO, "SESS", "Session", f"Session {action}", **fields)

    def server_start(self, version: str = "", **fields):
        """Log API server startup."""
        fields.update(version=version)
        self._log(logging.INFO, "BOOT", "Server", "API server started", **fields)

    def server_stop(self, **fields):
        """Log API server shutdown."""
        fields.update(requests_served=self._request_count, plans_served=self._plan_count)
        self._log(logging.INFO, "HALT", "Server", "API server stopped", **fields)

    def http_request(
        self, method: str, path: str, status: int = 200, latency_ms: int = 0, **fields
    ):
        """Log an HTTP request."""
        fields.update(method=method, path=path, status=status, latency_ms=latency_ms)
        level = logging.INFO if status < 400 else logging.WARNING
        self._log(level, "HTTP", "Server", f"{method} {path} -> {status}", **fields)
        self._request_count += 1

    # =========================================================================
    # UTILITY
    # =========================================================================

    @property
    def log_file(self) -> str:
        return str(self._log_file)

    @property
    def log_dir(self) -> str:
        return str(self._log_dir)

    def get_log_stats(self) -> dict[str, Any]:
        """Get statistics about the log folder."""
        try:
            log_files = [f for f in self._log_dir.iterdir() if f.is_file()]
            total_size = sum(f.stat().st_size for f in log_files)
            return {
                "log_file": str(self._log_file),
                "log_dir": str(self._log_dir),
                "file_count": len(log_files),
                "total_size_mb": round(total_size / (1024 * 1024), 2),
                "session_id": self._session_id,
                "requests_logged": self._request_count,
                "plans_logged": self._plan_count,
            }
        except OSError:
            return {"log_file": str(self._log_file), "error": "could not stat"}

    def close(self):
        """Detach and close all handlers."""
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)


# =============================================================================
# SINGLETON
# =============================================================================

_logger_instance: LumenLogger | None = None


def get_logger(log_dir: str | Path | None = None) -> LumenLogger:
    """Get or create the global LumenLogger singleton."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = LumenLogger(log_dir=log_dir)
    return _logger_instance
