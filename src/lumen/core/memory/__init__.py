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
Conversation memory.

Store:  SQLite primary, JSON file fallback
Ranker: topic/recency/goal scoring with a TTL recall cache
Engine: remember / recall facade
"""

from lumen.core.memory.engine import MemoryEngine
from lumen.core.memory.models import MemoryContext, MemoryEntry, MemoryPattern, RecallOptions
from lumen.core.memory.store import (
    JSONFileMemoryStore,
    MemoryStore,
    SQLiteMemoryStore,
    TieredMemoryStore,
    create_default_store,
)

__all__ = [
    "MemoryEngine",
    "MemoryContext",
    "MemoryEntry",
    "MemoryPattern",
    "RecallOptions",
    "MemoryStore",
    "SQLiteMemoryStore",
    "JSONFileMemoryStore",
    "TieredMemoryStore",
    "create_default_store",
]
