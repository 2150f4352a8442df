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
Lumen Agent -- API launcher.

    lumen-api [port]
    python -m lumen.api [port]
"""

import socket
import sys

import uvicorn

DEFAULT_API_PORT = 8000


def find_available_port(start_port: int, max_attempts: int = 100) -> int:
    """Find an available port starting from start_port."""
    for port in range(start_port, start_port + max_attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind(("127.0.0.1", port))
            except OSError:
                continue
            return port
    raise RuntimeError(f"No free port in {start_port}-{start_port + max_attempts - 1}")


def main():
    """Run the API server."""
    start = DEFAULT_API_PORT
    if len(sys.argv) > 1:
        if sys.argv[1] in ("-h", "--help", "help"):
            print("  Usage: lumen-api [port]")
            return
        start = int(sys.argv[1])
    port = find_available_port(start)

    print("\n  Starting Lumen API Server...")
    print(f"  API Server:  http://localhost:{port}")
    print(f"  Health:      http://localhost:{port}/health")
    print(f"  Docs:        http://localhost:{port}/docs")
    print()

    from lumen.api.server import app

    uvicorn.run(app, host="127.0.0.1", port=port, log_level="info")


if __name__ == "__main__":
    main()
