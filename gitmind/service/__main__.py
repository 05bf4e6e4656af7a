"""Start the gitmind service: ``python -m gitmind.service``."""

from __future__ import annotations

import os

from .app import run_service

if __name__ == "__main__":
    run_service(
        host=os.getenv("GITMIND_HOST", "127.0.0.1"),
        port=int(os.getenv("GITMIND_PORT", "8000")),
        verbose=os.getenv("GITMIND_VERBOSE", "").lower() in {"1", "true", "yes"},
    )
