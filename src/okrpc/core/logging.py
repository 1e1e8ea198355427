"""Logger factory. Level from OKRPC_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO)."""
from __future__ import annotations

import logging
import os

_CONFIGURED = False


def _configure_once() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    level = os.getenv("OKRPC_LOG_LEVEL", "INFO").upper()
    lvl = getattr(logging, level, None)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    root = logging.getLogger("okrpc")
    root.setLevel(lvl)
    if not logging.getLogger().handlers and not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    _configure_once()
    return logging.getLogger(name)
