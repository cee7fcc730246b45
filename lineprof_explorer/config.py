"""Defaults and environment overrides."""

from __future__ import annotations

import os

# Nesting levels shown below the focused node when no source file can be aligned.
REDUCE_DEPTH = 2

DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVEL_ENV = "LINEPROF_EXPLORER_LOG_LEVEL"
SOURCE_ROOT_ENV = "LINEPROF_EXPLORER_SOURCE_ROOT"


def log_level_name() -> str:
    return os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL


def default_source_root() -> str | None:
    value = os.getenv(SOURCE_ROOT_ENV)
    if not value:
        return None
    return value
