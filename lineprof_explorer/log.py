"""Logging setup for the command line."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from lineprof_explorer.config import log_level_name


def setup_logging(level_name: str | None = None) -> None:
    """Install a rich stderr handler on the root logger unless one is already present."""
    root = logging.getLogger()
    if root.handlers:
        return
    name = (level_name or log_level_name()).upper()
    level = getattr(logging, name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
        markup=False
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
