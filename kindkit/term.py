"""Terminal detection for output streams."""

from __future__ import annotations

import os
import sys
from typing import Any, Mapping, Optional


def is_terminal(w: Any) -> bool:
    """Return True if the writer w is attached to a terminal."""
    isatty = getattr(w, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except (ValueError, OSError):
        return False


def is_smart_terminal(
    w: Any,
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> bool:
    """Return True if w is a terminal that should handle VT escape codes."""
    if platform is None:
        platform = sys.platform
    if environ is None:
        environ = os.environ

    if not is_terminal(w):
        return False

    # explicit request for no ANSI escape codes
    if "NO_COLOR" in environ:
        return False

    term = environ.get("TERM", "")
    if term in ("dumb", "st-256color"):
        return False

    # on Windows only the modern terminal sets WT_SESSION
    if platform.startswith("win") and not environ.get("WT_SESSION", ""):
        return False

    # Travis CI provides a poor fake TTY
    if (
        environ.get("HAS_JOSH_K_SEAL_OF_APPROVAL", "") == "true"
        and environ.get("TRAVIS", "") == "true"
    ):
        return False

    return True