"""The command-line tool's version."""

from __future__ import annotations

import platform
import sys

VERSION_CORE = "0.12.0"
"""The core part of the semantic version."""

VERSION_PRE_RELEASE = "alpha"
"""The pre-release part of the semantic version."""

GIT_COMMIT = ""
"""The commit the tool was built from, if known."""


def version() -> str:
    """Return the semantic version, with pre-release and build info if known."""
    result = VERSION_CORE
    if VERSION_PRE_RELEASE:
        result += "-" + VERSION_PRE_RELEASE
        # build metadata is only added to pre-release versions
        if GIT_COMMIT:
            result += "+" + truncate(GIT_COMMIT, 14)
    return result


def display_version() -> str:
    """Return the version line printed by the version command."""
    machine = platform.machine().lower() or "unknown"
    return (
        f"kind v{version()} python{platform.python_version()} "
        f"{sys.platform}/{machine}"
    )


def truncate(s: str, max_len: int) -> str:
    """Return s cut to at most max_len characters."""
    return s[:max_len]