"""Duration formatting helpers.

All inputs are integer milliseconds; sub-second remainders are dropped.
"""

from __future__ import annotations

import re

_HOURS = re.compile(r"(\d+)h")
_MINUTES = re.compile(r"(\d+)m")
_SECONDS = re.compile(r"(\d+)s")


def format_display(total_ms: int) -> str:
    """Format as '9 hrs 13 min', '1 hr', '5 min' or '45s'."""

    total_seconds = max(0, total_ms) // 1000
    if total_seconds < 60:
        return f"{total_seconds}s"

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours} hr" + ("s" if hours > 1 else ""))
    if minutes > 0:
        parts.append(f"{minutes} min")
    return " ".join(parts)


def format_tracker(total_ms: int) -> str:
    """Format as tracker duration text: '9h 13m', '2h', '45m' or '30s'."""

    total_seconds = max(0, total_ms) // 1000
    if total_seconds < 60:
        return f"{total_seconds}s"

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def format_detailed(total_ms: int) -> str:
    """Format as zero-padded HH:MM:SS."""

    total_seconds = max(0, total_ms) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_tracker(text: str) -> int:
    """Parse tracker duration text such as '2h 30m' back to milliseconds."""

    total_seconds = 0
    if match := _HOURS.search(text):
        total_seconds += int(match.group(1)) * 3600
    if match := _MINUTES.search(text):
        total_seconds += int(match.group(1)) * 60
    if match := _SECONDS.search(text):
        total_seconds += int(match.group(1))
    return total_seconds * 1000


__all__ = ["format_detailed", "format_display", "format_tracker", "parse_tracker"]
