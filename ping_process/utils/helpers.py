"""
Helper functions for ping-process.

This module contains utility functions used throughout the application.
"""

from typing import Optional


def format_duration(seconds: float) -> str:
    """
    Format a short duration for log and report output.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string (e.g., "850ms", "3.21s", "01:02:03")
    """
    if seconds < 1.0:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60.0:
        return f"{seconds:.2f}s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def trim_output(text: Optional[str]) -> Optional[str]:
    """
    Trim outer whitespace of captured output.

    Only the outer whitespace of the whole text is removed, lines inside are
    left untouched. Empty output collapses to None.

    Args:
        text: Captured text or None

    Returns:
        Trimmed text, or None if there is nothing left
    """
    if text is None:
        return None
    trimmed = text.strip()
    return trimmed or None


def clamp_exit_status(code: int) -> int:
    """
    Clamp an exit code into the 0-255 range accepted by process exit.

    Args:
        code: Exit code, possibly an additive fan-out sum

    Returns:
        Exit status suitable for sys.exit
    """
    if code < 0:
        return 1
    return min(code, 255)
