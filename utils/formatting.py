"""Filename and duration formatting helpers"""

import re


def sanitize_filename(filename: str) -> str:
    """
    Create a safe filename.

    Replaces whitespace and anything outside ``[A-Za-z0-9_.-]`` with underscores.
    A leading dot is replaced so the result is never a hidden file.
    """
    filename = re.sub(r"\s+", "_", filename)
    filename = re.sub(r"[^\w.-]", "_", filename, flags=re.ASCII)
    if filename.startswith("."):
        filename = "_" + filename[1:]
    if len(filename) > 200:
        filename = filename[:200]
    return filename or "file"


def format_duration(seconds: float) -> str:
    """Format seconds as a compact ``1h 2m 3s`` string."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)

