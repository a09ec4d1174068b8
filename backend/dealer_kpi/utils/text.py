"""Text normalization helpers."""

from typing import Optional


def normalize(value: Optional[str]) -> str:
    """Trimmed, lower-cased form used for name matching."""
    return str(value or "").strip().lower()
