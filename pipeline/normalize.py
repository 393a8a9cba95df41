"""
Normalisers for model-produced JSON.

The model returns loosely-typed fields; these turn each one into either a
clean value or None so callers can fall back field by field.
"""

from typing import Any, Iterable, List, Optional


def normalize_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return None


def normalize_string_list(values: Any) -> Optional[List[str]]:
    if not isinstance(values, list):
        return None
    cleaned = [entry for entry in (normalize_string(v) for v in values) if entry is not None]
    return cleaned or None


def normalize_choice(value: Any, choices: Iterable[str]) -> Optional[str]:
    candidate = normalize_string(value)
    if candidate is None:
        return None
    candidate = candidate.lower()
    return candidate if candidate in choices else None


def normalize_confidence(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:  # NaN
        return None
    return max(0.0, min(1.0, float(value)))


def normalize_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def normalize_rationale(value: Any) -> Optional[str]:
    """Accept a string or the first usable entry of a list of strings."""
    if isinstance(value, list):
        for entry in value:
            normalized = normalize_string(entry)
            if normalized is not None:
                return normalized
        return None
    return normalize_string(value)

