"""
Content Filter — blocklist screen for player messages.

No model call. Runs in the intake node before any mechanics; a hit marks
the turn for escalation so the check planner stays out of it.
"""

import re
import logging
from typing import Tuple

from models.intent import SafetyAssessment

logger = logging.getLogger("ContentFilter")

CONTENT_FILTERED_FLAG = "content-filtered"

# Word-boundary matching so that e.g. "assassin" does not trip a pattern.
_BLOCKLIST_PATTERNS = [
    # Slurs
    r"\bn[i\*]gg[ae\*]r?s?\b",
    r"\bk[i\*]ke[s]?\b",
    r"\bsp[i\*]c[s]?\b",
    r"\bch[i\*]nk[s]?\b",
    r"\bf[a\*]gg?[o\*]t[s]?\b",
    r"\btr[a\*]nn[yie]+[s]?\b",
    r"\bretard(ed)?\b",
    # Sexual violence
    r"\br[a\*]pe[sd]?\b",
    r"\bmolest",
]

_COMPILED_PATTERNS = [
    re.compile(pattern, re.IGNORECASE) for pattern in _BLOCKLIST_PATTERNS
]


def filter_content(text: str) -> Tuple[str, bool]:
    """Replace blocklisted terms.

    Returns:
        (filtered_text, was_filtered)
    """
    was_filtered = False
    filtered = text

    for pattern in _COMPILED_PATTERNS:
        if pattern.search(filtered):
            was_filtered = True
            filtered = pattern.sub("[inappropriate]", filtered)

    return filtered, was_filtered


def screen_message(text: str, chronicle_id: str = "") -> Tuple[str, SafetyAssessment]:
    """Screen one player message.

    Returns the filtered text (what the model is allowed to see) and the
    safety assessment for the turn.
    """
    filtered, was_filtered = filter_content(text or "")
    if not was_filtered:
        return filtered, SafetyAssessment()

    logger.warning(f"[{chronicle_id}] Player message filtered: {filtered[:100]}")
    return filtered, SafetyAssessment(escalate=True, flags=[CONTENT_FILTERED_FLAG])
