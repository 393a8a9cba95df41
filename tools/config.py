"""
Engine settings — read once from the environment (and .env, if present).
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger("EngineSettings")

DICE_MODES = ("advantage", "keep_drop")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class EngineSettings:
    gemini_api_key: Optional[str] = None
    model_id: str = "gemini-2.0-flash"
    model_timeout_seconds: float = 45.0
    model_max_retries: int = 2
    rate_limit_tokens: int = 15
    rate_limit_refill: float = 0.25
    planner_refinement: bool = True
    dice_mode: str = "advantage"


def load_settings(env_file: Optional[str] = None) -> EngineSettings:
    """Build EngineSettings from the process environment.

    Args:
        env_file: Optional explicit .env path; defaults to dotenv's lookup.
    """
    load_dotenv(env_file)

    dice_mode = os.getenv("GM_DICE_MODE", "advantage").strip().lower()
    if dice_mode not in DICE_MODES:
        logger.warning(f"Unknown GM_DICE_MODE={dice_mode!r}, falling back to 'advantage'")
        dice_mode = "advantage"

    return EngineSettings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        model_id=os.getenv("GM_MODEL_ID", "gemini-2.0-flash"),
        model_timeout_seconds=_env_number("GM_MODEL_TIMEOUT_SECONDS", 45.0, float),
        model_max_retries=_env_number("GM_MODEL_MAX_RETRIES", 2, int),
        rate_limit_tokens=_env_number("GM_RATE_LIMIT_TOKENS", 15, int),
        rate_limit_refill=_env_number("GM_RATE_LIMIT_REFILL", 0.25, float),
        planner_refinement=_env_bool("GM_PLANNER_REFINEMENT", True),
        dice_mode=dice_mode,
    )
