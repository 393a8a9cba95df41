"""
Tests for tools/config.py — environment-driven EngineSettings.
"""

import pytest

from tools.config import EngineSettings, load_settings

ENV_VARS = (
    "GEMINI_API_KEY",
    "GM_MODEL_ID",
    "GM_MODEL_TIMEOUT_SECONDS",
    "GM_MODEL_MAX_RETRIES",
    "GM_RATE_LIMIT_TOKENS",
    "GM_RATE_LIMIT_REFILL",
    "GM_PLANNER_REFINEMENT",
    "GM_DICE_MODE",
)


@pytest.fixture
def empty_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return str(env_file)


class TestLoadSettings:

    def test_defaults(self, empty_env):
        assert load_settings(empty_env) == EngineSettings()

    def test_overrides(self, empty_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "key-123")
        monkeypatch.setenv("GM_MODEL_ID", "gemini-2.5-pro")
        monkeypatch.setenv("GM_MODEL_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("GM_MODEL_MAX_RETRIES", "4")
        monkeypatch.setenv("GM_PLANNER_REFINEMENT", "off")
        monkeypatch.setenv("GM_DICE_MODE", "KEEP_DROP")

        settings = load_settings(empty_env)
        assert settings.gemini_api_key == "key-123"
        assert settings.model_id == "gemini-2.5-pro"
        assert settings.model_timeout_seconds == 12.5
        assert settings.model_max_retries == 4
        assert settings.planner_refinement is False
        assert settings.dice_mode == "keep_drop"

    def test_invalid_numbers_fall_back(self, empty_env, monkeypatch):
        monkeypatch.setenv("GM_MODEL_MAX_RETRIES", "lots")
        monkeypatch.setenv("GM_RATE_LIMIT_REFILL", "")
        settings = load_settings(empty_env)
        assert settings.model_max_retries == 2
        assert settings.rate_limit_refill == 0.25

    def test_unknown_dice_mode(self, empty_env, monkeypatch):
        monkeypatch.setenv("GM_DICE_MODE", "exploding")
        assert load_settings(empty_env).dice_mode == "advantage"

    def test_env_file_values(self, empty_env, monkeypatch):
        with open(empty_env, "w") as f:
            f.write("GM_MODEL_ID=gemini-from-file\n")
        monkeypatch.setenv("GM_MODEL_ID", "gemini-from-env")
        assert load_settings(empty_env).model_id == "gemini-from-env"
