import asyncio
import logging

import pytest

from services.bot.app import main as bot_main
from services.bot.app.main import MissingBotTokenError, check_startup_config, run
from shared.settings import Settings


def test_settings_read_from_env(monkeypatch) -> None:
    monkeypatch.setenv("FETCH_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("FETCH_BASE_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("GEMINI_MODEL", "gemini-test")
    s = Settings(_env_file=None)
    policy = s.retry_policy()
    assert policy.max_attempts == 3
    assert policy.base_delay == 0.5
    assert policy.timeout_seconds == 30.0
    assert s.port == 8080
    assert s.generate_url() == (
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-test:generateContent"
    )


def test_defaults(monkeypatch) -> None:
    for var in ("PORT", "COMMAND_PREFIX", "SYNTHESIS_DEADLINE_SECONDS"):
        monkeypatch.delenv(var, raising=False)
    s = Settings(_env_file=None)
    assert s.port == 3000
    assert s.command_prefix == "!"
    assert s.synthesis_deadline_seconds is None
    assert s.retry_policy().max_attempts == 5


def test_missing_bot_token_is_fatal(settings) -> None:
    s = settings.model_copy(update={"discord_bot_token": None})
    with pytest.raises(MissingBotTokenError):
        check_startup_config(s)
    with pytest.raises(MissingBotTokenError):
        asyncio.run(run(s))


def test_missing_api_key_only_warns(settings, caplog) -> None:
    s = settings.model_copy(update={"gemini_api_key": None})
    with caplog.at_level(logging.WARNING):
        check_startup_config(s)
    assert "GEMINI_API_KEY" in caplog.text


def test_main_exits_without_bot_token(monkeypatch) -> None:
    monkeypatch.setattr(
        bot_main, "Settings", lambda: Settings(_env_file=None, discord_bot_token=None)
    )
    with pytest.raises(SystemExit) as exc:
        bot_main.main()
    assert exc.value.code == 1
