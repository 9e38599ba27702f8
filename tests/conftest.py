import os

# Deterministic, offline-friendly tests
os.environ.setdefault("LANGFUSE_ENABLED", "0")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest

from shared.settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        discord_bot_token="test-token",
        gemini_api_key="test-key",
        synthesis_deadline_seconds=None,
    )
