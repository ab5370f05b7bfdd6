"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports the settings module,
so no local .env file leaks into the test run.
"""

import os
from typing import Any

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("THROTTLE_ENABLED", "true")

import pytest

from dreamgate.adapters.llm.base import AbstractLLMClient


class FakeClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, ms: float) -> None:
        self.current += ms


class FakeLLMClient(AbstractLLMClient):
    """LLM stub returning queued responses and recording prompts."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def generate_json(self, prompt: str, *, system: str | None = None, **kwargs: Any) -> dict[str, Any]:
        self.prompts.append(prompt)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def sample_interpretation(**overrides: Any) -> dict[str, Any]:
    base: dict[str, Any] = {
        "main_themes": ["transformation", "freedom"],
        "emotional_tone": "weightless wonder",
        "symbols": [
            {"symbol": "flying", "meaning": "a wish to rise above constraints"},
            {"symbol": "ocean", "meaning": "the depth of unexpressed feeling"},
        ],
        "personal_insight": "You may be outgrowing a situation that once felt safe.",
        "guidance": "Notice where you already feel light, and lean into it.",
    }
    base.update(overrides)
    return base


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def interpretation_payload() -> dict[str, Any]:
    return sample_interpretation()


@pytest.fixture
def make_llm() -> type[FakeLLMClient]:
    """Build a fake LLM client from queued responses or exceptions."""
    return FakeLLMClient


@pytest.fixture
def make_interpretation():
    """Build a valid interpretation payload, overriding selected fields."""
    return sample_interpretation
