"""Shared fixtures: a scripted text-generation gateway and a configured environment."""

import asyncio
from typing import List, Sequence, Union

import pytest

from dealgate.config import get_settings


Reply = Union[str, BaseException]


class FakeGateway:
    """Gateway double that answers prompts from a fixed script.

    Each call pops the next scripted reply; exceptions in the script are
    raised instead of returned. Prompts are recorded for assertions.
    """

    provider = "fake"
    model = "fake-model"

    def __init__(self, replies: Sequence[Reply] = (), delay: float = 0.0):
        self.replies: List[Reply] = list(replies)
        self.delay = delay
        self.prompts: List[str] = []

    async def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            raise AssertionError("FakeGateway called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def fake_gateway():
    """Factory for scripted gateways: fake_gateway("YES", "CONFIDENT")."""
    def _create(*replies: Reply, delay: float = 0.0) -> FakeGateway:
        return FakeGateway(replies, delay=delay)
    return _create



@pytest.fixture(autouse=True)
def llm_environment(monkeypatch):
    """Configure a keyless provider so Settings validate; clear the settings cache."""
    monkeypatch.setenv("LLM_PROVIDER", "huggingface")
    for var in ("LLM_MODEL", "LLM_API_KEY", "CLASSIFY_RATE_LIMIT", "TRUSTED_PROXIES"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
