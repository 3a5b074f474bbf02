"""Tests for the stage 3 advisory YES/NO classifier."""

import pytest

from dealgate.models.classification import AdvisoryVerdict
from dealgate.services.advisory_classifier import (
    LLM_ERROR,
    ask_is_target,
    build_advisory_prompt,
    parse_advisory_reply,
)
from dealgate.services.llm_gateway import ConfigurationError, ProviderError
from samples import BRAND_DEAL_TEXT


class TestParseAdvisoryReply:

    @pytest.mark.parametrize("reply", ["YES", "yes", " Yes.\n", "YES - brand deal"])
    def test_yes(self, reply):
        assert parse_advisory_reply(reply) is AdvisoryVerdict.YES

    @pytest.mark.parametrize("reply", ["NO", "no", "No, this is an invoice."])
    def test_no(self, reply):
        assert parse_advisory_reply(reply) is AdvisoryVerdict.NO

    @pytest.mark.parametrize("reply", ["YES or NO", "NO... actually YES", "", "Maybe"])
    def test_ambiguous(self, reply):
        assert parse_advisory_reply(reply) is AdvisoryVerdict.AMBIGUOUS

    def test_only_whole_tokens_count(self):
        """Words that merely contain NO or YES are not verdicts."""
        assert parse_advisory_reply("YES, NOTED") is AdvisoryVerdict.YES
        assert parse_advisory_reply("NONE") is AdvisoryVerdict.AMBIGUOUS
        assert parse_advisory_reply("EYES") is AdvisoryVerdict.AMBIGUOUS


def test_prompt_is_advisory_and_truncated():
    text = "x" * 7000

    prompt = build_advisory_prompt(text)

    assert "signal-based detection will override your response" in prompt
    assert "x" * 6000 in prompt
    assert "x" * 6001 not in prompt


def test_prompt_respects_custom_limit():
    prompt = build_advisory_prompt("abcdef", char_limit=3)

    assert "<<<abc>>>" in prompt


@pytest.mark.asyncio
async def test_ask_is_target_yes(fake_gateway):
    gateway = fake_gateway("Yes")

    outcome = await ask_is_target(BRAND_DEAL_TEXT, gateway)

    assert outcome.verdict is AdvisoryVerdict.YES
    assert outcome.is_yes is True
    assert outcome.response == "YES"
    assert len(gateway.prompts) == 1
    assert BRAND_DEAL_TEXT in gateway.prompts[0]


@pytest.mark.asyncio
async def test_ask_is_target_ambiguous_is_not_yes(fake_gateway):
    outcome = await ask_is_target(BRAND_DEAL_TEXT, fake_gateway("I cannot tell"))

    assert outcome.verdict is AdvisoryVerdict.AMBIGUOUS
    assert outcome.is_yes is False


@pytest.mark.asyncio
async def test_provider_error_is_unavailable(fake_gateway):
    gateway = fake_gateway(ProviderError("boom", provider="fake", status_code=500))

    outcome = await ask_is_target(BRAND_DEAL_TEXT, gateway)

    assert outcome.verdict is AdvisoryVerdict.UNAVAILABLE
    assert outcome.response == LLM_ERROR
    assert outcome.is_yes is False


@pytest.mark.asyncio
async def test_timeout_is_unavailable(fake_gateway):
    gateway = fake_gateway("YES", delay=1.0)

    outcome = await ask_is_target(BRAND_DEAL_TEXT, gateway, timeout_seconds=0.01)

    assert outcome.verdict is AdvisoryVerdict.UNAVAILABLE


@pytest.mark.asyncio
async def test_configuration_error_propagates(fake_gateway):
    gateway = fake_gateway(ConfigurationError("no provider"))

    with pytest.raises(ConfigurationError):
        await ask_is_target(BRAND_DEAL_TEXT, gateway)
