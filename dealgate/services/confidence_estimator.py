"""Stage 4 confidence self-check with deterministic fallback scoring."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from dealgate.models.classification import ConfidenceVerdict
from dealgate.services.llm_gateway import (
    ConfigurationError,
    ProviderError,
    TextGenerationGateway,
    ask_with_timeout,
)
from dealgate.services.signal_extractor import FALLBACK_PASS_SCORE, fallback_score


logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[A-Z_]+")

CONFIDENCE_PROMPT = """Is this DEFINITELY an influencer or creator brand deal contract?

Reply ONLY:
CONFIDENT or NOT_CONFIDENT

Document:
<<<{document}>>>"""


@dataclass(frozen=True)
class ConfidenceCheck:
    """Model verdict plus the fallback score used when it is not confident."""

    verdict: ConfidenceVerdict
    response: str
    fallback_score: Optional[int] = None

    @property
    def confident(self) -> bool:
        return self.verdict is ConfidenceVerdict.CONFIDENT

    @property
    def fallback_passed(self) -> bool:
        return self.fallback_score is not None and self.fallback_score >= FALLBACK_PASS_SCORE

    @property
    def passed(self) -> bool:
        return self.confident or self.fallback_passed


def build_confidence_prompt(text: str, char_limit: int = 6000) -> str:
    return CONFIDENCE_PROMPT.format(document=text[:char_limit])


def parse_confidence_reply(reply: str) -> ConfidenceVerdict:
    """Map a free-form reply onto CONFIDENT / NOT_CONFIDENT / AMBIGUOUS.

    "NOT_CONFIDENT" contains "CONFIDENT", so negation is checked first and
    always wins. AMBIGUOUS is only recorded for the trace; callers treat it
    exactly like NOT_CONFIDENT and fall back to signal scoring.
    """
    tokens = set(_TOKEN_RE.findall(reply.upper()))
    negated = "NOT_CONFIDENT" in tokens or ("NOT" in tokens and "CONFIDENT" in tokens)

    if negated:
        return ConfidenceVerdict.NOT_CONFIDENT
    if "CONFIDENT" in tokens:
        return ConfidenceVerdict.CONFIDENT
    return ConfidenceVerdict.AMBIGUOUS


async def check_confidence(
    text: str,
    gateway: TextGenerationGateway,
    timeout_seconds: float = 12.0,
    char_limit: int = 6000,
) -> ConfidenceCheck:
    """Ask for a confidence verdict, scoring deterministically when it is not CONFIDENT."""
    prompt = build_confidence_prompt(text, char_limit)

    try:
        reply = await ask_with_timeout(gateway, prompt, timeout_seconds)
    except ConfigurationError:
        raise
    except ProviderError as e:
        logger.warning(f"Confidence check unavailable, using fallback scoring: {e}")
        verdict = ConfidenceVerdict.UNAVAILABLE
        clean = "LLM_ERROR"
    else:
        clean = reply.strip().upper()
        verdict = parse_confidence_reply(clean)

    if verdict is ConfidenceVerdict.CONFIDENT:
        return ConfidenceCheck(verdict=verdict, response=clean)

    return ConfidenceCheck(verdict=verdict, response=clean, fallback_score=fallback_score(text))
