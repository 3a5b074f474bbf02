"""Stage 3 advisory YES/NO classifier.

Asks the text-generation gateway whether the document looks like a brand
deal contract. The answer is only an opinion: a YES lets the pipeline
continue, anything else is checked against ``advisory_override`` by the
orchestrator. This stage never accepts a document by itself.
"""

import logging
import re
from dataclasses import dataclass

from dealgate.models.classification import AdvisoryVerdict
from dealgate.services.llm_gateway import (
    ConfigurationError,
    ProviderError,
    TextGenerationGateway,
    ask_with_timeout,
)


logger = logging.getLogger(__name__)

LLM_ERROR = "LLM_ERROR"

_TOKEN_RE = re.compile(r"[A-Z_]+")

ADVISORY_PROMPT = """You are a legal document classifier. Your role is ADVISORY - signal-based detection will override your response.

Reply ONLY with:
YES → if this appears to be a Brand Deal / Influencer / Creator Sponsorship Contract
NO → if this is clearly NOT a brand deal (invoices, legal notices, employment, etc.)

IMPORTANT CONTEXT:
- Test/demo contracts (e.g., "Nike demo", "TEST contract") are VALID if they contain brand deal elements
- High-risk clauses don't make it invalid - they just need flagging
- Weak titles are OK if content shows brand collaboration

ONLY SUGGEST REJECTION FOR:
- Invoices, Receipts, Bills
- Legal notices or court documents (summons, petitions)
- Government forms (PAN, GST, Aadhaar certificates)
- Employment contracts (job offers, salary agreements)
- Rental agreements, insurance policies, loan documents
- Pure NDAs without any payment or deliverables

ACCEPT (even if marked TEST/DEMO/HIGH RISK):
- Any document with Brand + Creator/Influencer + Deliverables
- Any document with Payment + Deliverables
- Any document mentioning Instagram/YouTube/Reels with payment terms

Reply ONLY:
YES or NO

Document:
<<<{document}>>>"""


@dataclass(frozen=True)
class AdvisoryOutcome:
    verdict: AdvisoryVerdict
    response: str

    @property
    def is_yes(self) -> bool:
        return self.verdict is AdvisoryVerdict.YES


def build_advisory_prompt(text: str, char_limit: int = 6000) -> str:
    return ADVISORY_PROMPT.format(document=text[:char_limit])


def parse_advisory_reply(reply: str) -> AdvisoryVerdict:
    """Map a free-form reply onto YES / NO / AMBIGUOUS.

    Only whole tokens count, so "NOTE" or "NONE" are not read as NO. A
    reply carrying both tokens, or neither, is ambiguous.
    """
    tokens = set(_TOKEN_RE.findall(reply.upper()))
    has_yes = "YES" in tokens
    has_no = "NO" in tokens

    if has_yes and not has_no:
        return AdvisoryVerdict.YES
    if has_no and not has_yes:
        return AdvisoryVerdict.NO
    return AdvisoryVerdict.AMBIGUOUS


async def ask_is_target(
    text: str,
    gateway: TextGenerationGateway,
    timeout_seconds: float = 12.0,
    char_limit: int = 6000,
) -> AdvisoryOutcome:
    """Run the advisory model call and parse its verdict.

    Provider failures and timeouts come back as UNAVAILABLE; only a
    ConfigurationError is raised.
    """
    prompt = build_advisory_prompt(text, char_limit)

    try:
        reply = await ask_with_timeout(gateway, prompt, timeout_seconds)
    except ConfigurationError:
        raise
    except ProviderError as e:
        logger.warning(f"Advisory classifier unavailable, defaulting to NO: {e}")
        return AdvisoryOutcome(verdict=AdvisoryVerdict.UNAVAILABLE, response=LLM_ERROR)

    clean = reply.strip().upper()
    verdict = parse_advisory_reply(clean)
    if verdict is AdvisoryVerdict.AMBIGUOUS:
        logger.warning(f"Ambiguous advisory response, defaulting to NO: {clean[:100]!r}")

    return AdvisoryOutcome(verdict=verdict, response=clean)
