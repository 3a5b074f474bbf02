"""Stage 2 signal extraction.

Scans the document for six independent brand deal signals. Every signal
is a plain keyword check with no API call, so the result is fully
deterministic and reused by the override rules and the stage 4 fallback.
"""

import re
from typing import Dict, Pattern

from dealgate.models.classification import SignalVector


SIGNAL_PATTERNS: Dict[str, Pattern[str]] = {
    "platform": re.compile(
        r'\b(instagram|youtube|reels|shorts|story|content|tiktok|snapchat|facebook)\b',
        re.IGNORECASE,
    ),
    "creator": re.compile(r'\b(influencer|creator|content creator)\b', re.IGNORECASE),
    "brand": re.compile(r'\b(brand|sponsor|campaign)\b', re.IGNORECASE),
    "payment": re.compile(
        r'\b(payment|fee|compensation|amount payable|remuneration)\b',
        re.IGNORECASE,
    ),
    "deliverable": re.compile(
        r'\b(deliverables|posting schedule|posts|videos|reels)\b',
        re.IGNORECASE,
    ),
    # The rupee sign is not a word character, so it takes no boundary
    "currency_amount": re.compile(r"₹|\brs\.|\brupees\b|\binr\b", re.IGNORECASE),
}

# Stage 4 fallback re-checks four signals with slightly broader keyword sets
FALLBACK_PATTERNS: Dict[str, Pattern[str]] = {
    "payment": re.compile(r'\b(payment|fee|compensation|amount)\b', re.IGNORECASE),
    "deliverable": re.compile(
        r'\b(deliverables|posts|reels|videos|content)\b', re.IGNORECASE
    ),
    "brand": re.compile(r'\b(brand|sponsor|campaign)\b', re.IGNORECASE),
    "creator": re.compile(r'\b(influencer|creator|content creator)\b', re.IGNORECASE),
}

FALLBACK_PASS_SCORE = 3


def extract_signals(text: str) -> SignalVector:
    """Evaluate each signal independently against the full text."""
    return SignalVector(
        **{name: bool(pattern.search(text)) for name, pattern in SIGNAL_PATTERNS.items()}
    )


def fallback_score(text: str) -> int:
    """Count how many of the four fallback signals are present (0-4)."""
    return sum(1 for pattern in FALLBACK_PATTERNS.values() if pattern.search(text))
