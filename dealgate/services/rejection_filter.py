"""Stage 1 hard-rejection filter.

A blunt denylist of document types that are never brand deal contracts
(court papers, invoices, government IDs, insurance, vehicle rental,
employment, loans). Runs before any signal counting or model call, so it
only needs to be precise, not exhaustive.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, Tuple, Union


@dataclass(frozen=True)
class SameLinePattern:
    """``first`` followed later on the same line by ``then``.

    Matches exactly what the regex ``first.*then`` matches (``.`` never
    crosses a newline), but in linear time: ``first.*then`` rescans to the
    end of the line for every ``first`` hit, which is quadratic on long
    single-line text. Only the first ``first`` hit on a line needs checking,
    since anything after a later hit is also after the first one.
    """

    first: Pattern[str]
    then: Pattern[str]

    @property
    def pattern(self) -> str:
        return f"{self.first.pattern}.*{self.then.pattern}"

    def search(self, text: str) -> bool:
        pos = 0
        while True:
            head = self.first.search(text, pos)
            if head is None:
                return False
            line_end = text.find("\n", head.end())
            if line_end == -1:
                line_end = len(text)
            if self.then.search(text, head.end(), line_end):
                return True
            pos = line_end + 1


def same_line(first: str, then: str) -> SameLinePattern:
    return SameLinePattern(
        first=re.compile(first, re.IGNORECASE),
        then=re.compile(then, re.IGNORECASE),
    )


Matcher = Union[Pattern[str], SameLinePattern]

# GST/TDS mentioned as part of a payment clause, not as an invoice marker
_ALLOWED_TAX_CONTEXT: Tuple[Matcher, ...] = (
    same_line(r'\bgst', r'deduction\b'),
    re.compile(r'\bgst inclusive\b', re.IGNORECASE),
    same_line(r'\btds', r'applicable\b'),
    same_line(r'\btds', r'deduction\b'),
)


@dataclass(frozen=True)
class RejectionPattern:
    """A hard-reject matcher with its audit reason."""

    pattern: Matcher
    reason: str
    allowed_context: Tuple[Matcher, ...] = field(default_factory=tuple)

    def is_excused(self, text: str) -> bool:
        return any(allowed.search(text) for allowed in self.allowed_context)


@dataclass(frozen=True)
class RejectionOutcome:
    rejected: bool
    reason: Optional[str] = None
    pattern: Optional[str] = None


def _p(regex: Union[str, SameLinePattern], reason: str, tax_term: bool = False) -> RejectionPattern:
    return RejectionPattern(
        pattern=regex if isinstance(regex, SameLinePattern) else re.compile(regex, re.IGNORECASE),
        reason=reason,
        allowed_context=_ALLOWED_TAX_CONTEXT if tax_term else (),
    )


# Order matters: first match wins.
HARD_REJECT_PATTERNS: Tuple[RejectionPattern, ...] = (
    # Court / legal
    _p(r'\bcourt\b', "Court document detected"),
    _p(r'\blegal notice\b', "Legal notice detected"),
    _p(r'\bsummons\b', "Summons document detected"),
    _p(r'\bpetition\b', "Petition document detected"),
    _p(r'\bplaintiff\b', "Court case document (plaintiff)"),
    _p(r'\bdefendant\b', "Court case document (defendant)"),
    _p(r'\bfir\b', "FIR document detected"),

    # Invoices / receipts
    _p(same_line(r'\binvoice\b', r'\bnumber\b'), "Invoice document detected"),
    _p(r'\btax invoice\b', "Tax invoice detected", tax_term=True),
    _p(r'\bbill no\b', "Bill document detected"),
    _p(r'\bpayment receipt\b', "Payment receipt detected"),

    # Government IDs / forms
    _p(r'\baadhaar\b', "Aadhaar card document detected"),
    _p(r'\bpan card\b', "PAN card document detected"),
    _p(r'\bgst certificate\b', "GST certificate detected", tax_term=True),

    # Insurance
    _p(r'\bpolicy number\b', "Insurance policy detected"),
    _p(r'\binsurance claim\b', "Insurance claim document detected"),

    # Vehicle rental
    _p(r'\bzoomcar\b', "Vehicle rental (Zoomcar) detected"),
    _p(r'\bvehicle rental\b', "Vehicle rental agreement detected"),
    _p(r'\brc number\b', "Vehicle RC document detected"),

    # Employment
    _p(r'\bjob offer\b', "Job offer letter detected"),
    _p(same_line(r'\bsalary\b', r'\bemployment\b'), "Employment agreement detected"),
    _p(r'\bemployment agreement\b', "Employment contract detected"),

    # Loan / property
    _p(r'\bemi\b', "Loan/EMI document detected"),
    _p(r'\bmortgage\b', "Mortgage document detected"),
    _p(r'\bloan agreement\b', "Loan agreement detected"),
)


def reject(
    text: str,
    patterns: Tuple[RejectionPattern, ...] = HARD_REJECT_PATTERNS,
) -> RejectionOutcome:
    """Return the first hard-reject match, skipping excused tax-term hits.

    Args:
        text: Full document text.
        patterns: Ordered denylist (defaults to ``HARD_REJECT_PATTERNS``).

    Returns:
        RejectionOutcome with ``rejected=False`` when nothing matched.
    """
    for candidate in patterns:
        if not candidate.pattern.search(text):
            continue
        if candidate.is_excused(text):
            continue
        return RejectionOutcome(
            rejected=True,
            reason=candidate.reason,
            pattern=candidate.pattern.pattern,
        )

    return RejectionOutcome(rejected=False)
