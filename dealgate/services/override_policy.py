"""Override rules that let deterministic signals overrule model verdicts.

All three rules live in one ordered table so their precedence can be read
(and audited) without following the orchestrator's control flow:

- ``full_override``: checked right after stage 2. Accepts the document
  outright and skips both model calls.
- ``advisory_override``: checked only when stage 3 did not say YES. Lets
  the pipeline continue to stage 4 instead of rejecting.
- ``confidence_override``: checked only when stage 4 and its fallback score
  both failed. Accepts instead of rejecting.

Each rule is an OR of named clauses. The clause subsets differ between the
rules on purpose and must not be merged.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from dealgate.models.classification import SignalVector


Predicate = Callable[[SignalVector], bool]

FULL_OVERRIDE = "full_override"
ADVISORY_OVERRIDE = "advisory_override"
CONFIDENCE_OVERRIDE = "confidence_override"


@dataclass(frozen=True)
class OverrideClause:
    name: str
    predicate: Predicate


@dataclass(frozen=True)
class OverrideRule:
    """A named override: fires when any of its clauses holds."""

    name: str
    description: str
    clauses: Tuple[OverrideClause, ...]

    def matching_clauses(self, signals: SignalVector) -> List[str]:
        return [clause.name for clause in self.clauses if clause.predicate(signals)]

    def __call__(self, signals: SignalVector) -> bool:
        return any(clause.predicate(signals) for clause in self.clauses)


@dataclass(frozen=True)
class OverrideDecision:
    """Outcome of evaluating one rule, with everything needed to audit it."""

    rule: str
    fired: bool
    matched_clauses: Tuple[str, ...]
    signals: Dict[str, bool]

    def as_details(self) -> Dict[str, object]:
        return {
            "fired": self.fired,
            "matched_clauses": list(self.matched_clauses),
            "signals": dict(self.signals),
        }


OVERRIDE_RULES: Tuple[OverrideRule, ...] = (
    OverrideRule(
        name=FULL_OVERRIDE,
        description="Strong brand deal signals: accept without consulting the model",
        clauses=(
            OverrideClause("brand+creator+deliverable",
                           lambda s: s.brand and s.creator and s.deliverable),
            OverrideClause("payment+deliverable",
                           lambda s: s.payment and s.deliverable),
            OverrideClause("creator+platform+payment",
                           lambda s: s.creator and s.platform and s.payment),
            OverrideClause("currency_amount+deliverable",
                           lambda s: s.currency_amount and s.deliverable),
        ),
    ),
    OverrideRule(
        name=ADVISORY_OVERRIDE,
        description="Overturn a negative advisory verdict and continue to stage 4",
        clauses=(
            OverrideClause("creator", lambda s: s.creator),
            OverrideClause("platform", lambda s: s.platform),
            OverrideClause("currency_amount", lambda s: s.currency_amount),
        ),
    ),
    OverrideRule(
        name=CONFIDENCE_OVERRIDE,
        description="Accept despite a failed confidence check and fallback score",
        clauses=(
            OverrideClause("brand+deliverable+(payment|creator)",
                           lambda s: s.brand and s.deliverable and (s.payment or s.creator)),
            OverrideClause("creator+platform",
                           lambda s: s.creator and s.platform),
            OverrideClause("currency_amount", lambda s: s.currency_amount),
        ),
    ),
)

_RULES_BY_NAME: Dict[str, OverrideRule] = {rule.name: rule for rule in OVERRIDE_RULES}


def get_rule(name: str) -> OverrideRule:
    try:
        return _RULES_BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown override rule: {name}") from None


def evaluate(name: str, signals: SignalVector) -> OverrideDecision:
    """Evaluate a named override rule against a signal vector."""
    rule = get_rule(name)
    matched = tuple(rule.matching_clauses(signals))
    return OverrideDecision(
        rule=rule.name,
        fired=bool(matched),
        matched_clauses=matched,
        signals=signals.flags(),
    )


def full_override(signals: SignalVector) -> bool:
    return get_rule(FULL_OVERRIDE)(signals)


def advisory_override(signals: SignalVector) -> bool:
    return get_rule(ADVISORY_OVERRIDE)(signals)


def confidence_override(signals: SignalVector) -> bool:
    return get_rule(CONFIDENCE_OVERRIDE)(signals)
