"""Pydantic models for brand deal contract classification.

Used by the contract classifier to report whether an uploaded document is a
creator-brand collaboration contract, together with the audit trace of every
stage and override rule that was evaluated.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


DocumentCategory = Literal["brand_deal_contract", "not_brand_deal"]

SIGNAL_NAMES = (
    "platform",
    "creator",
    "brand",
    "payment",
    "deliverable",
    "currency_amount",
)

SIGNAL_LABELS: Dict[str, str] = {
    "platform": "Content Platform",
    "creator": "Influencer/Creator",
    "brand": "Brand/Sponsor",
    "payment": "Payment/Compensation",
    "deliverable": "Deliverables",
    "currency_amount": "Currency Amount",
}

# Upper bound on request text; long contracts run to a few hundred KB
MAX_TEXT_LENGTH = 500_000


class PipelineState(str, Enum):
    """States of the classification state machine.

    start -> stage1_rejected | stage2_rejected | full_override_accepted | stage3_pending
    stage3_pending -> stage3_rejected | stage3_passed -> stage4_pending
    stage4_pending -> stage4_rejected | final_accepted

    Every trace event records the state reached once that step completes.
    """

    START = "start"
    STAGE1_REJECTED = "stage1_rejected"
    STAGE2_REJECTED = "stage2_rejected"
    FULL_OVERRIDE_ACCEPTED = "full_override_accepted"
    STAGE3_PENDING = "stage3_pending"
    STAGE3_REJECTED = "stage3_rejected"
    STAGE3_PASSED = "stage3_passed"
    STAGE4_PENDING = "stage4_pending"
    STAGE4_REJECTED = "stage4_rejected"
    FINAL_ACCEPTED = "final_accepted"


class AdvisoryVerdict(str, Enum):
    """Binary-intent verdict parsed from the stage 3 model reply."""

    YES = "yes"
    NO = "no"
    AMBIGUOUS = "ambiguous"
    UNAVAILABLE = "unavailable"


class ConfidenceVerdict(str, Enum):
    """Verdict parsed from the stage 4 confidence self-check.

    AMBIGUOUS keeps an unparseable reply apart from an explicit NOT_CONFIDENT
    in the trace; both take the not-confident branch.
    """

    CONFIDENT = "confident"
    NOT_CONFIDENT = "not_confident"
    AMBIGUOUS = "ambiguous"
    UNAVAILABLE = "unavailable"


class SignalVector(BaseModel):
    """Presence/absence of the six brand deal signals in a document."""

    model_config = ConfigDict(frozen=True)

    platform: bool = False
    creator: bool = False
    brand: bool = False
    payment: bool = False
    deliverable: bool = False
    currency_amount: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def matched(self) -> List[str]:
        return [SIGNAL_LABELS[name] for name in SIGNAL_NAMES if getattr(self, name)]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def missing(self) -> List[str]:
        return [SIGNAL_LABELS[name] for name in SIGNAL_NAMES if not getattr(self, name)]

    @property
    def matched_count(self) -> int:
        return len(self.matched)

    @property
    def stage2_pass(self) -> bool:
        """At least two signals present. Deliberately a low bar."""
        return self.matched_count >= 2

    def flags(self) -> Dict[str, bool]:
        """Raw boolean flags, keyed by signal name."""
        return {name: getattr(self, name) for name in SIGNAL_NAMES}


class TraceEvent(BaseModel):
    """One auditable step of the pipeline (a stage outcome or a rule check)."""

    step: str = Field(description="Stage or override rule name")
    outcome: str = Field(description="What happened at this step")
    state: PipelineState = Field(description="Pipeline state after this step")
    details: Dict[str, Any] = Field(default_factory=dict)


class ClassificationResult(BaseModel):
    """Result of classifying a document as a brand deal contract or not."""

    category: DocumentCategory = Field(
        description="Classified document category"
    )
    confidence: float = Field(
        ge=0.0, le=1.0,
        description="Classification confidence (0.0 to 1.0)"
    )
    reasoning: str = Field(
        min_length=1,
        description="Human-readable justification for the decision"
    )
    final_state: PipelineState = Field(
        description="Terminal state of the classification state machine"
    )
    trace: List[TraceEvent] = Field(
        default_factory=list,
        description="Ordered audit trail: stages reached and override rules evaluated"
    )

    @property
    def is_target(self) -> bool:
        return self.category == "brand_deal_contract"


class ClassifyRequest(BaseModel):
    """Request body for the classification endpoint."""

    text: str = Field(
        max_length=MAX_TEXT_LENGTH,
        description="Raw text extracted from the uploaded document"
    )
    document_name: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Optional original filename, echoed into logs only"
    )
