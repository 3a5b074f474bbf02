"""Four-stage brand deal contract classifier.

Decides whether extracted document text is a creator-brand collaboration
contract. Nothing downstream (analysis, scoring, storage) runs unless this
gate accepts the document.

1. Hard rejection filter (regex denylist, no API call)
2. Signal extraction (keyword signals, no API call), followed by the
   ``full_override`` check that can accept immediately
3. Advisory YES/NO model call, overridable by ``advisory_override``
4. Confidence self-check with fallback scoring, overridable by
   ``confidence_override``

The decision itself lives in ``run_pipeline`` which returns the result with
its audit trace and has no side effects; ``classify`` adds logging.
"""

import json
import logging
from typing import List, Optional

from dealgate.config import Settings
from dealgate.models.classification import (
    ClassificationResult,
    PipelineState,
    SignalVector,
    TraceEvent,
)
from dealgate.services import override_policy
from dealgate.services.advisory_classifier import ask_is_target
from dealgate.services.confidence_estimator import check_confidence
from dealgate.services.llm_gateway import TextGenerationGateway
from dealgate.services.rejection_filter import reject
from dealgate.services.signal_extractor import FALLBACK_PASS_SCORE, extract_signals


logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 100

# Confidence reported for each terminal state
ACCEPT_CONFIDENCE = 0.95
REJECT_CONFIDENCE = {
    PipelineState.STAGE1_REJECTED: 0.0,
    PipelineState.STAGE2_REJECTED: 0.2,
    PipelineState.STAGE3_REJECTED: 0.3,
    PipelineState.STAGE4_REJECTED: 0.4,
}

FULL_OVERRIDE_REASONING = (
    "Hard override: Strong brand deal signals detected "
    "(Brand+Influencer+Deliverables OR Payment+Deliverables OR "
    "Influencer+Platform+Payment OR ₹+Deliverables)"
)
FINAL_ACCEPT_REASONING = (
    "Passed all 4 stages: hard rejection filter, brand deal signals, "
    "LLM binary classifier, confidence check"
)


class ContractClassifier:
    """Stateless gate; one instance can serve concurrent ``classify`` calls.

    Args:
        gateway: Text-generation gateway used by stages 3 and 4.
        settings: Provides the per-stage timeout and prompt size. Defaults
            are used when omitted.
    """

    def __init__(self, gateway: TextGenerationGateway, settings: Optional[Settings] = None):
        self.gateway = gateway
        if settings is not None:
            self.timeout_seconds = settings.stage_timeout_seconds
            self.char_limit = settings.prompt_char_limit
        else:
            self.timeout_seconds = 12.0
            self.char_limit = 6000

    async def classify(self, text: str) -> ClassificationResult:
        """Classify a document and log how the decision was reached."""
        result = await self.run_pipeline(text)
        _log_decision(result, len(text or ""))
        return result

    async def run_pipeline(self, text: str) -> ClassificationResult:
        trace: List[TraceEvent] = []

        if not text or len(text) < MIN_TEXT_LENGTH:
            trace.append(TraceEvent(
                step="min_length",
                outcome="rejected",
                state=PipelineState.STAGE1_REJECTED,
                details={"length": len(text or ""), "minimum": MIN_TEXT_LENGTH},
            ))
            return _rejected(
                PipelineState.STAGE1_REJECTED,
                f"Text too short (< {MIN_TEXT_LENGTH} characters)",
                trace,
            )

        # Stage 1: hard rejection
        stage1 = reject(text)
        if stage1.rejected:
            trace.append(TraceEvent(
                step="stage1_hard_rejection",
                outcome="rejected",
                state=PipelineState.STAGE1_REJECTED,
                details={"reason": stage1.reason, "pattern": stage1.pattern},
            ))
            return _rejected(
                PipelineState.STAGE1_REJECTED,
                f"Hard rejection: {stage1.reason}",
                trace,
            )
        trace.append(TraceEvent(
            step="stage1_hard_rejection", outcome="passed", state=PipelineState.START
        ))

        # Stage 2: signals, then the full override before any model call
        signals = extract_signals(text)
        trace.append(TraceEvent(
            step="stage2_signals",
            outcome="passed" if signals.stage2_pass else "insufficient",
            state=PipelineState.START,
            details={
                "matched": signals.matched,
                "missing": signals.missing,
                "signals": signals.flags(),
            },
        ))

        if self._check_override(
            override_policy.FULL_OVERRIDE,
            signals,
            trace,
            fired=PipelineState.FULL_OVERRIDE_ACCEPTED,
            not_fired=(
                PipelineState.STAGE3_PENDING if signals.stage2_pass
                else PipelineState.STAGE2_REJECTED
            ),
        ):
            return _accepted(PipelineState.FULL_OVERRIDE_ACCEPTED, FULL_OVERRIDE_REASONING, trace)

        if not signals.stage2_pass:
            found = ", ".join(signals.matched) or "none"
            return _rejected(
                PipelineState.STAGE2_REJECTED,
                f"Missing required brand deal signals. Found: {found}. Need at least 2.",
                trace,
            )

        # Stage 3: advisory model opinion
        advisory = await ask_is_target(
            text, self.gateway, timeout_seconds=self.timeout_seconds, char_limit=self.char_limit
        )
        trace.append(TraceEvent(
            step="stage3_advisory",
            outcome=advisory.verdict.value,
            state=PipelineState.STAGE3_PASSED if advisory.is_yes else PipelineState.STAGE3_PENDING,
            details={"response": advisory.response},
        ))

        if not advisory.is_yes:
            if not self._check_override(
                override_policy.ADVISORY_OVERRIDE,
                signals,
                trace,
                fired=PipelineState.STAGE3_PASSED,
                not_fired=PipelineState.STAGE3_REJECTED,
            ):
                return _rejected(
                    PipelineState.STAGE3_REJECTED,
                    f"LLM classification: {advisory.response or advisory.verdict.value.upper()} "
                    "(no strong signals to override)",
                    trace,
                )

        # Stage 4: confidence self-check
        check = await check_confidence(
            text, self.gateway, timeout_seconds=self.timeout_seconds, char_limit=self.char_limit
        )
        trace.append(TraceEvent(
            step="stage4_confidence",
            outcome="passed" if check.passed else "failed",
            state=PipelineState.FINAL_ACCEPTED if check.passed else PipelineState.STAGE4_PENDING,
            details={
                "verdict": check.verdict.value,
                "response": check.response,
                "fallback_score": check.fallback_score,
            },
        ))

        if not check.passed:
            if not self._check_override(
                override_policy.CONFIDENCE_OVERRIDE,
                signals,
                trace,
                fired=PipelineState.FINAL_ACCEPTED,
                not_fired=PipelineState.STAGE4_REJECTED,
            ):
                return _rejected(
                    PipelineState.STAGE4_REJECTED,
                    f"Confidence check failed. Fallback score: {check.fallback_score}/4 "
                    f"(need ≥{FALLBACK_PASS_SCORE})",
                    trace,
                )

        return _accepted(PipelineState.FINAL_ACCEPTED, FINAL_ACCEPT_REASONING, trace)

    @staticmethod
    def _check_override(
        rule: str,
        signals: SignalVector,
        trace: List[TraceEvent],
        fired: PipelineState,
        not_fired: PipelineState,
    ) -> bool:
        decision = override_policy.evaluate(rule, signals)
        trace.append(TraceEvent(
            step=decision.rule,
            outcome="fired" if decision.fired else "not_fired",
            state=fired if decision.fired else not_fired,
            details=decision.as_details(),
        ))
        return decision.fired


def _accepted(state: PipelineState, reasoning: str, trace: List[TraceEvent]) -> ClassificationResult:
    return ClassificationResult(
        category="brand_deal_contract",
        confidence=ACCEPT_CONFIDENCE,
        reasoning=reasoning,
        final_state=state,
        trace=trace,
    )


def _rejected(state: PipelineState, reasoning: str, trace: List[TraceEvent]) -> ClassificationResult:
    return ClassificationResult(
        category="not_brand_deal",
        confidence=REJECT_CONFIDENCE[state],
        reasoning=reasoning,
        final_state=state,
        trace=trace,
    )


def _log_decision(result: ClassificationResult, text_length: int) -> None:
    """Emit the trace as JSON lines. Document text is never logged."""
    for event in result.trace:
        logger.info(json.dumps({"event": "classifier_trace", **event.model_dump()}, default=str))

    summary = {
        "event": "classifier_decision",
        "category": result.category,
        "confidence": result.confidence,
        "final_state": result.final_state.value,
        "reasoning": result.reasoning,
        "text_length": text_length,
    }
    logger.info(json.dumps(summary, ensure_ascii=False))


async def classify_document(
    text: str,
    gateway: TextGenerationGateway,
    settings: Optional[Settings] = None,
) -> ClassificationResult:
    """Classify ``text`` with a one-off classifier bound to ``gateway``."""
    return await ContractClassifier(gateway, settings).classify(text)
