"""
Brand deal classification endpoint.

Accepts text already extracted from an uploaded document and reports whether
it is a creator-brand collaboration contract. Callers only forward the
document to contract analysis when the category is ``brand_deal_contract``.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, Response, status

from dealgate.middleware.logging import get_request_id
from dealgate.middleware.rate_limit import classify_rate_limit, get_limiter
from dealgate.models.classification import ClassificationResult, ClassifyRequest
from dealgate.services.contract_classifier import ContractClassifier

router = APIRouter(prefix="/api", tags=["classification"])
limiter = get_limiter()
logger = logging.getLogger(__name__)


def get_classifier(request: Request) -> ContractClassifier:
    """Return the classifier built at startup."""
    classifier = getattr(request.app.state, "classifier", None)
    if classifier is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Classifier not initialised",
        )
    return classifier


@router.post("/classify", response_model=ClassificationResult)
@limiter.limit(classify_rate_limit)  # type: ignore[untyped-decorator]
async def classify_contract(
    request: Request,
    response: Response,
    body: ClassifyRequest,
) -> ClassificationResult:
    """
    Decide whether the document text is a brand deal contract.

    Returns:
        200: ClassificationResult with category, confidence, reasoning and trace
        422: Malformed request body
        429: Rate limit exceeded
        503: Classifier not initialised
    """
    classifier = get_classifier(request)

    logger.info(
        f"Classifying document request_id={get_request_id(request)} "
        f"name={body.document_name or '-'} length={len(body.text)}"
    )
    result = await classifier.classify(body.text)

    response.headers["X-Doc-Category"] = result.category
    response.headers["X-Classification-State"] = result.final_state.value
    response.headers["X-Classification-Confidence"] = f"{result.confidence:.2f}"

    return result
