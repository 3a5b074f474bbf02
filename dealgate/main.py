"""FastAPI application for the brand deal gate service."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from dealgate.config import get_settings
from dealgate.middleware.logging import RequestLoggingMiddleware
from dealgate.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from dealgate.routers import classification
from dealgate.services.contract_classifier import ContractClassifier
from dealgate.services.llm_gateway import ConfigurationError, get_gateway

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the gateway and classifier; refuse to start when misconfigured."""
    try:
        gateway = get_gateway()
    except ConfigurationError as e:
        logger.error(f"Startup validation failed: {e}")
        raise

    settings = get_settings()
    app.state.classifier = ContractClassifier(gateway, settings)

    logger.info(f"Starting Brand Deal Gate API v{VERSION}")
    logger.info(f"Provider: {gateway.provider} Model: {gateway.model}")
    logger.info(f"Stage timeout: {settings.stage_timeout_seconds}s")

    yield

    logger.info("Shutting down Brand Deal Gate API")


app = FastAPI(
    title="Brand Deal Gate API",
    description="Decides whether uploaded document text is a creator-brand collaboration contract",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state (required by slowapi)
app.state.limiter = get_limiter()
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to specific domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint.

    Status Codes:
        200: Classifier initialised
        503: Classifier missing (startup did not complete)
    """
    classifier = getattr(app.state, "classifier", None)
    services: Dict[str, str] = {}

    if classifier is not None:
        services["classifier"] = "healthy"
        services["llm_provider"] = f"{classifier.gateway.provider}:{classifier.gateway.model}"
    else:
        services["classifier"] = "unhealthy: not initialised"

    healthy = classifier is not None
    response_data: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": services,
    }

    if not healthy:
        return Response(
            content=json.dumps(response_data),
            status_code=503,
            media_type="application/json",
        )

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """Get version number and commit hash."""
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(classification.router)
