"""
RecallForge HTTP API.

Serves the review service over HTTP. Run with `recallforge serve` or
`uvicorn recallforge.api.main:app`.

Error mapping (body: ErrorResponse):
    InvalidScoreError, other ValidationError   422
    AlreadyGraduatedError                      409
    DuplicateReviewItemError                   409
    ReviewItemNotFoundError                    404
    StorageError, RetryError                   503
    any other RecallForgeError                 500
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from recallforge import __version__
from recallforge.api.models import ErrorResponse, HealthResponse
from recallforge.api.routes.review import get_service, router, set_service
from recallforge.core.exceptions import (
    AlreadyGraduatedError,
    DuplicateReviewItemError,
    RecallForgeError,
    RetryError,
    ReviewItemNotFoundError,
    StorageError,
    ValidationError,
)
from recallforge.core.logging import get_logger
from recallforge.study.service import ReviewService

logger = get_logger(__name__)

# Most specific first
_STATUS_BY_ERROR = (
    (ReviewItemNotFoundError, 404),
    (DuplicateReviewItemError, 409),
    (AlreadyGraduatedError, 409),
    (ValidationError, 422),
    (StorageError, 503),
    (RetryError, 503),
)


def status_for_error(exc: RecallForgeError) -> int:
    """HTTP status code for a domain error."""
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return 500


async def _recallforge_error_handler(
    request: Request, exc: RecallForgeError
) -> JSONResponse:
    code = status_for_error(exc)
    if code >= 500:
        logger.error("Request failed", path=request.url.path, error=str(exc))
    else:
        logger.debug("Request rejected", path=request.url.path, error=str(exc))

    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.user_message,
        why_it_happened=exc.why_it_happened,
        how_to_fix=list(exc.how_to_fix),
    )
    return JSONResponse(status_code=code, content=body.model_dump())


def create_app(service: Optional[ReviewService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Service to serve; loaded from recallforge.yaml on first
            request if omitted
    """
    if service is not None:
        set_service(service)

    application = FastAPI(title="RecallForge API", version=__version__)
    application.add_exception_handler(RecallForgeError, _recallforge_error_handler)
    application.include_router(router)

    @application.get("/health", response_model=HealthResponse)
    def health(service: ReviewService = Depends(get_service)) -> HealthResponse:
        """Health check including a storage round trip."""
        timestamp = datetime.now(timezone.utc).isoformat()
        backend = service.config.storage.backend
        try:
            service.store.count()
        except StorageError as e:
            return HealthResponse(
                status="unhealthy",
                version=__version__,
                timestamp=timestamp,
                storage_backend=backend,
                error=str(e),
            )
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=timestamp,
            storage_backend=backend,
        )

    return application


app = create_app()
