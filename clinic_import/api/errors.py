"""
clinic_import/api/errors.py

Translation of import exceptions into HTTP errors.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from clinic_import.exceptions import (
    ImportSubmissionError,
    PayloadTooLargeError,
    RateLimitedError,
    WorkQueueUnavailableError,
)


def submission_http_error(exc: ImportSubmissionError | WorkQueueUnavailableError) -> HTTPException:
    if isinstance(exc, RateLimitedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=exc.to_dict(),
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )
    if isinstance(exc, PayloadTooLargeError):
        return HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=exc.to_dict(),
        )
    if isinstance(exc, WorkQueueUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Import queue is unavailable. Try again later.",
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict())
