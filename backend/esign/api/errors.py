"""Translate core errors into HTTP responses."""

from fastapi import HTTPException, status

from backend.esign.signing.errors import (
    DocumentLockedError,
    DocumentNotFoundError,
    EmptySignatureError,
    PdfGenerationFailedError,
    RateLimitedError,
    SigningError,
    SigningModeViolationError,
    UnknownSignerError,
)

_STATUS_BY_ERROR: dict[type[SigningError], int] = {
    EmptySignatureError: status.HTTP_400_BAD_REQUEST,
    UnknownSignerError: status.HTTP_400_BAD_REQUEST,
    SigningModeViolationError: status.HTTP_401_UNAUTHORIZED,
    DocumentLockedError: status.HTTP_409_CONFLICT,
    DocumentNotFoundError: status.HTTP_404_NOT_FOUND,
    PdfGenerationFailedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    RateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
}


def to_http_exception(error: SigningError) -> HTTPException:
    """Map a SigningError to an HTTPException with ``{code, message}`` detail."""
    headers: dict[str, str] | None = None
    if isinstance(error, RateLimitedError):
        headers = {"Retry-After": str(error.retry_after_seconds)}
    elif isinstance(error, SigningModeViolationError):
        headers = {"WWW-Authenticate": "Bearer"}

    return HTTPException(
        status_code=_STATUS_BY_ERROR.get(type(error), status.HTTP_400_BAD_REQUEST),
        detail={"code": error.code, "message": error.message},
        headers=headers,
    )


def invalid_input(error: ValueError) -> HTTPException:
    """Map a validation ValueError to 422."""
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"code": "INVALID_INPUT", "message": str(error)},
    )
