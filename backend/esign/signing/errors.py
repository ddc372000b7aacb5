"""Typed signing errors.

Every error carries a stable ``code`` that the HTTP layer exposes verbatim.
"""


class SigningError(Exception):
    """Base class for all signing pipeline errors."""

    code = "SIGNING_FAILED"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class EmptySignatureError(SigningError):
    """Signature payload is blank, malformed or has no drawable strokes."""

    code = "EMPTY_SIGNATURE"


class UnknownSignerError(SigningError):
    """Signer id does not belong to the document."""

    code = "UNKNOWN_SIGNER"


class SigningModeViolationError(SigningError):
    """Anonymous requester tried to sign a RequiredLogin document."""

    code = "SIGNING_MODE_VIOLATION"


class DocumentLockedError(SigningError):
    """Signable content edit attempted after the first signature."""

    code = "DOCUMENT_LOCKED"


class DocumentNotFoundError(SigningError):
    code = "DOCUMENT_NOT_FOUND"


class PdfGenerationFailedError(SigningError):
    """Rendering failed or exceeded its time bound."""

    code = "PDF_GENERATION_FAILED"


class RateLimitedError(SigningError):
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int, message: str | None = None) -> None:
        super().__init__(message or f"Rate limit exceeded, retry after {retry_after_seconds}s")
        self.retry_after_seconds = retry_after_seconds
