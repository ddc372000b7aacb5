"""Structured logging for signing events."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

_WARNING_EVENTS = {"signature_rejected"}


class StructuredSigningLogger:
    """Structured logger for state machine events."""

    def log_event(
        self,
        event: str,
        document_id: str,
        *,
        signer_id: str | None = None,
        outcome: str | None = None,
        **fields: Any,
    ) -> None:
        """Log one signing event with structured data."""
        log_data: dict[str, Any] = {"event": event, "document_id": document_id, **fields}
        if signer_id:
            log_data["signer_id"] = signer_id
        if outcome:
            log_data["outcome"] = outcome

        log_msg = f"Signing event: {event} - {document_id}"

        if event in _WARNING_EVENTS:
            logger.warning(log_msg, extra={"structured": log_data})
        else:
            logger.info(log_msg, extra={"structured": log_data})
