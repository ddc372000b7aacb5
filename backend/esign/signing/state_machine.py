"""Document state machine: create, update, sign and track views.

All read-modify-write operations run inside the store's per-document
transaction, so concurrent submissions for the same signer collapse into one
write and later ones observe ``already_signed``.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from backend.esign.db.repositories import DocumentStore
from backend.esign.integrity.hashing import compute_fingerprint, verify_document
from backend.esign.models.common import DocumentStatus, SigningMode
from backend.esign.models.document import Document, DocumentView, Signer, new_document_id
from backend.esign.models.requests import DocumentCreate, DocumentUpdate
from backend.esign.signatures import codec
from backend.esign.signing.errors import (
    DocumentLockedError,
    DocumentNotFoundError,
    SigningError,
    SigningModeViolationError,
    UnknownSignerError,
)

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 5


class SignOutcome(str, Enum):
    """Successful sign outcomes."""

    signed = "signed"
    already_signed = "already_signed"


class SignerPolicy(str, Enum):
    """Which signer a request that names none is applied to."""

    reject = "reject"
    sender = "sender"
    first_unsigned = "first_unsigned"


@dataclass
class SignResult:
    document: Document
    outcome: SignOutcome


class SigningMetrics:
    """Interface for signing metrics."""

    def inc_signature(self, outcome: str) -> None:
        """Count a sign attempt by outcome or error code."""
        pass

    def inc_hash_mismatch(self) -> None:
        """Count a read that found content changed after signing."""
        pass


class SigningEventLogger:
    """Interface for structured signing events."""

    def log_event(
        self,
        event: str,
        document_id: str,
        *,
        signer_id: str | None = None,
        outcome: str | None = None,
        **fields: Any,
    ) -> None:
        """Log one state machine event."""
        pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SigningService:
    """Owns every state transition of a Document."""

    def __init__(
        self,
        store: DocumentStore,
        now_fn: Callable[[], datetime] | None = None,
        metrics: SigningMetrics | None = None,
        event_logger: SigningEventLogger | None = None,
        default_signer_policy: SignerPolicy | str = SignerPolicy.reject,
    ) -> None:
        """Initialize service.

        Args:
            store: Document store
            now_fn: Injectable clock (default: UTC now)
            metrics: Metrics recorder (optional, defaults to no-op)
            event_logger: Structured logger (optional, defaults to no-op)
            default_signer_policy: Policy for sign requests without a signer id
        """
        self._store = store
        self._now = now_fn or _utcnow
        self._metrics = metrics or SigningMetrics()
        self._events = event_logger or SigningEventLogger()
        self._policy = SignerPolicy(default_signer_policy)

    async def create_document(
        self, request: DocumentCreate, creator_id: UUID | None = None
    ) -> Document:
        """Create a document in ``pending`` state.

        Signers without an id get ``signer-N`` by position.

        Raises:
            ValueError: If signer ids are not unique
        """
        signers = [
            Signer(**s.model_dump(exclude={"id"}), id=s.id or f"signer-{index}")
            for index, s in enumerate(request.signers, start=1)
        ]
        ids = [s.id for s in signers]
        if len(ids) != len(set(ids)):
            raise ValueError("Signer ids must be unique within a document")

        for _ in range(_MAX_ID_ATTEMPTS):
            document = Document(
                id=new_document_id(),
                kind=request.kind,
                title=request.title,
                content=request.content,
                metadata=request.metadata,
                signing_mode=request.signing_mode,
                signers=signers,
                creator_id=creator_id,
                created_at=self._now(),
            )
            try:
                await self._store.create(document)
            except ValueError:
                logger.warning(f"[signing] id collision document_id={document.id}, retrying")
                continue
            self._events.log_event(
                "document_created", document.id, kind=document.kind.value, signers=len(signers)
            )
            return document

        raise RuntimeError("Could not allocate a unique document id")

    async def import_document(self, document: Document) -> Document:
        """Persist a document parsed from an external payload, keeping its id and state.

        Raises:
            ValueError: If a document with the same id exists
        """
        await self._store.create(document)
        self._events.log_event(
            "document_imported", document.id, kind=document.kind.value, status=document.status.value
        )
        return document

    async def update_document(self, document_id: str, changes: DocumentUpdate) -> Document:
        """Edit title, content or metadata while no one has signed.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DocumentLockedError: If any signer has signed
        """
        async with self._store.transaction(document_id) as tx:
            document = tx.document
            if document is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            if document.status != DocumentStatus.pending:
                raise DocumentLockedError(
                    f"Document {document_id} is {document.status.value} and can no longer be edited"
                )

            updates = changes.model_dump(exclude_unset=True, exclude_none=True)
            if "metadata" in updates:
                updates["metadata"] = changes.metadata
            document = document.model_copy(update=updates)
            await tx.save(document)

        self._events.log_event("document_updated", document_id, fields=sorted(updates))
        return document

    async def get_document(self, document_id: str) -> DocumentView:
        """Load a document with its read-time integrity check."""
        document = await self._store.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        verification = verify_document(document)
        if not verification.is_valid:
            self._metrics.inc_hash_mismatch()
        return DocumentView.model_validate(
            {**document.model_dump(), "hash_verification": verification.model_dump()}
        )

    async def track_view(self, document_id: str, viewer_id: UUID | None) -> bool:
        """Record the first view by anyone other than the creator.

        Returns:
            True if ``viewed_at`` was set by this call
        """
        async with self._store.transaction(document_id) as tx:
            document = tx.document
            if document is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            if document.viewed_at is not None:
                return False
            if viewer_id is not None and viewer_id == document.creator_id:
                return False

            document.viewed_at = self._now()
            await tx.save(document)

        self._events.log_event("document_viewed", document_id)
        return True

    def resolve_signer(
        self,
        document: Document,
        signer_id: str | None,
        policy: SignerPolicy | None = None,
    ) -> str:
        """Pick the target signer for a sign request.

        An explicit id always wins. Otherwise the policy decides: ``reject``
        refuses, ``sender`` takes the first signer, ``first_unsigned`` the
        first signer that has not signed yet.

        Raises:
            UnknownSignerError: If no signer can be chosen
        """
        if signer_id:
            return signer_id

        policy = policy or self._policy
        if policy == SignerPolicy.sender:
            return document.signers[0].id
        if policy == SignerPolicy.first_unsigned:
            for signer in document.signers:
                if not signer.signed:
                    return signer.id
            return document.signers[0].id
        raise UnknownSignerError("Request must name the signer")

    async def submit_signature(
        self,
        document_id: str,
        signer_id: str | None,
        signature_data: Any,
        requester_is_authenticated: bool,
    ) -> SignResult:
        """Apply a signature to one signer.

        Args:
            document_id: Document ID
            signer_id: Target signer, or None to apply the default policy
            signature_data: Raw signature in any shape the codec accepts
            requester_is_authenticated: Whether the caller is logged in

        Returns:
            SignResult with the resulting document; re-signing an already
            signed signer succeeds with ``already_signed`` and changes nothing

        Raises:
            DocumentNotFoundError: If the document does not exist
            SigningModeViolationError: If login is required and caller is anonymous
            UnknownSignerError: If the signer is not part of the document
            EmptySignatureError: If the signature has nothing drawable or readable
        """
        try:
            result = await self._submit(
                document_id, signer_id, signature_data, requester_is_authenticated
            )
        except SigningError as e:
            self._metrics.inc_signature(e.code.lower())
            self._events.log_event(
                "signature_rejected", document_id, signer_id=signer_id, outcome=e.code
            )
            raise

        self._metrics.inc_signature(result.outcome.value)
        self._events.log_event(
            "signature_submitted",
            document_id,
            signer_id=signer_id,
            outcome=result.outcome.value,
            status=result.document.status.value,
        )
        return result

    async def _submit(
        self,
        document_id: str,
        signer_id: str | None,
        signature_data: Any,
        requester_is_authenticated: bool,
    ) -> SignResult:
        async with self._store.transaction(document_id) as tx:
            document = tx.document
            if document is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")

            if document.signing_mode == SigningMode.required_login and not requester_is_authenticated:
                raise SigningModeViolationError("This document requires login to sign")

            resolved_id = self.resolve_signer(document, signer_id)
            signer = document.find_signer(resolved_id)
            if signer is None:
                raise UnknownSignerError(f"Signer {resolved_id} is not part of document {document_id}")

            if signer.signed:
                logger.info(f"[signing] document_id={document_id} signer_id={resolved_id} already signed")
                return SignResult(document=document, outcome=SignOutcome.already_signed)

            normalized = codec.normalize(signature_data)

            now = self._now()
            signer.signed = True
            signer.signed_at = now
            signer.signature_data = normalized
            signer.content_hash = compute_fingerprint(document)

            previous = document.status
            document.refresh_status()
            if document.status == DocumentStatus.signed and previous != DocumentStatus.signed:
                document.signed_at = now

            await tx.save(document)

        logger.info(
            f"[signing] document_id={document_id} signer_id={resolved_id} "
            f"status={previous.value}->{document.status.value}"
        )
        return SignResult(document=document, outcome=SignOutcome.signed)
