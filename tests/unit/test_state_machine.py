"""Tests for the document state machine (SigningService)."""

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest

from backend.esign.db.inmemory import InMemoryDocumentStore
from backend.esign.models.common import DocumentStatus, SigningMode
from backend.esign.models.requests import DocumentCreate, DocumentUpdate
from backend.esign.signing.errors import (
    DocumentLockedError,
    DocumentNotFoundError,
    EmptySignatureError,
    SigningModeViolationError,
    UnknownSignerError,
)
from backend.esign.signing.state_machine import (
    SigningEventLogger,
    SigningMetrics,
    SigningService,
    SignOutcome,
    SignerPolicy,
)

DRAWN_SIGNATURE = {
    "strokes": [
        [{"x": 10, "y": 10, "t": 0}, {"x": 40, "y": 25, "t": 16}, {"x": 70, "y": 12, "t": 32}],
        [{"x": 20, "y": 30, "t": 80}, {"x": 60, "y": 30, "t": 96}],
    ]
}
TYPED_SIGNATURE = {"text": "Nguyễn Văn A", "font_family": "Dancing Script, cursive"}

MakeService = Callable[..., SigningService]


class RecordingMetrics(SigningMetrics):
    def __init__(self) -> None:
        self.outcomes: list[str] = []
        self.mismatches = 0

    def inc_signature(self, outcome: str) -> None:
        self.outcomes.append(outcome)

    def inc_hash_mismatch(self) -> None:
        self.mismatches += 1


class RecordingLogger(SigningEventLogger):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def log_event(self, event: str, document_id: str, **fields: Any) -> None:
        self.events.append((event, fields))


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_assigns_ids_and_pending(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        creator = uuid.uuid4()

        document = await service.create_document(contract_request, creator_id=creator)

        assert document.id.startswith("3DO-")
        assert document.status == DocumentStatus.pending
        assert [s.id for s in document.signers] == ["signer-1", "signer-2"]
        assert document.creator_id == creator
        assert document.created_at == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_duplicate_signer_ids_rejected(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        request = contract_request.model_copy(deep=True)
        for signer in request.signers:
            signer.id = "same"

        with pytest.raises(ValueError, match="unique"):
            await make_service().create_document(request)


class TestSubmitSignature:
    @pytest.mark.asyncio
    async def test_sign_first_signer_partially_signs(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)

        result = await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)

        assert result.outcome == SignOutcome.signed
        assert result.document.status == DocumentStatus.partially_signed
        assert result.document.signed_at is None
        signer = result.document.find_signer("signer-1")
        assert signer is not None
        assert signer.signed and signer.signed_at is not None
        assert signer.content_hash is not None and signer.content_hash.startswith("sha256:")

    @pytest.mark.asyncio
    async def test_all_signed_sets_signed_at(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)

        await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)
        result = await service.submit_signature(document.id, "signer-2", TYPED_SIGNATURE, False)

        assert result.document.status == DocumentStatus.signed
        last = result.document.find_signer("signer-2")
        assert last is not None
        assert result.document.signed_at == last.signed_at

    @pytest.mark.asyncio
    async def test_resign_is_already_signed_and_unchanged(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)
        first = await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)

        again = await service.submit_signature(document.id, "signer-1", TYPED_SIGNATURE, False)

        assert again.outcome == SignOutcome.already_signed
        assert again.document == first.document

    @pytest.mark.asyncio
    async def test_required_login_rejects_anonymous(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        request = contract_request.model_copy(update={"signing_mode": SigningMode.required_login})
        document = await service.create_document(request)

        with pytest.raises(SigningModeViolationError):
            await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)

        result = await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, True)
        assert result.outcome == SignOutcome.signed

    @pytest.mark.asyncio
    async def test_mode_checked_before_signer(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        request = contract_request.model_copy(update={"signing_mode": SigningMode.required_login})
        document = await service.create_document(request)

        with pytest.raises(SigningModeViolationError):
            await service.submit_signature(document.id, "nobody", DRAWN_SIGNATURE, False)

    @pytest.mark.asyncio
    async def test_unknown_signer(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)

        with pytest.raises(UnknownSignerError):
            await service.submit_signature(document.id, "signer-9", DRAWN_SIGNATURE, False)

    @pytest.mark.asyncio
    async def test_missing_document(self, make_service: MakeService) -> None:
        with pytest.raises(DocumentNotFoundError):
            await make_service().submit_signature("3DO-NONE00", "signer-1", DRAWN_SIGNATURE, False)

    @pytest.mark.asyncio
    async def test_empty_signature_leaves_document_unchanged(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)

        with pytest.raises(EmptySignatureError):
            await service.submit_signature(
                document.id, "signer-1", {"kind": "draw", "payload": "[[]]"}, False
            )

        stored = await service.get_document(document.id)
        assert stored.status == DocumentStatus.pending
        assert not stored.signers[0].signed

    @pytest.mark.asyncio
    async def test_already_signed_wins_over_empty_signature(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)
        await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)

        result = await service.submit_signature(document.id, "signer-1", {"text": ""}, False)

        assert result.outcome == SignOutcome.already_signed

    @pytest.mark.asyncio
    async def test_concurrent_submissions_collapse_to_one_write(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        metrics = RecordingMetrics()
        service = make_service(metrics=metrics)
        document = await service.create_document(contract_request)

        results = await asyncio.gather(
            *[
                service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)
                for _ in range(8)
            ]
        )

        outcomes = [r.outcome for r in results]
        assert outcomes.count(SignOutcome.signed) == 1
        assert outcomes.count(SignOutcome.already_signed) == 7
        assert metrics.outcomes.count("signed") == 1

    @pytest.mark.asyncio
    async def test_metrics_and_events_on_rejection(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        metrics = RecordingMetrics()
        events = RecordingLogger()
        service = make_service(metrics=metrics, event_logger=events)
        document = await service.create_document(contract_request)

        with pytest.raises(UnknownSignerError):
            await service.submit_signature(document.id, "x", DRAWN_SIGNATURE, False)

        assert metrics.outcomes == ["unknown_signer"]
        assert events.events[-1][0] == "signature_rejected"
        assert events.events[-1][1]["outcome"] == "UNKNOWN_SIGNER"


class TestSignerPolicy:
    @pytest.mark.asyncio
    async def test_reject_policy_requires_signer(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)

        with pytest.raises(UnknownSignerError):
            await service.submit_signature(document.id, None, DRAWN_SIGNATURE, False)

    @pytest.mark.asyncio
    async def test_sender_policy(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service(default_signer_policy="sender")
        document = await service.create_document(contract_request)

        result = await service.submit_signature(document.id, None, DRAWN_SIGNATURE, False)

        assert result.document.signers[0].signed

    @pytest.mark.asyncio
    async def test_first_unsigned_policy(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service(default_signer_policy=SignerPolicy.first_unsigned)
        document = await service.create_document(contract_request)

        await service.submit_signature(document.id, None, DRAWN_SIGNATURE, False)
        result = await service.submit_signature(document.id, None, TYPED_SIGNATURE, False)

        assert result.document.status == DocumentStatus.signed

        again = await service.submit_signature(document.id, None, TYPED_SIGNATURE, False)
        assert again.outcome == SignOutcome.already_signed


class TestUpdateAndViews:
    @pytest.mark.asyncio
    async def test_update_while_pending(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)

        updated = await service.update_document(document.id, DocumentUpdate(title="Tiêu đề mới"))

        assert updated.title == "Tiêu đề mới"
        assert updated.content == document.content

    @pytest.mark.asyncio
    async def test_update_after_first_signature_is_locked(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        document = await service.create_document(contract_request)
        await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)

        with pytest.raises(DocumentLockedError):
            await service.update_document(document.id, DocumentUpdate(content="<p>Sửa</p>"))

    @pytest.mark.asyncio
    async def test_track_view_ignores_creator_and_sets_once(
        self, make_service: MakeService, contract_request: DocumentCreate
    ) -> None:
        service = make_service()
        creator = uuid.uuid4()
        document = await service.create_document(contract_request, creator_id=creator)

        assert await service.track_view(document.id, creator) is False
        assert await service.track_view(document.id, None) is True
        first_view = (await service.get_document(document.id)).viewed_at
        assert await service.track_view(document.id, uuid.uuid4()) is False

        stored = await service.get_document(document.id)
        assert stored.viewed_at == first_view
        assert stored.content == document.content

    @pytest.mark.asyncio
    async def test_get_document_reports_tampering(
        self, contract_request: DocumentCreate, make_service: MakeService
    ) -> None:
        store = InMemoryDocumentStore()
        metrics = RecordingMetrics()
        service = make_service(store=store, metrics=metrics)
        document = await service.create_document(contract_request)
        await service.submit_signature(document.id, "signer-1", DRAWN_SIGNATURE, False)

        # Edit content behind the state machine's back
        async with store.transaction(document.id) as tx:
            assert tx.document is not None
            await tx.save(tx.document.model_copy(update={"content": "<p>Khác</p>"}))

        view = await service.get_document(document.id)

        assert not view.hash_verification.is_valid
        assert view.hash_verification.mismatched_signatures == ["signer-1"]
        assert metrics.mismatches == 1
