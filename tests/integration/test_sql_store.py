"""SQL document store on sqlite (aiosqlite)."""

import asyncio
import uuid
from datetime import datetime, timezone

import pytest

from backend.esign.db.sql_repositories import SqlDocumentStore
from backend.esign.models.common import DocumentKind, DocumentStatus, SignatureKind
from backend.esign.models.document import Document, DocumentMetadata, Signer
from backend.esign.models.requests import DocumentCreate
from backend.esign.models.signature import SignatureData
from backend.esign.signing.state_machine import SigningService, SignOutcome

CREATED = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
STROKES = {"strokes": [[{"x": 0, "y": 0}, {"x": 30, "y": 20}]]}


def _document(document_id: str = "3DO-SQL001") -> Document:
    return Document(
        id=document_id,
        kind=DocumentKind.contract,
        title="Hợp đồng",
        content="<p>Nội dung</p>",
        metadata=DocumentMetadata(location="Hà Nội", created_date="14/03/2025", extra_field="x"),
        signers=[
            Signer(id="signer-1", role="Bên A", name="Nguyễn Văn A"),
            Signer(id="signer-2", role="Bên B", name="Trần Thị B", organization="Công ty B"),
        ],
        creator_id=uuid.uuid4(),
        created_at=CREATED,
    )


@pytest.mark.integration
@pytest.mark.asyncio
async def test_create_and_get_round_trip(sqlite_store: SqlDocumentStore) -> None:
    document = _document()

    await sqlite_store.create(document)
    loaded = await sqlite_store.get(document.id)

    assert loaded == document
    assert loaded is not None
    assert loaded.created_at.tzinfo is not None
    assert (loaded.metadata.model_extra or {})["extra_field"] == "x"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_get_missing_returns_none(sqlite_store: SqlDocumentStore) -> None:
    assert await sqlite_store.get("3DO-NOPE00") is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_duplicate_id_rejected(sqlite_store: SqlDocumentStore) -> None:
    await sqlite_store.create(_document())

    with pytest.raises(ValueError):
        await sqlite_store.create(_document())


@pytest.mark.integration
@pytest.mark.asyncio
async def test_transaction_persists_signature(sqlite_store: SqlDocumentStore) -> None:
    document = _document()
    await sqlite_store.create(document)

    async with sqlite_store.transaction(document.id) as tx:
        assert tx.document is not None
        updated = tx.document.model_copy(deep=True)
        signer = updated.signers[1]
        signer.signed = True
        signer.signed_at = CREATED
        signer.signature_data = SignatureData(kind=SignatureKind.typed, payload="Trần Thị B")
        signer.content_hash = "sha256:abc"
        updated.refresh_status()
        await tx.save(updated)

    loaded = await sqlite_store.get(document.id)
    assert loaded is not None
    assert loaded.status == DocumentStatus.partially_signed
    assert [s.id for s in loaded.signers] == ["signer-1", "signer-2"]
    assert loaded.signers[1].signature_data == SignatureData(
        kind=SignatureKind.typed, payload="Trần Thị B"
    )
    assert loaded.signers[1].signed_at == CREATED


@pytest.mark.integration
@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(sqlite_store: SqlDocumentStore) -> None:
    document = _document()
    await sqlite_store.create(document)

    with pytest.raises(RuntimeError):
        async with sqlite_store.transaction(document.id) as tx:
            assert tx.document is not None
            await tx.save(tx.document.model_copy(update={"title": "Đổi tên"}))
            raise RuntimeError("abort")

    loaded = await sqlite_store.get(document.id)
    assert loaded is not None
    assert loaded.title == "Hợp đồng"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_transaction_on_missing_document(sqlite_store: SqlDocumentStore) -> None:
    async with sqlite_store.transaction("3DO-NOPE00") as tx:
        assert tx.document is None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_ping(sqlite_store: SqlDocumentStore) -> None:
    assert await sqlite_store.ping() is True


@pytest.mark.integration
@pytest.mark.asyncio
async def test_signing_service_over_sql_store(
    sqlite_store: SqlDocumentStore, contract_request: DocumentCreate
) -> None:
    service = SigningService(sqlite_store)
    document = await service.create_document(contract_request)

    results = await asyncio.gather(
        *[service.submit_signature(document.id, "signer-1", STROKES, False) for _ in range(4)]
    )
    outcomes = [r.outcome for r in results]
    assert outcomes.count(SignOutcome.signed) == 1

    final = await service.submit_signature(document.id, "signer-2", {"text": "Trần Thị B"}, False)
    assert final.document.status == DocumentStatus.signed

    view = await service.get_document(document.id)
    assert view.hash_verification.is_valid
    assert view.signed_at is not None
