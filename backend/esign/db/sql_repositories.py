"""SQL implementation of the document store."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import selectinload

from backend.esign.db.engine import create_session_factory
from backend.esign.db.locks import KeyedLocks
from backend.esign.db.models import Base, DocumentRow, SignerRow
from backend.esign.models.document import Document, Signer
from backend.esign.models.signature import SignatureData

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # sqlite drops tzinfo; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _signer_from_row(row: SignerRow) -> Signer:
    return Signer(
        id=row.signer_id,
        role=row.role,
        name=row.name,
        email=row.email,
        phone=row.phone,
        position=row.position,
        organization=row.organization,
        id_number=row.id_number,
        address=row.address,
        signed=row.signed,
        signed_at=_aware(row.signed_at),
        signature_data=SignatureData.model_validate(row.signature_data) if row.signature_data else None,
        content_hash=row.content_hash,
    )


def document_from_row(row: DocumentRow) -> Document:
    """Convert an ORM row (with signers loaded) to a Document."""
    return Document(
        id=row.id,
        kind=row.kind,
        title=row.title,
        content=row.content,
        metadata=row.metadata_,
        signing_mode=row.signing_mode,
        signers=[_signer_from_row(s) for s in row.signers],
        creator_id=row.creator_id,
        created_at=_aware(row.created_at),
        signed_at=_aware(row.signed_at),
        viewed_at=_aware(row.viewed_at),
    )


def _apply_signer(row: SignerRow, signer: Signer, seq: int) -> None:
    row.seq = seq
    row.role = signer.role
    row.name = signer.name
    row.email = signer.email
    row.phone = signer.phone
    row.position = signer.position
    row.organization = signer.organization
    row.id_number = signer.id_number
    row.address = signer.address
    row.signed = signer.signed
    row.signed_at = signer.signed_at
    row.signature_data = signer.signature_data.model_dump(mode="json") if signer.signature_data else None
    row.content_hash = signer.content_hash


def apply_document(row: DocumentRow, document: Document) -> None:
    """Copy a Document's state onto its ORM row, updating signers in place."""
    row.kind = document.kind.value
    row.title = document.title
    row.content = document.content
    row.metadata_ = document.metadata.model_dump(mode="json")
    row.signing_mode = document.signing_mode.value
    row.status = document.status.value
    row.creator_id = document.creator_id
    row.created_at = document.created_at
    row.signed_at = document.signed_at
    row.viewed_at = document.viewed_at

    existing = {s.signer_id: s for s in row.signers}
    ordered: list[SignerRow] = []
    for seq, signer in enumerate(document.signers):
        signer_row = existing.get(signer.id) or SignerRow(document_id=document.id, signer_id=signer.id)
        _apply_signer(signer_row, signer, seq)
        ordered.append(signer_row)
    row.signers = ordered


class SqlTransaction:
    """Transaction over one locked document row."""

    def __init__(self, session: AsyncSession, row: DocumentRow | None) -> None:
        self._session = session
        self._row = row
        self.document = document_from_row(row) if row is not None else None

    async def save(self, document: Document) -> None:
        """Write the new state into the row; committed when the scope exits cleanly."""
        if self._row is None:
            raise ValueError(f"Document {document.id} does not exist")
        apply_document(self._row, document)
        await self._session.flush()


class SqlDocumentStore:
    """SQL implementation of DocumentStore.

    Read-modify-write scopes take a process-local lock and a row lock
    (``SELECT ... FOR UPDATE``) so concurrent workers on a shared Postgres
    serialize too.
    """

    def __init__(self, engine: AsyncEngine, create_tables: bool = False) -> None:
        """Initialize store.

        Args:
            engine: Async SQLAlchemy engine
            create_tables: Create the schema on open (sqlite/dev); otherwise
                alembic owns the schema
        """
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._create_tables = create_tables
        self._locks = KeyedLocks()

    async def open(self) -> None:
        """Create the schema when asked to."""
        if self._create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("[db] schema created")

    async def close(self) -> None:
        """Dispose of pooled connections."""
        await self._engine.dispose()

    async def ping(self) -> bool:
        """Check database connectivity with SELECT 1."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"[db] ping failed: {e}")
            return False

    async def create(self, document: Document) -> None:
        """Insert a new document.

        Raises:
            ValueError: If a document with the same id exists
        """
        row = DocumentRow(id=document.id)
        apply_document(row, document)
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
        except IntegrityError as e:
            raise ValueError(f"Document {document.id} already exists") from e

    async def get(self, document_id: str) -> Document | None:
        """Get document by ID."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentRow)
                .where(DocumentRow.id == document_id)
                .options(selectinload(DocumentRow.signers))
            )
            row = result.scalar_one_or_none()
            return document_from_row(row) if row is not None else None

    @asynccontextmanager
    async def transaction(self, document_id: str) -> AsyncIterator[SqlTransaction]:
        """Serialize read-modify-write on one document row."""
        async with self._locks.hold(document_id):
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    select(DocumentRow)
                    .where(DocumentRow.id == document_id)
                    .options(selectinload(DocumentRow.signers))
                    .with_for_update()
                )
                yield SqlTransaction(session, result.scalar_one_or_none())
