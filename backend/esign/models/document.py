"""Unified Document / Signer domain models."""

import secrets
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from backend.esign.models.common import (
    DocumentKind,
    DocumentStatus,
    SigningMode,
    parse_document_kind,
    parse_signing_mode,
    parse_status,
)
from backend.esign.models.signature import SignatureData

_ID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def new_document_id() -> str:
    """Generate an opaque document id like ``3DO-7K2Q9A``."""
    return "3DO-" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))


class DocumentMetadata(BaseModel):
    """Document metadata: well-known keys plus free-form extras."""

    model_config = ConfigDict(extra="allow")

    location: str = ""
    created_date: str = ""
    contract_number: str | None = None


class Signer(BaseModel):
    """A party that must sign before the document is complete."""

    id: str = Field(..., min_length=1)
    role: str
    name: str = ""
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    organization: str | None = None
    id_number: str | None = None
    address: str | None = None
    signed: bool = False
    signed_at: datetime | None = None
    signature_data: SignatureData | None = None
    content_hash: str | None = None  # fingerprint of signable content at signing time

    @model_validator(mode="after")
    def _unsigned_has_no_signature(self) -> "Signer":
        if not self.signed and (self.signature_data is not None or self.signed_at is not None):
            raise ValueError(f"Signer {self.id} carries signature fields but is not signed")
        return self


def derive_status(signers: list[Signer]) -> DocumentStatus:
    """Derive document status from its signers."""
    signed_count = sum(1 for s in signers if s.signed)
    if signers and signed_count == len(signers):
        return DocumentStatus.signed
    if signed_count > 0:
        return DocumentStatus.partially_signed
    return DocumentStatus.pending


class Document(BaseModel):
    """Receipt or contract being signed.

    ``status`` is always re-derived from ``signers`` on construction, so a
    Document can never hold a status that disagrees with its signers.
    ``signed_at`` only exists once every signer has signed.
    """

    id: str
    kind: DocumentKind
    title: str = ""
    content: str = ""
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    signing_mode: SigningMode = SigningMode.public
    status: DocumentStatus = DocumentStatus.pending
    signers: list[Signer] = Field(..., min_length=1)
    creator_id: UUID | None = None
    created_at: datetime
    signed_at: datetime | None = None
    viewed_at: datetime | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> DocumentKind:
        return parse_document_kind(value)

    @field_validator("signing_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> SigningMode:
        return parse_signing_mode(value)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> DocumentStatus:
        return parse_status(value)

    @model_validator(mode="after")
    def _check_signers(self) -> "Document":
        ids = [s.id for s in self.signers]
        if len(ids) != len(set(ids)):
            raise ValueError("Signer ids must be unique within a document")
        self.status = derive_status(self.signers)
        if self.status != DocumentStatus.signed:
            self.signed_at = None
        return self

    def find_signer(self, signer_id: str) -> Signer | None:
        """Look up a signer by id."""
        for signer in self.signers:
            if signer.id == signer_id:
                return signer
        return None

    def refresh_status(self) -> DocumentStatus:
        """Recompute status after a signer changed."""
        self.status = derive_status(self.signers)
        return self.status


class HashVerification(BaseModel):
    """Read-time integrity check result."""

    is_valid: bool
    message: str | None = None
    mismatched_signatures: list[str] = Field(default_factory=list)


class DocumentView(Document):
    """Document as returned to readers, with its integrity check attached."""

    hash_verification: HashVerification
