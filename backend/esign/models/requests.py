"""Request bodies accepted by the signing API."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from backend.esign.models.common import (
    DocumentKind,
    SigningMode,
    parse_document_kind,
    parse_signing_mode,
)
from backend.esign.models.document import DocumentMetadata


class SignerInput(BaseModel):
    """Signer as supplied at creation; id defaults to ``signer-N`` by position."""

    id: str | None = None
    role: str = Field(..., min_length=1)
    name: str = ""
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    organization: str | None = None
    id_number: str | None = Field(None, validation_alias=AliasChoices("id_number", "idNumber"))
    address: str | None = None


class DocumentCreate(BaseModel):
    """Create a receipt or contract."""

    kind: DocumentKind = Field(..., validation_alias=AliasChoices("kind", "type"))
    title: str = ""
    content: str = ""
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    signing_mode: SigningMode = Field(
        SigningMode.public, validation_alias=AliasChoices("signing_mode", "signingMode")
    )
    signers: list[SignerInput] = Field(..., min_length=1)

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> DocumentKind:
        return parse_document_kind(value)

    @field_validator("signing_mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> SigningMode:
        return parse_signing_mode(value)


class DocumentUpdate(BaseModel):
    """Edit signable content. Signers, kind, mode and status are not editable."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    content: str | None = None
    metadata: DocumentMetadata | None = None


class SignRequest(BaseModel):
    """Submit a signature for one signer.

    ``signature_data`` is passed to the codec as-is, so any of its accepted
    shapes (canonical, legacy ``{type, data}``, strokes, typed text) work.
    """

    signer_id: str | None = Field(None, validation_alias=AliasChoices("signer_id", "signerId"))
    signature_data: dict[str, Any] | None = Field(
        None, validation_alias=AliasChoices("signature_data", "signatureData")
    )


class CaptureExportRequest(BaseModel):
    """Client-captured page image to paginate into a PDF."""

    image: str = Field(..., min_length=1, description="Base64 PNG/JPEG or data URL")
    known_width_mm: float = Field(210.0, gt=0)
