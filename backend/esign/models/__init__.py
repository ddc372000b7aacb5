"""Models package - re-exports for convenience."""

from backend.esign.models.common import (
    DocumentKind,
    DocumentStatus,
    SignatureKind,
    SigningMode,
    parse_document_kind,
    parse_signature_kind,
    parse_signing_mode,
    parse_status,
)
from backend.esign.models.document import (
    Document,
    DocumentMetadata,
    DocumentView,
    HashVerification,
    Signer,
    derive_status,
    new_document_id,
)
from backend.esign.models.receipt import (
    LegacyReceipt,
    LegacyReceiptCreate,
    LegacySignature,
    LegacySignRequest,
    ReceiptInfo,
)
from backend.esign.models.requests import (
    CaptureExportRequest,
    DocumentCreate,
    DocumentUpdate,
    SignerInput,
    SignRequest,
)
from backend.esign.models.signature import (
    DrawnSignatureInput,
    SignatureData,
    SignaturePoint,
    TypedSignatureInput,
)

__all__ = [
    # Common
    "DocumentKind",
    "DocumentStatus",
    "SignatureKind",
    "SigningMode",
    "parse_document_kind",
    "parse_signature_kind",
    "parse_signing_mode",
    "parse_status",
    # Document
    "Document",
    "DocumentMetadata",
    "DocumentView",
    "HashVerification",
    "Signer",
    "derive_status",
    "new_document_id",
    # Signature
    "SignatureData",
    "SignaturePoint",
    "DrawnSignatureInput",
    "TypedSignatureInput",
    # Requests
    "CaptureExportRequest",
    "DocumentCreate",
    "DocumentUpdate",
    "SignerInput",
    "SignRequest",
    # Legacy receipt
    "LegacyReceipt",
    "LegacyReceiptCreate",
    "LegacySignature",
    "LegacySignRequest",
    "ReceiptInfo",
]
