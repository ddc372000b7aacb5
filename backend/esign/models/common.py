"""Common enums shared across all models, with the ingress parsers for them.

Legacy clients send enum values either as strings (in several spellings) or as
integers. Every such value is parsed exactly once at the boundary; anything
unrecognized is rejected rather than mapped to a default.
"""

from enum import Enum
from typing import Any


class DocumentKind(str, Enum):
    """Kind of signable document."""

    receipt = "receipt"
    contract = "contract"


class SigningMode(str, Enum):
    """Who may submit a signature."""

    public = "Public"
    required_login = "RequiredLogin"


class DocumentStatus(str, Enum):
    """Signing progress, derived from the signers."""

    pending = "pending"
    partially_signed = "partially_signed"
    signed = "signed"


class SignatureKind(str, Enum):
    """How a signature was captured."""

    draw = "draw"
    typed = "typed"


_KIND_INTS = {0: DocumentKind.receipt, 1: DocumentKind.contract}
_MODE_INTS = {0: SigningMode.public, 1: SigningMode.required_login}
_STATUS_INTS = {
    0: DocumentStatus.pending,
    1: DocumentStatus.partially_signed,
    2: DocumentStatus.signed,
}

_STATUS_NAMES = {
    "pending": DocumentStatus.pending,
    "partiallysigned": DocumentStatus.partially_signed,
    "partially_signed": DocumentStatus.partially_signed,
    "signed": DocumentStatus.signed,
}
_SIGNATURE_KIND_NAMES = {
    "draw": SignatureKind.draw,
    "typed": SignatureKind.typed,
    "type": SignatureKind.typed,
}


def _parse(value: Any, ints: dict[int, Any], names: dict[str, Any], label: str) -> Any:
    if isinstance(value, Enum):
        value = value.value
    # bool is an int subclass; never accept it as an enum ordinal
    if isinstance(value, int) and not isinstance(value, bool):
        if value in ints:
            return ints[value]
    elif isinstance(value, str):
        key = value.strip().lower()
        if key in names:
            return names[key]
    raise ValueError(f"Unrecognized {label}: {value!r}")


def parse_document_kind(value: Any) -> DocumentKind:
    """Parse a document kind from its string or legacy integer form."""
    return _parse(value, _KIND_INTS, {k.value: k for k in DocumentKind}, "document kind")


def parse_signing_mode(value: Any) -> SigningMode:
    """Parse a signing mode from its string or legacy integer form."""
    return _parse(
        value,
        _MODE_INTS,
        {"public": SigningMode.public, "requiredlogin": SigningMode.required_login},
        "signing mode",
    )


def parse_status(value: Any) -> DocumentStatus:
    """Parse a document status from its string or legacy integer form."""
    return _parse(value, _STATUS_INTS, _STATUS_NAMES, "document status")


def parse_signature_kind(value: Any) -> SignatureKind:
    """Parse a signature kind; the legacy ``type`` spelling means typed."""
    return _parse(value, {}, _SIGNATURE_KIND_NAMES, "signature kind")
