"""Format Transformer: the only place legacy shapes are understood.

Maps the flat legacy receipt and the backend document DTO (integer or string
enums, separate ``signers``/``signatures`` lists) onto the unified Document.
"""

import html
import logging
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from backend.esign.models.common import (
    DocumentKind,
    SigningMode,
    parse_document_kind,
)
from backend.esign.models.document import Document, DocumentMetadata, Signer
from backend.esign.models.receipt import (
    LegacyReceipt,
    LegacySignature,
    LegacySignRequest,
    ReceiptInfo,
)
from backend.esign.models.requests import DocumentCreate, SignerInput
from backend.esign.models.signature import SignatureData
from backend.esign.signatures import codec
from backend.esign.signing.errors import EmptySignatureError
from backend.esign.transform.vietnamese import amount_in_words, parse_date_to_iso

logger = logging.getLogger(__name__)

RECEIPT_TITLE = "GIẤY BIÊN NHẬN TIỀN"
SENDER_ID = "signer-1"
RECEIVER_ID = "signer-2"
SENDER_ROLE = "Người gửi"
RECEIVER_ROLE = "Người nhận"
DEFAULT_CONTRACT_ROLES = ["Bên A", "Bên B"]

_RECEIPT_FIELDS = [
    ("hoTenNguoiNhan", "Họ và tên người nhận"),
    ("donViNguoiNhan", "Đơn vị người nhận"),
    ("hoTenNguoiGui", "Họ và tên người gửi"),
    ("donViNguoiGui", "Đơn vị người gửi"),
    ("lyDoNop", "Lý do nộp"),
]

# Backend DTO receiptInfo keys -> legacy flat keys
_DTO_RECEIPT_KEYS = {
    "receiverName": "hoTenNguoiNhan",
    "receiverAddress": "donViNguoiNhan",
    "senderName": "hoTenNguoiGui",
    "senderAddress": "donViNguoiGui",
    "reason": "lyDoNop",
    "amount": "soTien",
    "location": "diaDiem",
    "date": "ngayThang",
}


def format_amount(amount: int) -> str:
    """Group thousands with dots, Vietnamese style: 1500000 -> 1.500.000."""
    return f"{amount:,}".replace(",", ".")


def receipt_content(info: ReceiptInfo) -> str:
    """Render receipt fields as paragraph markup for the document body."""
    lines = [
        f"<p><b>{label}:</b> {html.escape(getattr(info, key))}</p>"
        for key, label in _RECEIPT_FIELDS
    ]
    words = info.bangChu or amount_in_words(info.soTien)
    lines.append(f"<p><b>Số tiền:</b> {format_amount(info.soTien)} đồng</p>")
    lines.append(f"<p><b>Bằng chữ:</b> {html.escape(words)}</p>")
    return "\n".join(lines)


def _receipt_metadata(info: ReceiptInfo) -> DocumentMetadata:
    filled = info.model_copy(update={"bangChu": info.bangChu or amount_in_words(info.soTien)})
    return DocumentMetadata(
        location=info.diaDiem,
        created_date=info.ngayThang,
        receipt_info=filled.model_dump(),
    )


def receipt_create_request(
    info: ReceiptInfo, signing_mode: SigningMode = SigningMode.public
) -> DocumentCreate:
    """Build a unified create request from flat receipt fields.

    The sender is always ``signer-1`` and the receiver ``signer-2``.
    """
    return DocumentCreate(
        kind=DocumentKind.receipt,
        title=RECEIPT_TITLE,
        content=receipt_content(info),
        metadata=_receipt_metadata(info),
        signing_mode=signing_mode,
        signers=[
            SignerInput(
                id=SENDER_ID,
                role=SENDER_ROLE,
                name=info.hoTenNguoiGui,
                organization=info.donViNguoiGui or None,
            ),
            SignerInput(
                id=RECEIVER_ID,
                role=RECEIVER_ROLE,
                name=info.hoTenNguoiNhan,
                organization=info.donViNguoiNhan or None,
            ),
        ],
    )


def signature_from_legacy(raw: LegacySignature | dict[str, Any] | None) -> SignatureData | None:
    """Convert a stored legacy signature blob.

    Valid blobs are normalized. Blank ones mean "not signed" and yield None.
    Non-blank but malformed blobs are kept verbatim so the renderer can show
    its placeholder instead of silently unsigning the signer.
    """
    if raw is None:
        return None
    if isinstance(raw, LegacySignature):
        raw = raw.model_dump(by_alias=True, exclude_none=True)
    if not isinstance(raw, dict):
        return None

    try:
        return codec.normalize(raw)
    except EmptySignatureError:
        data = raw.get("data", raw.get("payload"))
        kind = raw.get("type", raw.get("kind"))
        if not isinstance(data, str) or not data.strip():
            return None
        logger.warning(f"[transform] keeping malformed legacy signature kind={kind}")
        try:
            return SignatureData(
                kind=kind,
                payload=data,
                font_family=raw.get("fontFamily"),
                color=raw.get("color"),
            )
        except ValueError:
            return None


def _ms_to_datetime(value: int | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _datetime_to_ms(value: datetime | None) -> int | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _signer_from_legacy(
    signer_id: str,
    role: str,
    name: str,
    organization: str,
    raw: LegacySignature | None,
    signed_at: datetime | None,
) -> Signer:
    signature = signature_from_legacy(raw)
    return Signer(
        id=signer_id,
        role=role,
        name=name,
        organization=organization or None,
        signed=signature is not None,
        signed_at=signed_at if signature is not None else None,
        signature_data=signature,
    )


def receipt_to_document(receipt: LegacyReceipt) -> Document:
    """Convert a persisted legacy receipt to the unified Document.

    The legacy ``status`` is ignored; status is re-derived from signatures.
    Imported signatures carry no content fingerprint.
    """
    info = receipt.info
    created_at = _ms_to_datetime(receipt.createdAt)
    signed_at = _ms_to_datetime(receipt.signedAt) or created_at

    signers = [
        _signer_from_legacy(
            SENDER_ID,
            SENDER_ROLE,
            info.hoTenNguoiGui,
            info.donViNguoiGui,
            receipt.signatureDataNguoiGui,
            signed_at,
        ),
        _signer_from_legacy(
            RECEIVER_ID,
            RECEIVER_ROLE,
            info.hoTenNguoiNhan,
            info.donViNguoiNhan,
            receipt.signatureDataNguoiNhan,
            signed_at,
        ),
    ]

    creator_id = _parse_uuid(receipt.userId)
    document = Document(
        id=receipt.id,
        kind=DocumentKind.receipt,
        title=RECEIPT_TITLE,
        content=receipt_content(info),
        metadata=_receipt_metadata(info),
        signers=signers,
        creator_id=creator_id,
        created_at=created_at,
        signed_at=_ms_to_datetime(receipt.signedAt),
        viewed_at=_ms_to_datetime(receipt.viewedAt),
    )
    if document.status != receipt.status:
        logger.info(
            f"[transform] receipt_id={receipt.id} legacy status={receipt.status.value} "
            f"re-derived as {document.status.value}"
        )
    return document


def _legacy_signature(signer: Signer | None) -> LegacySignature | None:
    if signer is None or signer.signature_data is None:
        return None
    data = signer.signature_data
    return LegacySignature(
        type="draw" if data.kind.value == "draw" else "type",
        data=data.payload,
        font_family=data.font_family,
        color=data.color,
    )


def document_to_receipt(document: Document) -> LegacyReceipt:
    """Project a receipt Document back onto the flat legacy shape."""
    sender = document.find_signer(SENDER_ID) or document.signers[0]
    receiver = document.find_signer(RECEIVER_ID)
    if receiver is None and len(document.signers) > 1:
        receiver = document.signers[1]

    stored = (document.metadata.model_extra or {}).get("receipt_info")
    if isinstance(stored, dict):
        info = ReceiptInfo.model_validate(stored)
    else:
        info = ReceiptInfo(
            hoTenNguoiGui=sender.name,
            donViNguoiGui=sender.organization or "",
            hoTenNguoiNhan=receiver.name if receiver else "",
            donViNguoiNhan=(receiver.organization or "") if receiver else "",
            ngayThang=document.metadata.created_date,
            diaDiem=document.metadata.location,
        )

    return LegacyReceipt(
        id=document.id,
        info=info,
        signatureDataNguoiGui=_legacy_signature(sender),
        signatureDataNguoiNhan=_legacy_signature(receiver),
        status=document.status,
        createdAt=_datetime_to_ms(document.created_at),
        signedAt=_datetime_to_ms(document.signed_at),
        viewedAt=_datetime_to_ms(document.viewed_at),
        userId=str(document.creator_id) if document.creator_id else None,
    )


def legacy_sign_target(request: LegacySignRequest) -> tuple[str, dict[str, Any] | None]:
    """Pick signer id and signature from a legacy sign body.

    The sender field wins when both are present. Without an explicit
    ``signerId`` the field used decides the signer.
    """
    if request.signatureDataNguoiGui is not None:
        raw, implied = request.signatureDataNguoiGui, SENDER_ID
    elif request.signatureDataNguoiNhan is not None:
        raw, implied = request.signatureDataNguoiNhan, RECEIVER_ID
    else:
        return request.signerId or SENDER_ID, None
    return request.signerId or implied, raw.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Backend document DTO ingress
# ---------------------------------------------------------------------------


def _parse_instant(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unrecognized timestamp: {value!r}")


def _parse_uuid(value: Any) -> UUID | None:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        logger.warning(f"[transform] ignoring non-uuid creator id={value!r}")
        return None


def receipt_info_from_dto(dto: dict[str, Any]) -> ReceiptInfo:
    """Map backend ``receiptInfo`` (English keys) onto legacy flat fields."""
    fields: dict[str, Any] = {}
    for dto_key, legacy_key in _DTO_RECEIPT_KEYS.items():
        value = dto.get(dto_key)
        if value is None:
            continue
        if legacy_key == "soTien":
            try:
                value = int(float(value))
            except (TypeError, OverflowError) as e:
                raise ValueError(f"Invalid amount: {value!r}") from e
        fields[legacy_key] = value
    if "soTien" in fields:
        fields["bangChu"] = amount_in_words(fields["soTien"])
    return ReceiptInfo(**fields)


def _metadata_from_dto(raw: dict[str, Any]) -> DocumentMetadata:
    fields = {k: v for k, v in raw.items() if k not in ("contractNumber", "contractDate")}
    if "contractNumber" in raw:
        fields["contract_number"] = raw["contractNumber"]
    fields["location"] = raw.get("location") or ""
    contract_date = raw.get("contractDate")
    if isinstance(contract_date, str) and contract_date:
        iso = parse_date_to_iso(contract_date)
        if iso:
            parsed = date.fromisoformat(iso[:10])
            fields["created_date"] = f"{parsed.day:02d}/{parsed.month:02d}/{parsed.year}"
        else:
            fields["created_date"] = contract_date
    return DocumentMetadata(**fields)


def _object(value: Any, label: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{label} must be an object")
    return value


def _object_list(value: Any, label: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        raise ValueError(f"{label} must be a list of objects")
    return value


def _text(value: Any, label: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")
    return value


def _signed_from_signature(
    signer_id: str, role: str, name: str, email: str | None, signature: dict[str, Any]
) -> Signer:
    data = signature_from_legacy(signature.get("signatureData"))
    return Signer(
        id=signer_id,
        role=role,
        name=signature.get("signerName") or name,
        email=signature.get("signerEmail") or email or None,
        signed=True,
        signed_at=_parse_instant(signature.get("signedAt")),
        signature_data=data,
    )


def _merge_signers(raw_signers: list[dict[str, Any]], signatures: list[dict[str, Any]]) -> list[Signer]:
    by_id = {s["signerId"]: s for s in signatures if _text(s.get("signerId"), "signerId")}
    by_role = {_text(s.get("signerRole"), "signerRole").lower(): s for s in signatures}

    signers: list[Signer] = []
    for index, raw in enumerate(raw_signers, start=1):
        signer_id = _text(raw.get("id"), "signer id") or f"signer-{index}"
        role = _text(raw.get("role"), "signer role")
        signature = by_id.get(signer_id) or by_role.get(role.lower())
        if signature is not None:
            signers.append(
                _signed_from_signature(signer_id, role, raw.get("name") or "", raw.get("email"), signature)
            )
        else:
            signers.append(
                Signer(
                    id=signer_id,
                    role=role,
                    name=raw.get("name") or "",
                    email=raw.get("email") or None,
                )
            )
    return signers


def _signers_from_signatures(signatures: list[dict[str, Any]], roles: list[str]) -> list[Signer]:
    """Rebuild signers for old documents that only stored signatures."""
    used: set[int] = set()
    signers: list[Signer] = []

    for index, role in enumerate(roles):
        match: int | None = None
        for pos, signature in enumerate(signatures):
            if pos in used:
                continue
            sig_role = _text(signature.get("signerRole"), "signerRole").lower()
            if sig_role == role.lower() or (sig_role == "signer" and pos == index):
                match = pos
                break
        if match is None:
            match = next((pos for pos in range(len(signatures)) if pos not in used), None)

        if match is None:
            signers.append(Signer(id=f"signer-{index + 1}", role=role))
            continue

        used.add(match)
        signature = signatures[match]
        signers.append(
            _signed_from_signature(
                signature.get("signerId") or f"signer-{index + 1}",
                signature.get("signerRole") or role,
                "",
                None,
                signature,
            )
        )
    return signers


def document_from_payload(
    payload: dict[str, Any], default_roles: list[str] | None = None
) -> Document:
    """Parse a backend document DTO into the unified Document.

    Signers are merged with signatures by signer id, falling back to role.
    Payloads with no signer list get one signer per default role.

    Raises:
        ValueError: On unrecognized enum values or an invalid document
    """
    kind = parse_document_kind(payload.get("type", payload.get("kind")))
    signatures = _object_list(payload.get("signatures"), "signatures")
    raw_signers = _object_list(payload.get("signers"), "signers")

    if raw_signers:
        signers = _merge_signers(raw_signers, signatures)
    else:
        roles = (
            [SENDER_ROLE, RECEIVER_ROLE]
            if kind == DocumentKind.receipt
            else (default_roles or DEFAULT_CONTRACT_ROLES)
        )
        signers = _signers_from_signatures(signatures, roles)

    metadata = _metadata_from_dto(_object(payload.get("metadata"), "metadata"))
    if isinstance(payload.get("receiptInfo"), dict):
        info = receipt_info_from_dto(payload["receiptInfo"])
        metadata = DocumentMetadata(**{**metadata.model_dump(), "receipt_info": info.model_dump()})

    title = payload.get("title") or (RECEIPT_TITLE if kind == DocumentKind.receipt else "")
    return Document(
        id=payload["id"],
        kind=kind,
        title=title,
        content=payload.get("content") or "",
        metadata=metadata,
        signing_mode=payload.get("signingMode", SigningMode.public),
        status=payload.get("status", 0),
        signers=signers,
        creator_id=_parse_uuid(_object(payload.get("creator"), "creator").get("id")),
        created_at=_parse_instant(payload.get("createdAt")) or datetime.now(timezone.utc),
        signed_at=_parse_instant(payload.get("signedAt")),
        viewed_at=_parse_instant(payload.get("viewedAt")),
    )
