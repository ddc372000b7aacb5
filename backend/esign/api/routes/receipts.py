"""Legacy receipt endpoints.

Older clients speak the flat receipt shape. Everything is translated at
this boundary and handled by the same SigningService as documents.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from backend.esign.api.deps import enforce_rate_limit, get_signing_service
from backend.esign.api.errors import invalid_input, to_http_exception
from backend.esign.db.context import RequestContext
from backend.esign.models.common import DocumentKind
from backend.esign.models.receipt import LegacyReceipt, LegacyReceiptCreate, LegacySignRequest
from backend.esign.signing.errors import DocumentNotFoundError, SigningError
from backend.esign.signing.state_machine import SigningService
from backend.esign.transform.receipts import (
    document_to_receipt,
    legacy_sign_target,
    receipt_create_request,
)

router = APIRouter(prefix="/receipts", tags=["receipts"])


async def _load_receipt(service: SigningService, receipt_id: str) -> LegacyReceipt:
    document = await service.get_document(receipt_id)
    if document.kind != DocumentKind.receipt:
        raise DocumentNotFoundError(f"Receipt {receipt_id} not found")
    return document_to_receipt(document)


@router.post("", response_model=LegacyReceipt, status_code=status.HTTP_201_CREATED)
async def create_receipt(
    request: LegacyReceiptCreate,
    ctx: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> LegacyReceipt:
    """Create a receipt from flat fields; sender and receiver become its signers."""
    try:
        document = await service.create_document(
            receipt_create_request(request.info, request.signingMode), creator_id=ctx.user_id
        )
    except ValueError as e:
        raise invalid_input(e) from e
    return document_to_receipt(document)


@router.get("/{receipt_id}", response_model=LegacyReceipt)
async def get_receipt(
    receipt_id: str,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> LegacyReceipt:
    """Get a receipt in the flat legacy shape."""
    try:
        return await _load_receipt(service, receipt_id)
    except SigningError as e:
        raise to_http_exception(e) from e


@router.post("/{receipt_id}/sign", response_model=LegacyReceipt)
async def sign_receipt(
    receipt_id: str,
    request: LegacySignRequest,
    ctx: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> LegacyReceipt:
    """Sign as sender or receiver, depending on which signature field is set."""
    signer_id, signature_data = legacy_sign_target(request)
    try:
        await _load_receipt(service, receipt_id)
        result = await service.submit_signature(
            receipt_id,
            signer_id,
            signature_data,
            requester_is_authenticated=ctx.is_authenticated,
        )
    except SigningError as e:
        raise to_http_exception(e) from e
    return document_to_receipt(result.document)
