"""Document endpoints: create, read, edit, sign, track views and export."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Response, status
from pydantic import BaseModel

from backend.esign.api.auth import require_authenticated
from backend.esign.api.deps import (
    enforce_rate_limit,
    get_app_settings,
    get_exporter,
    get_signing_service,
)
from backend.esign.api.errors import invalid_input, to_http_exception
from backend.esign.config import Settings
from backend.esign.db.context import RequestContext
from backend.esign.models.document import Document, DocumentView
from backend.esign.models.requests import (
    CaptureExportRequest,
    DocumentCreate,
    DocumentUpdate,
    SignRequest,
)
from backend.esign.pdf.export import PdfExporter, generate_pdf_filename
from backend.esign.pdf.raster import decode_capture
from backend.esign.signatures import codec
from backend.esign.signatures.svg import drawing_to_png, drawing_to_svg
from backend.esign.signing.errors import SigningError, UnknownSignerError
from backend.esign.signing.state_machine import SignOutcome, SigningService
from backend.esign.transform.receipts import document_from_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class SignResponse(BaseModel):
    """Response for POST /documents/{id}/sign."""

    outcome: SignOutcome
    document: Document


def _pdf_response(pdf: bytes, filename: str) -> Response:
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("", response_model=Document, status_code=status.HTTP_201_CREATED)
async def create_document(
    request: DocumentCreate,
    ctx: Annotated[RequestContext, Depends(enforce_rate_limit)],
    _: Annotated[RequestContext, Depends(require_authenticated)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> Document:
    """Create a document in pending state. Requires authentication."""
    try:
        return await service.create_document(request, creator_id=ctx.user_id)
    except ValueError as e:
        raise invalid_input(e) from e


@router.post("/import", response_model=Document, status_code=status.HTTP_201_CREATED)
async def import_document(
    payload: Annotated[dict[str, Any], Body()],
    _: Annotated[RequestContext, Depends(require_authenticated)],
    service: Annotated[SigningService, Depends(get_signing_service)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> Document:
    """Import a document DTO from the upstream backend, keeping its id and signatures.

    Enum fields may be strings or legacy integers.
    """
    try:
        document = document_from_payload(payload, settings.legacy_default_roles)
        return await service.import_document(document)
    except (KeyError, ValueError) as e:
        raise invalid_input(ValueError(str(e))) from e


@router.get("/{document_id}", response_model=DocumentView)
async def get_document(
    document_id: str,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> DocumentView:
    """Get a document with its read-time integrity check."""
    try:
        return await service.get_document(document_id)
    except SigningError as e:
        raise to_http_exception(e) from e


@router.put("/{document_id}", response_model=Document)
async def update_document(
    document_id: str,
    changes: DocumentUpdate,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> Document:
    """Edit title, content or metadata. 409 once anyone has signed."""
    try:
        return await service.update_document(document_id, changes)
    except SigningError as e:
        raise to_http_exception(e) from e


@router.post("/{document_id}/sign", response_model=SignResponse)
async def sign_document(
    document_id: str,
    request: SignRequest,
    ctx: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> SignResponse:
    """Submit a signature for one signer.

    Re-signing an already signed signer returns 200 with outcome
    ``already_signed`` and the unchanged document.
    """
    try:
        result = await service.submit_signature(
            document_id,
            request.signer_id,
            request.signature_data,
            requester_is_authenticated=ctx.is_authenticated,
        )
    except SigningError as e:
        raise to_http_exception(e) from e

    return SignResponse(outcome=result.outcome, document=result.document)


@router.post("/{document_id}/track-view", status_code=status.HTTP_204_NO_CONTENT)
async def track_view(
    document_id: str,
    ctx: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
) -> Response:
    """Record the first non-creator view. Always 204."""
    try:
        await service.track_view(document_id, ctx.user_id)
    except Exception as e:
        logger.warning(f"[views] document_id={document_id} tracking failed: {e}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{document_id}/export-pdf")
async def export_pdf(
    document_id: str,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
    exporter: Annotated[PdfExporter, Depends(get_exporter)],
) -> Response:
    """Render the structured PDF layout."""
    try:
        document = await service.get_document(document_id)
        pdf = await exporter.export(document)
    except SigningError as e:
        raise to_http_exception(e) from e

    return _pdf_response(pdf, generate_pdf_filename(document.kind, document.id, document.title))


@router.post("/{document_id}/export-pdf/capture")
async def export_pdf_capture(
    document_id: str,
    request: CaptureExportRequest,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
    exporter: Annotated[PdfExporter, Depends(get_exporter)],
) -> Response:
    """Paginate a client-captured image of the document into a PDF."""
    try:
        image_bytes = decode_capture(request.image)
    except ValueError as e:
        raise invalid_input(e) from e

    try:
        document = await service.get_document(document_id)
        pdf = await exporter.export_capture(document.id, image_bytes, request.known_width_mm)
    except SigningError as e:
        raise to_http_exception(e) from e

    return _pdf_response(pdf, generate_pdf_filename(document.kind, document.id, document.title))


async def _signer_drawing(
    service: SigningService, document_id: str, signer_id: str, width: float, height: float
) -> codec.SignatureDrawing:
    try:
        document = await service.get_document(document_id)
        signer = document.find_signer(signer_id)
        if signer is None:
            raise UnknownSignerError(f"Signer {signer_id} is not part of document {document_id}")
    except SigningError as e:
        raise to_http_exception(e) from e
    return codec.render(signer.signature_data, width, height)


@router.get("/{document_id}/signers/{signer_id}/signature.svg")
async def signature_svg(
    document_id: str,
    signer_id: str,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
    width: Annotated[float, Query(gt=0, le=2000)] = 200.0,
    height: Annotated[float, Query(gt=0, le=2000)] = 80.0,
) -> Response:
    """Render one signer's signature, or the unsigned placeholder, as SVG."""
    drawing = await _signer_drawing(service, document_id, signer_id, width, height)
    return Response(content=drawing_to_svg(drawing), media_type="image/svg+xml")


@router.get("/{document_id}/signers/{signer_id}/signature.png")
async def signature_png(
    document_id: str,
    signer_id: str,
    _: Annotated[RequestContext, Depends(enforce_rate_limit)],
    service: Annotated[SigningService, Depends(get_signing_service)],
    width: Annotated[float, Query(gt=0, le=2000)] = 200.0,
    height: Annotated[float, Query(gt=0, le=2000)] = 80.0,
) -> Response:
    """Render one signer's signature as a transparent PNG at 2x."""
    drawing = await _signer_drawing(service, document_id, signer_id, width, height)
    return Response(content=drawing_to_png(drawing), media_type="image/png")
