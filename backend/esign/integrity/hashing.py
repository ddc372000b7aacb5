"""Content fingerprinting and read-time tamper detection."""

import hashlib
import json
import logging
import re
from typing import Any

from backend.esign.models.document import Document, HashVerification

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def signable_content(document: Document) -> dict[str, Any]:
    """Fields covered by the fingerprint.

    Signers, status and timestamps change during signing and are excluded.
    """
    return {
        "title": _collapse(document.title),
        "content": _collapse(document.content),
        "metadata": document.metadata.model_dump(mode="json"),
    }


def compute_fingerprint(document: Document) -> str:
    """SHA-256 over canonical JSON of the signable content.

    Returns:
        Hex digest prefixed with the algorithm, e.g. ``sha256:3b7c...``
    """
    canonical = json.dumps(
        signable_content(document), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def verify_document(document: Document) -> HashVerification:
    """Compare each signer's stored fingerprint with the current content.

    Signers without a stored fingerprint (imported legacy signatures) are
    skipped. The result is advisory and never blocks reads or exports.
    """
    current = compute_fingerprint(document)
    checked = 0
    mismatched: list[str] = []

    for signer in document.signers:
        if not signer.signed or signer.content_hash is None:
            continue
        checked += 1
        if signer.content_hash != current:
            mismatched.append(signer.id)

    if mismatched:
        logger.warning(
            f"[integrity] document_id={document.id} content changed after signing "
            f"mismatched={','.join(mismatched)}"
        )
        return HashVerification(
            is_valid=False,
            message="Document content changed after it was signed",
            mismatched_signatures=mismatched,
        )

    if checked == 0:
        return HashVerification(is_valid=True, message="No signatures to verify")
    return HashVerification(is_valid=True, message="All signatures match current content")
