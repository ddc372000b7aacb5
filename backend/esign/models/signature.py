"""Signature capture models."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from backend.esign.models.common import SignatureKind, parse_signature_kind


class SignaturePoint(BaseModel):
    """One sampled pointer position."""

    x: float
    y: float
    t: float | None = Field(None, validation_alias=AliasChoices("t", "time"))
    color: str | None = None


class DrawnSignatureInput(BaseModel):
    """Raw freehand input: strokes in capture order."""

    strokes: list[list[SignaturePoint]]
    color: str | None = None


class TypedSignatureInput(BaseModel):
    """Raw typed input."""

    text: str
    font_family: str | None = None
    color: str | None = None


class SignatureData(BaseModel):
    """Normalized, re-renderable signature.

    Wire shape: ``{kind, payload, fontFamily?, color?}``. For ``draw`` the
    payload is a JSON array of strokes of ``{x, y, t}`` points; for ``typed``
    it is the literal text.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: SignatureKind
    payload: str
    font_family: str | None = Field(None, alias="fontFamily")
    color: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> SignatureKind:
        return parse_signature_kind(value)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the persisted/transmitted wire shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
