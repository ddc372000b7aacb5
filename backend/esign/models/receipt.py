"""Legacy flat receipt shape, kept only for the Format Transformer."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.esign.models.common import DocumentStatus, SigningMode, parse_signing_mode, parse_status


class ReceiptInfo(BaseModel):
    """Flat receipt fields as older clients send them."""

    model_config = ConfigDict(extra="ignore")

    hoTenNguoiNhan: str = ""
    hoTenNguoiGui: str = ""
    donViNguoiNhan: str = ""
    donViNguoiGui: str = ""
    lyDoNop: str = ""
    soTien: int = 0
    bangChu: str = ""
    ngayThang: str = ""
    diaDiem: str = ""


class LegacySignature(BaseModel):
    """Legacy signature blob: ``{type, data, fontFamily?, color?}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    data: str
    font_family: str | None = Field(None, alias="fontFamily")
    color: str | None = None


class LegacyReceipt(BaseModel):
    """Persisted legacy receipt record.

    Timestamps are epoch milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    info: ReceiptInfo
    signatureDataNguoiGui: LegacySignature | None = None
    signatureDataNguoiNhan: LegacySignature | None = None
    status: DocumentStatus = DocumentStatus.pending
    createdAt: int
    signedAt: int | None = None
    viewedAt: int | None = None
    userId: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> DocumentStatus:
        return parse_status(value)


class LegacySignRequest(BaseModel):
    """Legacy sign body; either field may carry the signature."""

    signatureDataNguoiGui: LegacySignature | None = None
    signatureDataNguoiNhan: LegacySignature | None = None
    signerId: str | None = None


class LegacyReceiptCreate(BaseModel):
    """Legacy create body: flat receipt fields plus the signing mode."""

    info: ReceiptInfo
    signingMode: SigningMode = SigningMode.public

    @field_validator("signingMode", mode="before")
    @classmethod
    def _parse_mode(cls, value: Any) -> SigningMode:
        return parse_signing_mode(value)
