"""Request/response schemas for redemption claims."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TEXT_FIELDS = ("ticket_user_name", "gc_code", "gc_phone", "ticket_number", "upi_id", "proof_video_url")


class SubmissionCreateRequest(BaseModel):
    """A new claim. Any status sent by the client is ignored; claims start as pending."""

    ticket_user_name: str = Field(..., min_length=1, max_length=255)
    gc_code: str = Field(..., min_length=1, max_length=255)
    gc_phone: str = Field(..., min_length=1, max_length=255)
    ticket_number: str = Field(..., min_length=1, max_length=255)
    upi_id: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    proof_video_url: str = Field(..., min_length=1)

    @field_validator(*_TEXT_FIELDS)
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v


class StatusUpdateRequest(BaseModel):
    # Membership is checked by parse_status, which lists the allowed values.
    status: str


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    ticket_user_name: str
    gc_code: str
    gc_phone: str
    ticket_number: str
    upi_id: str
    amount: Decimal
    proof_video_url: str
    status: str
    created_at: datetime
    updated_at: datetime
    user_email: str | None = None
