"""Request schemas for OTP endpoints."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator


class SendOtpRequest(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=r"^\d{6}$")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class VerifyAdminOtpRequest(BaseModel):
    otp: str = Field(..., pattern=r"^\d{6}$")
