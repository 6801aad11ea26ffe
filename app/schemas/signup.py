"""Pydantic schemas for signup / email verification."""

import re
import uuid
from typing import Any

from pydantic import BaseModel, Field, field_validator

_EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not _EMAIL_PATTERN.match(v):
        raise ValueError("Invalid email address")
    return v


class SignupRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=8, max_length=128)
    profile: dict[str, Any] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)

    def to_candidate(self) -> dict[str, Any]:
        return {"email": self.email, "password": self.password, "profile": self.profile}


class SignupResponse(BaseModel):
    message: str = "Verification email sent. Check your inbox."


class ResendRequest(BaseModel):
    email: str = Field(..., max_length=320)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class ResendResponse(BaseModel):
    message: str = "A new verification email has been sent."


class VerifyEmailResponse(BaseModel):
    message: str = "Email verified."
    user_id: uuid.UUID
    email: str
