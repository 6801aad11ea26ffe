"""Staged (temporary) and permanent user models."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class TempUser(Base):
    """A signup awaiting email confirmation.

    ``identity`` holds the value of the configured identity field (usually the
    email address) and is unique, so at most one signup per identity can be
    staged at a time. ``token`` is the only external handle to the record.
    """

    __tablename__ = "temporary_users"

    temp_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    identity: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )
    token: Mapped[str] = mapped_column(
        String(256), unique=True, nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict,
        doc="Candidate attributes with the password already hashed",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
        default=lambda: datetime.now(UTC),
    )

    def as_record(self, token_field: str) -> dict[str, Any]:
        """Candidate attributes plus the token under ``token_field``."""
        return {**self.data, token_field: self.token}


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    identity: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
