# app/models/invalidated_token.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.timestamps import utcnow


class InvalidatedToken(Base):
    """
    Append-only revocation list.
    A digest present here never authenticates again, whatever its exp says.
    """
    __tablename__ = "invalidated_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    token_digest: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    device_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    reason: Mapped[str] = mapped_column(String(16), nullable=False)  # logout | refresh

    invalidated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_invalidated_tokens_digest", "token_digest"),
        Index("ix_invalidated_tokens_user", "user_id"),
    )
