from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType
from app.models.timestamps import utcnow


class ActivityEntry(Base):
    """Recent-activity feed row for the government dashboard. Append-only."""

    __tablename__ = "activity_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    activity_type: Mapped[str] = mapped_column(String(64), nullable=False)  # PROPERTY_TRANSFER, ...
    status: Mapped[str] = mapped_column(String(16), nullable=False)  # VERIFIED | REJECTED

    actor: Mapped[str] = mapped_column(String(256), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)

    subject_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    transaction_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    details_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_activity_created", "created_at"),
    )
