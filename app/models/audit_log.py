from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType
from app.models.timestamps import utcnow


class AuditLogEntry(Base):
    """
    Compliance audit trail record.
    - Append-only (never UPDATE, never DELETE)
    - Written only for successful state changes
    - Stores request-id, actor, action, target, payload hash, and safe details.
    """
    __tablename__ = "audit_log_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Correlation
    request_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    route: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Actor
    actor: Mapped[str] = mapped_column(String(256), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)

    # What happened, to what
    action: Mapped[str] = mapped_column(String(96), nullable=False)  # e.g., TRANSFER_VERIFIED
    request_kind: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    target_ref: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    details_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_audit_action", "action"),
        Index("ix_audit_target", "target_ref"),
        Index("ix_audit_created", "created_at"),
        Index("ix_audit_request_id", "request_id"),
    )
