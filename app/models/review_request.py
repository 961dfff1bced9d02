# app/models/review_request.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType
from app.models.enums import RequestStatus, TERMINAL_STATUSES
from app.models.timestamps import utcnow


class ReviewableMixin:
    """
    Columns shared by every request that goes through government review.

    status is monotonic: pending -> completed | rejected, terminal values never change.
    """

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RequestStatus.pending.value)
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="normal")

    # opaque paths owned by the file-storage collaborator
    documents_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_by: Mapped[str] = mapped_column(String(256), nullable=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    last_modified: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    # review stamps
    verified_by: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    verification_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejected_by: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class RegistrationRequest(ReviewableMixin, Base):
    __tablename__ = "registration_requests"

    property_id: Mapped[str] = mapped_column(String(128), nullable=False)

    owner_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    property_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    witness_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    appointment_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # present when the property was already written on-chain at submission
    blockchain_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    transaction_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    # stamped by approval from the reviewer's ledger confirmation
    blockchain_info_json: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_registration_requests_property", "property_id"),
        Index("ix_registration_requests_status", "status"),
    )


class TransferRequest(ReviewableMixin, Base):
    __tablename__ = "transfer_requests"

    property_id: Mapped[str] = mapped_column(String(128), nullable=False)

    current_owner_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    new_owner_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    property_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    witness_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    appointment_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # a transfer always references an existing on-chain property
    blockchain_id: Mapped[str] = mapped_column(String(128), nullable=False)
    transaction_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    blockchain_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_transfer_requests_property", "property_id"),
        Index("ix_transfer_requests_status", "status"),
        Index("ix_transfer_requests_tx_hash", "transaction_hash"),
    )


class VerificationRequest(ReviewableMixin, Base):
    """
    Identity-document verification request.
    verification_steps_json is informational only; review acts on status.
    """
    __tablename__ = "verification_requests"

    personal_info_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    verification_steps_json: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    blockchain_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    transaction_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    content_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_verification_requests_status", "status"),
        Index("ix_verification_requests_blockchain", "blockchain_id"),
        Index("ix_verification_requests_created_by", "created_by"),
    )
