# app/models/ledger.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, JSONType
from app.models.timestamps import utcnow


class LedgerEntry(Base):
    """
    Local mirror of on-chain state for one property or one document.

    entity_key = propertyId (subject PROPERTY) or requestId (subject DOCUMENT).
    current_blockchain_id always equals the blockchain_id of the latest transaction.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    subject: Mapped[str] = mapped_column(String(16), nullable=False)
    entity_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    current_blockchain_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    owner: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # descriptors (properties)
    property_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    locality: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    property_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # proof-of-custody (documents)
    content_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    verified_by: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_transfer_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    last_modified: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    transactions: Mapped[List["LedgerTransaction"]] = relationship(
        back_populates="entry",
        order_by="LedgerTransaction.seq",
        lazy="selectin",
    )
    blockchain_ids: Mapped[List["LedgerBlockchainId"]] = relationship(
        back_populates="entry",
        order_by="LedgerBlockchainId.seq",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_ledger_entries_current_id", "current_blockchain_id"),
        Index("ix_ledger_entries_owner", "owner", "is_verified"),
    )


class LedgerTransaction(Base):
    """
    Append-only hash-chained mirror event.

    entry_hash = SHA256(prev_hash + canonical(payload_json))
    """

    __tablename__ = "ledger_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    entry_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)  # monotonic per entry

    event_type: Mapped[str] = mapped_column(String(32), nullable=False)
    transaction_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    block_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    blockchain_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    from_identity: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    to_identity: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    actor: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    prev_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    entry_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    payload_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    entry: Mapped[LedgerEntry] = relationship(back_populates="transactions")

    __table_args__ = (
        UniqueConstraint("entry_id", "seq", name="uq_ledger_transaction_seq"),
        Index("ix_ledger_transactions_hash", "transaction_hash"),
    )


class LedgerBlockchainId(Base):
    """History of every ledger id ever assigned to an entry. Never mutated."""

    __tablename__ = "ledger_blockchain_ids"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    entry_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_entries.id", ondelete="CASCADE"),
        nullable=False,
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    blockchain_id: Mapped[str] = mapped_column(String(128), nullable=False)
    tx_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    entry: Mapped[LedgerEntry] = relationship(back_populates="blockchain_ids")

    __table_args__ = (
        UniqueConstraint("entry_id", "seq", name="uq_ledger_blockchain_id_seq"),
        Index("ix_ledger_blockchain_ids_value", "blockchain_id"),
        Index("ix_ledger_blockchain_ids_tx", "tx_hash"),
    )
