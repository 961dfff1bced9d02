#app/services/ledger_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.core.hashing import hash_chain
from app.models.enums import LedgerEventType, LedgerSubject
from app.models.ledger import LedgerBlockchainId, LedgerEntry, LedgerTransaction
from app.models.timestamps import utcnow

logger = logging.getLogger(__name__)


def coerce_block_number(value: Any) -> Optional[int]:
    """Block numbers arrive as ints, decimal strings, 0x-hex strings or JSON floats."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None

    text = str(value).strip().lower()
    if not text:
        return None
    if text.startswith("0x"):
        try:
            return int(text, 16)
        except ValueError:
            return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


@dataclass(frozen=True)
class LedgerEvent:
    event_type: LedgerEventType
    transaction_hash: Optional[str]
    blockchain_id: Optional[str]
    block_number: Optional[int] = None
    from_identity: Optional[str] = None
    to_identity: Optional[str] = None
    actor: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class LedgerService:
    """
    Append-only mirror of on-chain state.

    Writers here only add/flush; committing belongs to the caller's unit of work.
    """

    GENESIS_HASH = "0" * 64

    # ─────────────────────────────────────────────
    # LOOKUPS
    # ─────────────────────────────────────────────

    def get_entry(self, db: Session, entity_key: str) -> Optional[LedgerEntry]:
        return db.execute(
            select(LedgerEntry).where(LedgerEntry.entity_key == entity_key)
        ).scalar_one_or_none()

    def find_by_blockchain_id(self, db: Session, blockchain_id: str) -> Optional[LedgerEntry]:
        """Current id first, then any id the entry was ever known by."""
        entry = db.execute(
            select(LedgerEntry).where(LedgerEntry.current_blockchain_id == blockchain_id).limit(1)
        ).scalar_one_or_none()
        if entry:
            return entry

        return db.execute(
            select(LedgerEntry)
            .join(LedgerBlockchainId, LedgerBlockchainId.entry_id == LedgerEntry.id)
            .where(LedgerBlockchainId.blockchain_id == blockchain_id)
            .order_by(LedgerBlockchainId.assigned_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def find_by_transaction_hash(self, db: Session, tx_hash: str) -> Optional[LedgerEntry]:
        return db.execute(
            select(LedgerEntry)
            .where(
                or_(
                    LedgerEntry.id.in_(
                        select(LedgerTransaction.entry_id).where(LedgerTransaction.transaction_hash == tx_hash)
                    ),
                    LedgerEntry.id.in_(
                        select(LedgerBlockchainId.entry_id).where(LedgerBlockchainId.tx_hash == tx_hash)
                    ),
                )
            )
            .limit(1)
        ).scalar_one_or_none()

    def current_state(self, db: Session, key: str) -> LedgerEntry:
        """
        Resolve an entry by mirror primary id, business key (propertyId /
        requestId), current ledger id or any historical ledger id.
        """
        try:
            pk = uuid.UUID(str(key))
        except ValueError:
            pk = None

        if pk is not None:
            entry = db.get(LedgerEntry, pk)
            if entry:
                return entry

        entry = self.get_entry(db, key) or self.find_by_blockchain_id(db, key)
        if not entry:
            raise NotFound(f"Ledger entry not found for {key}")
        return entry

    # ─────────────────────────────────────────────
    # APPENDS
    # ─────────────────────────────────────────────

    def open_entry(
        self,
        db: Session,
        *,
        subject: LedgerSubject,
        entity_key: str,
        owner: Optional[str] = None,
        property_name: Optional[str] = None,
        locality: Optional[str] = None,
        property_type: Optional[str] = None,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            id=uuid.uuid4(),
            subject=subject.value,
            entity_key=entity_key,
            owner=owner,
            is_verified=False,
            property_name=property_name,
            locality=locality,
            property_type=property_type,
            transactions=[],
            blockchain_ids=[],
        )
        db.add(entry)
        db.flush()
        logger.info("[ledger] opened %s entry %s", subject.value, entity_key)
        return entry

    def get_or_open_entry(self, db: Session, *, subject: LedgerSubject, entity_key: str, **descriptors) -> LedgerEntry:
        return self.get_entry(db, entity_key) or self.open_entry(
            db, subject=subject, entity_key=entity_key, **descriptors
        )

    def append_transaction(self, db: Session, entry: LedgerEntry, event: LedgerEvent) -> LedgerTransaction:
        """
        Append one immutable, hash-chained event.

        - never rewrites earlier transactions
        - current_blockchain_id follows the appended event
        - a ledger id not seen before extends blockchain_ids
        - VERIFICATION is the only event that sets is_verified
        """
        last = entry.transactions[-1] if entry.transactions else None
        prev_hash = last.entry_hash if last else self.GENESIS_HASH
        seq = last.seq + 1 if last else 1
        now = utcnow()

        hashed_payload = {
            "entity_key": entry.entity_key,
            "seq": seq,
            "event_type": event.event_type.value,
            "transaction_hash": event.transaction_hash,
            "block_number": event.block_number,
            "blockchain_id": event.blockchain_id,
            "from": event.from_identity,
            "to": event.to_identity,
            "actor": event.actor,
            "occurred_at": now.isoformat(),
            "details": event.details,
        }

        row = LedgerTransaction(
            entry_id=entry.id,
            seq=seq,
            event_type=event.event_type.value,
            transaction_hash=event.transaction_hash,
            block_number=event.block_number,
            blockchain_id=event.blockchain_id,
            from_identity=event.from_identity,
            to_identity=event.to_identity,
            actor=event.actor,
            occurred_at=now,
            prev_hash=prev_hash,
            entry_hash=hash_chain(prev_hash, hashed_payload),
            payload_json=hashed_payload,
        )
        entry.transactions.append(row)

        known_ids = {b.blockchain_id for b in entry.blockchain_ids}
        if event.blockchain_id and event.blockchain_id not in known_ids:
            entry.blockchain_ids.append(
                LedgerBlockchainId(
                    entry_id=entry.id,
                    seq=len(entry.blockchain_ids) + 1,
                    blockchain_id=event.blockchain_id,
                    tx_hash=event.transaction_hash,
                    assigned_at=now,
                )
            )

        entry.current_blockchain_id = event.blockchain_id
        if event.event_type == LedgerEventType.VERIFICATION:
            entry.is_verified = True
            entry.verified_by = event.actor
            entry.verified_at = now
        entry.last_modified = now

        db.flush()
        logger.info(
            "[ledger] %s appended seq=%d entry=%s blockchain_id=%s",
            event.event_type.value,
            seq,
            entry.entity_key,
            event.blockchain_id,
        )
        return row

    def record_sync(
        self,
        db: Session,
        *,
        subject: LedgerSubject,
        entity_key: str,
        ledger_id: str,
        transaction_hash: Optional[str],
        block_number: Optional[int] = None,
        owner: Optional[str] = None,
        actor: Optional[str] = None,
        descriptors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> LedgerEntry:
        """Turn a Sync Bridge confirmation into a REGISTRATION append."""
        descriptors = descriptors or {}
        entry = self.get_or_open_entry(
            db,
            subject=subject,
            entity_key=entity_key,
            owner=owner,
            property_name=descriptors.get("propertyName"),
            locality=descriptors.get("locality"),
            property_type=descriptors.get("propertyType"),
        )
        if entry.owner is None:
            entry.owner = owner

        self.append_transaction(
            db,
            entry,
            LedgerEvent(
                event_type=LedgerEventType.REGISTRATION,
                transaction_hash=transaction_hash,
                blockchain_id=ledger_id,
                block_number=block_number,
                actor=actor,
                details=details or {},
            ),
        )
        return entry

    # ─────────────────────────────────────────────
    # READ-ONLY HELPERS (AUDIT)
    # ─────────────────────────────────────────────

    def verify_chain(self, db: Session, key: str) -> bool:
        """
        Verifies the entry's transaction hash chain.
        Used by auditors.
        """
        entry = self.current_state(db, key)
        prev_hash = self.GENESIS_HASH
        for tx in entry.transactions:
            if tx.prev_hash != prev_hash:
                return False
            if tx.entry_hash != hash_chain(prev_hash, tx.payload_json):
                return False
            prev_hash = tx.entry_hash
        return True
