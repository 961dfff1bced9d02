# app/services/ledger_views.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.models.enums import LedgerEventType, LedgerSubject, RequestStatus
from app.models.ledger import LedgerEntry
from app.models.review_request import TransferRequest, VerificationRequest
from app.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def _block(value) -> Optional[str]:
    # block numbers exceed JS-safe integers; clients get strings
    return str(value) if value is not None else None


def entry_view(entry: LedgerEntry) -> Dict[str, Any]:
    """
    Normalized ledger shape shared by every lookup:
    {propertyId, currentBlockchainId, isVerified, owner, transactions[], blockchainIds[]}
    """
    return {
        "id": str(entry.id),
        "source": "ledger",
        "subject": entry.subject,
        "propertyId": entry.entity_key,
        "currentBlockchainId": entry.current_blockchain_id,
        "isVerified": bool(entry.is_verified),
        "owner": entry.owner,
        "propertyName": entry.property_name,
        "locality": entry.locality,
        "propertyType": entry.property_type,
        "contentHash": entry.content_hash,
        "verifiedBy": entry.verified_by,
        "verifiedAt": _iso(entry.verified_at),
        "lastTransferAt": _iso(entry.last_transfer_at),
        "transactions": [
            {
                "seq": tx.seq,
                "type": tx.event_type,
                "transactionHash": tx.transaction_hash,
                "blockNumber": _block(tx.block_number),
                "blockchainId": tx.blockchain_id,
                "from": tx.from_identity,
                "to": tx.to_identity,
                "actor": tx.actor,
                "timestamp": _iso(tx.occurred_at),
                "prevHash": tx.prev_hash,
                "entryHash": tx.entry_hash,
            }
            for tx in entry.transactions
        ],
        "blockchainIds": [
            {
                "id": b.blockchain_id,
                "txHash": b.tx_hash,
                "timestamp": _iso(b.assigned_at),
            }
            for b in entry.blockchain_ids
        ],
    }


def transfer_request_view(tr: TransferRequest) -> Dict[str, Any]:
    """A pending or historical transfer request expressed in the ledger shape."""
    chain = tr.blockchain_info_json or {}
    prop = tr.property_info_json or {}
    current_owner = tr.current_owner_info_json or {}
    new_owner = tr.new_owner_info_json or {}
    completed = tr.status == RequestStatus.completed.value

    return {
        "id": str(tr.id),
        "source": "transfer_request",
        "subject": LedgerSubject.PROPERTY.value,
        "propertyId": tr.property_id,
        "currentBlockchainId": tr.blockchain_id,
        "isVerified": False,
        "owner": new_owner.get("email") if completed else current_owner.get("email"),
        "propertyName": prop.get("propertyName"),
        "locality": prop.get("locality"),
        "propertyType": prop.get("propertyType"),
        "contentHash": None,
        "verifiedBy": tr.verified_by,
        "verifiedAt": _iso(tr.verified_at),
        "lastTransferAt": None,
        "transactions": [
            {
                "seq": 1,
                "type": LedgerEventType.TRANSFER.value,
                "transactionHash": tr.transaction_hash,
                "blockNumber": _block(chain.get("blockNumber")),
                "blockchainId": tr.blockchain_id,
                "from": current_owner.get("email"),
                "to": new_owner.get("email"),
                "actor": tr.created_by,
                "timestamp": _iso(tr.created_at),
                "prevHash": None,
                "entryHash": None,
            }
        ],
        "blockchainIds": [
            {"id": tr.blockchain_id, "txHash": tr.transaction_hash, "timestamp": _iso(tr.created_at)}
        ],
    }


class LedgerViews:
    """Read-only lookups over the ledger mirror. Never writes."""

    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()

    def by_key(self, db: Session, key: str) -> Dict[str, Any]:
        return entry_view(self.ledger.current_state(db, key))

    def by_blockchain_id(self, db: Session, blockchain_id: str) -> Dict[str, Any]:
        entry = self.ledger.find_by_blockchain_id(db, blockchain_id)
        if not entry:
            raise NotFound(f"No ledger entry for blockchain id {blockchain_id}")
        return entry_view(entry)

    def by_transaction_hash(self, db: Session, tx_hash: str) -> Dict[str, Any]:
        entry = self.ledger.find_by_transaction_hash(db, tx_hash)
        if entry:
            return entry_view(entry)

        tr = db.execute(
            select(TransferRequest)
            .where(TransferRequest.transaction_hash == tx_hash)
            .order_by(TransferRequest.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        if tr:
            logger.info("[ledger-views] hash %s resolved from transfer request %s", tx_hash, tr.request_id)
            return transfer_request_view(tr)

        raise NotFound(f"No property found for transaction hash {tx_hash}")

    def ledger_id_for_property(self, db: Session, property_id: str) -> str:
        entry = self.ledger.get_entry(db, property_id)
        if not entry:
            raise NotFound(f"Property not found: {property_id}")
        if not entry.current_blockchain_id:
            raise NotFound(f"Blockchain ID not found for property {property_id}")

        ledger_id = entry.current_blockchain_id
        return ledger_id if ledger_id.startswith("0x") else f"0x{ledger_id}"

    def owned_properties(self, db: Session, owner: str) -> List[Dict[str, Any]]:
        rows = db.execute(
            select(LedgerEntry)
            .where(
                LedgerEntry.subject == LedgerSubject.PROPERTY.value,
                LedgerEntry.owner == owner,
                LedgerEntry.is_verified.is_(True),
            )
            .order_by(LedgerEntry.last_modified.desc())
        ).scalars().all()
        return [entry_view(e) for e in rows]

    def document(self, db: Session, *, blockchain_id: Optional[str] = None, content_hash: Optional[str] = None) -> VerificationRequest:
        if not blockchain_id and not content_hash:
            raise NotFound("No document reference given")

        clauses = []
        if blockchain_id:
            clauses.append(VerificationRequest.blockchain_id == blockchain_id)
        if content_hash:
            clauses.append(VerificationRequest.content_hash == content_hash)

        found = db.execute(
            select(VerificationRequest)
            .where(or_(*clauses))
            .order_by(VerificationRequest.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

        if found is None and blockchain_id:
            entry = self.ledger.find_by_blockchain_id(db, blockchain_id)
            if entry is not None and entry.subject == LedgerSubject.DOCUMENT.value:
                found = db.execute(
                    select(VerificationRequest).where(VerificationRequest.request_id == entry.entity_key)
                ).scalar_one_or_none()

        if found is None:
            raise NotFound("Document not found")
        return found
