# app/services/request_views.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.core.types import RequestKind
from app.models.enums import RequestStatus
from app.models.review_request import VerificationRequest
from app.services.ledger_service import LedgerService
from app.services.ledger_views import entry_view
from app.services.request_keys import MODEL_BY_KIND, ReviewRequest, find_request


def request_summary(kind: RequestKind, row: ReviewRequest) -> Dict[str, Any]:
    """Client-safe view of a request; personal info blocks are not echoed."""
    steps = getattr(row, "verification_steps_json", None) or []
    return {
        "id": str(row.id),
        "requestId": row.request_id,
        "kind": kind.value,
        "status": row.status,
        "priority": row.priority,
        "createdBy": row.created_by,
        "createdAtIso": row.created_at.isoformat(),
        "propertyId": getattr(row, "property_id", None),
        "blockchainId": row.blockchain_id,
        "transactionHash": row.transaction_hash,
        "verifiedBy": row.verified_by,
        "rejectedBy": row.rejected_by,
        "rejectionReason": row.rejection_reason,
        "contentHash": getattr(row, "content_hash", None),
        "verificationSteps": [
            {
                "step": s.get("step"),
                "status": s.get("status"),
                "timestamp": s.get("timestamp"),
                "verifier": s.get("verifier"),
                "contentHash": s.get("contentHash"),
            }
            for s in steps
        ],
    }


class RequestViews:
    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or LedgerService()

    def get(self, db: Session, kind: RequestKind, key: str) -> Dict[str, Any]:
        row = find_request(db, kind, key)
        if row is None:
            raise NotFound(f"{kind.value} request not found: {key}")
        return request_summary(kind, row)

    def list_mine(self, db: Session, kind: RequestKind, identity: str) -> List[Dict[str, Any]]:
        model = MODEL_BY_KIND[kind]
        rows = db.execute(
            select(model).where(model.created_by == identity).order_by(model.created_at.desc())
        ).scalars().all()
        return [request_summary(kind, r) for r in rows]

    def pending(self, db: Session, kind: RequestKind) -> List[Dict[str, Any]]:
        """
        Review queue, oldest first. Property requests carry the mirror state
        of their property when one exists.
        """
        model = MODEL_BY_KIND[kind]
        rows = db.execute(
            select(model).where(model.status == RequestStatus.pending.value).order_by(model.created_at.asc())
        ).scalars().all()

        out = []
        for row in rows:
            item = request_summary(kind, row)
            if kind != RequestKind.document:
                entry = self.ledger.get_entry(db, row.property_id)
                item["ledger"] = entry_view(entry) if entry else None
            out.append(item)
        return out

    def pending_document(self, db: Session, key: str) -> Dict[str, Any]:
        row = find_request(db, RequestKind.document, key)
        if row is None or row.status != RequestStatus.pending.value:
            raise NotFound(f"Pending document not found: {key}")
        item = request_summary(RequestKind.document, row)
        item["documents"] = dict(row.documents_json or {})
        return item

    def document_status(self, db: Session, row: VerificationRequest) -> Dict[str, Any]:
        item = request_summary(RequestKind.document, row)
        entry = self.ledger.get_entry(db, row.request_id)
        item["isVerified"] = bool(row.is_verified)
        item["ledger"] = entry_view(entry) if entry else None
        return item
