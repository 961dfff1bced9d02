from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.requests import Request

from app.core.hashing import canonical_dumps, sha256_hex
from app.models.activity_entry import ActivityEntry
from app.models.audit_log import AuditLogEntry
from app.models.timestamps import utcnow
from app.policies.rbac import Principal


class AuditAction:
    # Submissions
    REGISTRATION_SUBMITTED = "REGISTRATION_SUBMITTED"
    TRANSFER_SUBMITTED = "TRANSFER_SUBMITTED"
    DOCUMENT_SUBMITTED = "DOCUMENT_SUBMITTED"

    # Review
    REGISTRATION_VERIFIED = "REGISTRATION_VERIFIED"
    TRANSFER_VERIFIED = "TRANSFER_VERIFIED"
    DOCUMENT_VERIFIED = "DOCUMENT_VERIFIED"
    REGISTRATION_REJECTED = "REGISTRATION_REJECTED"
    TRANSFER_REJECTED = "TRANSFER_REJECTED"
    DOCUMENT_REJECTED = "DOCUMENT_REJECTED"

    # Ledger
    LEDGER_MANUAL_SYNC = "LEDGER_MANUAL_SYNC"


class ActivityType:
    PROPERTY_REGISTRATION = "PROPERTY_REGISTRATION"
    PROPERTY_TRANSFER = "PROPERTY_TRANSFER"
    DOCUMENT_VERIFICATION = "DOCUMENT_VERIFICATION"


@dataclass(frozen=True)
class RequestContext:
    """Correlation data copied from the HTTP request into audit rows."""
    request_id: Optional[str] = None
    route: Optional[str] = None
    ip_address: Optional[str] = None


def request_context(request: Request) -> RequestContext:
    return RequestContext(
        request_id=getattr(request.state, "request_id", None) or "missing",
        route=str(request.url.path),
        ip_address=request.client.host if request.client else None,
    )


def _payload_hash(payload: Dict[str, Any]) -> str:
    return sha256_hex(canonical_dumps(payload))


class AuditService:
    """
    Append-only audit trail.

    record() only adds the row; the surrounding unit of work commits it
    together with the state change it describes.
    details MUST be safe: ids, statuses and hashes, never personal info.
    """

    def record(
        self,
        db: Session,
        *,
        principal: Principal,
        action: str,
        request_kind: Optional[str],
        target_ref: Optional[str],
        details: Dict[str, Any],
        ctx: Optional[RequestContext] = None,
    ) -> AuditLogEntry:
        ctx = ctx or RequestContext()
        row = AuditLogEntry(
            request_id=ctx.request_id,
            route=ctx.route,
            ip_address=ctx.ip_address,
            actor=principal.identity,
            actor_role=principal.role.value,
            action=action,
            request_kind=request_kind,
            target_ref=target_ref,
            payload_hash=_payload_hash(details),
            details_json=details,
        )
        db.add(row)
        return row

    def list_entries(
        self,
        db: Session,
        *,
        action: Optional[str] = None,
        target_ref: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditLogEntry]:
        stmt = select(AuditLogEntry)
        if action:
            stmt = stmt.where(AuditLogEntry.action == action)
        if target_ref:
            stmt = stmt.where(AuditLogEntry.target_ref == target_ref)
        stmt = stmt.order_by(AuditLogEntry.created_at.desc()).limit(limit)
        return list(db.execute(stmt).scalars().all())


class ActivityService:
    """Recent-activity feed shown on the government dashboard."""

    def record(
        self,
        db: Session,
        *,
        principal: Principal,
        activity_type: str,
        status: str,
        subject: Dict[str, Any],
        transaction: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityEntry:
        row = ActivityEntry(
            activity_type=activity_type,
            status=status,
            actor=principal.identity,
            actor_role=principal.role.value,
            subject_json=subject,
            transaction_json=transaction or {},
            details_json=details or {},
        )
        db.add(row)
        return row

    def recent(self, db: Session, *, window_hours: int = 24, limit: int = 50) -> List[ActivityEntry]:
        since = utcnow() - timedelta(hours=window_hours)
        return list(
            db.execute(
                select(ActivityEntry)
                .where(ActivityEntry.created_at >= since)
                .order_by(ActivityEntry.created_at.desc())
                .limit(limit)
            )
            .scalars()
            .all()
        )
