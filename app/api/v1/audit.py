from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.auth_deps import require_action_dep
from app.db.session import get_db
from app.policies.rbac import ACTION_READ_AUDIT
from app.schemas.audit import AuditLogEntryResponse, AuditLogListResponse
from app.services.audit_service import AuditService

router = APIRouter(prefix="/audit")


@router.get("", response_model=AuditLogListResponse)
def get_audit_log(
    action: Optional[str] = Query(default=None),
    target: Optional[str] = Query(default=None, alias="targetRef"),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    _principal=Depends(require_action_dep(ACTION_READ_AUDIT)),
):
    rows = AuditService().list_entries(db, action=action, target_ref=target, limit=limit)
    return AuditLogListResponse(
        action=action,
        targetRef=target,
        records=[
            AuditLogEntryResponse(
                id=str(r.id),
                createdAtIso=r.created_at.isoformat(),
                requestId=r.request_id,
                route=r.route,
                ipAddress=r.ip_address,
                actor=r.actor,
                actorRole=r.actor_role,
                action=r.action,
                requestKind=r.request_kind,
                targetRef=r.target_ref,
                payloadHash=r.payload_hash,
                details=r.details_json or {},
            )
            for r in rows
        ],
    )
