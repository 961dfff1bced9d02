from __future__ import annotations
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class AuditLogEntryResponse(BaseModel):
    id: str
    createdAtIso: str
    requestId: Optional[str] = None
    route: Optional[str] = None
    ipAddress: Optional[str] = None

    actor: str
    actorRole: str

    action: str
    requestKind: Optional[str] = None
    targetRef: Optional[str] = None
    payloadHash: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AuditLogListResponse(BaseModel):
    action: Optional[str] = None
    targetRef: Optional[str] = None
    records: List[AuditLogEntryResponse]


class ActivityEntryResponse(BaseModel):
    id: str
    createdAtIso: str
    type: str
    status: str
    actor: str
    actorRole: str
    subject: Dict[str, Any] = Field(default_factory=dict)
    transaction: Dict[str, Any] = Field(default_factory=dict)
    details: Dict[str, Any] = Field(default_factory=dict)


class DashboardMetrics(BaseModel):
    pendingCount: int
    urgentCount: int
    transferCount: int
    verificationCount: int
    verifiedCount: int
    rejectedCount: int
