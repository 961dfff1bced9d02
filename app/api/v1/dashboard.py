# app/api/v1/dashboard.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.auth_deps import require_action_dep
from app.core.config import get_settings
from app.db.session import get_db
from app.policies.rbac import ACTION_READ_METRICS
from app.schemas.audit import ActivityEntryResponse, DashboardMetrics
from app.services.audit_service import ActivityService
from app.services.metrics_service import MetricsService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

gov_reader = require_action_dep(ACTION_READ_METRICS)


@router.get("/metrics", response_model=DashboardMetrics)
def dashboard_metrics(db: Session = Depends(get_db), _principal=Depends(gov_reader)):
    return DashboardMetrics(**MetricsService().dashboard(db))


@router.get("/recent-activity", response_model=List[ActivityEntryResponse])
def recent_activity(db: Session = Depends(get_db), _principal=Depends(gov_reader)):
    """Last 24 hours by default, newest first."""
    settings = get_settings()
    rows = ActivityService().recent(
        db,
        window_hours=settings.recent_activity_window_hours,
        limit=settings.recent_activity_limit,
    )
    return [
        ActivityEntryResponse(
            id=str(r.id),
            createdAtIso=r.created_at.isoformat(),
            type=r.activity_type,
            status=r.status,
            actor=r.actor,
            actorRole=r.actor_role,
            subject=r.subject_json or {},
            transaction=r.transaction_json or {},
            details=r.details_json or {},
        )
        for r in rows
    ]
