from __future__ import annotations

from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.enums import RequestStatus
from app.models.review_request import RegistrationRequest, TransferRequest, VerificationRequest


class MetricsService:
    """Dashboard counters. Plain reads; may observe a request mid-transition."""

    def _count(self, db: Session, model, *where) -> int:
        return int(db.execute(select(func.count()).select_from(model).where(*where)).scalar_one())

    def dashboard(self, db: Session) -> Dict[str, int]:
        pending = RequestStatus.pending.value
        rejected = RequestStatus.rejected.value
        completed = RequestStatus.completed.value

        return {
            "pendingCount": self._count(db, RegistrationRequest, RegistrationRequest.status == pending),
            "urgentCount": self._count(
                db,
                RegistrationRequest,
                RegistrationRequest.status == pending,
                RegistrationRequest.priority == "urgent",
            ),
            "transferCount": self._count(db, TransferRequest, TransferRequest.status == pending),
            "verificationCount": self._count(
                db,
                VerificationRequest,
                VerificationRequest.status == pending,
                VerificationRequest.is_verified.is_(False),
            ),
            "verifiedCount": self._count(db, VerificationRequest, VerificationRequest.status == completed),
            "rejectedCount": sum(
                self._count(db, model, model.status == rejected)
                for model in (RegistrationRequest, TransferRequest, VerificationRequest)
            ),
        }
