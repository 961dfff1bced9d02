#app/models/enums.py
from __future__ import annotations
from enum import Enum


class ActorRole(str, Enum):
    CITIZEN = "CITIZEN"
    GOV_AUTHORITY = "GOV_AUTHORITY"


class RequestStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    rejected = "rejected"


TERMINAL_STATUSES = {RequestStatus.completed.value, RequestStatus.rejected.value}


class LedgerSubject(str, Enum):
    PROPERTY = "PROPERTY"
    DOCUMENT = "DOCUMENT"


class LedgerEventType(str, Enum):
    REGISTRATION = "REGISTRATION"
    TRANSFER = "TRANSFER"
    VERIFICATION = "VERIFICATION"


class InvalidationReason(str, Enum):
    logout = "logout"
    refresh = "refresh"


class VerificationStep(str, Enum):
    document_submitted = "document_submitted"
    initial_verification = "initial_verification"
    government_verification = "government_verification"
    final_approval = "final_approval"
    verification_completed = "verification_completed"
    verification_rejected = "verification_rejected"


class ActivityStatus(str, Enum):
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
