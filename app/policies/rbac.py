#app/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Set

from app.models.enums import ActorRole


@dataclass(frozen=True)
class Principal:
    """
    Verified bearer-token claims.
    identity is the actor's email; issued_for decides the role.
    """
    identity: str
    display_name: str
    role: ActorRole
    expires_at: datetime

    @property
    def issued_for(self) -> str:
        return "government" if self.role == ActorRole.GOV_AUTHORITY else "citizen"


ISSUED_FOR_ROLES = {
    "citizen": ActorRole.CITIZEN,
    "government": ActorRole.GOV_AUTHORITY,
}


# --- Core action constants ---
ACTION_SUBMIT_REQUEST = "SUBMIT_REQUEST"
ACTION_REVIEW_REQUEST = "REVIEW_REQUEST"
ACTION_READ_AUDIT = "READ_AUDIT"
ACTION_READ_METRICS = "READ_METRICS"


def allowed_actions(role: ActorRole) -> Set[str]:
    """
    Pure RBAC: which actions a role may attempt.
    """

    if role == ActorRole.CITIZEN:
        return {ACTION_SUBMIT_REQUEST}

    if role == ActorRole.GOV_AUTHORITY:
        return {ACTION_SUBMIT_REQUEST, ACTION_REVIEW_REQUEST, ACTION_READ_AUDIT, ACTION_READ_METRICS}

    return set()


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise PermissionError(
            f"Role {principal.role.value} not permitted for action {action}."
        )
