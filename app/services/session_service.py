# app/services/session_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NoSession, Unauthenticated, ValidationFailed
from app.core.hashing import token_digest
from app.core.redaction import mask_token
from app.core.security import create_access_token, decode_token
from app.db.unit_of_work import unit_of_work
from app.models.device_session import DeviceSession
from app.models.enums import InvalidationReason
from app.models.invalidated_token import InvalidatedToken
from app.models.timestamps import utcnow
from app.policies.rbac import ISSUED_FOR_ROLES, Principal

logger = logging.getLogger(__name__)

PLATFORM_MAX = DeviceSession.__table__.c.platform.type.length
DEVICE_ID_MAX = DeviceSession.__table__.c.device_id.type.length


@dataclass(frozen=True)
class TokenStatus:
    valid: bool
    principal: Optional[Principal]
    message: str


class SessionService:
    """
    Bearer-token lifecycle bound to per-device sessions.

    Validity is two-layered: the JWT signature/expiry, then the revocation
    list (InvalidatedToken). Sessions are per (identity, device); invalidation
    and refresh never touch another device's session.
    """

    # ─────────────────────────────────────────────
    # TOKENS
    # ─────────────────────────────────────────────

    def issue(
        self,
        *,
        identity: str,
        display_name: str,
        issued_for: str = "citizen",
        expires_at: Optional[datetime] = None,
    ) -> str:
        if issued_for not in ISSUED_FOR_ROLES:
            raise ValueError(f"Unknown token audience: {issued_for}")
        return create_access_token(
            subject=identity,
            claims={"display_name": display_name, "issued_for": issued_for},
            expires_at=expires_at,
        )

    def decode(self, token: str) -> Principal:
        try:
            payload = decode_token(token)
        except JWTError as exc:
            logger.info("[auth] token rejected: %s", exc)
            raise Unauthenticated("Invalid token", detail=str(exc)) from exc

        identity = payload.get("sub")
        issued_for = payload.get("issued_for") or "citizen"
        if not identity or issued_for not in ISSUED_FOR_ROLES:
            raise Unauthenticated("Token missing required claims.")

        return Principal(
            identity=str(identity),
            display_name=str(payload.get("display_name") or identity),
            role=ISSUED_FOR_ROLES[issued_for],
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )

    def is_invalidated(self, db: Session, token: str) -> bool:
        return (
            db.execute(
                select(InvalidatedToken.id)
                .where(InvalidatedToken.token_digest == token_digest(token))
                .limit(1)
            ).first()
            is not None
        )

    def verify(self, db: Session, token: str) -> Principal:
        """Signature + expiry + revocation list. Never writes."""
        principal = self.decode(token)
        if self.is_invalidated(db, token):
            logger.info("[auth] invalidated token %s presented by %s", mask_token(token), principal.identity)
            raise Unauthenticated("Token has been invalidated")
        return principal

    # ─────────────────────────────────────────────
    # SESSIONS
    # ─────────────────────────────────────────────

    def get_session(self, db: Session, *, user_id: str, device_id: str) -> Optional[DeviceSession]:
        return db.execute(
            select(DeviceSession).where(
                DeviceSession.user_id == user_id,
                DeviceSession.device_id == device_id,
            )
        ).scalar_one_or_none()

    def trust_on_first_use(
        self,
        db: Session,
        *,
        principal: Principal,
        token: str,
        device_id: str,
        platform: Optional[str] = None,
    ) -> DeviceSession:
        """
        Policy: a verified identity token is the only gate for a new device.
        The first authenticated call from an unknown device establishes its
        session; later calls rebind the session to the presented token.
        """
        if len(device_id) > DEVICE_ID_MAX:
            raise ValidationFailed(f"Device id longer than {DEVICE_ID_MAX} characters")
        # User-Agent strings routinely exceed the column
        platform = (platform or "unknown")[:PLATFORM_MAX]

        now = utcnow()
        session = self.get_session(db, user_id=principal.identity, device_id=device_id)
        if session is None:
            session = DeviceSession(
                user_id=principal.identity,
                device_id=device_id,
                platform=platform,
                device_info_json={"deviceId": device_id, "platform": platform},
                token_digest=token_digest(token),
                created_at=now,
                last_active=now,
            )
            db.add(session)
            logger.info("[auth] created device session user=%s device=%s", principal.identity, device_id)
        else:
            session.token_digest = token_digest(token)
            session.last_active = now
            logger.debug("[auth] updated device session user=%s device=%s", principal.identity, device_id)
        return session

    def authenticate(
        self,
        db: Session,
        token: str,
        *,
        device_id: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> Principal:
        principal = self.verify(db, token)
        if device_id:
            with unit_of_work(db, label="device session"):
                self.trust_on_first_use(
                    db,
                    principal=principal,
                    token=token,
                    device_id=device_id,
                    platform=platform,
                )
        return principal

    def refresh(self, db: Session, old_token: str, *, device_id: str) -> str:
        principal = self.verify(db, old_token)

        with unit_of_work(db, label="token refresh"):
            session = self.get_session(db, user_id=principal.identity, device_id=device_id)
            if session is None:
                raise NoSession()

            new_token = self.issue(
                identity=principal.identity,
                display_name=principal.display_name,
                issued_for=principal.issued_for,
            )
            now = utcnow()
            session.token_digest = token_digest(new_token)
            session.last_active = now
            session.last_refresh = now

            db.add(
                InvalidatedToken(
                    token_digest=token_digest(old_token),
                    user_id=principal.identity,
                    device_id=device_id,
                    reason=InvalidationReason.refresh.value,
                )
            )

        logger.info("[auth] token refreshed user=%s device=%s", principal.identity, device_id)
        return new_token

    def invalidate(self, db: Session, token: str, *, device_id: Optional[str] = None) -> None:
        principal = self.verify(db, token)

        with unit_of_work(db, label="token invalidation"):
            if device_id:
                session = self.get_session(db, user_id=principal.identity, device_id=device_id)
                if session is not None:
                    db.delete(session)
            db.add(
                InvalidatedToken(
                    token_digest=token_digest(token),
                    user_id=principal.identity,
                    device_id=device_id,
                    reason=InvalidationReason.logout.value,
                )
            )

        logger.info("[auth] token invalidated user=%s device=%s", principal.identity, device_id)

    def sync(
        self,
        db: Session,
        token: str,
        *,
        device_id: str,
        device_info: Optional[Dict[str, Any]] = None,
    ) -> DeviceSession:
        """Periodic client sync: upsert the device session and stamp last_sync."""
        principal = self.verify(db, token)

        with unit_of_work(db, label="session sync"):
            session = self.trust_on_first_use(
                db,
                principal=principal,
                token=token,
                device_id=device_id,
                platform=(device_info or {}).get("platform"),
            )
            if device_info:
                session.device_info_json = {**device_info, "deviceId": device_id}
            session.last_sync = utcnow()

        return session

    def check_status(self, db: Session, token: str) -> TokenStatus:
        try:
            principal = self.decode(token)
        except Unauthenticated:
            return TokenStatus(valid=False, principal=None, message="Invalid token")

        if self.is_invalidated(db, token):
            return TokenStatus(valid=False, principal=None, message="Token has been invalidated")

        return TokenStatus(valid=True, principal=principal, message="Token is valid and not invalidated")
