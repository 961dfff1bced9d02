#app/api/v1/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.auth_deps import get_bearer_token, get_current_principal, get_session_service
from app.core.config import get_settings
from app.core.errors import RegistryError, to_http
from app.db.session import get_db
from app.schemas.auth import (
    CitizenLoginRequest,
    GovernmentLoginRequest,
    InvalidateRequest,
    MeResponse,
    RefreshRequest,
    SyncRequest,
    TokenResponse,
    TokenStatusResponse,
)
from app.services.auth_service import authenticate_government, register_citizen
from app.services.session_service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=TokenResponse)
def login(
    req: CitizenLoginRequest,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    try:
        user = register_citizen(db, req.email, req.name)
    except RegistryError as e:
        raise to_http(e)

    token = sessions.issue(identity=user.email, display_name=user.name, issued_for="citizen")
    return TokenResponse(access_token=token, issued_for="citizen")


@router.post("/gov-login", response_model=TokenResponse)
def gov_login(
    req: GovernmentLoginRequest,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    try:
        user = authenticate_government(db, req.email, req.password)
    except RegistryError as e:
        raise to_http(e)

    logger.info("[auth] government login %s", user.email)
    token = sessions.issue(identity=user.email, display_name=user.name, issued_for="government")
    return TokenResponse(access_token=token, issued_for="government")


@router.get("/me", response_model=MeResponse)
def get_me(
    request: Request,
    principal=Depends(get_current_principal),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    session_info = None
    device_id = request.headers.get(get_settings().device_id_header)
    if device_id:
        s = sessions.get_session(db, user_id=principal.identity, device_id=device_id)
        if s is not None:
            session_info = {
                "deviceId": s.device_id,
                "platform": s.platform,
                "lastActiveIso": s.last_active.isoformat() if s.last_active else None,
                "lastSyncIso": s.last_sync.isoformat() if s.last_sync else None,
                "lastRefreshIso": s.last_refresh.isoformat() if s.last_refresh else None,
            }

    return MeResponse(
        identity=principal.identity,
        displayName=principal.display_name,
        role=principal.role.value,
        issuedFor=principal.issued_for,
        expiresAtIso=principal.expires_at.isoformat(),
        session=session_info,
    )


@router.get("/check-token-status", response_model=TokenStatusResponse)
def check_token_status(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    status = sessions.check_status(db, token)
    p = status.principal
    return TokenStatusResponse(
        valid=status.valid,
        message=status.message,
        identity=p.identity if p else None,
        issuedFor=p.issued_for if p else None,
        expiresAtIso=p.expires_at.isoformat() if p else None,
    )


@router.post("/logout")
def logout(
    request: Request,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    try:
        sessions.invalidate(db, token, device_id=request.headers.get(get_settings().device_id_header))
    except RegistryError as e:
        raise to_http(e)
    return {"message": "Logged out successfully", "clearToken": True}


@router.post("/sync")
def sync_session(
    req: SyncRequest,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    try:
        sessions.sync(db, token, device_id=req.deviceInfo.deviceId, device_info=req.deviceInfo.model_dump())
    except RegistryError as e:
        raise to_http(e)
    return {"message": "Token synced successfully"}


@router.post("/refresh", response_model=TokenResponse)
def refresh_token(
    req: RefreshRequest,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    try:
        new_token = sessions.refresh(db, token, device_id=req.deviceInfo.deviceId)
        issued_for = sessions.decode(new_token).issued_for
    except RegistryError as e:
        raise to_http(e)
    return TokenResponse(access_token=new_token, issued_for=issued_for)


@router.post("/invalidate")
def invalidate_token(
    req: InvalidateRequest,
    request: Request,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    device_id = req.deviceId or request.headers.get(get_settings().device_id_header)
    try:
        sessions.invalidate(db, token, device_id=device_id)
    except RegistryError as e:
        raise to_http(e)
    return {"message": "Token invalidated successfully"}
