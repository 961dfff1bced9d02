#app/core/auth_deps.py
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import RegistryError, to_http
from app.db.session import get_db
from app.integrations.content_store import ContentStore, IpfsContentStore
from app.integrations.sync_bridge import HttpSyncBridge, SyncBridge
from app.policies.rbac import Principal, require_action
from app.services.session_service import SessionService
from app.services.workflow_engine import VerificationWorkflowEngine

bearer = HTTPBearer(auto_error=True)


def get_session_service() -> SessionService:
    return SessionService()


@lru_cache(maxsize=1)
def get_sync_bridge() -> SyncBridge:
    settings = get_settings()
    return HttpSyncBridge(settings.sync_bridge_url, timeout=settings.sync_bridge_timeout_seconds)


@lru_cache(maxsize=1)
def get_content_store() -> ContentStore:
    settings = get_settings()
    return IpfsContentStore(settings.ipfs_api_url, timeout=settings.ipfs_timeout_seconds)


def get_bearer_token(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    return creds.credentials


def get_current_principal(
    request: Request,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - JWT signature and expiry are valid
    - token is not on the revocation list
    - with an X-Device-Id header, the device session exists afterwards
      (trust-on-first-use) and is bound to this token
    """
    settings = get_settings()
    try:
        principal = sessions.authenticate(
            db,
            token,
            device_id=request.headers.get(settings.device_id_header),
            platform=request.headers.get("user-agent"),
        )
    except RegistryError as e:
        raise to_http(e)

    # Make principal available to downstream handlers
    request.state.principal = principal
    return principal


def require_action_dep(action: str):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        try:
            require_action(principal, action)
        except PermissionError as e:
            raise HTTPException(status_code=403, detail=str(e))
        return principal

    return _dep


def get_workflow_engine(
    db: Session = Depends(get_db),
    sync_bridge: SyncBridge = Depends(get_sync_bridge),
    content_store: ContentStore = Depends(get_content_store),
) -> VerificationWorkflowEngine:
    return VerificationWorkflowEngine(db, sync_bridge=sync_bridge, content_store=content_store)
