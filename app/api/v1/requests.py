# app/api/v1/requests.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal, get_workflow_engine
from app.core.errors import Forbidden, RegistryError, to_http
from app.core.types import RequestKind
from app.db.session import get_db
from app.models.enums import ActorRole
from app.policies.rbac import ACTION_SUBMIT_REQUEST, require_action
from app.schemas.requests import RequestSummary, SubmissionResponse
from app.services.audit_service import request_context
from app.services.request_views import RequestViews
from app.services.workflow_engine import VerificationWorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["requests"])


@router.post("/{kind}", response_model=SubmissionResponse, status_code=201)
def submit_request(
    kind: RequestKind,
    request: Request,
    payload: Dict[str, Any] = Body(...),
    principal=Depends(get_current_principal),
    engine: VerificationWorkflowEngine = Depends(get_workflow_engine),
):
    """
    Submit a registration, transfer or document-verification request.
    Document slots carry opaque storage paths; uploads happen elsewhere.
    """
    try:
        require_action(principal, ACTION_SUBMIT_REQUEST)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    try:
        result = engine.submit(kind, payload, principal=principal, ctx=request_context(request))
    except RegistryError as e:
        raise to_http(e)

    return SubmissionResponse(
        requestId=result.request_id,
        kind=result.kind.value,
        status=result.status,
        blockchainId=result.blockchain_id,
        blockchainSync=result.blockchain_sync,
    )


@router.get("/{kind}/mine", response_model=List[RequestSummary])
def list_my_requests(
    kind: RequestKind,
    db: Session = Depends(get_db),
    principal=Depends(get_current_principal),
):
    return RequestViews().list_mine(db, kind, principal.identity)


@router.get("/{kind}/{key}", response_model=RequestSummary)
def get_request(
    kind: RequestKind,
    key: str,
    db: Session = Depends(get_db),
    principal=Depends(get_current_principal),
):
    try:
        item = RequestViews().get(db, kind, key)
    except RegistryError as e:
        raise to_http(e)

    if principal.role != ActorRole.GOV_AUTHORITY and item["createdBy"] != principal.identity:
        raise to_http(Forbidden("Not your request."))
    return item
