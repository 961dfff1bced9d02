# app/api/v1/review.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.auth_deps import get_workflow_engine, require_action_dep
from app.core.errors import RegistryError, to_http
from app.core.types import RequestKind
from app.db.session import get_db
from app.policies.rbac import ACTION_REVIEW_REQUEST
from app.schemas.review import ApproveRequest, RejectRequest, ReviewResponse
from app.services.audit_service import request_context
from app.services.request_views import RequestViews
from app.services.workflow_engine import VerificationWorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/review", tags=["review"])

reviewer = require_action_dep(ACTION_REVIEW_REQUEST)


@router.post("/approve", response_model=ReviewResponse)
def approve_request(
    req: ApproveRequest,
    request: Request,
    principal=Depends(reviewer),
    engine: VerificationWorkflowEngine = Depends(get_workflow_engine),
):
    """
    Government approval. Registration and transfer approvals need the
    on-chain confirmation (transactionHash + currentBlockchainId).
    """
    confirmation = req.blockchainTransaction.model_dump() if req.blockchainTransaction else None
    try:
        result = engine.approve(
            req.kind,
            req.requestId,
            confirmation=confirmation,
            notes=req.verificationNotes,
            principal=principal,
            ctx=request_context(request),
        )
    except RegistryError as e:
        logger.info("[review] approve %s %s failed: %s", req.kind.value, req.requestId, e)
        raise to_http(e)

    return ReviewResponse(
        requestId=result.request_id,
        kind=result.kind,
        status=result.status,
        contentHash=result.content_hash,
        currentBlockchainId=result.current_blockchain_id,
    )


@router.post("/reject", response_model=ReviewResponse)
def reject_request(
    req: RejectRequest,
    request: Request,
    principal=Depends(reviewer),
    engine: VerificationWorkflowEngine = Depends(get_workflow_engine),
):
    try:
        result = engine.reject(
            req.kind,
            req.requestId,
            notes=req.notes,
            principal=principal,
            ctx=request_context(request),
        )
    except RegistryError as e:
        logger.info("[review] reject %s %s failed: %s", req.kind.value, req.requestId, e)
        raise to_http(e)

    return ReviewResponse(requestId=result.request_id, kind=result.kind, status=result.status)


@router.get("/pending/{kind}")
def pending_requests(
    kind: RequestKind,
    db: Session = Depends(get_db),
    principal=Depends(reviewer),
):
    return RequestViews().pending(db, kind)


@router.get("/pending-documents/{key}")
def pending_document(
    key: str,
    db: Session = Depends(get_db),
    principal=Depends(reviewer),
):
    try:
        return RequestViews().pending_document(db, key)
    except RegistryError as e:
        raise to_http(e)
