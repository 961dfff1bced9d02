# app/api/v1/ledger.py

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.auth_deps import get_current_principal, get_workflow_engine, require_action_dep
from app.core.errors import Forbidden, RegistryError, to_http
from app.db.session import get_db
from app.models.enums import ActorRole
from app.policies.rbac import ACTION_READ_AUDIT
from app.schemas.ledger import (
    ChainVerifyResponse,
    LedgerEntryOut,
    LedgerIdResponse,
    ManualSyncRequest,
)
from app.services.audit_service import request_context
from app.services.ledger_service import LedgerService
from app.services.ledger_views import LedgerViews, entry_view
from app.services.request_views import RequestViews
from app.services.workflow_engine import VerificationWorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ledger", tags=["ledger"])


# ─────────────────────────────────────────────
# PUBLIC LOOKUPS
# ─────────────────────────────────────────────

@router.get("/search/hash/{tx_hash}", response_model=LedgerEntryOut)
def search_by_transaction_hash(tx_hash: str, db: Session = Depends(get_db)):
    """Mirror first, then transfer requests carrying the hash."""
    logger.info("[ledger] search by hash %s", tx_hash)
    try:
        return LedgerViews().by_transaction_hash(db, tx_hash)
    except RegistryError as e:
        raise to_http(e)


@router.get("/search/blockchain-id/{blockchain_id}", response_model=LedgerEntryOut)
def search_by_blockchain_id(blockchain_id: str, db: Session = Depends(get_db)):
    try:
        return LedgerViews().by_blockchain_id(db, blockchain_id)
    except RegistryError as e:
        raise to_http(e)


@router.get("/ids/{property_id}", response_model=LedgerIdResponse)
def ledger_id_for_property(property_id: str, db: Session = Depends(get_db)):
    try:
        ledger_id = LedgerViews().ledger_id_for_property(db, property_id)
    except RegistryError as e:
        raise to_http(e)
    return LedgerIdResponse(propertyId=property_id, blockchainId=ledger_id)


# ─────────────────────────────────────────────
# AUTHENTICATED
# ─────────────────────────────────────────────

@router.get("/entries/{key}", response_model=LedgerEntryOut)
def get_entry(
    key: str,
    db: Session = Depends(get_db),
    principal=Depends(get_current_principal),
):
    try:
        return LedgerViews().by_key(db, key)
    except RegistryError as e:
        raise to_http(e)


@router.get(
    "/entries/{key}/verify",
    response_model=ChainVerifyResponse,
)
def verify_entry_chain(
    key: str,
    db: Session = Depends(get_db),
    principal=Depends(require_action_dep(ACTION_READ_AUDIT)),
):
    """
    Verifies hash-chain integrity.
    Auditor-grade endpoint.
    """
    svc = LedgerService()
    try:
        entry = svc.current_state(db, key)
        ok = svc.verify_chain(db, key)
    except RegistryError as e:
        raise to_http(e)

    logger.info("[ledger/verify] key=%s valid=%s", key, ok)
    return ChainVerifyResponse(key=key, valid=ok, transactions=len(entry.transactions))


@router.get("/mine", response_model=List[LedgerEntryOut])
def my_properties(
    db: Session = Depends(get_db),
    principal=Depends(get_current_principal),
):
    return LedgerViews().owned_properties(db, principal.identity)


@router.post("/sync", response_model=LedgerEntryOut)
def manual_sync(
    req: ManualSyncRequest,
    request: Request,
    principal=Depends(get_current_principal),
    engine: VerificationWorkflowEngine = Depends(get_workflow_engine),
):
    try:
        entry = engine.manual_sync(
            property_id=req.propertyId,
            blockchain_id=req.blockchainId,
            transaction_hash=req.txHash,
            principal=principal,
            ctx=request_context(request),
        )
    except RegistryError as e:
        raise to_http(e)
    return entry_view(entry)


@router.get("/documents/by-blockchain-id/{blockchain_id}")
def document_by_blockchain_id(
    blockchain_id: str,
    db: Session = Depends(get_db),
    principal=Depends(get_current_principal),
):
    try:
        row = LedgerViews().document(db, blockchain_id=blockchain_id)
    except RegistryError as e:
        raise to_http(e)
    return _document_for(principal, db, row)


@router.get("/documents/by-content-hash/{content_hash}")
def document_by_content_hash(
    content_hash: str,
    db: Session = Depends(get_db),
    principal=Depends(get_current_principal),
):
    try:
        row = LedgerViews().document(db, content_hash=content_hash)
    except RegistryError as e:
        raise to_http(e)
    return _document_for(principal, db, row)


def _document_for(principal, db: Session, row):
    if principal.role != ActorRole.GOV_AUTHORITY and row.created_by != principal.identity:
        raise to_http(Forbidden("Not your document."))
    return RequestViews().document_status(db, row)
