# app/services/workflow_engine.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import (
    AlreadyFinalized,
    DuplicateRequest,
    MissingBlockchainData,
    NotFound,
    StoreTransactionFailure,
    UpstreamSyncFailure,
    ValidationFailed,
)
from app.core.redaction import redact
from app.core.types import RequestKind
from app.db.unit_of_work import unit_of_work
from app.integrations.content_store import ContentStore
from app.integrations.sync_bridge import SyncBridge
from app.models.enums import (
    ActivityStatus,
    LedgerEventType,
    LedgerSubject,
    RequestStatus,
    VerificationStep,
)
from app.models.ledger import LedgerEntry
from app.models.review_request import RegistrationRequest, TransferRequest, VerificationRequest
from app.models.timestamps import utcnow
from app.policies.rbac import Principal
from app.schemas.requests import DocumentSubmission, RegistrationSubmission, TransferSubmission
from app.services.audit_service import (
    ActivityService,
    ActivityType,
    AuditAction,
    AuditService,
    RequestContext,
)
from app.services.ledger_service import LedgerEvent, LedgerService, coerce_block_number
from app.services.request_keys import MODEL_BY_KIND, ReviewRequest, find_request

logger = logging.getLogger(__name__)


SUBMISSION_SCHEMAS = {
    RequestKind.registration: RegistrationSubmission,
    RequestKind.transfer: TransferSubmission,
    RequestKind.document: DocumentSubmission,
}

REQUEST_ID_PREFIX = {
    RequestKind.registration: "REG",
    RequestKind.transfer: "TRF",
    RequestKind.document: "VR",
}

SUBMIT_ACTIONS = {
    RequestKind.registration: AuditAction.REGISTRATION_SUBMITTED,
    RequestKind.transfer: AuditAction.TRANSFER_SUBMITTED,
    RequestKind.document: AuditAction.DOCUMENT_SUBMITTED,
}
APPROVE_ACTIONS = {
    RequestKind.registration: AuditAction.REGISTRATION_VERIFIED,
    RequestKind.transfer: AuditAction.TRANSFER_VERIFIED,
    RequestKind.document: AuditAction.DOCUMENT_VERIFIED,
}
REJECT_ACTIONS = {
    RequestKind.registration: AuditAction.REGISTRATION_REJECTED,
    RequestKind.transfer: AuditAction.TRANSFER_REJECTED,
    RequestKind.document: AuditAction.DOCUMENT_REJECTED,
}
ACTIVITY_TYPES = {
    RequestKind.registration: ActivityType.PROPERTY_REGISTRATION,
    RequestKind.transfer: ActivityType.PROPERTY_TRANSFER,
    RequestKind.document: ActivityType.DOCUMENT_VERIFICATION,
}

INITIAL_DOCUMENT_STEPS = (
    VerificationStep.document_submitted,
    VerificationStep.initial_verification,
    VerificationStep.government_verification,
    VerificationStep.final_approval,
)


@dataclass(frozen=True)
class SubmissionResult:
    request_id: str
    kind: RequestKind
    status: str
    blockchain_id: Optional[str] = None
    blockchain_sync: str = "skipped"  # completed | skipped | failed


@dataclass(frozen=True)
class ReviewResult:
    request_id: str
    kind: RequestKind
    status: str
    content_hash: Optional[str] = None
    current_blockchain_id: Optional[str] = None


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def _initial_steps() -> list:
    now = utcnow().isoformat()
    steps = []
    for step in INITIAL_DOCUMENT_STEPS:
        done = step == VerificationStep.document_submitted
        steps.append(
            {
                "step": step.value,
                "status": "completed" if done else "pending",
                "timestamp": now if done else None,
            }
        )
    return steps


class VerificationWorkflowEngine:
    """
    State machine for review requests:

        submitted -> pending -> completed | rejected   (terminal)

    Every state change runs in one unit of work on `db` together with its
    ledger appends, activity entry and audit entry. Sync Bridge and content
    store calls always happen outside the unit of work.
    """

    def __init__(
        self,
        db: Session,
        *,
        sync_bridge: SyncBridge,
        content_store: ContentStore,
        ledger: Optional[LedgerService] = None,
        audit: Optional[AuditService] = None,
        activity: Optional[ActivityService] = None,
    ):
        self.db = db
        self.sync_bridge = sync_bridge
        self.content_store = content_store
        self.ledger = ledger or LedgerService()
        self.audit = audit or AuditService()
        self.activity = activity or ActivityService()

    # ─────────────────────────────────────────────
    # SUBMIT
    # ─────────────────────────────────────────────

    def _parse(self, kind: RequestKind, payload: Dict[str, Any]) -> BaseModel:
        try:
            return SUBMISSION_SCHEMAS[kind].model_validate(payload)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(p) for p in first.get("loc", ()))
            raise ValidationFailed(
                f"Invalid {kind.value} submission: {where} {first.get('msg')}".strip(),
                detail=str(exc),
            ) from exc

    def _request_id_taken(self, kind: RequestKind, request_id: str) -> bool:
        model = MODEL_BY_KIND[kind]
        return (
            self.db.execute(select(model.id).where(model.request_id == request_id).limit(1)).first()
            is not None
        )

    def _build_row(self, kind: RequestKind, data: BaseModel, *, request_id: str, principal: Principal, ip: Optional[str]):
        common = dict(
            request_id=request_id,
            status=RequestStatus.pending.value,
            documents_json=dict(data.documents),
            created_by=principal.identity,
            ip_address=ip,
        )

        if kind == RequestKind.registration:
            prop = data.propertyInfo
            return RegistrationRequest(
                **common,
                priority=data.priority,
                property_id=prop.propertyId,
                owner_info_json=data.ownerInfo.model_dump(),
                property_info_json=prop.model_dump(),
                witness_info_json=data.witnessInfo,
                appointment_info_json=data.appointmentInfo,
                blockchain_id=prop.blockchainId,
                transaction_hash=prop.transactionHash,
            )

        if kind == RequestKind.transfer:
            chain = data.blockchainInfo
            return TransferRequest(
                **common,
                priority=data.priority,
                property_id=data.propertyInfo.propertyId,
                current_owner_info_json=data.currentOwnerInfo.model_dump(),
                new_owner_info_json=data.newOwnerInfo.model_dump(),
                property_info_json=data.propertyInfo.model_dump(),
                witness_info_json=data.witnessInfo,
                appointment_info_json=data.appointmentInfo,
                blockchain_id=chain.blockchainId,
                transaction_hash=chain.transactionHash,
                blockchain_info_json=chain.model_dump(),
            )

        return VerificationRequest(
            **common,
            personal_info_json=data.personalInfo,
            verification_steps_json=_initial_steps(),
            is_verified=False,
        )

    def submit(
        self,
        kind: RequestKind,
        payload: Dict[str, Any],
        *,
        principal: Principal,
        ctx: Optional[RequestContext] = None,
    ) -> SubmissionResult:
        ctx = ctx or RequestContext()
        data = self._parse(kind, payload)

        if kind == RequestKind.transfer:
            chain = data.blockchainInfo
            if chain is None or not chain.blockchainId or not chain.transactionHash:
                raise MissingBlockchainData()

        request_id = data.requestId or f"{REQUEST_ID_PREFIX[kind]}{uuid.uuid4().hex[:16].upper()}"
        if self._request_id_taken(kind, request_id):
            raise DuplicateRequest(f"{kind.value} request {request_id} already exists")

        row = self._build_row(kind, data, request_id=request_id, principal=principal, ip=ctx.ip_address)

        with unit_of_work(self.db, label=f"{kind.value} submission"):
            self.db.add(row)
            self.audit.record(
                self.db,
                principal=principal,
                action=SUBMIT_ACTIONS[kind],
                request_kind=kind.value,
                target_ref=request_id,
                details={
                    "requestId": request_id,
                    "propertyId": getattr(row, "property_id", None),
                    "blockchainId": getattr(row, "blockchain_id", None),
                    "transactionHash": getattr(row, "transaction_hash", None),
                },
                ctx=ctx,
            )

        if kind == RequestKind.document:
            logger.info(
                "[workflow] document request %s submitted personal_info=%s",
                request_id,
                redact(data.personalInfo),
            )
        else:
            logger.info("[workflow] %s request %s submitted by %s", kind.value, request_id, principal.identity)

        if kind == RequestKind.registration:
            return self._sync_registration(row, data, principal)
        if kind == RequestKind.document:
            return self._sync_document(row, principal)

        return SubmissionResult(
            request_id=request_id,
            kind=kind,
            status=RequestStatus.pending.value,
            blockchain_id=data.blockchainInfo.blockchainId,
        )

    def _sync_registration(self, row: RegistrationRequest, data: RegistrationSubmission, principal: Principal) -> SubmissionResult:
        prop = data.propertyInfo
        request_id = row.request_id
        result = SubmissionResult(
            request_id=request_id,
            kind=RequestKind.registration,
            status=RequestStatus.pending.value,
            blockchain_id=prop.blockchainId,
        )

        if not (prop.blockchainId and prop.transactionHash):
            logger.info("[workflow] registration %s: skipping ledger sync, no ledger identifiers", request_id)
            return result

        descriptor = {
            "propertyId": prop.propertyId,
            "blockchainId": prop.blockchainId,
            "propertyName": prop.propertyName or "Property",
            "locality": prop.locality or "Not specified",
            "propertyType": prop.propertyType or "residential",
            "owner": data.ownerInfo.walletAddress or data.ownerInfo.email,
            "isVerified": False,
        }

        self._release_snapshot()
        try:
            confirmation = self.sync_bridge.sync_property(descriptor, prop.transactionHash)
            with unit_of_work(self.db, label="registration ledger sync"):
                self.ledger.record_sync(
                    self.db,
                    subject=LedgerSubject.PROPERTY,
                    entity_key=prop.propertyId,
                    ledger_id=confirmation.ledger_id,
                    transaction_hash=confirmation.transaction_hash,
                    block_number=confirmation.block_number,
                    owner=data.ownerInfo.email,
                    actor=principal.identity,
                    descriptors=descriptor,
                    details={"requestId": request_id},
                )
        except (UpstreamSyncFailure, StoreTransactionFailure) as exc:
            logger.warning("[workflow] registration %s: ledger sync failed: %s", request_id, exc)
            return replace(result, blockchain_sync="failed")

        return replace(result, blockchain_id=confirmation.ledger_id, blockchain_sync="completed")

    def _sync_document(self, row: VerificationRequest, principal: Principal) -> SubmissionResult:
        request_id = row.request_id
        result = SubmissionResult(
            request_id=request_id,
            kind=RequestKind.document,
            status=RequestStatus.pending.value,
        )

        payload = {
            "requestId": request_id,
            "userId": row.created_by,
            "documentType": (row.personal_info_json or {}).get("documentType"),
            "submissionDate": _iso(row.created_at),
        }
        self._release_snapshot()

        try:
            synced = self.sync_bridge.sync_document(payload)
            with unit_of_work(self.db, label="document ledger sync"):
                row.blockchain_id = synced.blockchain_id
                row.transaction_hash = synced.transaction_hash
                row.last_modified = utcnow()
                self.ledger.record_sync(
                    self.db,
                    subject=LedgerSubject.DOCUMENT,
                    entity_key=request_id,
                    ledger_id=synced.blockchain_id,
                    transaction_hash=synced.transaction_hash,
                    block_number=synced.block_number,
                    owner=row.created_by,
                    actor=principal.identity,
                    details={"requestId": request_id},
                )
        except (UpstreamSyncFailure, StoreTransactionFailure) as exc:
            logger.warning("[workflow] document %s: ledger sync failed: %s", request_id, exc)
            return replace(result, blockchain_sync="failed")

        return replace(result, blockchain_id=synced.blockchain_id, blockchain_sync="completed")

    def manual_sync(
        self,
        *,
        property_id: str,
        blockchain_id: str,
        transaction_hash: str,
        principal: Principal,
        ctx: Optional[RequestContext] = None,
    ) -> LedgerEntry:
        """
        Client-triggered sync of a property already written on-chain.
        Unlike submission, a bridge failure here is surfaced to the caller.
        """
        if not (property_id and blockchain_id and transaction_hash):
            raise ValidationFailed("Missing required fields")

        existing = self.ledger.get_entry(self.db, property_id)
        descriptor = {
            "propertyId": property_id,
            "blockchainId": blockchain_id,
            "isVerified": True,
            "locality": (existing.locality if existing else None) or "Not specified",
            "propertyType": (existing.property_type if existing else None) or "Not specified",
            "owner": (existing.owner if existing else None) or principal.identity,
        }
        self._release_snapshot()
        confirmation = self.sync_bridge.sync_property(descriptor, transaction_hash)

        with unit_of_work(self.db, label="manual ledger sync"):
            entry = self.ledger.record_sync(
                self.db,
                subject=LedgerSubject.PROPERTY,
                entity_key=property_id,
                ledger_id=confirmation.ledger_id,
                transaction_hash=confirmation.transaction_hash,
                block_number=confirmation.block_number,
                owner=descriptor["owner"],
                actor=principal.identity,
                descriptors=descriptor,
                details={"manual": True},
            )
            self.audit.record(
                self.db,
                principal=principal,
                action=AuditAction.LEDGER_MANUAL_SYNC,
                request_kind=None,
                target_ref=property_id,
                details={
                    "propertyId": property_id,
                    "blockchainId": confirmation.ledger_id,
                    "transactionHash": confirmation.transaction_hash,
                },
                ctx=ctx,
            )

        logger.info("[workflow] manual ledger sync %s -> %s", property_id, confirmation.ledger_id)
        return entry

    # ─────────────────────────────────────────────
    # REVIEW HELPERS
    # ─────────────────────────────────────────────

    def _release_snapshot(self) -> None:
        """Close the read transaction so no connection is held across an upstream call."""
        if self.db.in_transaction():
            self.db.rollback()

    def _load_pending(self, kind: RequestKind, key: str) -> ReviewRequest:
        request = find_request(self.db, kind, key)
        if request is None:
            raise NotFound(f"{kind.value} request not found: {key}")
        if request.is_terminal:
            raise AlreadyFinalized(f"{kind.value} request {request.request_id} is already {request.status}")
        return request

    def _lock(self, kind: RequestKind, request: ReviewRequest) -> ReviewRequest:
        """Re-read the row FOR UPDATE inside the unit of work and re-check the terminal guard."""
        model = MODEL_BY_KIND[kind]
        locked = self.db.execute(
            select(model)
            .where(model.id == request.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if locked is None:
            raise NotFound(f"{kind.value} request not found: {request.request_id}")
        if locked.is_terminal:
            raise AlreadyFinalized(f"{kind.value} request {locked.request_id} is already {locked.status}")
        return locked

    def _document_envelope(self, request: VerificationRequest, *, verifier: str, notes: Optional[str]) -> Dict[str, Any]:
        now = utcnow().isoformat()
        return {
            "requestId": request.request_id,
            "type": "document",
            "verificationDate": now,
            "verifier": verifier,
            "verificationNotes": notes,
            "originalData": {
                "requestId": request.request_id,
                "createdBy": request.created_by,
                "createdAt": _iso(request.created_at),
                "personalInfo": request.personal_info_json,
                "documents": request.documents_json,
                "verificationSteps": request.verification_steps_json,
                "blockchainId": request.blockchain_id,
                "transactionHash": request.transaction_hash,
            },
            "metadata": {
                "source": "Land Registry Document Verification",
                "timestamp": now,
                "version": "1.0",
                "verified": True,
                "verifier": verifier,
            },
        }

    # ─────────────────────────────────────────────
    # APPROVE
    # ─────────────────────────────────────────────

    def approve(
        self,
        kind: RequestKind,
        key: str,
        *,
        confirmation: Optional[Dict[str, Any]],
        notes: Optional[str],
        principal: Principal,
        ctx: Optional[RequestContext] = None,
    ) -> ReviewResult:
        confirmation = confirmation or {}
        tx_hash = confirmation.get("transactionHash")
        current_id = confirmation.get("currentBlockchainId")
        block_number = coerce_block_number(confirmation.get("blockNumber"))

        # no read or write happens before the confirmation is known to be complete
        if kind in (RequestKind.registration, RequestKind.transfer) and not (tx_hash and current_id):
            raise MissingBlockchainData()

        request = self._load_pending(kind, key)

        content_hash = None
        if kind == RequestKind.document:
            envelope = self._document_envelope(request, verifier=principal.identity, notes=notes)
            self._release_snapshot()
            content_hash = self.content_store.pin_json(f"document_{envelope['requestId']}", envelope)

        with unit_of_work(self.db, label=f"{kind.value} approval"):
            request = self._lock(kind, request)
            now = utcnow()

            request.status = RequestStatus.completed.value
            request.verified_by = principal.identity
            request.verified_at = now
            request.verification_notes = notes
            request.last_modified = now

            if kind == RequestKind.registration:
                entry = self._approve_registration(request, tx_hash, block_number, current_id, principal)
            elif kind == RequestKind.transfer:
                entry = self._approve_transfer(request, tx_hash, block_number, current_id, principal)
            else:
                entry = self._approve_document(request, tx_hash, block_number, current_id, content_hash, principal)

            transaction = {
                "transactionHash": entry.transactions[-1].transaction_hash,
                "blockNumber": entry.transactions[-1].block_number,
                "blockchainId": entry.current_blockchain_id,
            }
            self.activity.record(
                self.db,
                principal=principal,
                activity_type=ACTIVITY_TYPES[kind],
                status=ActivityStatus.VERIFIED.value,
                subject={
                    "kind": kind.value,
                    "requestId": request.request_id,
                    "propertyId": getattr(request, "property_id", None),
                },
                transaction=transaction,
                details={"notes": notes, "contentHash": content_hash},
            )
            self.audit.record(
                self.db,
                principal=principal,
                action=APPROVE_ACTIONS[kind],
                request_kind=kind.value,
                target_ref=request.request_id,
                details={
                    "requestId": request.request_id,
                    "status": RequestStatus.completed.value,
                    "contentHash": content_hash,
                    **transaction,
                },
                ctx=ctx,
            )
            result = ReviewResult(
                request_id=request.request_id,
                kind=kind,
                status=RequestStatus.completed.value,
                content_hash=content_hash,
                current_blockchain_id=entry.current_blockchain_id,
            )

        logger.info("[workflow] %s request %s approved by %s", kind.value, result.request_id, principal.identity)
        return result

    def _approve_registration(self, request: RegistrationRequest, tx_hash, block_number, current_id, principal) -> LedgerEntry:
        prop = request.property_info_json or {}
        owner = (request.owner_info_json or {}).get("email")

        request.blockchain_info_json = {
            "transactionHash": tx_hash,
            "blockNumber": block_number,
            "currentBlockchainId": current_id,
            "verifiedAt": utcnow().isoformat(),
        }

        entry = self.ledger.get_or_open_entry(
            self.db,
            subject=LedgerSubject.PROPERTY,
            entity_key=request.property_id,
            owner=owner,
            property_name=prop.get("propertyName"),
            locality=prop.get("locality"),
            property_type=prop.get("propertyType"),
        )
        if entry.owner is None:
            entry.owner = owner

        self.ledger.append_transaction(
            self.db,
            entry,
            LedgerEvent(
                event_type=LedgerEventType.VERIFICATION,
                transaction_hash=tx_hash,
                blockchain_id=current_id,
                block_number=block_number,
                actor=principal.identity,
                details={"requestId": request.request_id},
            ),
        )
        return entry

    def _approve_transfer(self, request: TransferRequest, tx_hash, block_number, current_id, principal) -> LedgerEntry:
        current_owner = request.current_owner_info_json or {}
        new_owner = request.new_owner_info_json or {}
        prop = request.property_info_json or {}

        request.blockchain_info_json = {
            **(request.blockchain_info_json or {}),
            "verification": {
                "transactionHash": tx_hash,
                "blockNumber": block_number,
                "currentBlockchainId": current_id,
                "verifiedAt": utcnow().isoformat(),
            },
        }

        entry = self.ledger.get_or_open_entry(
            self.db,
            subject=LedgerSubject.PROPERTY,
            entity_key=request.property_id,
            owner=current_owner.get("email"),
            property_name=prop.get("propertyName"),
            locality=prop.get("locality"),
            property_type=prop.get("propertyType"),
        )

        self.ledger.append_transaction(
            self.db,
            entry,
            LedgerEvent(
                event_type=LedgerEventType.TRANSFER,
                transaction_hash=tx_hash,
                blockchain_id=current_id,
                block_number=block_number,
                from_identity=current_owner.get("email"),
                to_identity=new_owner.get("email"),
                actor=principal.identity,
                details={
                    "requestId": request.request_id,
                    "fromAddress": current_owner.get("walletAddress"),
                    "toAddress": new_owner.get("walletAddress"),
                },
            ),
        )
        self.ledger.append_transaction(
            self.db,
            entry,
            LedgerEvent(
                event_type=LedgerEventType.VERIFICATION,
                transaction_hash=tx_hash,
                blockchain_id=current_id,
                block_number=block_number,
                actor=principal.identity,
                details={"requestId": request.request_id},
            ),
        )

        entry.owner = new_owner.get("email")
        entry.last_transfer_at = utcnow()
        return entry

    def _approve_document(self, request: VerificationRequest, tx_hash, block_number, current_id, content_hash, principal) -> LedgerEntry:
        entry = self.ledger.get_or_open_entry(
            self.db,
            subject=LedgerSubject.DOCUMENT,
            entity_key=request.request_id,
            owner=request.created_by,
        )

        blockchain_id = current_id or entry.current_blockchain_id or request.blockchain_id
        tx_hash = tx_hash or request.transaction_hash

        self.ledger.append_transaction(
            self.db,
            entry,
            LedgerEvent(
                event_type=LedgerEventType.VERIFICATION,
                transaction_hash=tx_hash,
                blockchain_id=blockchain_id,
                block_number=block_number,
                actor=principal.identity,
                details={"requestId": request.request_id, "contentHash": content_hash},
            ),
        )
        entry.content_hash = content_hash

        request.is_verified = True
        request.content_hash = content_hash
        request.blockchain_id = blockchain_id
        request.transaction_hash = tx_hash
        request.verification_steps_json = [
            *(request.verification_steps_json or []),
            {
                "step": VerificationStep.verification_completed.value,
                "status": "completed",
                "timestamp": utcnow().isoformat(),
                "verifier": principal.identity,
                "contentHash": content_hash,
                "blockchainId": blockchain_id,
                "transactionHash": tx_hash,
            },
        ]
        return entry

    # ─────────────────────────────────────────────
    # REJECT
    # ─────────────────────────────────────────────

    def reject(
        self,
        kind: RequestKind,
        key: str,
        *,
        notes: Optional[str],
        principal: Principal,
        ctx: Optional[RequestContext] = None,
    ) -> ReviewResult:
        notes = (notes or "").strip()
        if not notes:
            raise ValidationFailed("Rejection notes are required")

        request = self._load_pending(kind, key)

        with unit_of_work(self.db, label=f"{kind.value} rejection"):
            request = self._lock(kind, request)
            now = utcnow()

            request.status = RequestStatus.rejected.value
            request.rejected_by = principal.identity
            request.rejected_at = now
            request.rejection_reason = notes
            request.last_modified = now

            if kind == RequestKind.document:
                request.is_verified = False
                request.verification_steps_json = [
                    *(request.verification_steps_json or []),
                    {
                        "step": VerificationStep.verification_rejected.value,
                        "status": "rejected",
                        "timestamp": now.isoformat(),
                        "verifier": principal.identity,
                        "notes": notes,
                    },
                ]

            self.activity.record(
                self.db,
                principal=principal,
                activity_type=ACTIVITY_TYPES[kind],
                status=ActivityStatus.REJECTED.value,
                subject={
                    "kind": kind.value,
                    "requestId": request.request_id,
                    "propertyId": getattr(request, "property_id", None),
                },
                details={"notes": notes},
            )
            self.audit.record(
                self.db,
                principal=principal,
                action=REJECT_ACTIONS[kind],
                request_kind=kind.value,
                target_ref=request.request_id,
                details={"requestId": request.request_id, "status": RequestStatus.rejected.value},
                ctx=ctx,
            )
            result = ReviewResult(request_id=request.request_id, kind=kind, status=RequestStatus.rejected.value)

        logger.info("[workflow] %s request %s rejected by %s", kind.value, result.request_id, principal.identity)
        return result
