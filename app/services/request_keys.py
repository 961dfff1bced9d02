# app/services/request_keys.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Type, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.types import RequestKeyField, RequestKind
from app.models.review_request import RegistrationRequest, TransferRequest, VerificationRequest

ReviewRequest = Union[RegistrationRequest, TransferRequest, VerificationRequest]

MODEL_BY_KIND: Dict[RequestKind, Type] = {
    RequestKind.registration: RegistrationRequest,
    RequestKind.transfer: TransferRequest,
    RequestKind.document: VerificationRequest,
}

# candidate order per kind; first hit wins
KEY_ORDER: Dict[RequestKind, List[RequestKeyField]] = {
    RequestKind.registration: [RequestKeyField.request_id, RequestKeyField.property_id, RequestKeyField.pk],
    RequestKind.transfer: [RequestKeyField.request_id, RequestKeyField.property_id, RequestKeyField.pk],
    RequestKind.document: [RequestKeyField.request_id, RequestKeyField.pk],
}


@dataclass(frozen=True)
class RequestKey:
    kind: RequestKind
    field: RequestKeyField
    value: Union[str, uuid.UUID]


def _as_uuid(raw: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(raw)
    except ValueError:
        return None


def resolve_request_keys(kind: RequestKind, raw: str) -> List[RequestKey]:
    """
    Typed candidate keys for a caller-supplied identifier.

    pk is only a candidate when `raw` parses as a UUID; a blank value
    yields no candidates at all.
    """
    raw = (raw or "").strip()
    if not raw:
        return []

    keys: List[RequestKey] = []
    for field in KEY_ORDER[kind]:
        if field == RequestKeyField.pk:
            pk = _as_uuid(raw)
            if pk is not None:
                keys.append(RequestKey(kind=kind, field=field, value=pk))
        else:
            keys.append(RequestKey(kind=kind, field=field, value=raw))
    return keys


def find_request(
    db: Session,
    kind: RequestKind,
    raw: str,
    *,
    for_update: bool = False,
) -> Optional[ReviewRequest]:
    model = MODEL_BY_KIND[kind]

    for key in resolve_request_keys(kind, raw):
        if key.field == RequestKeyField.pk:
            column = model.id
        elif key.field == RequestKeyField.property_id:
            column = model.property_id
        else:
            column = model.request_id

        stmt = select(model).where(column == key.value).order_by(model.created_at.desc()).limit(1)
        if for_update:
            stmt = stmt.with_for_update()

        found = db.execute(stmt).scalar_one_or_none()
        if found is not None:
            return found

    return None
