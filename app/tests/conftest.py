import os

# settings are read at import time; tests never need a real database server
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GOVERNMENT_EMAIL_DOMAIN", "gov.in")

import hashlib  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

# FORCE model registration
import app.models  # noqa: E402,F401

from app.core.auth_deps import get_content_store, get_sync_bridge  # noqa: E402
from app.core.errors import UpstreamSyncFailure  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.integrations.content_store import ContentStore  # noqa: E402
from app.integrations.sync_bridge import DocumentSyncResult, PropertySyncResult, SyncBridge  # noqa: E402
from app.models.enums import ActorRole  # noqa: E402
from app.policies.rbac import Principal  # noqa: E402
from app.services.session_service import SessionService  # noqa: E402
from app.services.workflow_engine import VerificationWorkflowEngine  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class FakeSyncBridge(SyncBridge):
    def __init__(self):
        self.fail = False
        self.property_calls = []
        self.document_calls = []

    def sync_property(self, descriptor, transaction_hash):
        self.property_calls.append((descriptor, transaction_hash))
        if self.fail:
            raise UpstreamSyncFailure("bridge down")
        return PropertySyncResult(
            ledger_id=descriptor["blockchainId"],
            transaction_hash=transaction_hash,
            block_number=100,
        )

    def sync_document(self, request):
        self.document_calls.append(request)
        if self.fail:
            raise UpstreamSyncFailure("bridge down")
        return DocumentSyncResult(
            blockchain_id=f"DOC-{request['requestId']}",
            transaction_hash=f"0xdoc{request['requestId'].lower()}",
            block_number=7,
        )


class FakeContentStore(ContentStore):
    def __init__(self):
        self.fail = False
        self.pinned = []

    def pin_json(self, name, envelope):
        if self.fail:
            raise UpstreamSyncFailure("ipfs down")
        self.pinned.append((name, envelope))
        return "Qm" + hashlib.sha256(name.encode()).hexdigest()[:44]


def citizen(email="citizen@example.com", name="Citizen"):
    return Principal(
        identity=email,
        display_name=name,
        role=ActorRole.CITIZEN,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
    )


def reviewer(email="reviewer@gov.in", name="Reviewer"):
    return Principal(
        identity=email,
        display_name=name,
        role=ActorRole.GOV_AUTHORITY,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
    )


def registration_payload(property_id="PROP-100", owner="owner@example.com", blockchain_id=None, tx_hash=None, **extra):
    prop = {
        "propertyId": property_id,
        "propertyName": "Lake View Plot",
        "locality": "Whitefield",
        "propertyType": "residential",
    }
    if blockchain_id:
        prop["blockchainId"] = blockchain_id
    if tx_hash:
        prop["transactionHash"] = tx_hash
    payload = {
        "ownerInfo": {"email": owner, "name": "Owner", "walletAddress": "0xowner"},
        "propertyInfo": prop,
        "witnessInfo": {"name": "Witness One"},
        "appointmentInfo": {"office": "SRO Whitefield", "date": "2026-11-02"},
        "documents": {"saleDeed": "uploads/sale-deed.pdf"},
    }
    payload.update(extra)
    return payload


def transfer_payload(property_id="PROP-100", current="owner@example.com", new="buyer@example.com",
                     blockchain_id="BC-1", tx_hash="0xtransfer", **extra):
    payload = {
        "currentOwnerInfo": {"email": current, "walletAddress": "0xowner"},
        "newOwnerInfo": {"email": new, "walletAddress": "0xbuyer"},
        "propertyInfo": {"propertyId": property_id, "propertyName": "Lake View Plot"},
        "witnessInfo": {"name": "Witness Two"},
        "appointmentInfo": {"office": "SRO Whitefield"},
        "blockchainInfo": {"blockchainId": blockchain_id, "transactionHash": tx_hash},
        "documents": {"saleDeed": "uploads/transfer-deed.pdf"},
    }
    payload.update(extra)
    return payload


def document_payload(**extra):
    payload = {
        "personalInfo": {"fullName": "Asha Rao", "documentType": "aadhaar", "idNumber": "1234-5678-9012"},
        "documents": {"document1": "uploads/id-front.png", "document2": "uploads/id-back.png"},
    }
    payload.update(extra)
    return payload


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def bridge():
    return FakeSyncBridge()


@pytest.fixture()
def content_store():
    return FakeContentStore()


@pytest.fixture()
def workflow(db, bridge, content_store):
    return VerificationWorkflowEngine(db, sync_bridge=bridge, content_store=content_store)


@pytest.fixture()
def sessions():
    return SessionService()


@pytest.fixture()
def client(db, bridge, content_store):
    from app.main import create_app

    app = create_app()

    def override_get_db():
        s = TestingSessionLocal()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_bridge] = lambda: bridge
    app.dependency_overrides[get_content_store] = lambda: content_store

    with TestClient(app) as c:
        yield c


def bearer(token, device_id=None):
    headers = {"Authorization": f"Bearer {token}"}
    if device_id:
        headers["X-Device-Id"] = device_id
    return headers


def citizen_login(client, email="citizen@example.com", name="Citizen"):
    r = client.post("/api/v1/auth/login", json={"email": email, "name": name})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def gov_login(client, db, email="reviewer@gov.in", password="s3cret-pass"):
    from app.services.auth_service import create_government_user

    create_government_user(db, email=email, name="Reviewer", password=password)
    r = client.post("/api/v1/auth/gov-login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]
