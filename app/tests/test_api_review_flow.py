import threading

from sqlalchemy import select

from app.models.review_request import TransferRequest

from conftest import bearer, citizen_login, document_payload, gov_login, registration_payload, transfer_payload

CONFIRM = {"transactionHash": "0xapprove", "blockNumber": 991, "currentBlockchainId": "BC-2"}


def submit(client, token, kind, payload):
    r = client.post(f"/api/v1/requests/{kind}", json=payload, headers=bearer(token))
    assert r.status_code == 201, r.text
    return r.json()


def test_submit_registration_returns_pending(client):
    token = citizen_login(client)

    body = submit(client, token, "registration", registration_payload(blockchain_id="BC-1", tx_hash="0xreg"))

    assert body["status"] == "pending"
    assert body["kind"] == "registration"
    assert body["blockchainSync"] == "completed"
    assert body["blockchainId"] == "BC-1"


def test_invalid_submission_is_bad_request(client):
    token = citizen_login(client)
    r = client.post("/api/v1/requests/document", json={"personalInfo": {}, "documents": {}}, headers=bearer(token))
    assert r.status_code == 400


def test_transfer_without_ledger_ids_is_bad_request(client):
    token = citizen_login(client)
    r = client.post(
        "/api/v1/requests/transfer",
        json=transfer_payload(blockchain_id=None, tx_hash=None),
        headers=bearer(token),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Missing blockchain transaction details"


def test_unknown_kind_is_unprocessable(client):
    token = citizen_login(client)
    r = client.post("/api/v1/requests/mortgage", json={}, headers=bearer(token))
    assert r.status_code == 422


def test_citizen_cannot_review(client):
    token = citizen_login(client)
    submitted = submit(client, token, "registration", registration_payload())

    r = client.post(
        "/api/v1/review/approve",
        json={"kind": "registration", "requestId": submitted["requestId"], "blockchainTransaction": CONFIRM},
        headers=bearer(token),
    )
    assert r.status_code == 403
    assert client.get("/api/v1/review/pending/registration", headers=bearer(token)).status_code == 403


def test_citizen_sees_only_own_requests(client):
    owner = citizen_login(client, "owner@example.com")
    other = citizen_login(client, "other@example.com")
    submitted = submit(client, owner, "registration", registration_payload())

    assert client.get(f"/api/v1/requests/registration/{submitted['requestId']}", headers=bearer(owner)).status_code == 200
    assert client.get(f"/api/v1/requests/registration/{submitted['requestId']}", headers=bearer(other)).status_code == 403

    mine = client.get("/api/v1/requests/registration/mine", headers=bearer(owner)).json()
    assert [m["requestId"] for m in mine] == [submitted["requestId"]]
    assert client.get("/api/v1/requests/registration/mine", headers=bearer(other)).json() == []


def test_transfer_review_end_to_end(client, db):
    citizen = citizen_login(client, "owner@example.com")
    gov = gov_login(client, db)

    submit(client, citizen, "registration", registration_payload(blockchain_id="BC-1", tx_hash="0xreg"))
    transfer = submit(client, citizen, "transfer", transfer_payload())

    queue = client.get("/api/v1/review/pending/transfer", headers=bearer(gov)).json()
    assert [q["requestId"] for q in queue] == [transfer["requestId"]]
    assert queue[0]["ledger"]["currentBlockchainId"] == "BC-1"

    r = client.post(
        "/api/v1/review/approve",
        json={
            "kind": "transfer",
            "requestId": transfer["requestId"],
            "blockchainTransaction": CONFIRM,
            "verificationNotes": "deeds match",
        },
        headers=bearer(gov),
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "completed"
    assert r.json()["currentBlockchainId"] == "BC-2"

    assert client.get("/api/v1/review/pending/transfer", headers=bearer(gov)).json() == []

    again = client.post(
        "/api/v1/review/approve",
        json={"kind": "transfer", "requestId": transfer["requestId"], "blockchainTransaction": CONFIRM},
        headers=bearer(gov),
    )
    assert again.status_code == 409

    row = db.execute(select(TransferRequest)).scalar_one()
    assert row.status == "completed"
    assert row.verified_by == "reviewer@gov.in"


def test_approve_without_confirmation_is_bad_request(client, db):
    citizen = citizen_login(client)
    gov = gov_login(client, db)
    submitted = submit(client, citizen, "registration", registration_payload())

    r = client.post(
        "/api/v1/review/approve",
        json={"kind": "registration", "requestId": submitted["requestId"]},
        headers=bearer(gov),
    )
    assert r.status_code == 400


def test_approve_unknown_request_is_not_found(client, db):
    gov = gov_login(client, db)
    r = client.post(
        "/api/v1/review/approve",
        json={"kind": "registration", "requestId": "REG-MISSING", "blockchainTransaction": CONFIRM},
        headers=bearer(gov),
    )
    assert r.status_code == 404


def test_document_review_and_dashboard(client, db, content_store):
    citizen = citizen_login(client)
    gov = gov_login(client, db)
    approved = submit(client, citizen, "document", document_payload())
    rejected = submit(client, citizen, "document", document_payload())

    pending = client.get(f"/api/v1/review/pending-documents/{approved['requestId']}", headers=bearer(gov))
    assert pending.status_code == 200
    assert pending.json()["documents"]["document1"] == "uploads/id-front.png"

    r = client.post(
        "/api/v1/review/approve",
        json={"kind": "document", "requestId": approved["requestId"], "verificationNotes": "ok"},
        headers=bearer(gov),
    )
    assert r.status_code == 200
    assert r.json()["contentHash"].startswith("Qm")

    r = client.post(
        "/api/v1/review/reject",
        json={"kind": "document", "requestId": rejected["requestId"], "notes": "photo unreadable"},
        headers=bearer(gov),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"

    assert client.get(
        f"/api/v1/review/pending-documents/{approved['requestId']}", headers=bearer(gov)
    ).status_code == 404

    metrics = client.get("/api/v1/dashboard/metrics", headers=bearer(gov)).json()
    assert metrics["verifiedCount"] == 1
    assert metrics["rejectedCount"] == 1
    assert metrics["verificationCount"] == 0

    activity = client.get("/api/v1/dashboard/recent-activity", headers=bearer(gov)).json()
    assert sorted(a["status"] for a in activity) == ["REJECTED", "VERIFIED"]
    assert all(a["type"] == "DOCUMENT_VERIFICATION" for a in activity)

    assert client.get("/api/v1/dashboard/metrics", headers=bearer(citizen)).status_code == 403


def test_server_stays_responsive_while_approval_waits_on_content_store(client, db, content_store, monkeypatch):
    citizen = citizen_login(client)
    gov = gov_login(client, db)
    submitted = submit(client, citizen, "document", document_payload())

    entered = threading.Event()
    gate = threading.Event()
    pin_json = content_store.pin_json

    def slow_pin(name, envelope):
        entered.set()
        gate.wait(timeout=5)
        return pin_json(name, envelope)

    monkeypatch.setattr(content_store, "pin_json", slow_pin)

    outcome = {}

    def approve():
        outcome["response"] = client.post(
            "/api/v1/review/approve",
            json={"kind": "document", "requestId": submitted["requestId"]},
            headers=bearer(gov),
        )

    worker = threading.Thread(target=approve)
    worker.start()
    try:
        assert entered.wait(timeout=5)
        health = client.get("/api/v1/health")
        assert health.status_code == 200
        assert "response" not in outcome
    finally:
        gate.set()
        worker.join(timeout=10)

    assert outcome["response"].status_code == 200
    assert outcome["response"].json()["status"] == "completed"


def test_reject_without_notes_is_bad_request(client, db):
    citizen = citizen_login(client)
    gov = gov_login(client, db)
    submitted = submit(client, citizen, "registration", registration_payload())

    r = client.post(
        "/api/v1/review/reject",
        json={"kind": "registration", "requestId": submitted["requestId"]},
        headers=bearer(gov),
    )
    assert r.status_code == 400


def test_audit_log_filters_and_correlates(client, db):
    citizen = citizen_login(client)
    gov = gov_login(client, db)
    r = client.post(
        "/api/v1/requests/registration",
        json=registration_payload(),
        headers={**bearer(citizen), "X-Request-Id": "corr-123"},
    )
    request_id = r.json()["requestId"]

    records = client.get(
        "/api/v1/audit",
        params={"action": "REGISTRATION_SUBMITTED", "targetRef": request_id},
        headers=bearer(gov),
    ).json()["records"]

    assert len(records) == 1
    assert records[0]["requestId"] == "corr-123"
    assert records[0]["route"] == "/api/v1/requests/registration"
    assert records[0]["actorRole"] == "CITIZEN"

    assert client.get("/api/v1/audit", headers=bearer(citizen)).status_code == 403
