from conftest import bearer, citizen_login, gov_login, registration_payload, transfer_payload

CONFIRM = {"transactionHash": "0xapprove", "blockNumber": "0x10", "currentBlockchainId": "BC-2"}


def register_on_chain(client, token, property_id="PROP-100", blockchain_id="BC-1"):
    r = client.post(
        "/api/v1/requests/registration",
        json=registration_payload(property_id, blockchain_id=blockchain_id, tx_hash=f"0x{blockchain_id.lower()}"),
        headers=bearer(token),
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_ledger_id_lookup_adds_hex_prefix(client):
    token = citizen_login(client)
    register_on_chain(client, token, blockchain_id="abc123")

    r = client.get("/api/v1/ledger/ids/PROP-100")
    assert r.status_code == 200
    assert r.json() == {"propertyId": "PROP-100", "blockchainId": "0xabc123"}


def test_ledger_id_lookup_unknown_property(client):
    assert client.get("/api/v1/ledger/ids/PROP-404").status_code == 404


def test_search_by_hash_falls_back_to_transfer_requests(client):
    token = citizen_login(client)
    client.post("/api/v1/requests/transfer", json=transfer_payload(tx_hash="0xpending"), headers=bearer(token))

    r = client.get("/api/v1/ledger/search/hash/0xpending")
    assert r.status_code == 200
    body = r.json()
    assert body["source"] == "transfer_request"
    assert body["owner"] == "owner@example.com"
    assert body["transactions"][0]["from"] == "owner@example.com"
    assert body["transactions"][0]["to"] == "buyer@example.com"

    assert client.get("/api/v1/ledger/search/hash/0xnothing").status_code == 404


def test_transfer_history_visible_through_every_lookup(client, db):
    citizen = citizen_login(client, "owner@example.com")
    buyer = citizen_login(client, "buyer@example.com")
    gov = gov_login(client, db)

    register_on_chain(client, citizen)
    transfer = client.post("/api/v1/requests/transfer", json=transfer_payload(), headers=bearer(citizen)).json()
    client.post(
        "/api/v1/review/approve",
        json={"kind": "transfer", "requestId": transfer["requestId"], "blockchainTransaction": CONFIRM},
        headers=bearer(gov),
    )

    by_hash = client.get("/api/v1/ledger/search/hash/0xapprove").json()
    assert by_hash["source"] == "ledger"
    assert by_hash["currentBlockchainId"] == "BC-2"
    assert [t["type"] for t in by_hash["transactions"]] == ["REGISTRATION", "TRANSFER", "VERIFICATION"]
    assert by_hash["transactions"][1]["blockNumber"] == "16"
    assert [b["id"] for b in by_hash["blockchainIds"]] == ["BC-1", "BC-2"]

    old_id = client.get("/api/v1/ledger/search/blockchain-id/BC-1").json()
    assert old_id["propertyId"] == "PROP-100"

    entry = client.get("/api/v1/ledger/entries/PROP-100", headers=bearer(citizen)).json()
    assert entry["owner"] == "buyer@example.com"
    assert entry["isVerified"] is True

    assert [p["propertyId"] for p in client.get("/api/v1/ledger/mine", headers=bearer(buyer)).json()] == ["PROP-100"]
    assert client.get("/api/v1/ledger/mine", headers=bearer(citizen)).json() == []

    verify = client.get("/api/v1/ledger/entries/PROP-100/verify", headers=bearer(gov)).json()
    assert verify == {"key": "PROP-100", "valid": True, "transactions": 3}
    assert client.get("/api/v1/ledger/entries/PROP-100/verify", headers=bearer(citizen)).status_code == 403


def test_manual_sync_and_bridge_failure(client, bridge):
    token = citizen_login(client)

    r = client.post(
        "/api/v1/ledger/sync",
        json={"propertyId": "PROP-7", "blockchainId": "BC-7", "txHash": "0x7"},
        headers=bearer(token),
    )
    assert r.status_code == 200
    assert r.json()["currentBlockchainId"] == "BC-7"
    assert r.json()["isVerified"] is False

    bridge.fail = True
    r = client.post(
        "/api/v1/ledger/sync",
        json={"propertyId": "PROP-8", "blockchainId": "BC-8", "txHash": "0x8"},
        headers=bearer(token),
    )
    assert r.status_code == 502


def test_document_lookup_is_owner_or_government(client, db):
    owner = citizen_login(client, "owner@example.com")
    other = citizen_login(client, "other@example.com")
    gov = gov_login(client, db)

    doc = client.post(
        "/api/v1/requests/document",
        json={
            "personalInfo": {"fullName": "Asha Rao"},
            "documents": {"document1": "uploads/id.png"},
        },
        headers=bearer(owner),
    ).json()
    approved = client.post(
        "/api/v1/review/approve",
        json={"kind": "document", "requestId": doc["requestId"]},
        headers=bearer(gov),
    ).json()

    path = f"/api/v1/ledger/documents/by-content-hash/{approved['contentHash']}"
    r = client.get(path, headers=bearer(owner))
    assert r.status_code == 200
    assert r.json()["isVerified"] is True
    assert r.json()["ledger"]["contentHash"] == approved["contentHash"]

    assert client.get(path, headers=bearer(other)).status_code == 403
    assert client.get(path, headers=bearer(gov)).status_code == 200

    by_id = client.get(f"/api/v1/ledger/documents/by-blockchain-id/{doc['blockchainId']}", headers=bearer(owner))
    assert by_id.status_code == 200
