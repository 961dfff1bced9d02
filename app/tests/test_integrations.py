import pytest

from app.core.errors import UpstreamSyncFailure
from app.core.types import RequestKind
from app.integrations.content_store import IpfsContentStore
from app.integrations.sync_bridge import HttpSyncBridge
from app.services.request_keys import find_request
from app.services.workflow_engine import VerificationWorkflowEngine

from conftest import FakeContentStore, citizen, document_payload, registration_payload


class StubResponse:
    def __init__(self, body):
        self.body = body

    def raise_for_status(self):
        pass

    def json(self):
        return self.body


def answering(body):
    def post(*args, **kwargs):
        return StubResponse(body)

    return post


@pytest.mark.parametrize("body", [["unexpected", "shape"], "ok", 42, None])
def test_bridge_rejects_non_object_body(monkeypatch, body):
    bridge = HttpSyncBridge("http://bridge")
    monkeypatch.setattr(bridge.session, "post", answering(body))

    with pytest.raises(UpstreamSyncFailure):
        bridge.sync_property({"propertyId": "PROP-1", "blockchainId": "BC-1"}, "0x1")
    with pytest.raises(UpstreamSyncFailure):
        bridge.sync_document({"requestId": "VR1"})


def test_bridge_tolerates_non_object_confirmation(monkeypatch):
    bridge = HttpSyncBridge("http://bridge")
    monkeypatch.setattr(bridge.session, "post", answering({"ledgerId": "BC-1", "confirmation": "pending"}))

    result = bridge.sync_property({"propertyId": "PROP-1", "blockchainId": "BC-1"}, "0x1")

    assert result.ledger_id == "BC-1"
    assert result.transaction_hash == "0x1"
    assert result.block_number is None


def test_bridge_reads_hex_block_number(monkeypatch):
    bridge = HttpSyncBridge("http://bridge")
    monkeypatch.setattr(
        bridge.session,
        "post",
        answering({"blockchainId": "DOC-1", "txData": {"transactionHash": "0xd", "blockNumber": "0x10"}}),
    )

    result = bridge.sync_document({"requestId": "VR1"})

    assert result.blockchain_id == "DOC-1"
    assert result.block_number == 16


def test_list_body_from_bridge_marks_submission_sync_failed(db, monkeypatch):
    bridge = HttpSyncBridge("http://bridge")
    monkeypatch.setattr(bridge.session, "post", answering(["unexpected", "shape"]))
    engine = VerificationWorkflowEngine(db, sync_bridge=bridge, content_store=FakeContentStore())

    registration = engine.submit(
        RequestKind.registration,
        registration_payload(blockchain_id="BC-9", tx_hash="0x9"),
        principal=citizen(),
    )
    document = engine.submit(RequestKind.document, document_payload(), principal=citizen())

    assert registration.blockchain_sync == "failed"
    assert document.blockchain_sync == "failed"
    assert find_request(db, RequestKind.registration, registration.request_id).status == "pending"
    assert find_request(db, RequestKind.document, document.request_id).blockchain_id is None
    assert engine.ledger.get_entry(db, "PROP-100") is None


@pytest.mark.parametrize("body", [["Qm123"], "Qm123", {"Name": "envelope"}])
def test_content_store_rejects_body_without_hash(monkeypatch, body):
    store = IpfsContentStore("http://ipfs:5001")
    monkeypatch.setattr(store.session, "post", answering(body))

    with pytest.raises(UpstreamSyncFailure):
        store.pin_json("document_VR1", {"requestId": "VR1"})


def test_content_store_returns_hash(monkeypatch):
    store = IpfsContentStore("http://ipfs:5001")
    monkeypatch.setattr(store.session, "post", answering({"Name": "document_VR1", "Hash": "QmAbc"}))

    assert store.pin_json("document_VR1", {"requestId": "VR1"}) == "QmAbc"
