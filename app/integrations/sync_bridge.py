# app/integrations/sync_bridge.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from app.core.errors import UpstreamSyncFailure
from app.services.ledger_service import coerce_block_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertySyncResult:
    ledger_id: str
    transaction_hash: Optional[str]
    block_number: Optional[int] = None
    confirmation: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentSyncResult:
    blockchain_id: str
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    tx_data: Dict[str, Any] = field(default_factory=dict)


class SyncBridge:
    """
    Boundary to the distributed-ledger writer.

    Implementations raise UpstreamSyncFailure on any failure. Callers never
    invoke the bridge inside a unit of work.
    """

    def sync_property(self, descriptor: Dict[str, Any], transaction_hash: str) -> PropertySyncResult:
        raise NotImplementedError

    def sync_document(self, request: Dict[str, Any]) -> DocumentSyncResult:
        raise NotImplementedError


class HttpSyncBridge(SyncBridge):
    """JSON-over-HTTP client for the ledger sync service."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("[sync-bridge] POST %s failed: %s", path, exc)
            raise UpstreamSyncFailure("Ledger sync failed", detail=str(exc)) from exc

        if not isinstance(body, dict):
            logger.warning("[sync-bridge] POST %s returned %s, expected an object", path, type(body).__name__)
            raise UpstreamSyncFailure("Ledger sync returned an unexpected body", detail=repr(body)[:200])
        return body

    def sync_property(self, descriptor: Dict[str, Any], transaction_hash: str) -> PropertySyncResult:
        body = self._post(
            "/sync/property",
            {"property": descriptor, "transactionHash": transaction_hash},
        )
        ledger_id = body.get("ledgerId") or descriptor.get("blockchainId")
        if not ledger_id:
            raise UpstreamSyncFailure("Ledger sync returned no ledger id", detail=str(body))

        confirmation = body.get("confirmation")
        if not isinstance(confirmation, dict):
            confirmation = {}
        logger.info("[sync-bridge] property %s synced ledger_id=%s", descriptor.get("propertyId"), ledger_id)
        return PropertySyncResult(
            ledger_id=str(ledger_id),
            transaction_hash=confirmation.get("transactionHash") or transaction_hash,
            block_number=coerce_block_number(confirmation.get("blockNumber")),
            confirmation=confirmation,
        )

    def sync_document(self, request: Dict[str, Any]) -> DocumentSyncResult:
        body = self._post("/sync/document", {"request": request})
        blockchain_id = body.get("blockchainId")
        if not blockchain_id:
            raise UpstreamSyncFailure("Document sync returned no blockchain id", detail=str(body))

        tx_data = body.get("txData")
        if not isinstance(tx_data, dict):
            tx_data = {}
        logger.info("[sync-bridge] document %s synced blockchain_id=%s", request.get("requestId"), blockchain_id)
        return DocumentSyncResult(
            blockchain_id=str(blockchain_id),
            transaction_hash=tx_data.get("transactionHash"),
            block_number=coerce_block_number(tx_data.get("blockNumber")),
            tx_data=tx_data,
        )
