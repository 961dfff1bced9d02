# app/integrations/content_store.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict

import requests

from app.core.errors import UpstreamSyncFailure

logger = logging.getLogger(__name__)


class ContentStore:
    """Content-addressed storage for completed verification envelopes."""

    def pin_json(self, name: str, envelope: Dict[str, Any]) -> str:
        raise NotImplementedError


class IpfsContentStore(ContentStore):
    """
    Pins a JSON envelope through the IPFS HTTP API and returns its CID.
    """

    def __init__(self, api_url: str, timeout: float = 60.0):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def pin_json(self, name: str, envelope: Dict[str, Any]) -> str:
        content = json.dumps(envelope, indent=2, default=str).encode("utf-8")
        url = f"{self.api_url}/api/v0/add"
        try:
            response = self.session.post(
                url,
                params={"pin": "true"},
                files={"file": (name, content, "application/json")},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("[ipfs] upload of %s failed: %s", name, exc)
            raise UpstreamSyncFailure("Content store upload failed", detail=str(exc)) from exc

        cid = body.get("Hash") if isinstance(body, dict) else None
        if not cid:
            raise UpstreamSyncFailure("Content store returned no hash", detail=repr(body)[:200])

        logger.info("[ipfs] pinned %s cid=%s", name, cid)
        return cid
