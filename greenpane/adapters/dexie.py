from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from greenpane.core.errors import UploadError

_venues_logger = logging.getLogger("greenpane.venues")


def dexie_link(offer_id: str, *, testnet: bool) -> str:
    return f"https://{'testnet.' if testnet else ''}dexie.space/offers/{offer_id}"


class DexieAdapter:
    def __init__(self, base_url: str, *, testnet: bool = False) -> None:
        self.base_url = base_url.rstrip("/")
        self.testnet = testnet

    def get_offer(self, offer_id: str) -> dict[str, Any]:
        clean_offer_id = str(offer_id).strip()
        if not clean_offer_id:
            raise ValueError("offer_id is required")
        url = f"{self.base_url}/v1/offers/{urllib.parse.quote(clean_offer_id)}"
        with urllib.request.urlopen(url, timeout=20) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
        if isinstance(payload, dict):
            return payload
        return {"success": False, "error": "invalid_response_format"}

    def post_offer(self, offer: str, *, drop_only: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {"offer": offer, "drop_only": bool(drop_only)}
        body = json.dumps(payload).encode("utf-8")
        req = urllib.request.Request(
            f"{self.base_url}/v1/offers",
            data=body,
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=20) as resp:
                result = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace").strip() if exc.fp else ""
            snippet = raw[:500] if raw else ""
            error = f"dexie_http_error:{exc.code}"
            if snippet:
                error = f"{error}:{snippet}"
            return {"success": False, "error_message": error}
        except urllib.error.URLError as exc:
            return {"success": False, "error_message": f"dexie_network_error:{exc.reason}"}
        if isinstance(result, dict):
            return result
        return {"success": False, "error_message": "invalid_response_format"}

    def upload_offer(self, offer: str) -> str:
        """Post a drop-only offer and return its Dexie link."""
        result = self.post_offer(offer, drop_only=True)
        if result.get("success") is not True:
            message = str(result.get("error_message") or result.get("error") or "unknown_error")
            _venues_logger.warning("dexie_upload_failed error=%s", message)
            raise UploadError("Dexie", message)
        offer_id = str(result.get("id", "")).strip()
        if not offer_id:
            raise UploadError("Dexie", "response did not include an offer id")
        _venues_logger.info("dexie_upload_ok offer_id=%s", offer_id)
        return dexie_link(offer_id, testnet=self.testnet)

    def offer_exists(self, offer_id: str) -> bool:
        if not str(offer_id or "").strip():
            return False
        try:
            payload = self.get_offer(offer_id)
        except Exception as exc:
            _venues_logger.debug("dexie_lookup_failed offer_id=%s error=%s", offer_id, exc)
            return False
        return payload.get("success") is True
