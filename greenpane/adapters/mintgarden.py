from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from greenpane.core.errors import UploadError
from greenpane.core.offer_identity import offer_hash

_venues_logger = logging.getLogger("greenpane.venues")


def mintgarden_link(offer_id: str, *, testnet: bool) -> str:
    return f"https://{'testnet.' if testnet else ''}mintgarden.io/offers/{offer_id}"


class MintGardenAdapter:
    def __init__(self, base_url: str, *, testnet: bool = False) -> None:
        self.base_url = base_url.rstrip("/")
        self.testnet = testnet

    def post_offer(self, offer: str) -> dict[str, Any]:
        body = json.dumps({"offer": offer}).encode("utf-8")
        req = urllib.request.Request(
            f"{self.base_url}/offer",
            data=body,
            method="POST",
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=30) as resp:
                result = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raw = exc.read().decode("utf-8", errors="replace").strip() if exc.fp else ""
            try:
                result = json.loads(raw) if raw else {}
            except ValueError:
                result = {"detail": raw[:500]}
            if not isinstance(result, dict) or not result.get("detail"):
                result = {"detail": f"mintgarden_http_error:{exc.code}"}
        except urllib.error.URLError as exc:
            return {"detail": f"mintgarden_network_error:{exc.reason}"}
        if isinstance(result, dict):
            return result
        return {"detail": "invalid_response_format"}

    def get_offer(self, offer_id: str) -> dict[str, Any]:
        url = f"{self.base_url}/offers/{urllib.parse.quote(offer_id)}"
        with urllib.request.urlopen(url, timeout=20) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
        if isinstance(payload, dict):
            return payload
        return {}

    def upload_offer(self, offer: str) -> str:
        """Post an offer and return its MintGarden link."""
        result = self.post_offer(offer)
        posted = result.get("offer") if isinstance(result.get("offer"), dict) else {}
        offer_id = str(posted.get("id") or "").strip()
        if not offer_id:
            message = str(result.get("detail") or "unknown_error")
            _venues_logger.warning("mintgarden_upload_failed error=%s", message)
            raise UploadError("MintGarden", message)
        _venues_logger.info("mintgarden_upload_ok offer_id=%s", offer_id)
        return mintgarden_link(offer_id, testnet=self.testnet)

    def offer_exists(self, offer: str) -> bool:
        """Look the offer up by its content hash; failures count as absent."""
        if not str(offer or "").strip():
            return False
        expected = offer_hash(offer)
        try:
            payload = self.get_offer(expected)
        except Exception as exc:
            _venues_logger.debug("mintgarden_lookup_failed hash=%s error=%s", expected, exc)
            return False
        return payload.get("id") == expected
