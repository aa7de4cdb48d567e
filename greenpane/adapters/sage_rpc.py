"""Sage wallet RPC adapter.

Sage serves its RPC on 127.0.0.1:9257 over mutual TLS. The client presents
the ``wallet.crt`` / ``wallet.key`` pair Sage generates in its data directory.
Every endpoint is ``POST /{endpoint_name}`` with a JSON body.
"""

from __future__ import annotations

import json
import logging
import platform
import ssl
from pathlib import Path
from typing import Any

import aiohttp

from greenpane.core.coin_state import CoinRecord
from greenpane.core.errors import BackendError
from greenpane.core.offer_builder import OfferRequest
from greenpane.core.offer_summary import OfferSummary, parse_offer_summary

_sage_logger = logging.getLogger("greenpane.sage")

DEFAULT_SAGE_HOST = "127.0.0.1"
DEFAULT_SAGE_PORT = 9257


def sage_data_dir() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path.home() / "AppData" / "Roaming"
    elif system == "Darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".local" / "share"
    return base / "com.rigidnetwork.sage"


def default_cert_path() -> Path:
    return sage_data_dir() / "ssl" / "wallet.crt"


def default_key_path() -> Path:
    return sage_data_dir() / "ssl" / "wallet.key"


class SageRpcError(Exception):
    """Raised when Sage RPC returns a non-200 status."""

    def __init__(self, status: int, body: str, endpoint: str = "") -> None:
        self.status = status
        self.body = body
        self.endpoint = endpoint
        super().__init__(f"Sage RPC {endpoint!r} failed with HTTP {status}: {body}")

    def to_backend_error(self) -> BackendError:
        try:
            payload = json.loads(self.body)
        except (TypeError, ValueError):
            payload = None
        if isinstance(payload, dict) and payload.get("reason"):
            return BackendError(str(payload.get("kind") or "internal"), str(payload["reason"]))
        return BackendError("internal", self.body.strip() or f"http_{self.status}")


class SageWrongFingerprintError(Exception):
    def __init__(self, expected: int, active: int | None) -> None:
        self.expected = expected
        self.active = active
        super().__init__(
            f"Sage wallet fingerprint mismatch: configured {expected}, active {active}. "
            "Log in to the correct wallet in the Sage UI to continue."
        )


class SageRpcClient:
    """Async client for the Sage wallet RPC.

    Usage::

        async with SageRpcClient(cert_path, key_path) as client:
            offer = await client.create_offer(request)
    """

    def __init__(
        self,
        cert_path: str | Path,
        key_path: str | Path,
        port: int = DEFAULT_SAGE_PORT,
        host: str = DEFAULT_SAGE_HOST,
        fingerprint: int | None = None,
    ) -> None:
        self._cert_path = Path(cert_path)
        self._key_path = Path(key_path)
        self._base_url = f"https://{host}:{port}"
        self._session: aiohttp.ClientSession | None = None
        self._fingerprint = fingerprint

    async def __aenter__(self) -> SageRpcClient:
        self._session = self._make_session()
        if self._fingerprint is None:
            return self
        try:
            key_resp = await self.get_key()
            active = (key_resp.get("key") or {}).get("fingerprint")
            if active != self._fingerprint:
                raise SageWrongFingerprintError(self._fingerprint, active)
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    def _make_session(self) -> aiohttp.ClientSession:
        ssl_ctx = ssl.create_default_context()
        ssl_ctx.check_hostname = False
        # Sage serves a self-signed certificate.
        ssl_ctx.verify_mode = ssl.CERT_NONE
        ssl_ctx.load_cert_chain(certfile=str(self._cert_path), keyfile=str(self._key_path))
        connector = aiohttp.TCPConnector(ssl=ssl_ctx)
        return aiohttp.ClientSession(connector=connector)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def call(self, endpoint: str, body: dict[str, Any] | None = None) -> Any:
        if self._session is None:
            self._session = self._make_session()
        url = f"{self._base_url}/{endpoint}"
        async with self._session.post(url, json=body or {}) as resp:
            text = await resp.text()
            if resp.status != 200:
                _sage_logger.warning("sage_rpc_failed endpoint=%s status=%s", endpoint, resp.status)
                raise SageRpcError(resp.status, text, endpoint)
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text

    async def get_key(self, fingerprint: int | None = None) -> dict[str, Any]:
        return await self.call("get_key", {"fingerprint": fingerprint})

    async def get_coins(
        self,
        *,
        asset_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"limit": limit, "offset": offset}
        if asset_id is not None:
            body["asset_id"] = asset_id
        return await self.call("get_coins", body)

    async def list_coin_records(self, *, asset_id: str | None = None, page_size: int = 100) -> list[CoinRecord]:
        records: list[CoinRecord] = []
        offset = 0
        while True:
            payload = await self.get_coins(asset_id=asset_id, limit=page_size, offset=offset)
            rows = payload.get("coins", []) if isinstance(payload, dict) else []
            records.extend(CoinRecord.from_rpc(row) for row in rows if isinstance(row, dict))
            total = int(payload.get("total", len(records))) if isinstance(payload, dict) else 0
            offset += len(rows)
            if not rows or offset >= total:
                return records

    async def make_offer(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self.call("make_offer", body)

    async def view_offer(self, offer: str) -> dict[str, Any]:
        return await self.call("view_offer", {"offer": offer})

    async def import_offer(self, offer: str) -> dict[str, Any]:
        try:
            return await self.call("import_offer", {"offer": offer})
        except SageRpcError as exc:
            raise exc.to_backend_error() from exc

    async def take_offer(self, offer: str, fee_mojos: int, *, auto_submit: bool = True) -> dict[str, Any]:
        try:
            return await self.call(
                "take_offer",
                {"offer": offer, "fee": fee_mojos, "auto_submit": auto_submit},
            )
        except SageRpcError as exc:
            raise exc.to_backend_error() from exc

    async def create_offer(self, request: OfferRequest) -> str:
        try:
            payload = await self.make_offer(request.to_rpc())
        except SageRpcError as exc:
            raise exc.to_backend_error() from exc
        offer = str(payload.get("offer", "")).strip() if isinstance(payload, dict) else ""
        if not offer:
            raise BackendError("internal", "make_offer response did not include an offer")
        return offer

    async def view_offer_summary(self, offer: str) -> OfferSummary:
        try:
            payload = await self.view_offer(offer)
        except SageRpcError as exc:
            raise exc.to_backend_error() from exc
        return parse_offer_summary(payload)


def resolve_sage_client(
    *,
    host: str = DEFAULT_SAGE_HOST,
    port: int = DEFAULT_SAGE_PORT,
    cert_path: str | None = None,
    key_path: str | None = None,
    fingerprint: int | None = None,
) -> SageRpcClient:
    cp = Path(cert_path).expanduser() if cert_path else default_cert_path()
    kp = Path(key_path).expanduser() if key_path else default_key_path()
    return SageRpcClient(cert_path=cp, key_path=kp, port=port, host=host, fingerprint=fingerprint)
