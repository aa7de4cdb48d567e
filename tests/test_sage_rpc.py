from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from greenpane.adapters.sage_rpc import (
    SageRpcClient,
    SageRpcError,
    SageWrongFingerprintError,
    resolve_sage_client,
)
from greenpane.core.assets import ValidatedBundle
from greenpane.core.errors import BackendError
from greenpane.core.offer_builder import OfferRequest
from greenpane.core.offer_summary import AssetKind


def _client(**kwargs) -> SageRpcClient:
    return SageRpcClient(cert_path="/tmp/wallet.crt", key_path="/tmp/wallet.key", **kwargs)


def _request() -> OfferRequest:
    return OfferRequest(
        offered=ValidatedBundle(xch_mojos=0, cats=(), nfts=("nft1abc",)),
        requested=ValidatedBundle(xch_mojos=1_000_000_000_000, cats=(), nfts=()),
        fee_mojos=0,
        expires_at_second=None,
    )


def test_create_offer_sends_rpc_body_and_returns_offer(monkeypatch) -> None:
    client = _client()
    make_offer = AsyncMock(return_value={"offer": "offer1xyz", "offer_id": "abc"})
    monkeypatch.setattr(client, "make_offer", make_offer)

    assert asyncio.run(client.create_offer(_request())) == "offer1xyz"
    body = make_offer.await_args.args[0]
    assert body["requested_assets"]["xch"] == 1_000_000_000_000
    assert body["offered_assets"]["nfts"] == ["nft1abc"]
    assert body["expires_at_second"] is None


def test_create_offer_maps_rpc_error_to_backend_error(monkeypatch) -> None:
    client = _client()
    monkeypatch.setattr(
        client,
        "make_offer",
        AsyncMock(side_effect=SageRpcError(500, '{"kind": "wallet", "reason": "Insufficient funds"}', "make_offer")),
    )
    with pytest.raises(BackendError) as excinfo:
        asyncio.run(client.create_offer(_request()))
    assert excinfo.value.kind == "wallet"
    assert excinfo.value.reason == "Insufficient funds"


def test_create_offer_without_offer_text_is_backend_error(monkeypatch) -> None:
    client = _client()
    monkeypatch.setattr(client, "make_offer", AsyncMock(return_value={}))
    with pytest.raises(BackendError, match="did not include an offer"):
        asyncio.run(client.create_offer(_request()))


def test_rpc_error_with_plain_body_is_internal() -> None:
    error = SageRpcError(400, "bad things", "take_offer").to_backend_error()
    assert error.kind == "internal"
    assert error.reason == "bad things"
    assert SageRpcError(502, "", "x").to_backend_error().reason == "http_502"


def test_take_offer_passes_fee_and_auto_submit(monkeypatch) -> None:
    client = _client()
    call = AsyncMock(return_value={"transaction_id": "t"})
    monkeypatch.setattr(client, "call", call)
    asyncio.run(client.take_offer("offer1abc", 25))
    call.assert_awaited_once_with("take_offer", {"offer": "offer1abc", "fee": 25, "auto_submit": True})


def test_list_coin_records_pages_until_total(monkeypatch) -> None:
    client = _client()
    pages = [
        {"coins": [{"coin_id": "c1", "amount": 1}, {"coin_id": "c2", "amount": 2}], "total": 3},
        {"coins": [{"coin_id": "c3", "amount": 3, "offer_id": "o1"}], "total": 3},
    ]
    get_coins = AsyncMock(side_effect=pages)
    monkeypatch.setattr(client, "get_coins", get_coins)

    records = asyncio.run(client.list_coin_records(page_size=2))

    assert [r.coin_id for r in records] == ["c1", "c2", "c3"]
    assert records[2].offer_id == "o1"
    assert get_coins.await_count == 2
    assert get_coins.await_args_list[1].kwargs["offset"] == 2


def test_view_offer_summary_parses_payload(monkeypatch) -> None:
    client = _client()
    payload = {
        "offer": {
            "fee": "0",
            "maker": [{"asset": {"kind": "nft", "asset_id": "nft1abc"}, "amount": "1"}],
            "taker": [{"asset": {"kind": "token", "asset_id": None}, "amount": "2.5"}],
        }
    }
    monkeypatch.setattr(client, "view_offer", AsyncMock(return_value=payload))
    summary = asyncio.run(client.view_offer_summary("offer1abc"))
    assert summary.maker[0].kind == AssetKind.NFT
    assert summary.taker[0].kind == AssetKind.CURRENCY


def test_fingerprint_mismatch_closes_and_raises(monkeypatch) -> None:
    client = _client(fingerprint=111)
    monkeypatch.setattr(client, "_make_session", lambda: None)
    monkeypatch.setattr(client, "get_key", AsyncMock(return_value={"key": {"fingerprint": 222}}))
    close = AsyncMock()
    monkeypatch.setattr(client, "close", close)

    async def _enter() -> None:
        async with client:
            pass

    with pytest.raises(SageWrongFingerprintError) as excinfo:
        asyncio.run(_enter())
    assert excinfo.value.active == 222
    close.assert_awaited()


def test_resolve_sage_client_builds_base_url(tmp_path) -> None:
    client = resolve_sage_client(
        host="10.0.0.2",
        port=9999,
        cert_path=str(tmp_path / "c.crt"),
        key_path=str(tmp_path / "c.key"),
    )
    assert client._base_url == "https://10.0.0.2:9999"
    assert client._cert_path == tmp_path / "c.crt"


def test_fingerprint_lookup_failure_closes_session(monkeypatch) -> None:
    client = _client(fingerprint=111)
    monkeypatch.setattr(client, "_make_session", lambda: None)
    monkeypatch.setattr(client, "get_key", AsyncMock(side_effect=SageRpcError(503, "starting", "get_key")))
    close = AsyncMock()
    monkeypatch.setattr(client, "close", close)

    async def _enter() -> None:
        async with client:
            pass

    with pytest.raises(SageRpcError):
        asyncio.run(_enter())
    close.assert_awaited_once()


def test_matching_fingerprint_keeps_session_open(monkeypatch) -> None:
    client = _client(fingerprint=111)
    monkeypatch.setattr(client, "_make_session", lambda: None)
    monkeypatch.setattr(client, "get_key", AsyncMock(return_value={"key": {"fingerprint": 111}}))
    close = AsyncMock()
    monkeypatch.setattr(client, "close", close)

    async def _enter() -> bool:
        async with client:
            return close.await_count == 0

    assert asyncio.run(_enter()) is True
    close.assert_awaited_once()
