from __future__ import annotations

import asyncio
from typing import Any

import pytest

from greenpane.core.assets import AssetBundle, CatAmount
from greenpane.core.errors import BackendError, DuplicateAssetError
from greenpane.core.offer_builder import OfferExpiration, OfferRequest
from greenpane.core.offer_draft import DefaultOfferExpiry, OfferDraft, import_and_take_offer

CAT_A = "a628c1c2c6fcb74d53746157e438e108eab5c0bb3e5c80ff9b1910b3e4832913"


class _FakeBackend:
    def __init__(self, *, error: BackendError | None = None) -> None:
        self.error = error
        self.requests: list[OfferRequest] = []
        self.calls: list[tuple[str, Any]] = []

    async def create_offer(self, request: OfferRequest) -> str:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return "offer1created"

    async def view_offer_summary(self, offer: str):
        raise NotImplementedError

    async def import_offer(self, offer: str) -> dict[str, Any]:
        self.calls.append(("import_offer", offer))
        return {}

    async def take_offer(self, offer: str, fee_mojos: int) -> dict[str, Any]:
        self.calls.append(("take_offer", (offer, fee_mojos)))
        return {"transaction_id": "tx-1"}


def _nft_for_xch_draft() -> OfferDraft:
    return OfferDraft(
        offered=AssetBundle(nfts=("nft1abc",)),
        requested=AssetBundle(xch="5"),
        fee="0.0001",
    )


def test_submit_creates_offer_and_clears_draft() -> None:
    draft = _nft_for_xch_draft()
    backend = _FakeBackend()

    created = asyncio.run(draft.submit(backend, precision=12))

    assert created.offer == "offer1created"
    assert created.eligibility.mintgarden_supported is True
    assert created.eligibility.dexie_supported is True
    assert backend.requests[0].requested.xch_mojos == 5_000_000_000_000
    assert draft.offered == AssetBundle()
    assert draft.requested == AssetBundle()
    assert draft.fee == ""
    assert draft.expiration is None


def test_backend_error_leaves_draft_untouched() -> None:
    draft = _nft_for_xch_draft()
    backend = _FakeBackend(error=BackendError("wallet", "Insufficient funds"))

    with pytest.raises(BackendError) as excinfo:
        asyncio.run(draft.submit(backend, precision=12))

    assert excinfo.value.reason == "Insufficient funds"
    assert draft.offered.nfts == ("nft1abc",)
    assert draft.requested.xch == "5"


def test_validation_error_skips_backend_call() -> None:
    draft = OfferDraft(
        offered=AssetBundle(cats=(CatAmount(CAT_A, "1"), CatAmount(CAT_A, "2"))),
        requested=AssetBundle(xch="1"),
    )
    backend = _FakeBackend()

    with pytest.raises(DuplicateAssetError):
        asyncio.run(draft.submit(backend, precision=12))

    assert backend.requests == []
    assert len(draft.offered.cats) == 2


def test_second_submission_after_success_uses_empty_draft() -> None:
    draft = _nft_for_xch_draft()
    backend = _FakeBackend()
    asyncio.run(draft.submit(backend, precision=12))
    asyncio.run(draft.submit(backend, precision=12))
    assert backend.requests[1].offered.nfts == ()
    assert backend.requests[1].requested.xch_mojos == 0


def test_default_expiry_applied_to_new_draft() -> None:
    draft = OfferDraft.new(DefaultOfferExpiry(enabled=True, days=0, hours=2, minutes=0))
    assert draft.expiration == OfferExpiration(days=0, hours=2, minutes=0)
    assert OfferDraft.new(DefaultOfferExpiry(enabled=True, days=0, hours=0, minutes=0)).expiration is None
    assert OfferDraft.new(DefaultOfferExpiry(enabled=False)).expiration is None


def test_from_mapping_keeps_explicit_expiration_over_default() -> None:
    default = DefaultOfferExpiry(enabled=True, days=1)
    draft = OfferDraft.from_mapping({"offered": {"xch": "1"}, "expiration": None}, default_expiry=default)
    assert draft.expiration is None
    draft = OfferDraft.from_mapping({"offered": {"xch": "1"}}, default_expiry=default)
    assert draft.expiration == OfferExpiration(days=1, hours=0, minutes=0)


def test_all_zero_expiration_is_not_submittable() -> None:
    draft = OfferDraft(expiration=OfferExpiration(days="0", hours="0", minutes="0"))
    assert draft.is_submittable() is False
    draft.expiration = OfferExpiration(minutes="1")
    assert draft.is_submittable() is True


def test_import_and_take_offer_imports_first() -> None:
    backend = _FakeBackend()
    response = asyncio.run(import_and_take_offer(backend, "offer1abc", fee="0.5", precision=12))
    assert response == {"transaction_id": "tx-1"}
    assert backend.calls == [
        ("import_offer", "offer1abc"),
        ("take_offer", ("offer1abc", 500_000_000_000)),
    ]
