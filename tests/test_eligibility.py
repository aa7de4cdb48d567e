from __future__ import annotations

from decimal import Decimal

import pytest

from greenpane.core.assets import AssetBundle, CatAmount
from greenpane.core.eligibility import (
    OfferDraftAssets,
    evaluate_offer_eligibility,
    is_dexie_supported,
    is_mintgarden_supported,
    is_mintgarden_supported_for_summary,
    is_one_sided,
)
from greenpane.core.offer_summary import AssetKind, OfferAsset, OfferSummary

CAT_A = "a628c1c2c6fcb74d53746157e438e108eab5c0bb3e5c80ff9b1910b3e4832913"


def _draft(offered: AssetBundle, requested: AssetBundle) -> OfferDraftAssets:
    return OfferDraftAssets(offered=offered, requested=requested)


def _nft(launcher_id: str = "nft1abc") -> OfferAsset:
    return OfferAsset(kind=AssetKind.NFT, asset_id=launcher_id, amount=Decimal(1))


def _xch(amount: str) -> OfferAsset:
    return OfferAsset(kind=AssetKind.CURRENCY, asset_id=None, amount=Decimal(amount))


def _cat(amount: str) -> OfferAsset:
    return OfferAsset(kind=AssetKind.TOKEN, asset_id=CAT_A, amount=Decimal(amount))


def test_zero_requested_xch_is_one_sided() -> None:
    draft = _draft(AssetBundle(xch="1"), AssetBundle(xch="0"))
    assert is_one_sided(draft) is True
    assert is_dexie_supported(draft) is False


@pytest.mark.parametrize(
    "requested",
    [
        AssetBundle(xch="0.000000000001"),
        AssetBundle(cats=(CatAmount(CAT_A, "1"),)),
        AssetBundle(nfts=("nft1xyz",)),
    ],
)
def test_any_requested_asset_makes_offer_two_sided(requested: AssetBundle) -> None:
    assert is_one_sided(_draft(AssetBundle(xch="1"), requested)) is False


def test_zero_amount_cats_and_placeholders_do_not_count() -> None:
    requested = AssetBundle(cats=(CatAmount(CAT_A, "0"),), nfts=("",))
    assert is_one_sided(_draft(AssetBundle(xch="1"), requested)) is True


def test_single_nft_for_xch_is_eligible_everywhere() -> None:
    draft = _draft(AssetBundle(nfts=("nft1abc",)), AssetBundle(xch="5"))
    assert is_one_sided(draft) is False
    assert is_mintgarden_supported(draft, exactly_one_nft=True) is True
    assert is_dexie_supported(draft) is True


def test_mintgarden_nft_count_modes() -> None:
    draft = _draft(AssetBundle(nfts=("nft1abc", "nft1def")), AssetBundle(xch="5"))
    assert is_mintgarden_supported(draft, exactly_one_nft=True) is False
    assert is_mintgarden_supported(draft, exactly_one_nft=False) is True
    no_nft = _draft(AssetBundle(nfts=("",)), AssetBundle(xch="5"))
    assert is_mintgarden_supported(no_nft, exactly_one_nft=False) is False


def test_mintgarden_rejects_offered_currency_or_tokens() -> None:
    with_xch = _draft(AssetBundle(xch="1", nfts=("nft1abc",)), AssetBundle(xch="5"))
    with_cat = _draft(AssetBundle(cats=(CatAmount(CAT_A, "2"),), nfts=("nft1abc",)), AssetBundle(xch="5"))
    zero_cat = _draft(AssetBundle(cats=(CatAmount(CAT_A, "0"),), nfts=("nft1abc",)), AssetBundle(xch="5"))
    assert is_mintgarden_supported(with_xch) is False
    assert is_mintgarden_supported(with_cat) is False
    assert is_mintgarden_supported(zero_cat) is True


def test_mintgarden_rejects_one_sided_nft_drop() -> None:
    draft = _draft(AssetBundle(nfts=("nft1abc",)), AssetBundle())
    assert is_mintgarden_supported(draft) is False


def test_summary_one_sided_when_taker_empty() -> None:
    summary = OfferSummary(fee=Decimal(0), maker=(_xch("1"),), taker=())
    assert is_one_sided(summary) is True
    assert is_dexie_supported(summary) is False


def test_summary_zero_taker_amounts_are_one_sided() -> None:
    summary = OfferSummary(fee=Decimal(0), maker=(_xch("1"),), taker=(_xch("0"), _cat("0")))
    assert is_one_sided(summary) is True


def test_summary_mintgarden_requires_single_nft_maker() -> None:
    single = OfferSummary(fee=Decimal(0), maker=(_nft(),), taker=(_xch("5"),))
    several = OfferSummary(fee=Decimal(0), maker=(_nft("a"), _nft("b")), taker=(_xch("5"),))
    token = OfferSummary(fee=Decimal(0), maker=(_cat("1"),), taker=(_xch("5"),))
    assert is_mintgarden_supported_for_summary(single) is True
    assert is_mintgarden_supported_for_summary(several) is False
    assert is_mintgarden_supported_for_summary(several, split=True) is True
    assert is_mintgarden_supported_for_summary(token) is False
    assert is_mintgarden_supported_for_summary(token, split=True) is False


def test_evaluate_offer_eligibility_for_draft_and_summary() -> None:
    draft = _draft(AssetBundle(nfts=("nft1abc",)), AssetBundle(xch="5"))
    result = evaluate_offer_eligibility(draft)
    assert (result.one_sided, result.dexie_supported, result.mintgarden_supported) == (False, True, True)

    summary = OfferSummary(fee=Decimal(0), maker=(_nft(),), taker=())
    result = evaluate_offer_eligibility(summary)
    assert (result.one_sided, result.dexie_supported, result.mintgarden_supported) == (True, False, False)


def test_predicates_are_idempotent() -> None:
    draft = _draft(AssetBundle(nfts=("nft1abc",)), AssetBundle(xch="5"))
    assert evaluate_offer_eligibility(draft) == evaluate_offer_eligibility(draft)
