from __future__ import annotations

from dataclasses import dataclass

from greenpane.core.assets import AssetBundle, is_empty, is_zero_amount
from greenpane.core.offer_summary import AssetKind, OfferAsset, OfferSummary


@dataclass(frozen=True, slots=True)
class OfferDraftAssets:
    offered: AssetBundle
    requested: AssetBundle


@dataclass(frozen=True, slots=True)
class OfferEligibility:
    one_sided: bool
    dexie_supported: bool
    mintgarden_supported: bool


def _side_is_empty(assets: tuple[OfferAsset, ...]) -> bool:
    return not any(asset.is_nonzero() for asset in assets)


def is_one_sided(offer: OfferDraftAssets | OfferSummary) -> bool:
    """True when the taker side asks for nothing, i.e. the offer is a drop."""
    if isinstance(offer, OfferSummary):
        return _side_is_empty(offer.taker)
    return is_empty(offer.requested)


def is_mintgarden_supported(draft: OfferDraftAssets, *, exactly_one_nft: bool = True) -> bool:
    offered = draft.offered
    if not is_zero_amount(offered.xch) or offered.nonzero_cats():
        return False
    nft_count = len(offered.selected_nfts())
    if exactly_one_nft:
        nfts_ok = nft_count == 1
    else:
        nfts_ok = nft_count >= 1
    return nfts_ok and not is_one_sided(draft)


def is_mintgarden_supported_for_summary(summary: OfferSummary, *, split: bool = False) -> bool:
    maker = summary.maker
    if split:
        makers_ok = bool(maker) and all(a.kind == AssetKind.NFT for a in maker)
    else:
        makers_ok = len(maker) == 1 and maker[0].kind == AssetKind.NFT
    return makers_ok and not is_one_sided(summary)


def is_dexie_supported(offer: OfferDraftAssets | OfferSummary) -> bool:
    return not is_one_sided(offer)


def evaluate_offer_eligibility(
    offer: OfferDraftAssets | OfferSummary,
    *,
    split: bool = False,
) -> OfferEligibility:
    if isinstance(offer, OfferSummary):
        mintgarden = is_mintgarden_supported_for_summary(offer, split=split)
    else:
        mintgarden = is_mintgarden_supported(offer, exactly_one_nft=not split)
    one_sided = is_one_sided(offer)
    return OfferEligibility(
        one_sided=one_sided,
        dexie_supported=not one_sided,
        mintgarden_supported=mintgarden,
    )
