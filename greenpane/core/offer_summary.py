from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any

from greenpane.core.errors import OfferSummaryParseError


class AssetKind(StrEnum):
    CURRENCY = "currency"
    TOKEN = "token"
    NFT = "nft"


@dataclass(frozen=True, slots=True)
class OfferAsset:
    kind: AssetKind
    asset_id: str | None
    amount: Decimal
    royalty: Decimal = Decimal(0)
    name: str | None = None
    ticker: str | None = None

    @property
    def total(self) -> Decimal:
        """Amount shown to the user; royalties are added on top."""
        return self.amount + self.royalty

    def is_nonzero(self) -> bool:
        if self.kind == AssetKind.NFT:
            return True
        return self.amount > 0


@dataclass(frozen=True, slots=True)
class OfferSummary:
    fee: Decimal
    maker: tuple[OfferAsset, ...]
    taker: tuple[OfferAsset, ...]


def _decimal(value: Any, *, field: str) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, dict) and "mojos" in value:
        value = value["mojos"]
    try:
        parsed = Decimal(str(value))
    except InvalidOperation as exc:
        raise OfferSummaryParseError(f"{field} is not numeric: {value!r}") from exc
    if not parsed.is_finite():
        raise OfferSummaryParseError(f"{field} is not finite: {value!r}")
    return parsed


def _optional_text(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def _asset_kind(raw_kind: Any, asset_id: str | None) -> AssetKind:
    kind = str(raw_kind or "").strip().lower()
    if kind in {"currency", "xch"}:
        return AssetKind.CURRENCY
    if kind in {"token", "cat"}:
        return AssetKind.TOKEN if asset_id else AssetKind.CURRENCY
    if kind == "nft":
        return AssetKind.NFT
    raise OfferSummaryParseError(f"unsupported asset kind: {raw_kind!r}")


def _parse_asset_row(row: Any, *, field: str) -> OfferAsset:
    if not isinstance(row, dict):
        raise OfferSummaryParseError(f"{field} entries must be mappings")
    asset = row.get("asset") if isinstance(row.get("asset"), dict) else row
    asset_id = _optional_text(asset.get("asset_id") or asset.get("launcher_id"))
    kind = _asset_kind(asset.get("kind"), asset_id)
    amount_default = 1 if kind == AssetKind.NFT else 0
    return OfferAsset(
        kind=kind,
        asset_id=asset_id,
        amount=_decimal(row.get("amount", amount_default), field=f"{field}.amount"),
        royalty=_decimal(row.get("royalty"), field=f"{field}.royalty"),
        name=_optional_text(asset.get("name")),
        ticker=_optional_text(asset.get("ticker")),
    )


def _parse_grouped_side(side: dict[str, Any], *, field: str) -> tuple[OfferAsset, ...]:
    assets: list[OfferAsset] = []
    xch = side.get("xch") or {}
    if not isinstance(xch, dict):
        raise OfferSummaryParseError(f"{field}.xch must be a mapping")
    xch_amount = _decimal(xch.get("amount"), field=f"{field}.xch.amount")
    if xch_amount > 0:
        assets.append(
            OfferAsset(
                kind=AssetKind.CURRENCY,
                asset_id=None,
                amount=xch_amount,
                royalty=_decimal(xch.get("royalty"), field=f"{field}.xch.royalty"),
            )
        )
    cats = side.get("cats") or {}
    if not isinstance(cats, dict):
        raise OfferSummaryParseError(f"{field}.cats must be a mapping")
    for asset_id, cat in cats.items():
        if not isinstance(cat, dict):
            raise OfferSummaryParseError(f"{field}.cats.{asset_id} must be a mapping")
        assets.append(
            OfferAsset(
                kind=AssetKind.TOKEN,
                asset_id=str(asset_id),
                amount=_decimal(cat.get("amount"), field=f"{field}.cats.amount"),
                royalty=_decimal(cat.get("royalty"), field=f"{field}.cats.royalty"),
                name=_optional_text(cat.get("name")),
                ticker=_optional_text(cat.get("ticker")),
            )
        )
    nfts = side.get("nfts") or {}
    if not isinstance(nfts, dict):
        raise OfferSummaryParseError(f"{field}.nfts must be a mapping")
    for launcher_id, nft in nfts.items():
        name = nft.get("name") if isinstance(nft, dict) else None
        assets.append(
            OfferAsset(
                kind=AssetKind.NFT,
                asset_id=str(launcher_id),
                amount=Decimal(1),
                name=_optional_text(name),
            )
        )
    return tuple(assets)


def _parse_side(raw: Any, *, field: str) -> tuple[OfferAsset, ...]:
    if raw is None:
        return ()
    if isinstance(raw, list):
        return tuple(_parse_asset_row(row, field=field) for row in raw)
    if isinstance(raw, dict):
        return _parse_grouped_side(raw, field=field)
    raise OfferSummaryParseError(f"{field} must be a list or mapping")


def parse_offer_summary(payload: dict[str, Any]) -> OfferSummary:
    """Parse a backend ``view_offer`` response.

    Accepts either the response envelope (``{"offer": {...}}``) or the
    summary itself, with sides given as asset lists or as grouped
    ``{xch, cats, nfts}`` mappings.
    """
    if not isinstance(payload, dict):
        raise OfferSummaryParseError("offer summary must be a mapping")
    summary = payload.get("offer") if isinstance(payload.get("offer"), dict) else payload
    if "maker" not in summary or "taker" not in summary:
        raise OfferSummaryParseError("offer summary requires maker and taker")
    return OfferSummary(
        fee=_decimal(summary.get("fee"), field="fee"),
        maker=_parse_side(summary.get("maker"), field="maker"),
        taker=_parse_side(summary.get("taker"), field="taker"),
    )
