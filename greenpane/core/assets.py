from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any

from greenpane.core.errors import AmountFormatError, DuplicateAssetError, IncompleteSelectionError

DEFAULT_TOKEN_PRECISION = 3

_DECIMAL_RE = re.compile(r"^(?P<whole>\d*)(?:\.(?P<frac>\d*))?$")


@dataclass(frozen=True, slots=True)
class Unit:
    ticker: str
    precision: int

    @classmethod
    def cat(cls, ticker: str) -> Unit:
        return cls(ticker=ticker, precision=DEFAULT_TOKEN_PRECISION)


XCH = Unit(ticker="XCH", precision=12)
TXCH = Unit(ticker="TXCH", precision=12)
MOJOS = Unit(ticker="Mojos", precision=0)


def native_unit_for_network(network: str) -> Unit:
    if network.strip().lower() in {"mainnet", ""}:
        return XCH
    return TXCH


def to_mojos(value: str | int | None, precision: int, *, field: str = "amount") -> int:
    """Convert a decimal amount string into integer base units.

    Empty values mean "not included" and convert to 0. Digits beyond
    ``precision`` are accepted only when they are zeros, so the conversion
    is always exact.
    """
    if precision < 0:
        raise ValueError("precision must be non-negative")
    text = "" if value is None else str(value).strip()
    if not text:
        return 0
    match = _DECIMAL_RE.match(text)
    if match is None:
        raise AmountFormatError(text, precision, field=field)
    whole = match.group("whole") or ""
    frac = match.group("frac") or ""
    if not whole and not frac:
        raise AmountFormatError(text, precision, field=field)
    if len(frac) > precision:
        if frac[precision:].strip("0"):
            raise AmountFormatError(text, precision, field=field)
        frac = frac[:precision]
    scale = 10**precision
    return int(whole or "0") * scale + int(frac.ljust(precision, "0") or "0")


def from_mojos(mojos: int | str, precision: int) -> str:
    amount = int(mojos)
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**precision)
    if precision == 0 or frac == 0:
        return f"{sign}{whole}"
    frac_text = str(frac).rjust(precision, "0").rstrip("0")
    return f"{sign}{whole}.{frac_text}"


def is_zero_amount(value: str | None) -> bool:
    text = (value or "").strip()
    if not text:
        return True
    try:
        return Decimal(text) == 0
    except InvalidOperation:
        return False


def _check_index(items: tuple, index: int) -> None:
    if not 0 <= index < len(items):
        raise IndexError(f"row index out of range: {index}")


@dataclass(frozen=True, slots=True)
class CatAmount:
    asset_id: str
    amount: str = ""


@dataclass(frozen=True, slots=True)
class AssetBundle:
    """Assets on one side of an offer draft.

    Bundles are values: every edit helper returns a new bundle.
    """

    xch: str = ""
    cats: tuple[CatAmount, ...] = ()
    nfts: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> AssetBundle:
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ValueError("asset bundle must be a mapping")
        xch_raw = raw.get("xch")
        cats_raw = raw.get("cats") or []
        nfts_raw = raw.get("nfts") or []
        if not isinstance(cats_raw, list):
            raise ValueError("cats must be a list")
        if not isinstance(nfts_raw, list):
            raise ValueError("nfts must be a list")
        cats: list[CatAmount] = []
        for row in cats_raw:
            if not isinstance(row, Mapping):
                raise ValueError("cats entries must be mappings")
            amount = row.get("amount")
            cats.append(
                CatAmount(
                    asset_id=str(row.get("asset_id") or "").strip(),
                    amount="" if amount is None else str(amount).strip(),
                )
            )
        return cls(
            xch="" if xch_raw is None else str(xch_raw).strip(),
            cats=tuple(cats),
            nfts=tuple(str(n or "").strip() for n in nfts_raw),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "xch": self.xch,
            "cats": [{"asset_id": c.asset_id, "amount": c.amount} for c in self.cats],
            "nfts": list(self.nfts),
        }

    def with_xch(self, amount: str) -> AssetBundle:
        return replace(self, xch=amount)

    def add_cat(self, asset_id: str = "", amount: str = "") -> AssetBundle:
        return replace(self, cats=(*self.cats, CatAmount(asset_id=asset_id, amount=amount)))

    def with_cat(self, index: int, *, asset_id: str | None = None, amount: str | None = None) -> AssetBundle:
        _check_index(self.cats, index)
        current = self.cats[index]
        updated = CatAmount(
            asset_id=current.asset_id if asset_id is None else asset_id,
            amount=current.amount if amount is None else amount,
        )
        return replace(self, cats=(*self.cats[:index], updated, *self.cats[index + 1 :]))

    def remove_cat(self, index: int) -> AssetBundle:
        _check_index(self.cats, index)
        return replace(self, cats=(*self.cats[:index], *self.cats[index + 1 :]))

    def add_nft_slot(self) -> AssetBundle:
        return replace(self, nfts=(*self.nfts, ""))

    def with_nft(self, index: int, launcher_id: str) -> AssetBundle:
        _check_index(self.nfts, index)
        return replace(self, nfts=(*self.nfts[:index], launcher_id, *self.nfts[index + 1 :]))

    def remove_nft(self, index: int) -> AssetBundle:
        _check_index(self.nfts, index)
        return replace(self, nfts=(*self.nfts[:index], *self.nfts[index + 1 :]))

    def nonzero_cats(self) -> list[CatAmount]:
        return [c for c in self.cats if not is_zero_amount(c.amount)]

    def selected_nfts(self) -> list[str]:
        return [n for n in self.nfts if n]


def is_empty(bundle: AssetBundle) -> bool:
    return (
        is_zero_amount(bundle.xch)
        and not bundle.nonzero_cats()
        and not bundle.selected_nfts()
    )


@dataclass(frozen=True, slots=True)
class ValidatedBundle:
    xch_mojos: int = 0
    cats: tuple[tuple[str, int], ...] = ()
    nfts: tuple[str, ...] = field(default_factory=tuple)

    def to_rpc(self) -> dict[str, Any]:
        return {
            "xch": self.xch_mojos,
            "cats": [{"asset_id": asset_id, "amount": amount} for asset_id, amount in self.cats],
            "nfts": list(self.nfts),
        }


def _unique_or_raise(values: Iterable[str], *, kind: str) -> None:
    seen: set[str] = set()
    for value in values:
        if value in seen:
            raise DuplicateAssetError(value, kind=kind)
        seen.add(value)


def validate_bundle(
    bundle: AssetBundle,
    *,
    precision: int,
    token_precision: int = DEFAULT_TOKEN_PRECISION,
    require_complete: bool = False,
) -> ValidatedBundle:
    """Validate a draft bundle and convert its amounts to base units.

    Placeholder rows (empty CAT asset id or NFT id) are skipped while a
    draft is being edited and rejected once ``require_complete`` is set.
    """
    xch_mojos = to_mojos(bundle.xch, precision, field="xch")

    selected_cat_ids = [c.asset_id for c in bundle.cats if c.asset_id]
    _unique_or_raise(selected_cat_ids, kind="cat")
    cats: list[tuple[str, int]] = []
    for cat in bundle.cats:
        mojos = to_mojos(cat.amount, token_precision, field=f"cat {cat.asset_id or '<unselected>'}")
        if not cat.asset_id:
            if require_complete:
                raise IncompleteSelectionError("cat")
            continue
        cats.append((cat.asset_id, mojos))

    if require_complete and any(not n for n in bundle.nfts):
        raise IncompleteSelectionError("nft")
    nfts = bundle.selected_nfts()
    _unique_or_raise(nfts, kind="nft")

    return ValidatedBundle(xch_mojos=xch_mojos, cats=tuple(cats), nfts=tuple(nfts))
