from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from greenpane.core.assets import DEFAULT_TOKEN_PRECISION, AssetBundle, to_mojos
from greenpane.core.eligibility import OfferDraftAssets, OfferEligibility, evaluate_offer_eligibility
from greenpane.core.offer_builder import OfferExpiration, OfferRequest, build_offer_request
from greenpane.core.offer_summary import OfferSummary

_offers_logger = logging.getLogger("greenpane.offers")


class OfferBackend(Protocol):
    async def create_offer(self, request: OfferRequest) -> str: ...

    async def view_offer_summary(self, offer: str) -> OfferSummary: ...

    async def import_offer(self, offer: str) -> dict[str, Any]: ...

    async def take_offer(self, offer: str, fee_mojos: int) -> dict[str, Any]: ...


@dataclass(frozen=True, slots=True)
class DefaultOfferExpiry:
    enabled: bool = False
    days: int = 1
    hours: int = 0
    minutes: int = 0

    def as_expiration(self) -> OfferExpiration | None:
        if not self.enabled:
            return None
        expiration = OfferExpiration(days=self.days, hours=self.hours, minutes=self.minutes)
        if expiration.is_all_zero():
            return None
        return expiration


@dataclass(slots=True)
class OfferCreated:
    offer: str
    eligibility: OfferEligibility
    links: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class OfferDraft:
    """The single owner of the bundles being edited for one offer."""

    offered: AssetBundle = field(default_factory=AssetBundle)
    requested: AssetBundle = field(default_factory=AssetBundle)
    fee: str = ""
    expiration: OfferExpiration | None = None

    @classmethod
    def new(cls, default_expiry: DefaultOfferExpiry | None = None) -> OfferDraft:
        expiration = default_expiry.as_expiration() if default_expiry is not None else None
        return cls(expiration=expiration)

    @classmethod
    def from_mapping(cls, raw: dict[str, Any], *, default_expiry: DefaultOfferExpiry | None = None) -> OfferDraft:
        draft = cls.new(default_expiry)
        draft.offered = AssetBundle.from_mapping(raw.get("offered"))
        draft.requested = AssetBundle.from_mapping(raw.get("requested"))
        draft.fee = str(raw.get("fee") or "").strip()
        if "expiration" in raw:
            draft.expiration = OfferExpiration.from_mapping(raw.get("expiration"))
        return draft

    def assets(self) -> OfferDraftAssets:
        return OfferDraftAssets(offered=self.offered, requested=self.requested)

    def is_submittable(self) -> bool:
        return self.expiration is None or not self.expiration.is_all_zero()

    def clear(self) -> None:
        self.offered = AssetBundle()
        self.requested = AssetBundle()
        self.fee = ""
        self.expiration = None

    def build_request(
        self,
        *,
        precision: int,
        token_precision: int = DEFAULT_TOKEN_PRECISION,
        now: float | None = None,
    ) -> OfferRequest:
        return build_offer_request(
            self.offered,
            self.requested,
            self.fee,
            self.expiration,
            precision=precision,
            token_precision=token_precision,
            now=now,
        )

    async def submit(
        self,
        backend: OfferBackend,
        *,
        precision: int,
        token_precision: int = DEFAULT_TOKEN_PRECISION,
        split: bool = False,
        now: float | None = None,
    ) -> OfferCreated:
        """Create the offer through the backend and reset the draft.

        Validation and backend errors propagate and leave the draft intact.
        """
        request = self.build_request(precision=precision, token_precision=token_precision, now=now)
        eligibility = evaluate_offer_eligibility(self.assets(), split=split)
        offer = await backend.create_offer(request)
        _offers_logger.info(
            "offer_created fee_mojos=%s expires_at_second=%s dexie_supported=%s mintgarden_supported=%s",
            request.fee_mojos,
            request.expires_at_second,
            eligibility.dexie_supported,
            eligibility.mintgarden_supported,
        )
        self.clear()
        return OfferCreated(offer=offer, eligibility=eligibility)


async def import_and_take_offer(
    backend: OfferBackend,
    offer: str,
    *,
    fee: str | None,
    precision: int,
) -> dict[str, Any]:
    """Save the offer locally, then take it."""
    fee_mojos = to_mojos(fee, precision, field="fee")
    await backend.import_offer(offer)
    response = await backend.take_offer(offer, fee_mojos)
    _offers_logger.info("offer_taken fee_mojos=%s", fee_mojos)
    return response
