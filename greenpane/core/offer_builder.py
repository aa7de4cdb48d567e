from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any

from greenpane.core.assets import (
    DEFAULT_TOKEN_PRECISION,
    AssetBundle,
    ValidatedBundle,
    to_mojos,
    validate_bundle,
)
from greenpane.core.errors import ExpirationFormatError, NonPositiveExpirationError

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


@dataclass(frozen=True, slots=True)
class OfferExpiration:
    days: int | str = 0
    hours: int | str = 0
    minutes: int | str = 0

    @classmethod
    def from_mapping(cls, raw: dict[str, Any] | None) -> OfferExpiration | None:
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise ValueError("expiration must be a mapping")
        return cls(
            days=raw.get("days", 0),
            hours=raw.get("hours", 0),
            minutes=raw.get("minutes", 0),
        )

    def total_seconds(self) -> int:
        return (
            _component(self.days, "days") * SECONDS_PER_DAY
            + _component(self.hours, "hours") * SECONDS_PER_HOUR
            + _component(self.minutes, "minutes") * SECONDS_PER_MINUTE
        )

    def is_all_zero(self) -> bool:
        return self.total_seconds() == 0


def _component(value: int | str | None, field: str) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool):
        raise ExpirationFormatError(field, value)
    try:
        parsed = int(str(value).strip())
    except ValueError as exc:
        raise ExpirationFormatError(field, value) from exc
    if parsed < 0:
        raise ExpirationFormatError(field, value)
    return parsed


@dataclass(frozen=True, slots=True)
class OfferRequest:
    offered: ValidatedBundle
    requested: ValidatedBundle
    fee_mojos: int
    expires_at_second: int | None

    def to_rpc(self) -> dict[str, Any]:
        return {
            "offered_assets": self.offered.to_rpc(),
            "requested_assets": self.requested.to_rpc(),
            "fee": self.fee_mojos,
            "expires_at_second": self.expires_at_second,
        }


def compute_expires_at_second(
    expiration: OfferExpiration | None,
    *,
    now: float | None = None,
) -> int | None:
    if expiration is None:
        return None
    total = expiration.total_seconds()
    if total <= 0:
        raise NonPositiveExpirationError()
    current = time.time() if now is None else now
    return math.ceil(current) + total


def build_offer_request(
    offered: AssetBundle,
    requested: AssetBundle,
    fee: str | None,
    expiration: OfferExpiration | None,
    *,
    precision: int,
    token_precision: int = DEFAULT_TOKEN_PRECISION,
    now: float | None = None,
) -> OfferRequest:
    """Validate a draft and assemble the backend ``make_offer`` request.

    The offered bundle is validated before the requested one, so its errors
    surface first. Nothing here touches the network.
    """
    offered_valid = validate_bundle(
        offered,
        precision=precision,
        token_precision=token_precision,
        require_complete=True,
    )
    requested_valid = validate_bundle(
        requested,
        precision=precision,
        token_precision=token_precision,
        require_complete=True,
    )
    expires_at_second = compute_expires_at_second(expiration, now=now)
    fee_mojos = to_mojos(fee, precision, field="fee")
    return OfferRequest(
        offered=offered_valid,
        requested=requested_valid,
        fee_mojos=fee_mojos,
        expires_at_second=expires_at_second,
    )
