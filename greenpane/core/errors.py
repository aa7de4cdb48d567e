from __future__ import annotations

from typing import Any


class OfferValidationError(ValueError):
    """Locally detected problem that blocks an offer submission."""


class AmountFormatError(OfferValidationError):
    def __init__(self, value: str, precision: int, *, field: str = "amount") -> None:
        self.value = value
        self.precision = precision
        self.field = field
        super().__init__(
            f"{field} must be a non-negative decimal with at most {precision} decimal places: {value!r}"
        )


class DuplicateAssetError(OfferValidationError):
    def __init__(self, asset_id: str, *, kind: str = "cat") -> None:
        self.asset_id = asset_id
        self.kind = kind
        super().__init__(f"duplicate {kind} in bundle: {asset_id}")


class IncompleteSelectionError(OfferValidationError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"{kind} selection is incomplete")


class NonPositiveExpirationError(OfferValidationError):
    def __init__(self) -> None:
        super().__init__("expiration must be at least 1 second in the future")


class ExpirationFormatError(OfferValidationError):
    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"expiration {field} must be a non-negative integer: {value!r}")


class BackendError(Exception):
    """Error reported by the wallet backend, surfaced as-is."""

    def __init__(self, kind: str, reason: str) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"{kind}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "reason": self.reason}


class UploadError(Exception):
    """Marketplace upload failed; the offer itself is still valid."""

    def __init__(self, venue: str, message: str) -> None:
        self.venue = venue
        self.message = message
        super().__init__(f"Failed to upload offer to {venue}: {message}")


class OfferSummaryParseError(ValueError):
    pass


class OfferInputError(ValueError):
    """Offer text given on the command line is missing or unreadable."""
