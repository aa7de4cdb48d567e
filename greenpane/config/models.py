from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from greenpane.core.assets import DEFAULT_TOKEN_PRECISION, Unit, native_unit_for_network
from greenpane.core.offer_draft import DefaultOfferExpiry

SUPPORTED_NETWORKS = frozenset({"mainnet", "testnet", "testnet11"})
UPLOAD_NETWORKS = frozenset({"mainnet", "testnet11"})


def is_testnet_network(network: str) -> bool:
    return network.strip().lower() in {"testnet", "testnet11"}


def uploads_supported(network: str) -> bool:
    return network.strip().lower() in UPLOAD_NETWORKS


@dataclass(frozen=True, slots=True)
class SageConfig:
    host: str = "127.0.0.1"
    port: int = 9257
    cert_path: str | None = None
    key_path: str | None = None
    fingerprint: int | None = None


@dataclass(frozen=True, slots=True)
class VenueConfig:
    api_base: str
    testnet_api_base: str

    def base_for(self, network: str) -> str:
        return self.testnet_api_base if is_testnet_network(network) else self.api_base


@dataclass(slots=True)
class ProgramConfig:
    app_network: str
    home_dir: str
    app_log_level: str
    sage: SageConfig
    token_precision: int
    default_offer_expiry: DefaultOfferExpiry
    dexie: VenueConfig
    mintgarden: VenueConfig
    app_log_level_was_missing: bool = False

    @property
    def native_unit(self) -> Unit:
        return native_unit_for_network(self.app_network)


def _req(mapping: dict[str, Any], key: str) -> Any:
    if key not in mapping:
        raise ValueError(f"Missing required field: {key}")
    return mapping[key]


def _mapping(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a mapping")
    return value


def _non_negative_int(value: Any, field_path: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_path} must be an integer") from exc
    if parsed < 0:
        raise ValueError(f"{field_path} must be non-negative")
    return parsed


def _parse_sage(raw: dict[str, Any]) -> SageConfig:
    fingerprint_raw = raw.get("fingerprint")
    fingerprint: int | None = None
    if fingerprint_raw not in (None, ""):
        fingerprint = _non_negative_int(fingerprint_raw, "sage.fingerprint")
        if fingerprint == 0:
            raise ValueError("sage.fingerprint must be positive")
    port = _non_negative_int(raw.get("port", 9257), "sage.port")
    if not 0 < port < 65536:
        raise ValueError("sage.port must be between 1 and 65535")
    return SageConfig(
        host=str(raw.get("host", "127.0.0.1")).strip() or "127.0.0.1",
        port=port,
        cert_path=str(raw.get("cert_path") or "").strip() or None,
        key_path=str(raw.get("key_path") or "").strip() or None,
        fingerprint=fingerprint,
    )


def _parse_default_expiry(raw: dict[str, Any]) -> DefaultOfferExpiry:
    return DefaultOfferExpiry(
        enabled=bool(raw.get("enabled", False)),
        days=_non_negative_int(raw.get("days", 1), "offers.default_expiry.days"),
        hours=_non_negative_int(raw.get("hours", 0), "offers.default_expiry.hours"),
        minutes=_non_negative_int(raw.get("minutes", 0), "offers.default_expiry.minutes"),
    )


def _parse_venue(raw: dict[str, Any], *, api_base: str, testnet_api_base: str) -> VenueConfig:
    return VenueConfig(
        api_base=str(raw.get("api_base", api_base)).strip().rstrip("/"),
        testnet_api_base=str(raw.get("testnet_api_base", testnet_api_base)).strip().rstrip("/"),
    )


def parse_program_config(raw: dict[str, Any]) -> ProgramConfig:
    app = _req(raw, "app")
    if not isinstance(app, dict):
        raise ValueError("app must be a mapping")
    network = str(_req(app, "network")).strip().lower()
    if network not in SUPPORTED_NETWORKS:
        raise ValueError("app.network must be one of: mainnet, testnet, testnet11")
    log_level_raw = app.get("log_level")
    wallet = _mapping(raw, "wallet")
    token_precision = _non_negative_int(
        wallet.get("token_precision", DEFAULT_TOKEN_PRECISION), "wallet.token_precision"
    )
    offers = _mapping(raw, "offers")
    venues = _mapping(raw, "venues")
    return ProgramConfig(
        app_network=network,
        home_dir=str(_req(app, "home_dir")),
        app_log_level=str(log_level_raw or "INFO").strip().upper(),
        sage=_parse_sage(_mapping(raw, "sage")),
        token_precision=token_precision,
        default_offer_expiry=_parse_default_expiry(_mapping(offers, "default_expiry")),
        dexie=_parse_venue(
            _mapping(venues, "dexie"),
            api_base="https://api.dexie.space",
            testnet_api_base="https://api-testnet.dexie.space",
        ),
        mintgarden=_parse_venue(
            _mapping(venues, "mintgarden"),
            api_base="https://api.mintgarden.io",
            testnet_api_base="https://api.testnet.mintgarden.io",
        ),
        app_log_level_was_missing=log_level_raw is None,
    )
