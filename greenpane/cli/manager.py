from __future__ import annotations

import argparse
import asyncio
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from greenpane.adapters.dexie import DexieAdapter
from greenpane.adapters.mintgarden import MintGardenAdapter
from greenpane.adapters.sage_rpc import (
    SageRpcClient,
    SageRpcError,
    SageWrongFingerprintError,
    resolve_sage_client,
)
from greenpane.config.io import load_offer_draft_yaml, load_program_config
from greenpane.config.models import ProgramConfig, is_testnet_network, uploads_supported
from greenpane.core.assets import from_mojos
from greenpane.core.coin_state import (
    CoinRecord,
    CoinSortAxis,
    classify_coin,
    coin_status_label,
    coins_for_display,
    is_in_flight,
)
from greenpane.core.eligibility import evaluate_offer_eligibility
from greenpane.core.errors import (
    BackendError,
    OfferInputError,
    OfferSummaryParseError,
    OfferValidationError,
    UploadError,
)
from greenpane.core.offer_draft import OfferDraft, import_and_take_offer
from greenpane.core.offer_identity import offer_hash
from greenpane.core.offer_summary import OfferAsset, OfferSummary
from greenpane.logging_setup import FileLogging

_file_logging = FileLogging(service_name="manager")
_manager_logger = logging.getLogger("greenpane.manager")

_VENUE_NAMES = {"dexie": "Dexie", "mintgarden": "MintGarden"}

_HANDLED_ERRORS = (
    OfferValidationError,
    OfferInputError,
    BackendError,
    UploadError,
    OfferSummaryParseError,
    SageRpcError,
    SageWrongFingerprintError,
)


def _default_program_config_path() -> str:
    home_default = Path("~/.greenpane/config/program.yaml").expanduser()
    if home_default.exists():
        return str(home_default)
    return "config/program.yaml"


def _new_sage_client(program: ProgramConfig) -> SageRpcClient:
    return resolve_sage_client(
        host=program.sage.host,
        port=program.sage.port,
        cert_path=program.sage.cert_path,
        key_path=program.sage.key_path,
        fingerprint=program.sage.fingerprint,
    )


def _new_dexie_adapter(program: ProgramConfig) -> DexieAdapter:
    network = program.app_network
    return DexieAdapter(program.dexie.base_for(network), testnet=is_testnet_network(network))


def _new_mintgarden_adapter(program: ProgramConfig) -> MintGardenAdapter:
    network = program.app_network
    return MintGardenAdapter(program.mintgarden.base_for(network), testnet=is_testnet_network(network))


def _read_offer_arg(value: str) -> str:
    raw = value.strip()
    if raw.startswith("@"):
        path = Path(raw[1:]).expanduser()
        try:
            raw = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise OfferInputError(f"cannot read offer file {path}: {exc.strerror or exc}") from exc
    if not raw:
        raise OfferInputError("offer text is required")
    return raw


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload))


def _coin_row(record: CoinRecord, precision: int) -> dict[str, Any]:
    classification = classify_coin(record)
    return {
        "coin_id": record.coin_id,
        "amount": from_mojos(record.amount, precision),
        "amount_mojos": record.amount,
        "state": str(classification.state),
        "confirmed": coin_status_label(record, CoinSortAxis.CONFIRMATION),
        "spent": coin_status_label(record, CoinSortAxis.SPEND),
        "in_flight": is_in_flight(record),
    }


def _summary_asset_row(asset: OfferAsset) -> dict[str, Any]:
    return {
        "kind": str(asset.kind),
        "asset_id": asset.asset_id,
        "amount": str(asset.amount),
        "royalty": str(asset.royalty),
        "total": str(asset.total),
        "name": asset.name,
        "ticker": asset.ticker,
    }


def _summary_payload(summary: OfferSummary, offer: str) -> dict[str, Any]:
    eligibility = evaluate_offer_eligibility(summary)
    return {
        "fee": str(summary.fee),
        "maker_fee_included": summary.fee > Decimal(0),
        "maker": [_summary_asset_row(a) for a in summary.maker],
        "taker": [_summary_asset_row(a) for a in summary.taker],
        "offer_hash": offer_hash(offer),
        "one_sided": eligibility.one_sided,
        "dexie_supported": eligibility.dexie_supported,
        "mintgarden_supported": eligibility.mintgarden_supported,
    }


def _validate(program_path: Path) -> int:
    program = load_program_config(program_path)
    _print_json(
        {
            "ok": True,
            "network": program.app_network,
            "unit": program.native_unit.ticker,
            "precision": program.native_unit.precision,
            "token_precision": program.token_precision,
        }
    )
    return 0


async def _coins_list(program: ProgramConfig, *, asset_id: str | None, unspent_only: bool) -> int:
    precision = program.native_unit.precision if asset_id is None else program.token_precision
    async with _new_sage_client(program) as client:
        records = await client.list_coin_records(asset_id=asset_id)
    rows = [_coin_row(r, precision) for r in coins_for_display(records, unspent_only=unspent_only)]
    _print_json({"network": program.app_network, "count": len(rows), "items": rows})
    return 0


def _upload(program: ProgramConfig, venue: str, offer: str) -> str:
    if not uploads_supported(program.app_network):
        message = f"offer uploads are not supported on network {program.app_network}"
        raise UploadError(_VENUE_NAMES.get(venue, venue), message)
    if venue == "dexie":
        return _new_dexie_adapter(program).upload_offer(offer)
    if venue == "mintgarden":
        return _new_mintgarden_adapter(program).upload_offer(offer)
    raise ValueError(f"unsupported venue: {venue}")


async def _offer_make(
    program: ProgramConfig,
    *,
    draft_path: Path,
    split: bool,
    upload_venue: str | None,
) -> int:
    draft = OfferDraft.from_mapping(
        load_offer_draft_yaml(draft_path),
        default_expiry=program.default_offer_expiry,
    )
    async with _new_sage_client(program) as client:
        created = await draft.submit(
            client,
            precision=program.native_unit.precision,
            token_precision=program.token_precision,
            split=split,
        )
    result: dict[str, Any] = {
        "offer": created.offer,
        "offer_hash": offer_hash(created.offer),
        "one_sided": created.eligibility.one_sided,
        "dexie_supported": created.eligibility.dexie_supported,
        "mintgarden_supported": created.eligibility.mintgarden_supported,
    }
    if upload_venue:
        supported = (
            created.eligibility.dexie_supported
            if upload_venue == "dexie"
            else created.eligibility.mintgarden_supported
        )
        if not supported:
            result["upload_error"] = f"offer is not eligible for {upload_venue}"
        else:
            try:
                created.links[upload_venue] = _upload(program, upload_venue, created.offer)
            except UploadError as exc:
                result["upload_error"] = str(exc)
        result["links"] = dict(created.links)
    _print_json(result)
    return 0


async def _offer_view(program: ProgramConfig, offer: str) -> int:
    async with _new_sage_client(program) as client:
        summary = await client.view_offer_summary(offer)
    _print_json(_summary_payload(summary, offer))
    return 0


async def _offer_import(program: ProgramConfig, offer: str) -> int:
    async with _new_sage_client(program) as client:
        await client.import_offer(offer)
    _print_json({"imported": True, "offer_hash": offer_hash(offer)})
    return 0


async def _offer_take(program: ProgramConfig, offer: str, fee: str | None) -> int:
    async with _new_sage_client(program) as client:
        response = await import_and_take_offer(
            client,
            offer,
            fee=fee,
            precision=program.native_unit.precision,
        )
    _print_json({"taken": True, "response": response})
    return 0


def _offer_check(program: ProgramConfig, *, venue: str, offer: str | None, offer_id: str | None) -> int:
    if venue == "dexie":
        exists = _new_dexie_adapter(program).offer_exists(offer_id or "")
    else:
        exists = _new_mintgarden_adapter(program).offer_exists(offer or "")
    _print_json({"venue": venue, "exists": exists})
    return 0


def _run(args: argparse.Namespace) -> int:
    program_path = Path(args.program_config)
    if args.command == "config-validate":
        return _validate(program_path)
    if args.command == "offer-hash":
        _print_json({"offer_hash": offer_hash(_read_offer_arg(args.offer))})
        return 0

    program = load_program_config(program_path)
    _file_logging.configure(program.home_dir, log_level=program.app_log_level)
    if args.command == "coins-list":
        return asyncio.run(
            _coins_list(program, asset_id=args.asset_id or None, unspent_only=bool(args.unspent_only))
        )
    if args.command == "offer-make":
        return asyncio.run(
            _offer_make(
                program,
                draft_path=Path(args.draft),
                split=bool(args.split),
                upload_venue=args.upload,
            )
        )
    if args.command == "offer-view":
        return asyncio.run(_offer_view(program, _read_offer_arg(args.offer)))
    if args.command == "offer-import":
        return asyncio.run(_offer_import(program, _read_offer_arg(args.offer)))
    if args.command == "offer-take":
        return asyncio.run(_offer_take(program, _read_offer_arg(args.offer), args.fee or None))
    if args.command == "offer-upload":
        link = _upload(program, args.venue, _read_offer_arg(args.offer))
        _print_json({"venue": args.venue, "link": link})
        return 0
    if args.command == "offer-check":
        return _offer_check(
            program,
            venue=args.venue,
            offer=_read_offer_arg(args.offer) if args.offer else None,
            offer_id=args.offer_id or None,
        )
    raise ValueError(f"unsupported command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="greenpane manager CLI")
    parser.add_argument("--program-config", default=_default_program_config_path())

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("config-validate")

    p_coins = sub.add_parser("coins-list")
    p_coins.add_argument("--asset-id", default="")
    p_coins.add_argument("--unspent-only", action="store_true")

    p_make = sub.add_parser("offer-make")
    p_make.add_argument("--draft", required=True, help="YAML offer draft")
    p_make.add_argument(
        "--split",
        action="store_true",
        help="Allow several offered NFTs when checking MintGarden eligibility",
    )
    p_make.add_argument("--upload", choices=["dexie", "mintgarden"], default=None)

    for name in ("offer-view", "offer-import", "offer-hash"):
        p_offer = sub.add_parser(name)
        p_offer.add_argument("--offer", required=True, help="Offer text or @path")

    p_take = sub.add_parser("offer-take")
    p_take.add_argument("--offer", required=True, help="Offer text or @path")
    p_take.add_argument("--fee", default="")

    p_upload = sub.add_parser("offer-upload")
    p_upload.add_argument("--venue", choices=["dexie", "mintgarden"], required=True)
    p_upload.add_argument("--offer", required=True, help="Offer text or @path")

    p_check = sub.add_parser("offer-check")
    p_check.add_argument("--venue", choices=["dexie", "mintgarden"], required=True)
    p_check.add_argument("--offer", default="", help="Offer text or @path (mintgarden)")
    p_check.add_argument("--offer-id", default="", help="Dexie offer id")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        code = _run(args)
    except _HANDLED_ERRORS as exc:
        _manager_logger.error("command_failed command=%s error=%s", args.command, exc)
        payload: dict[str, Any] = {"error": str(exc)}
        if isinstance(exc, BackendError):
            payload["kind"] = exc.kind
        _print_json(payload)
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()
