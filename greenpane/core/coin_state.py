from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

# Pending rows must outrank every confirmed height on the confirmation axis.
PENDING_SPEND_CONFIRMATION_BONUS = 1_000_000_000
PENDING_CREATE_CONFIRMATION_BONUS = 2_000_000_000
SPEND_PENDING_BONUS = 10_000_000
OFFERED_SPEND_BONUS = 20_000_000

PENDING_LABEL = "Pending..."
OFFERED_LABEL = "Offered..."


class CoinLifecycleState(StrEnum):
    PENDING_CREATE = "pending_create"
    CONFIRMED = "confirmed"
    PENDING_SPEND = "pending_spend"
    SPENT = "spent"
    OFFERED = "offered"


class CoinSortAxis(StrEnum):
    CONFIRMATION = "confirmation"
    SPEND = "spend"


@dataclass(frozen=True, slots=True)
class CoinRecord:
    coin_id: str
    amount: int
    created_height: int | None = None
    create_transaction_id: str | None = None
    spent_height: int | None = None
    spend_transaction_id: str | None = None
    offer_id: str | None = None

    @classmethod
    def from_rpc(cls, row: dict[str, Any]) -> CoinRecord:
        coin_id = str(row.get("coin_id", "")).strip()
        if not coin_id:
            raise ValueError("coin record is missing coin_id")
        return cls(
            coin_id=coin_id,
            amount=int(row.get("amount", 0)),
            created_height=_optional_int(row.get("created_height")),
            create_transaction_id=_optional_str(row.get("create_transaction_id")),
            spent_height=_optional_int(row.get("spent_height")),
            spend_transaction_id=_optional_str(row.get("spend_transaction_id")),
            offer_id=_optional_str(row.get("offer_id")),
        )


@dataclass(frozen=True, slots=True)
class CoinClassification:
    state: CoinLifecycleState
    confirmation_weight: int
    spend_weight: int


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def _is_pending_spend(record: CoinRecord) -> bool:
    return bool(record.spend_transaction_id) and record.spent_height is None


def coin_lifecycle_state(record: CoinRecord) -> CoinLifecycleState:
    if record.spent_height is not None:
        return CoinLifecycleState.SPENT
    if record.offer_id:
        return CoinLifecycleState.OFFERED
    if record.spend_transaction_id:
        return CoinLifecycleState.PENDING_SPEND
    if record.create_transaction_id and record.created_height is None:
        return CoinLifecycleState.PENDING_CREATE
    return CoinLifecycleState.CONFIRMED


def confirmation_weight(record: CoinRecord) -> int:
    if _is_pending_spend(record):
        bonus = PENDING_SPEND_CONFIRMATION_BONUS
    elif record.create_transaction_id:
        bonus = PENDING_CREATE_CONFIRMATION_BONUS
    else:
        bonus = 0
    return (record.created_height or 0) + bonus


def spend_weight(record: CoinRecord) -> int:
    weight = record.spent_height or 0
    if record.spend_transaction_id:
        weight += SPEND_PENDING_BONUS
    if record.offer_id:
        weight += OFFERED_SPEND_BONUS
    return weight


def classify_coin(record: CoinRecord) -> CoinClassification:
    return CoinClassification(
        state=coin_lifecycle_state(record),
        confirmation_weight=confirmation_weight(record),
        spend_weight=spend_weight(record),
    )


def axis_weight(record: CoinRecord, axis: CoinSortAxis) -> int:
    if axis == CoinSortAxis.CONFIRMATION:
        return confirmation_weight(record)
    if axis == CoinSortAxis.SPEND:
        return spend_weight(record)
    raise ValueError(f"unsupported coin sort axis: {axis}")


def compare_coins(a: CoinRecord, b: CoinRecord, axis: CoinSortAxis) -> int:
    left = axis_weight(a, axis)
    right = axis_weight(b, axis)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def sort_coins(
    records: Iterable[CoinRecord],
    axis: CoinSortAxis,
    *,
    descending: bool = True,
) -> list[CoinRecord]:
    """Stable sort by axis weight; equal weights keep their input order."""
    indexed = list(enumerate(records))
    sign = -1 if descending else 1
    indexed.sort(key=lambda item: (sign * axis_weight(item[1], axis), item[0]))
    return [record for _idx, record in indexed]


def is_unspent(record: CoinRecord) -> bool:
    return (
        not record.spend_transaction_id
        and record.spent_height is None
        and not record.offer_id
    )


def is_in_flight(record: CoinRecord) -> bool:
    return _is_pending_spend(record) or bool(record.create_transaction_id) or bool(record.offer_id)


def coin_status_label(record: CoinRecord, axis: CoinSortAxis) -> str:
    if axis == CoinSortAxis.CONFIRMATION:
        if record.created_height is not None:
            return str(record.created_height)
        return PENDING_LABEL if record.create_transaction_id else ""
    if record.spent_height is not None:
        return str(record.spent_height)
    if record.spend_transaction_id:
        return PENDING_LABEL
    if record.offer_id:
        return OFFERED_LABEL
    return ""


def coins_for_display(records: Iterable[CoinRecord], *, unspent_only: bool) -> list[CoinRecord]:
    if unspent_only:
        return sort_coins((r for r in records if is_unspent(r)), CoinSortAxis.SPEND)
    return sort_coins(records, CoinSortAxis.CONFIRMATION)
