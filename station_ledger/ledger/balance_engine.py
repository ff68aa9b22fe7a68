"""Running balance computation primitives for entity ledgers."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from station_ledger.domain import BalanceSnapshot, LedgerEvent

_ZERO = Decimal("0")


def balance_coerce_amount(value: Decimal | int, field_name: str = "opening_balance") -> Decimal:
    """Return a finite Decimal for an integer or Decimal money input.

    Floats and bools are rejected.

    Raises:
        ValueError: Raised when the value is not a finite Decimal or an int.
    """

    if isinstance(value, int) and not isinstance(value, bool):
        return Decimal(value)
    if not isinstance(value, Decimal) or not value.is_finite():
        raise ValueError(f"{field_name} must be a finite Decimal or int")
    return value


def balance_sort_events(events: Sequence[LedgerEvent]) -> tuple[LedgerEvent, ...]:
    """Sort events chronologically with a stable sequence tie-break.

    Args:
        events: Events in any order.

    Returns:
        tuple[LedgerEvent, ...]: Events ordered by `(timestamp_utc, sequence)`.

    Raises:
        ValueError: Raised when an event timestamp is offset-naive.
    """

    for event in events:
        if event.timestamp_utc.tzinfo is None or event.timestamp_utc.utcoffset() is None:
            raise ValueError(f"event timestamp must be offset-aware: reference_id={event.reference_id}")

    return tuple(sorted(events, key=lambda event: (event.timestamp_utc, event.sequence)))


def balance_compute_running(
    events: Sequence[LedgerEvent],
    opening_balance: Decimal = _ZERO,
) -> tuple[BalanceSnapshot, ...]:
    """Fold events left to right into per-event running balances.

    Events are applied in the order given; callers sort with
    `balance_sort_events` first. Amounts are accumulated without rounding.

    Args:
        events: Events of one entity in application order.
        opening_balance: Balance before the first event.

    Returns:
        tuple[BalanceSnapshot, ...]: One snapshot per event, same length as input.

    Raises:
        ValueError: Raised when opening_balance is neither a finite Decimal nor an int.
    """

    running_balance = balance_coerce_amount(opening_balance)
    snapshots: list[BalanceSnapshot] = []
    for event in events:
        running_balance += event.amount
        snapshots.append(BalanceSnapshot(after_event=event, running_balance=running_balance))
    return tuple(snapshots)


def balance_closing(events: Sequence[LedgerEvent], opening_balance: Decimal = _ZERO) -> Decimal:
    """Return the balance after every event, or the opening balance when empty."""

    return balance_coerce_amount(opening_balance) + sum((event.amount for event in events), _ZERO)


def balance_group_by_entity(events: Sequence[LedgerEvent]) -> dict[str, list[LedgerEvent]]:
    """Split a mixed event feed into per-entity lists keeping relative order.

    Args:
        events: Events for any number of entities.

    Returns:
        dict[str, list[LedgerEvent]]: Entity id to events, in first-seen entity order.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    events_by_entity: dict[str, list[LedgerEvent]] = {}
    for event in events:
        events_by_entity.setdefault(event.entity_id, []).append(event)
    return events_by_entity


__all__ = [
    "balance_closing",
    "balance_coerce_amount",
    "balance_compute_running",
    "balance_group_by_entity",
    "balance_sort_events",
]
