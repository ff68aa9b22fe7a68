"""Filtered and aggregated ledger views for report screens and exports."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from enum import Enum

from station_ledger.domain import (
    BalanceSnapshot,
    FilteredLedgerView,
    FilterSpec,
    LedgerEvent,
    LedgerEventKind,
    LedgerSummary,
    domain_record_local_date,
)

ViewItem = LedgerEvent | BalanceSnapshot

ALL_FILTER_VALUE = "all"

_ZERO = Decimal("0")


def views_event_of(item: ViewItem) -> LedgerEvent:
    """Return the ledger event behind a view item."""

    if isinstance(item, BalanceSnapshot):
        return item.after_event
    return item


def views_apply_filters(
    items: Sequence[ViewItem],
    spec: FilterSpec,
    timezone_name: str,
) -> tuple[ViewItem, ...]:
    """Return the items matching every criterion of one filter spec.

    Search is a case-insensitive substring match over `spec.search_fields`.
    Date bounds compare the station-local event date and are inclusive; an
    inverted range yields no items. The input sequence is never mutated.

    Args:
        items: Ledger events or balance snapshots.
        spec: Immutable filter configuration.
        timezone_name: Station timezone for local-date comparison.

    Returns:
        tuple[ViewItem, ...]: Matching items in input order.

    Raises:
        ValueError: Raised when spec is None.
    """

    if spec is None:
        raise ValueError("spec must not be None")
    if spec.from_date is not None and spec.to_date is not None and spec.from_date > spec.to_date:
        return ()

    search_needle = (spec.search_text or "").strip().casefold()
    type_filter = _views_normalize_choice(spec.type_filter)
    if type_filter != ALL_FILTER_VALUE:
        parsed_kind = LedgerEventKind.domain_parse(type_filter)
        type_filter = parsed_kind.value if parsed_kind is not None else type_filter
    status_filter = _views_normalize_choice(spec.status_filter)
    payment_method_filter = _views_normalize_choice(spec.payment_method_filter)

    matching_items: list[ViewItem] = []
    for item in items:
        event = views_event_of(item)
        if spec.entity_id is not None and event.entity_id != spec.entity_id:
            continue
        if type_filter != ALL_FILTER_VALUE and event.kind.value != type_filter:
            continue
        if status_filter != ALL_FILTER_VALUE and (event.status or "") != status_filter:
            continue
        if payment_method_filter != ALL_FILTER_VALUE and (event.payment_method or "") != payment_method_filter:
            continue
        if search_needle and not _views_matches_search(event, search_needle, spec.search_fields):
            continue
        if spec.from_date is not None or spec.to_date is not None:
            event_date = domain_record_local_date(event.timestamp_utc, timezone_name)
            if spec.from_date is not None and event_date < spec.from_date:
                continue
            if spec.to_date is not None and event_date > spec.to_date:
                continue
        matching_items.append(item)
    return tuple(matching_items)


def views_summarize(items: Sequence[ViewItem]) -> LedgerSummary:
    """Compute count, total and per-kind/per-status breakdowns.

    Args:
        items: Ledger events or balance snapshots.

    Returns:
        LedgerSummary: Summary statistics over all items.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    total_amount = _ZERO
    by_kind: dict[LedgerEventKind, Decimal] = {}
    count_by_kind: dict[LedgerEventKind, int] = {}
    count_by_status: dict[str, int] = {}

    for item in items:
        event = views_event_of(item)
        total_amount += event.amount
        by_kind[event.kind] = by_kind.get(event.kind, _ZERO) + event.amount
        count_by_kind[event.kind] = count_by_kind.get(event.kind, 0) + 1
        if event.status is not None:
            count_by_status[event.status] = count_by_status.get(event.status, 0) + 1

    return LedgerSummary(
        count=len(items),
        total_amount=total_amount,
        by_kind=by_kind,
        count_by_kind=count_by_kind,
        count_by_status=count_by_status,
    )


def views_build(items: Sequence[ViewItem], spec: FilterSpec, timezone_name: str) -> FilteredLedgerView:
    """Filter items and summarize the matching subset in one call."""

    filtered_items = views_apply_filters(items, spec, timezone_name)
    return FilteredLedgerView(items=filtered_items, summary=views_summarize(filtered_items))


def _views_matches_search(event: LedgerEvent, search_needle: str, search_fields: Sequence[str]) -> bool:
    for field_name in search_fields:
        field_value = getattr(event, field_name, None)
        if field_value is None:
            continue
        if isinstance(field_value, Enum):
            field_value = field_value.value
        if search_needle in str(field_value).casefold():
            return True
    return False


def _views_normalize_choice(value: str | None) -> str:
    normalized_value = (value or ALL_FILTER_VALUE).strip().lower()
    return normalized_value or ALL_FILTER_VALUE


__all__ = [
    "ALL_FILTER_VALUE",
    "ViewItem",
    "views_apply_filters",
    "views_build",
    "views_event_of",
    "views_summarize",
]
