"""Aging bucket classification for outstanding ledger amounts."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal

from station_ledger.domain import (
    MONETARY_EVENT_KINDS,
    AgingBucket,
    AgingItem,
    AgingReport,
    LedgerEvent,
    domain_record_local_date,
)

from .balance_engine import balance_coerce_amount, balance_sort_events

DEFAULT_AGING_BOUNDARIES_DAYS = (30, 60, 90)
CURRENT_BUCKET_LABEL = "current"

_ZERO = Decimal("0")


@dataclass
class _OpenCharge:
    """Mutable charge state used during FIFO settlement."""

    reference_id: str | None
    opened_at_utc: datetime | None
    remaining_amount: Decimal


def aging_bucket_labels(boundaries: Sequence[int] = DEFAULT_AGING_BOUNDARIES_DAYS) -> tuple[str, ...]:
    """Return bucket labels for the given boundaries, e.g. `current`, `30-59`, `60-89`, `90+`.

    Raises:
        ValueError: Raised when boundaries are empty, non-positive or not increasing.
    """

    normalized_boundaries = _aging_validate_boundaries(boundaries)
    labels = [CURRENT_BUCKET_LABEL]
    for lower_bound, upper_bound in zip(normalized_boundaries, normalized_boundaries[1:]):
        labels.append(f"{lower_bound}-{upper_bound - 1}")
    labels.append(f"{normalized_boundaries[-1]}+")
    return tuple(labels)


def aging_bucketize(
    items: Sequence[AgingItem],
    boundaries: Sequence[int] = DEFAULT_AGING_BOUNDARIES_DAYS,
) -> tuple[AgingBucket, ...]:
    """Partition outstanding amounts into age buckets.

    Lower bounds are inclusive and upper bounds exclusive; the last bucket is
    open-ended. Negative ages (future-dated items) classify as `current`.
    Every bucket is returned, zero-valued when nothing falls into it.

    Args:
        items: Outstanding amounts with ages in days.
        boundaries: Ascending lower bounds of the overdue buckets.

    Returns:
        tuple[AgingBucket, ...]: Buckets in ascending age order.

    Raises:
        ValueError: Raised when boundaries are invalid.
    """

    normalized_boundaries = _aging_validate_boundaries(boundaries)
    labels = aging_bucket_labels(normalized_boundaries)
    lower_bounds = (0,) + normalized_boundaries
    upper_bounds: tuple[int | None, ...] = normalized_boundaries + (None,)

    amounts = [_ZERO] * len(labels)
    counts = [0] * len(labels)
    for item in items:
        bucket_index = _aging_bucket_index(item.age_days, normalized_boundaries)
        amounts[bucket_index] += item.amount
        counts[bucket_index] += 1

    return tuple(
        AgingBucket(
            label=labels[index],
            lower_bound_days=lower_bounds[index],
            upper_bound_days=upper_bounds[index],
            amount=amounts[index],
            item_count=counts[index],
        )
        for index in range(len(labels))
    )


def aging_age_in_days(origin_utc: datetime, as_of: date, timezone_name: str) -> int:
    """Return whole calendar days between the local origin date and `as_of`.

    Raises:
        ValueError: Raised when origin_utc is offset-naive.
    """

    return (as_of - domain_record_local_date(origin_utc, timezone_name)).days


def aging_outstanding_items(
    events: Sequence[LedgerEvent],
    as_of: date,
    timezone_name: str,
    opening_balance: Decimal = _ZERO,
    boundaries: Sequence[int] = DEFAULT_AGING_BOUNDARIES_DAYS,
) -> tuple[tuple[AgingItem, ...], Decimal]:
    """Derive outstanding items from a ledger by FIFO settlement.

    Charges open items; settlements close the oldest open items first. A
    positive opening balance is the oldest item and, lacking an origin date,
    ages into the final bucket. Settlements exceeding every open charge are
    carried as unapplied credit and consumed by later charges. Price changes
    are not monetary and are ignored.

    Args:
        events: Events of one entity in any order.
        as_of: Local date ages are measured against.
        timezone_name: Station timezone.
        opening_balance: Balance before the first event.
        boundaries: Bucket boundaries; the last one ages undated opening balances.

    Returns:
        tuple[tuple[AgingItem, ...], Decimal]: Outstanding items and unapplied credit.

    Raises:
        ValueError: Raised when boundaries, timestamps or opening_balance are invalid.
    """

    normalized_boundaries = _aging_validate_boundaries(boundaries)
    opening_balance = balance_coerce_amount(opening_balance)
    open_charges: list[_OpenCharge] = []
    unapplied_credit = _ZERO

    if opening_balance > _ZERO:
        open_charges.append(_OpenCharge(reference_id=None, opened_at_utc=None, remaining_amount=opening_balance))
    elif opening_balance < _ZERO:
        unapplied_credit = -opening_balance

    for event in balance_sort_events([event for event in events if event.kind in MONETARY_EVENT_KINDS]):
        if event.amount > _ZERO:
            charge_amount = event.amount
            if unapplied_credit > _ZERO:
                applied_credit = min(unapplied_credit, charge_amount)
                unapplied_credit -= applied_credit
                charge_amount -= applied_credit
            if charge_amount > _ZERO:
                open_charges.append(
                    _OpenCharge(
                        reference_id=event.reference_id,
                        opened_at_utc=event.timestamp_utc,
                        remaining_amount=charge_amount,
                    )
                )
            continue

        settlement_amount = -event.amount
        while settlement_amount > _ZERO and open_charges:
            oldest_charge = open_charges[0]
            applied_amount = min(settlement_amount, oldest_charge.remaining_amount)
            oldest_charge.remaining_amount -= applied_amount
            settlement_amount -= applied_amount
            if oldest_charge.remaining_amount == _ZERO:
                open_charges.pop(0)
        unapplied_credit += settlement_amount

    items = tuple(
        AgingItem(
            amount=charge.remaining_amount,
            age_days=(
                normalized_boundaries[-1]
                if charge.opened_at_utc is None
                else aging_age_in_days(charge.opened_at_utc, as_of, timezone_name)
            ),
            reference_id=charge.reference_id,
        )
        for charge in open_charges
    )
    return items, unapplied_credit


def aging_build_report(
    events: Sequence[LedgerEvent],
    as_of: date,
    timezone_name: str,
    opening_balance: Decimal = _ZERO,
    boundaries: Sequence[int] = DEFAULT_AGING_BOUNDARIES_DAYS,
) -> AgingReport:
    """Build the aging report for one entity ledger.

    Args:
        events: Events of one entity.
        as_of: Local report date.
        timezone_name: Station timezone.
        opening_balance: Balance before the first event.
        boundaries: Bucket boundaries.

    Returns:
        AgingReport: Buckets with totals and unapplied credit.

    Raises:
        ValueError: Raised when boundaries are invalid or timestamps are naive.
    """

    items, unapplied_credit = aging_outstanding_items(
        events=events,
        as_of=as_of,
        timezone_name=timezone_name,
        opening_balance=opening_balance,
        boundaries=boundaries,
    )
    buckets = aging_bucketize(items, boundaries)
    total_amount = sum((bucket.amount for bucket in buckets), _ZERO)
    total_overdue = sum((bucket.amount for bucket in buckets if bucket.label != CURRENT_BUCKET_LABEL), _ZERO)
    return AgingReport(
        as_of=as_of,
        buckets=buckets,
        total_amount=total_amount,
        total_overdue=total_overdue,
        unapplied_credit=unapplied_credit,
    )


def aging_combine_reports(reports: Sequence[AgingReport]) -> AgingReport:
    """Sum per-entity aging reports into one portfolio report.

    Reports are built per entity beforehand; combining only adds buckets
    and totals.

    Args:
        reports: Reports sharing the same `as_of` date and bucket labels.

    Returns:
        AgingReport: Bucket-wise sums with summed totals and unapplied credit.

    Raises:
        ValueError: Raised when reports are empty or disagree on date or buckets.
    """

    if not reports:
        raise ValueError("reports must not be empty")
    first_report = reports[0]
    bucket_labels = [bucket.label for bucket in first_report.buckets]
    for report in reports[1:]:
        if report.as_of != first_report.as_of:
            raise ValueError("reports must share the same as_of date")
        if [bucket.label for bucket in report.buckets] != bucket_labels:
            raise ValueError("reports must share the same bucket labels")

    buckets = tuple(
        replace(
            bucket,
            amount=sum((report.buckets[index].amount for report in reports), _ZERO),
            item_count=sum(report.buckets[index].item_count for report in reports),
        )
        for index, bucket in enumerate(first_report.buckets)
    )
    return AgingReport(
        as_of=first_report.as_of,
        buckets=buckets,
        total_amount=sum((report.total_amount for report in reports), _ZERO),
        total_overdue=sum((report.total_overdue for report in reports), _ZERO),
        unapplied_credit=sum((report.unapplied_credit for report in reports), _ZERO),
    )


def _aging_bucket_index(age_days: int, boundaries: tuple[int, ...]) -> int:
    bucket_index = 0
    for boundary in boundaries:
        if age_days < boundary:
            break
        bucket_index += 1
    return bucket_index


def _aging_validate_boundaries(boundaries: Sequence[int]) -> tuple[int, ...]:
    normalized_boundaries = tuple(int(boundary) for boundary in boundaries)
    if not normalized_boundaries:
        raise ValueError("boundaries must not be empty")
    if normalized_boundaries[0] <= 0:
        raise ValueError("boundaries must be positive")
    if any(upper <= lower for lower, upper in zip(normalized_boundaries, normalized_boundaries[1:])):
        raise ValueError("boundaries must be strictly increasing")
    return normalized_boundaries


__all__ = [
    "CURRENT_BUCKET_LABEL",
    "DEFAULT_AGING_BOUNDARIES_DAYS",
    "aging_age_in_days",
    "aging_bucket_labels",
    "aging_bucketize",
    "aging_build_report",
    "aging_combine_reports",
    "aging_outstanding_items",
]
