"""Typed domain models shared across ledger layers.

This module provides the immutable data contracts exchanged between the event
normalizer, balance engine, aging bucketizer and filter views.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class LedgerEventKind(str, Enum):
    """Kinds of financial occurrences that affect an entity ledger."""

    SALE = "sale"
    PAYMENT = "payment"
    CREDIT = "credit"
    ADJUSTMENT = "adjustment"
    PRICE_CHANGE = "price-change"

    @classmethod
    def domain_parse(cls, value: object) -> LedgerEventKind | None:
        """Resolve one kind from enum members or loose text labels.

        Args:
            value: Candidate kind value.

        Returns:
            LedgerEventKind | None: Matching kind or None when unknown.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized_value = value.strip().lower().replace("_", "-")
        if normalized_value in {"pricechange", "price"}:
            normalized_value = cls.PRICE_CHANGE.value
        if normalized_value == "charge":
            normalized_value = cls.SALE.value
        for member in cls:
            if member.value == normalized_value:
                return member
        return None


MONETARY_EVENT_KINDS = frozenset(
    {
        LedgerEventKind.SALE,
        LedgerEventKind.PAYMENT,
        LedgerEventKind.CREDIT,
        LedgerEventKind.ADJUSTMENT,
    }
)


@dataclass(frozen=True)
class LedgerEvent:
    """One timestamped financial occurrence affecting an entity balance.

    Attributes:
        entity_id: Customer, supplier or product identifier owning the ledger.
        timestamp_utc: Offset-aware UTC event time.
        kind: Event kind.
        amount: Signed amount; charges are positive, settlements negative.
        reference_id: Identifier of the originating record.
        sequence: Position in the input batch used as ordering tie-break.
        entity_name: Optional display name of the entity.
        reference_number: Optional human-facing document number.
        description: Optional free-text description.
        status: Optional record status (completed, pending, cancelled).
        payment_method: Optional payment method (cash, credit, card).
    """

    entity_id: str
    timestamp_utc: datetime
    kind: LedgerEventKind
    amount: Decimal
    reference_id: str
    sequence: int = 0
    entity_name: str | None = None
    reference_number: str | None = None
    description: str | None = None
    status: str | None = None
    payment_method: str | None = None


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balance immediately after applying one ledger event."""

    after_event: LedgerEvent
    running_balance: Decimal


@dataclass(frozen=True)
class AgingItem:
    """One outstanding amount with its age in days."""

    amount: Decimal
    age_days: int
    reference_id: str | None = None


@dataclass(frozen=True)
class AgingBucket:
    """Summed outstanding amount for one age range.

    Attributes:
        label: Bucket label (`current`, `30-59`, `60-89`, `90+`).
        lower_bound_days: Inclusive lower age bound.
        upper_bound_days: Exclusive upper age bound, None for the open bucket.
        amount: Sum of item amounts in range.
        item_count: Number of contributing items.
    """

    label: str
    lower_bound_days: int
    upper_bound_days: int | None
    amount: Decimal
    item_count: int


@dataclass(frozen=True)
class AgingReport:
    """Aging summary for one entity ledger.

    Attributes:
        as_of: Local date the ages were computed against.
        buckets: Ordered buckets covering every age.
        total_amount: Sum of all bucket amounts.
        total_overdue: Sum of every bucket except `current`.
        unapplied_credit: Settlements exceeding all open charges.
    """

    as_of: date
    buckets: tuple[AgingBucket, ...]
    total_amount: Decimal
    total_overdue: Decimal
    unapplied_credit: Decimal

    def domain_bucket_amounts(self) -> dict[str, Decimal]:
        """Return bucket label to amount mapping in bucket order."""

        return {bucket.label: bucket.amount for bucket in self.buckets}


DEFAULT_SEARCH_FIELDS = ("entity_name", "reference_number", "description")


@dataclass(frozen=True)
class FilterSpec:
    """Immutable filter configuration for ledger views.

    Attributes:
        search_text: Case-insensitive substring; blank matches everything.
        from_date: Optional inclusive lower local-date bound.
        to_date: Optional inclusive upper local-date bound.
        type_filter: Event kind value or `all`.
        status_filter: Record status or `all`.
        payment_method_filter: Payment method or `all`.
        entity_id: Optional entity restriction.
        search_fields: Event attribute names searched by `search_text`.
    """

    search_text: str = ""
    from_date: date | None = None
    to_date: date | None = None
    type_filter: str = "all"
    status_filter: str = "all"
    payment_method_filter: str = "all"
    entity_id: str | None = None
    search_fields: tuple[str, ...] = DEFAULT_SEARCH_FIELDS


@dataclass(frozen=True)
class LedgerSummary:
    """Summary statistics for a filtered ledger view."""

    count: int
    total_amount: Decimal
    by_kind: dict[LedgerEventKind, Decimal]
    count_by_kind: dict[LedgerEventKind, int]
    count_by_status: dict[str, int]


@dataclass(frozen=True)
class FilteredLedgerView:
    """Filtered items together with their summary."""

    items: tuple[Any, ...]
    summary: LedgerSummary


@dataclass(frozen=True)
class NormalizationResult:
    """Output of one record normalization pass.

    Attributes:
        events: Normalized events in input order.
        skipped_count: Number of records excluded from the ledger.
        skipped_reasons: Skip counters keyed by reason code.
        stage_timeline: Structured diagnostics events; excluded from equality.
    """

    events: tuple[LedgerEvent, ...]
    skipped_count: int
    skipped_reasons: dict[str, int]
    stage_timeline: list[dict[str, object]] = field(default_factory=list, compare=False)
