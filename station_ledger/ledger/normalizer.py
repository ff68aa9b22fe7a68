"""Normalization of station backend records into ledger events."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal

from station_ledger.domain import (
    LedgerEvent,
    LedgerEventKind,
    NormalizationResult,
    domain_build_stage_event,
    domain_record_first_value,
    domain_record_normalize_optional_text,
    domain_record_parse_decimal,
    domain_record_parse_timestamp_utc,
)

logger = logging.getLogger(__name__)

SKIP_REASON_INVALID_DATE = "invalid_date"
SKIP_REASON_INVALID_AMOUNT = "invalid_amount"
SKIP_REASON_UNKNOWN_KIND = "unknown_kind"
SKIP_REASON_NOT_A_RECORD = "not_a_record"


@dataclass(frozen=True)
class RecordFieldMap:
    """Location of ledger-relevant values inside one source record shape.

    Every slot lists candidate keys in priority order; the first key holding a
    usable value wins.

    Attributes:
        source_name: Source label used in diagnostics.
        date_keys: Keys holding the event date.
        amount_keys: Keys holding the amount.
        reference_id_keys: Keys holding the originating record identifier.
        entity_id_keys: Keys holding the ledger owner identifier.
        entity_name_keys: Keys holding the ledger owner display name.
        reference_number_keys: Keys holding the document number.
        description_keys: Keys holding free text.
        status_keys: Keys holding the record status.
        payment_method_keys: Keys holding the payment method.
        kind_keys: Keys holding a required per-record kind overriding the batch kind.
        previous_amount_keys: When set, the amount becomes `amount - previous`.
    """

    source_name: str
    date_keys: tuple[str, ...]
    amount_keys: tuple[str, ...]
    reference_id_keys: tuple[str, ...] = ("id",)
    entity_id_keys: tuple[str, ...] = ()
    entity_name_keys: tuple[str, ...] = ()
    reference_number_keys: tuple[str, ...] = ()
    description_keys: tuple[str, ...] = ()
    status_keys: tuple[str, ...] = ("status",)
    payment_method_keys: tuple[str, ...] = ("paymentMethod",)
    kind_keys: tuple[str, ...] = ()
    previous_amount_keys: tuple[str, ...] = ()


SALES_TRANSACTION_FIELDS = RecordFieldMap(
    source_name="sales_transaction",
    date_keys=("transactionDate", "createdAt"),
    amount_keys=("totalAmount", "amount"),
    entity_id_keys=("customerId",),
    entity_name_keys=("customerName",),
    reference_number_keys=("invoiceNumber",),
    description_keys=("notes",),
)

PAYMENT_FIELDS = RecordFieldMap(
    source_name="payment",
    date_keys=("paymentDate", "createdAt"),
    amount_keys=("amount",),
    entity_id_keys=("customerId", "supplierId"),
    entity_name_keys=("customerName", "supplierName"),
    reference_number_keys=("referenceNumber",),
    description_keys=("notes",),
)

EXPENSE_FIELDS = RecordFieldMap(
    source_name="expense",
    date_keys=("expenseDate", "date", "createdAt"),
    amount_keys=("amount",),
    entity_id_keys=("accountId", "stationId"),
    entity_name_keys=("vendorName",),
    reference_number_keys=("receiptNumber",),
    description_keys=("description", "notes"),
)

PRICE_HISTORY_FIELDS = RecordFieldMap(
    source_name="price_history",
    date_keys=("changeDate", "createdAt"),
    amount_keys=("newPrice",),
    entity_id_keys=("productId",),
    entity_name_keys=("productName", "userName"),
    description_keys=("reason",),
    previous_amount_keys=("oldPrice",),
)

CUSTOMER_ACTIVITY_FIELDS = RecordFieldMap(
    source_name="customer_activity",
    date_keys=("date", "activityDate"),
    amount_keys=("amount",),
    entity_id_keys=("customerId",),
    entity_name_keys=("customerName",),
    reference_number_keys=("referenceNumber",),
    description_keys=("description",),
    kind_keys=("type", "activityType"),
)

_CHARGE_KINDS = frozenset({LedgerEventKind.SALE})
_SETTLEMENT_KINDS = frozenset({LedgerEventKind.PAYMENT, LedgerEventKind.CREDIT})


def normalizer_signed_amount(kind: LedgerEventKind, amount: Decimal) -> Decimal:
    """Apply the ledger sign convention for one event kind.

    Charges increase the balance owed, settlements decrease it; adjustments and
    price changes keep the sign they were recorded with.

    Args:
        kind: Event kind.
        amount: Raw parsed amount.

    Returns:
        Decimal: Signed ledger amount.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if kind in _CHARGE_KINDS:
        return abs(amount)
    if kind in _SETTLEMENT_KINDS:
        return -abs(amount)
    return amount


def normalizer_normalize_records(
    records: Sequence[object],
    kind: LedgerEventKind | str,
    field_map: RecordFieldMap,
    timezone_name: str,
    entity_id: str | None = None,
) -> NormalizationResult:
    """Convert heterogeneous source records into ledger events.

    Records with an unparseable date or amount are excluded and counted by
    reason; nothing is raised for bad data.

    Args:
        records: Source records as returned by the station backend; non-mapping
            entries are skipped as `not_a_record`.
        kind: Batch event kind. When `field_map.kind_keys` is set every record
            must carry its own kind and untyped records are skipped as `unknown_kind`.
        field_map: Source record shape description.
        timezone_name: Station timezone used for naive timestamps.
        entity_id: Optional ledger owner used when records carry none.

    Returns:
        NormalizationResult: Events in input order plus skip diagnostics.

    Raises:
        ValueError: Raised when the batch kind is unknown or field_map is None.
    """

    if field_map is None:
        raise ValueError("field_map must not be None")
    batch_kind = LedgerEventKind.domain_parse(kind)
    if batch_kind is None:
        raise ValueError(f"unsupported ledger event kind={kind}")

    events: list[LedgerEvent] = []
    skipped_reasons: dict[str, int] = {}

    for record_index, record in enumerate(records or ()):
        skip_reason = None
        if not isinstance(record, Mapping):
            skip_reason = SKIP_REASON_NOT_A_RECORD
        else:
            event_or_reason = _normalizer_build_event(
                record=record,
                record_index=record_index,
                batch_kind=batch_kind,
                field_map=field_map,
                timezone_name=timezone_name,
                fallback_entity_id=entity_id,
                sequence=len(events),
            )
            if isinstance(event_or_reason, str):
                skip_reason = event_or_reason
            else:
                events.append(event_or_reason)

        if skip_reason is not None:
            skipped_reasons[skip_reason] = skipped_reasons.get(skip_reason, 0) + 1
            logger.debug(
                "Skipping %s record index=%s reason=%s",
                field_map.source_name,
                record_index,
                skip_reason,
            )

    skipped_count = sum(skipped_reasons.values())
    if skipped_count:
        logger.info(
            "Normalized %s %s records with %s skipped: %s",
            len(events),
            field_map.source_name,
            skipped_count,
            skipped_reasons,
        )

    return NormalizationResult(
        events=tuple(events),
        skipped_count=skipped_count,
        skipped_reasons=skipped_reasons,
        stage_timeline=[
            domain_build_stage_event(
                stage="normalize",
                status="completed",
                details={
                    "source": field_map.source_name,
                    "event_count": len(events),
                    "skipped_count": skipped_count,
                    "skipped_reasons": dict(skipped_reasons),
                },
            )
        ],
    )


def normalizer_merge_results(results: Sequence[NormalizationResult]) -> NormalizationResult:
    """Concatenate normalization results and renumber event sequences.

    Args:
        results: Results in the order their events should tie-break.

    Returns:
        NormalizationResult: Combined events, counters and timelines.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    merged_events: list[LedgerEvent] = []
    merged_reasons: dict[str, int] = {}
    merged_timeline: list[dict[str, object]] = []

    for result in results:
        for event in result.events:
            merged_events.append(_normalizer_with_sequence(event, len(merged_events)))
        for reason, count in result.skipped_reasons.items():
            merged_reasons[reason] = merged_reasons.get(reason, 0) + count
        merged_timeline.extend(result.stage_timeline)

    return NormalizationResult(
        events=tuple(merged_events),
        skipped_count=sum(merged_reasons.values()),
        skipped_reasons=merged_reasons,
        stage_timeline=merged_timeline,
    )


def _normalizer_build_event(
    record: Mapping[str, object],
    record_index: int,
    batch_kind: LedgerEventKind,
    field_map: RecordFieldMap,
    timezone_name: str,
    fallback_entity_id: str | None,
    sequence: int,
) -> LedgerEvent | str:
    """Build one event, or return the skip reason code."""

    timestamp_utc = domain_record_parse_timestamp_utc(
        domain_record_first_value(record, field_map.date_keys),
        timezone_name,
    )
    if timestamp_utc is None:
        return SKIP_REASON_INVALID_DATE

    raw_amount = domain_record_parse_decimal(domain_record_first_value(record, field_map.amount_keys))
    if raw_amount is None:
        return SKIP_REASON_INVALID_AMOUNT
    if field_map.previous_amount_keys:
        previous_amount = domain_record_parse_decimal(
            domain_record_first_value(record, field_map.previous_amount_keys)
        )
        if previous_amount is None:
            return SKIP_REASON_INVALID_AMOUNT
        raw_amount = raw_amount - previous_amount

    event_kind = batch_kind
    if field_map.kind_keys:
        record_kind_value = domain_record_first_value(record, field_map.kind_keys)
        record_kind = LedgerEventKind.domain_parse(record_kind_value)
        if record_kind is None:
            return SKIP_REASON_UNKNOWN_KIND
        event_kind = record_kind

    reference_id = _normalizer_text(record, field_map.reference_id_keys) or f"{field_map.source_name}-{record_index}"
    resolved_entity_id = _normalizer_text(record, field_map.entity_id_keys) or fallback_entity_id or ""

    return LedgerEvent(
        entity_id=resolved_entity_id,
        timestamp_utc=timestamp_utc,
        kind=event_kind,
        amount=normalizer_signed_amount(event_kind, raw_amount),
        reference_id=reference_id,
        sequence=sequence,
        entity_name=_normalizer_text(record, field_map.entity_name_keys),
        reference_number=_normalizer_text(record, field_map.reference_number_keys),
        description=_normalizer_text(record, field_map.description_keys),
        status=_normalizer_lower_text(record, field_map.status_keys),
        payment_method=_normalizer_lower_text(record, field_map.payment_method_keys),
    )


def _normalizer_text(record: Mapping[str, object], keys: tuple[str, ...]) -> str | None:
    if not keys:
        return None
    return domain_record_normalize_optional_text(domain_record_first_value(record, keys))


def _normalizer_lower_text(record: Mapping[str, object], keys: tuple[str, ...]) -> str | None:
    value = _normalizer_text(record, keys)
    return None if value is None else value.lower()


def _normalizer_with_sequence(event: LedgerEvent, sequence: int) -> LedgerEvent:
    if event.sequence == sequence:
        return event
    return replace(event, sequence=sequence)


__all__ = [
    "CUSTOMER_ACTIVITY_FIELDS",
    "EXPENSE_FIELDS",
    "PAYMENT_FIELDS",
    "PRICE_HISTORY_FIELDS",
    "SALES_TRANSACTION_FIELDS",
    "SKIP_REASON_INVALID_AMOUNT",
    "SKIP_REASON_INVALID_DATE",
    "SKIP_REASON_NOT_A_RECORD",
    "SKIP_REASON_UNKNOWN_KIND",
    "RecordFieldMap",
    "normalizer_merge_results",
    "normalizer_normalize_records",
    "normalizer_signed_amount",
]
