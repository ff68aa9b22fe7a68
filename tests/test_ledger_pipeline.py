"""Regression tests for the end-to-end ledger pipeline service."""

from __future__ import annotations

import copy
from datetime import date
from decimal import Decimal

import pytest

from station_ledger.config import LedgerSettings
from station_ledger.domain import FilterSpec, LedgerEventKind
from station_ledger.ledger import (
    CUSTOMER_ACTIVITY_FIELDS,
    PAYMENT_FIELDS,
    SALES_TRANSACTION_FIELDS,
    LedgerPipelineRequest,
    LedgerPipelineService,
    LedgerRecordBatch,
)

_AS_OF = date(2026, 4, 30)


def _build_request(**overrides: object) -> LedgerPipelineRequest:
    sales_records = [
        {
            "id": "s1",
            "transactionDate": "2026-01-05T06:00:00Z",
            "totalAmount": "500",
            "customerId": "cust-1",
            "customerName": "ABC Transport",
        },
        {"id": "s2", "transactionDate": "2026-03-20T06:00:00Z", "totalAmount": "300", "customerId": "cust-1"},
        {"id": "s3", "transactionDate": "2026-03-21T06:00:00Z", "totalAmount": "999", "customerId": "cust-2"},
        {"id": "bad", "transactionDate": "N/A", "totalAmount": "1", "customerId": "cust-1"},
    ]
    payment_records = [
        {"id": "p1", "paymentDate": "2026-04-01T06:00:00Z", "amount": "200", "customerId": "cust-1"},
    ]
    options: dict[str, object] = {
        "batches": (
            LedgerRecordBatch(records=sales_records, kind=LedgerEventKind.SALE, field_map=SALES_TRANSACTION_FIELDS),
            LedgerRecordBatch(records=payment_records, kind=LedgerEventKind.PAYMENT, field_map=PAYMENT_FIELDS),
        ),
        "as_of": _AS_OF,
        "entity_id": "cust-1",
    }
    options.update(overrides)
    return LedgerPipelineRequest(**options)  # type: ignore[arg-type]


def test_ledger_pipeline_run_produces_balances_aging_and_view() -> None:
    """Run every stage for one customer ledger built from two sources.

    Returns:
        None: Assertions validate stage outputs for a mixed ledger.

    Raises:
        AssertionError: Raised when any stage output is wrong.
    """

    service = LedgerPipelineService(timezone_name="Asia/Karachi")

    result = service.pipeline_run(_build_request())

    assert result.normalization.skipped_count == 1
    assert len(result.normalization.events) == 4
    assert [event.reference_id for event in result.events] == ["s1", "s2", "p1"]
    assert [snapshot.running_balance for snapshot in result.snapshots] == [
        Decimal("500"),
        Decimal("800"),
        Decimal("600"),
    ]
    assert result.closing_balance == Decimal("600")
    assert result.aging.domain_bucket_amounts() == {
        "current": Decimal("0"),
        "30-59": Decimal("300"),
        "60-89": Decimal("0"),
        "90+": Decimal("300"),
    }
    assert result.aging.total_amount - result.aging.unapplied_credit == result.closing_balance
    assert result.view.summary.count == 3
    assert [event["stage"] for event in result.stage_timeline] == ["normalize", "normalize", "balance", "aging", "view"]


def test_ledger_pipeline_view_filters_snapshots_with_their_balances() -> None:
    service = LedgerPipelineService()

    result = service.pipeline_run(_build_request(filter_spec=FilterSpec(type_filter="payment")))

    assert len(result.view.items) == 1
    assert result.view.items[0].running_balance == Decimal("600")
    assert result.view.summary.total_amount == Decimal("-200")


def test_ledger_pipeline_run_is_idempotent_and_does_not_mutate_input() -> None:
    """Produce equal results on repeated runs without touching input records.

    Returns:
        None: Assertions validate stateless execution.

    Raises:
        AssertionError: Raised when runs differ or inputs change.
    """

    service = LedgerPipelineService()
    request = _build_request(opening_balance=Decimal("25"))
    original_records = copy.deepcopy([list(batch.records) for batch in request.batches])

    first_result = service.pipeline_run(request)
    second_result = service.pipeline_run(request)

    assert first_result == second_result
    assert [list(batch.records) for batch in request.batches] == original_records


def test_ledger_pipeline_handles_empty_batches() -> None:
    service = LedgerPipelineService()

    result = service.pipeline_run(
        LedgerPipelineRequest(batches=(), as_of=_AS_OF, opening_balance=Decimal("-15"))
    )

    assert result.events == ()
    assert result.snapshots == ()
    assert result.closing_balance == Decimal("-15")
    assert result.aging.total_amount == Decimal("0")
    assert result.aging.unapplied_credit == Decimal("15")
    assert result.view.summary.count == 0


def test_ledger_pipeline_from_settings_applies_timezone_and_boundaries() -> None:
    """Build the service from settings and honor configured aging boundaries.

    Returns:
        None: Assertions validate settings wiring.

    Raises:
        AssertionError: Raised when settings are ignored.
    """

    settings = LedgerSettings(_env_file=None, station_timezone="UTC", aging_boundaries_days=(15, 45))
    service = LedgerPipelineService.from_settings(settings)

    result = service.pipeline_run(_build_request())

    assert [bucket.label for bucket in result.aging.buckets] == ["current", "15-44", "45+"]
    assert result.aging.domain_bucket_amounts() == {
        "current": Decimal("0"),
        "15-44": Decimal("300"),
        "45+": Decimal("300"),
    }


def test_ledger_pipeline_rejects_invalid_configuration() -> None:
    with pytest.raises(ValueError, match="timezone_name"):
        LedgerPipelineService(timezone_name=" ")

    with pytest.raises(ValueError, match="request"):
        LedgerPipelineService().pipeline_run(None)  # type: ignore[arg-type]


def _two_customer_request(**overrides: object) -> LedgerPipelineRequest:
    activity_records = [
        {"id": "a1", "type": "sale", "date": "2026-04-01T06:00:00Z", "amount": "100", "customerId": "cust-a"},
        {"id": "b1", "type": "sale", "date": "2026-04-02T06:00:00Z", "amount": "50", "customerId": "cust-b"},
        {"id": "a2", "type": "payment", "date": "2026-04-03T06:00:00Z", "amount": "30", "customerId": "cust-a"},
        {"id": "b2", "type": "payment", "date": "2026-04-04T06:00:00Z", "amount": "80", "customerId": "cust-b"},
    ]
    options: dict[str, object] = {
        "batches": (
            LedgerRecordBatch(
                records=activity_records,
                kind=LedgerEventKind.SALE,
                field_map=CUSTOMER_ACTIVITY_FIELDS,
            ),
        ),
        "as_of": _AS_OF,
    }
    options.update(overrides)
    return LedgerPipelineRequest(**options)  # type: ignore[arg-type]


def test_ledger_pipeline_keeps_balances_separate_per_entity() -> None:
    """Fold and age each customer of a mixed activity feed on its own.

    Returns:
        None: Assertions validate per-entity balances and combined aging.

    Raises:
        AssertionError: Raised when one customer's events leak into another's balance.
    """

    result = LedgerPipelineService().pipeline_run(_two_customer_request())

    balances_by_reference = {
        snapshot.after_event.reference_id: snapshot.running_balance for snapshot in result.snapshots
    }
    assert [snapshot.after_event.reference_id for snapshot in result.snapshots] == ["a1", "b1", "a2", "b2"]
    assert balances_by_reference == {
        "a1": Decimal("100"),
        "b1": Decimal("50"),
        "a2": Decimal("70"),
        "b2": Decimal("-30"),
    }
    assert [ledger.entity_id for ledger in result.entity_ledgers] == ["cust-a", "cust-b"]
    assert [ledger.closing_balance for ledger in result.entity_ledgers] == [Decimal("70"), Decimal("-30")]
    assert result.closing_balance == Decimal("40")
    assert result.entity_ledgers[1].aging.total_amount == Decimal("0")
    assert result.aging.domain_bucket_amounts()["current"] == Decimal("70")
    assert result.aging.unapplied_credit == Decimal("30")
    assert result.aging.total_amount - result.aging.unapplied_credit == result.closing_balance


def test_ledger_pipeline_view_filters_one_entity_of_a_mixed_feed() -> None:
    result = LedgerPipelineService().pipeline_run(
        _two_customer_request(filter_spec=FilterSpec(entity_id="cust-b"))
    )

    assert [item.running_balance for item in result.view.items] == [Decimal("50"), Decimal("-30")]


def test_ledger_pipeline_opening_balance_requires_single_entity() -> None:
    """Reject an opening balance that cannot be attributed to one entity.

    Returns:
        None: Assertions validate opening-balance scoping.

    Raises:
        AssertionError: Raised when an ambiguous opening balance is accepted.
    """

    service = LedgerPipelineService()

    with pytest.raises(ValueError, match="single-entity"):
        service.pipeline_run(_two_customer_request(opening_balance=Decimal("10")))

    scoped_result = service.pipeline_run(_two_customer_request(opening_balance=10, entity_id="cust-a"))

    assert [snapshot.running_balance for snapshot in scoped_result.snapshots] == [Decimal("110"), Decimal("80")]
    assert scoped_result.closing_balance == Decimal("80")
