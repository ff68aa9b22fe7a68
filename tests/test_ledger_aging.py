"""Regression tests for aging bucket classification and FIFO settlement."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from station_ledger.domain import AgingItem, LedgerEvent, LedgerEventKind
from station_ledger.ledger.aging import (
    aging_age_in_days,
    aging_bucket_labels,
    aging_bucketize,
    aging_build_report,
    aging_combine_reports,
    aging_outstanding_items,
)
from station_ledger.ledger.balance_engine import balance_closing

_KARACHI = "Asia/Karachi"
_AS_OF = date(2026, 4, 30)


def _event(
    reference_id: str,
    amount: str,
    occurred_on: date,
    kind: LedgerEventKind = LedgerEventKind.SALE,
    sequence: int = 0,
) -> LedgerEvent:
    return LedgerEvent(
        entity_id="cust-1",
        timestamp_utc=datetime(occurred_on.year, occurred_on.month, occurred_on.day, 6, 0, tzinfo=timezone.utc),
        kind=kind,
        amount=Decimal(amount),
        reference_id=reference_id,
        sequence=sequence,
    )


def test_ledger_aging_bucketize_partitions_outstanding_amounts_by_age() -> None:
    """Classify items into current, 30-59, 60-89 and 90+ buckets.

    Returns:
        None: Assertions validate bucket totals for a mixed ledger.

    Raises:
        AssertionError: Raised when bucket totals are wrong.
    """

    items = [
        AgingItem(amount=Decimal("500"), age_days=10),
        AgingItem(amount=Decimal("300"), age_days=45),
        AgingItem(amount=Decimal("200"), age_days=95),
    ]

    buckets = aging_bucketize(items)

    assert [bucket.label for bucket in buckets] == ["current", "30-59", "60-89", "90+"]
    assert [bucket.amount for bucket in buckets] == [Decimal("500"), Decimal("300"), Decimal("0"), Decimal("200")]
    assert [bucket.item_count for bucket in buckets] == [1, 1, 0, 1]
    assert sum((bucket.amount for bucket in buckets), Decimal("0")) == Decimal("1000")


def test_ledger_aging_bucketize_uses_inclusive_lower_bounds() -> None:
    """Place boundary ages in the bucket they open and negative ages in current.

    Returns:
        None: Assertions validate boundary classification.

    Raises:
        AssertionError: Raised when boundary ages land in the wrong bucket.
    """

    expected_labels = {
        -5: "current",
        0: "current",
        29: "current",
        30: "30-59",
        59: "30-59",
        60: "60-89",
        89: "60-89",
        90: "90+",
        400: "90+",
    }

    for age_days, expected_label in expected_labels.items():
        buckets = aging_bucketize([AgingItem(amount=Decimal("1"), age_days=age_days)])
        populated = [bucket.label for bucket in buckets if bucket.item_count]
        assert populated == [expected_label], age_days


def test_ledger_aging_bucketize_returns_zero_buckets_for_no_items() -> None:
    buckets = aging_bucketize([])

    assert len(buckets) == 4
    assert all(bucket.amount == Decimal("0") and bucket.item_count == 0 for bucket in buckets)
    assert buckets[-1].upper_bound_days is None


def test_ledger_aging_supports_custom_boundaries() -> None:
    assert aging_bucket_labels((15, 45)) == ("current", "15-44", "45+")

    buckets = aging_bucketize([AgingItem(amount=Decimal("7"), age_days=20)], (15, 45))

    assert [bucket.amount for bucket in buckets] == [Decimal("0"), Decimal("7"), Decimal("0")]


@pytest.mark.parametrize("boundaries", [(), (0, 30), (30, 30, 60), (60, 30)])
def test_ledger_aging_rejects_invalid_boundaries(boundaries: tuple[int, ...]) -> None:
    with pytest.raises(ValueError, match="boundaries"):
        aging_bucketize([], boundaries)


def test_ledger_aging_age_in_days_uses_station_local_date() -> None:
    """Measure age from the station-local origin date.

    Returns:
        None: Assertions validate local-date ages across the UTC day boundary.

    Raises:
        AssertionError: Raised when ages are computed from UTC dates.
    """

    origin_utc = datetime(2026, 4, 29, 20, 0, tzinfo=timezone.utc)

    assert aging_age_in_days(origin_utc, _AS_OF, _KARACHI) == 0
    assert aging_age_in_days(origin_utc, _AS_OF, "UTC") == 1


def test_ledger_aging_outstanding_items_settle_oldest_charges_first() -> None:
    """Apply payments to the oldest open charges before newer ones.

    Returns:
        None: Assertions validate FIFO settlement.

    Raises:
        AssertionError: Raised when settlement order is not FIFO.
    """

    events = [
        _event("sale-old", "100", date(2026, 1, 10)),
        _event("sale-new", "200", date(2026, 3, 20)),
        _event("pay-1", "-150", date(2026, 4, 1), kind=LedgerEventKind.PAYMENT),
    ]

    items, unapplied_credit = aging_outstanding_items(events, _AS_OF, _KARACHI)

    assert items == (AgingItem(amount=Decimal("150"), age_days=41, reference_id="sale-new"),)
    assert unapplied_credit == Decimal("0")


def test_ledger_aging_outstanding_items_carry_excess_credit_forward() -> None:
    """Consume overpayments against later charges and report any remainder.

    Returns:
        None: Assertions validate unapplied credit handling.

    Raises:
        AssertionError: Raised when credits are dropped or double-counted.
    """

    events = [
        _event("sale-1", "100", date(2026, 1, 10)),
        _event("pay-1", "-180", date(2026, 1, 20), kind=LedgerEventKind.PAYMENT),
        _event("sale-2", "50", date(2026, 2, 1)),
    ]

    items, unapplied_credit = aging_outstanding_items(events, _AS_OF, _KARACHI)
    assert items == ()
    assert unapplied_credit == Decimal("30")

    events.append(_event("sale-3", "70", date(2026, 4, 25)))
    items, unapplied_credit = aging_outstanding_items(events, _AS_OF, _KARACHI)
    assert items == (AgingItem(amount=Decimal("40"), age_days=5, reference_id="sale-3"),)
    assert unapplied_credit == Decimal("0")


def test_ledger_aging_outstanding_items_age_positive_opening_balance_as_oldest() -> None:
    """Treat a positive opening balance as the oldest, most-overdue item.

    Returns:
        None: Assertions validate opening-balance aging.

    Raises:
        AssertionError: Raised when opening balance is aged as current.
    """

    events = [
        _event("sale-1", "100", date(2026, 4, 20)),
        _event("pay-1", "-30", date(2026, 4, 25), kind=LedgerEventKind.PAYMENT),
    ]

    report = aging_build_report(events, _AS_OF, _KARACHI, opening_balance=Decimal("50"))

    assert report.domain_bucket_amounts() == {
        "current": Decimal("100"),
        "30-59": Decimal("0"),
        "60-89": Decimal("0"),
        "90+": Decimal("20"),
    }
    assert report.total_overdue == Decimal("20")


def test_ledger_aging_report_ignores_price_changes_and_reconciles_with_balance() -> None:
    """Keep outstanding total minus unapplied credit equal to the closing balance.

    Returns:
        None: Assertions validate report totals.

    Raises:
        AssertionError: Raised when report totals do not reconcile.
    """

    events = [
        _event("sale-1", "500", date(2026, 4, 20)),
        _event("sale-2", "300", date(2026, 3, 16)),
        _event("sale-3", "200", date(2026, 1, 25)),
        _event("adj-1", "-100", date(2026, 4, 28), kind=LedgerEventKind.ADJUSTMENT),
        _event("credit-1", "-50", date(2026, 4, 29), kind=LedgerEventKind.CREDIT),
    ]
    price_change = _event("ph-1", "12.50", date(2026, 4, 1), kind=LedgerEventKind.PRICE_CHANGE)

    report = aging_build_report(events + [price_change], _AS_OF, _KARACHI)

    assert report.domain_bucket_amounts() == {
        "current": Decimal("500"),
        "30-59": Decimal("300"),
        "60-89": Decimal("0"),
        "90+": Decimal("50"),
    }
    assert report.total_amount == Decimal("850")
    assert report.total_amount - report.unapplied_credit == balance_closing(events)
    assert report.as_of == _AS_OF


def test_ledger_aging_combine_reports_sums_separately_settled_entities() -> None:
    """Sum entity reports without letting one entity's payment settle another's charge.

    Returns:
        None: Assertions validate portfolio aging totals.

    Raises:
        AssertionError: Raised when combined buckets or totals are wrong.
    """

    customer_a_report = aging_build_report([_event("a-sale", "100", date(2026, 1, 10))], _AS_OF, _KARACHI)
    customer_b_report = aging_build_report(
        [
            _event("b-sale", "50", date(2026, 4, 20)),
            _event("b-pay", "-80", date(2026, 4, 25), kind=LedgerEventKind.PAYMENT),
        ],
        _AS_OF,
        _KARACHI,
    )

    combined = aging_combine_reports([customer_a_report, customer_b_report])

    assert combined.domain_bucket_amounts() == {
        "current": Decimal("0"),
        "30-59": Decimal("0"),
        "60-89": Decimal("0"),
        "90+": Decimal("100"),
    }
    assert [bucket.item_count for bucket in combined.buckets] == [0, 0, 0, 1]
    assert combined.total_amount == Decimal("100")
    assert combined.total_overdue == Decimal("100")
    assert combined.unapplied_credit == Decimal("30")
    assert aging_combine_reports([customer_a_report]) == customer_a_report


def test_ledger_aging_combine_reports_rejects_mismatched_reports() -> None:
    default_report = aging_build_report([], _AS_OF, _KARACHI)
    custom_report = aging_build_report([], _AS_OF, _KARACHI, boundaries=(15, 45))
    other_day_report = aging_build_report([], date(2026, 5, 1), _KARACHI)

    with pytest.raises(ValueError, match="must not be empty"):
        aging_combine_reports([])
    with pytest.raises(ValueError, match="bucket labels"):
        aging_combine_reports([default_report, custom_report])
    with pytest.raises(ValueError, match="as_of"):
        aging_combine_reports([default_report, other_day_report])


def test_ledger_aging_accepts_integer_opening_balance() -> None:
    report = aging_build_report([], _AS_OF, _KARACHI, opening_balance=40)  # type: ignore[arg-type]

    assert report.domain_bucket_amounts()["90+"] == Decimal("40")

    with pytest.raises(ValueError, match="opening_balance"):
        aging_build_report([], _AS_OF, _KARACHI, opening_balance=40.0)  # type: ignore[arg-type]
