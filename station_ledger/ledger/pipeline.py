"""End-to-end ledger view pipeline over single- or multi-entity feeds."""
# pylint: disable=too-few-public-methods

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from station_ledger.config import LedgerSettings
from station_ledger.domain import (
    AgingReport,
    BalanceSnapshot,
    FilteredLedgerView,
    FilterSpec,
    LedgerEvent,
    LedgerEventKind,
    NormalizationResult,
    domain_build_stage_event,
)

from .aging import DEFAULT_AGING_BOUNDARIES_DAYS, aging_build_report, aging_combine_reports
from .balance_engine import (
    balance_closing,
    balance_coerce_amount,
    balance_compute_running,
    balance_group_by_entity,
    balance_sort_events,
)
from .normalizer import RecordFieldMap, normalizer_merge_results, normalizer_normalize_records
from .views import views_build

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerRecordBatch:
    """One homogeneous batch of source records.

    Attributes:
        records: Raw records as returned by the station backend; non-mapping
            entries are counted as skipped by the normalizer.
        kind: Batch event kind.
        field_map: Source record shape description.
    """

    records: Sequence[object]
    kind: LedgerEventKind
    field_map: RecordFieldMap


@dataclass(frozen=True)
class LedgerPipelineRequest:
    """Input contract for one pipeline run.

    Attributes:
        batches: Source batches; earlier batches win same-timestamp ties.
        as_of: Local date used for aging.
        filter_spec: View filter configuration.
        opening_balance: Balance before the first event; only valid for a single-entity ledger.
        entity_id: Optional ledger owner; restricts events and fills records without one.
    """

    batches: tuple[LedgerRecordBatch, ...]
    as_of: date
    filter_spec: FilterSpec = FilterSpec()
    opening_balance: Decimal | int = Decimal("0")
    entity_id: str | None = None


@dataclass(frozen=True)
class EntityLedger:
    """Balances and aging of one entity inside a pipeline run.

    Attributes:
        entity_id: Ledger owner.
        events: Entity events sorted chronologically.
        snapshots: Running balances of this entity only.
        closing_balance: Entity balance after every event.
        aging: Entity aging report.
    """

    entity_id: str
    events: tuple[LedgerEvent, ...]
    snapshots: tuple[BalanceSnapshot, ...]
    closing_balance: Decimal
    aging: AgingReport


@dataclass(frozen=True)
class LedgerPipelineResult:
    """Output payload for one pipeline run.

    Attributes:
        normalization: Combined normalization result with skip counters.
        events: Events of every entity sorted chronologically.
        snapshots: Per-entity running balances, merged in chronological order.
        closing_balance: Sum of every entity closing balance.
        aging: Aging report; bucket-wise sum of the entity reports.
        view: Filtered snapshots with summary.
        entity_ledgers: Per-entity balances and aging in first-seen entity order.
        stage_timeline: Diagnostics events; excluded from equality.
    """

    normalization: NormalizationResult
    events: tuple[LedgerEvent, ...]
    snapshots: tuple[BalanceSnapshot, ...]
    closing_balance: Decimal
    aging: AgingReport
    view: FilteredLedgerView
    entity_ledgers: tuple[EntityLedger, ...] = ()
    stage_timeline: list[dict[str, object]] = field(default_factory=list, compare=False)


class LedgerPipelineService:
    """Run normalize, sort, balance, aging and view stages over source records."""

    def __init__(
        self,
        timezone_name: str = "Asia/Karachi",
        aging_boundaries_days: Sequence[int] = DEFAULT_AGING_BOUNDARIES_DAYS,
    ):
        """Initialize pipeline configuration.

        Args:
            timezone_name: Station timezone for dates and naive timestamps.
            aging_boundaries_days: Aging bucket boundaries.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when timezone_name is blank.
        """

        if not timezone_name or not timezone_name.strip():
            raise ValueError("timezone_name must not be blank")
        self._timezone_name = timezone_name.strip()
        self._aging_boundaries_days = tuple(aging_boundaries_days)

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> LedgerPipelineService:
        """Build a pipeline service from validated runtime settings."""

        if settings is None:
            raise ValueError("settings must not be None")
        return cls(
            timezone_name=settings.station_timezone,
            aging_boundaries_days=settings.aging_boundaries_days,
        )

    def pipeline_run(self, request: LedgerPipelineRequest) -> LedgerPipelineResult:
        """Execute the full pipeline for one request.

        Events are grouped by entity and every entity is folded and aged
        separately. The run is stateless: inputs are never mutated and repeated
        runs over the same request produce equal results.

        Args:
            request: Pipeline input contract.

        Returns:
            LedgerPipelineResult: Derived ledger, aging and view data.

        Raises:
            ValueError: Raised when request is None, a batch kind is unsupported,
                opening_balance is invalid, or a non-zero opening balance is given
                for a feed holding more than one entity.
        """

        if request is None:
            raise ValueError("request must not be None")
        opening_balance = balance_coerce_amount(request.opening_balance)

        normalization = normalizer_merge_results(
            [
                normalizer_normalize_records(
                    records=batch.records,
                    kind=batch.kind,
                    field_map=batch.field_map,
                    timezone_name=self._timezone_name,
                    entity_id=request.entity_id,
                )
                for batch in request.batches
            ]
        )
        stage_timeline = list(normalization.stage_timeline)

        scoped_events = normalization.events
        if request.entity_id is not None:
            scoped_events = tuple(event for event in scoped_events if event.entity_id == request.entity_id)

        sorted_events = balance_sort_events(scoped_events)
        events_by_entity = balance_group_by_entity(sorted_events)
        if len(events_by_entity) > 1 and opening_balance != 0:
            raise ValueError("opening_balance requires a single-entity ledger; set entity_id to select one")

        entity_ledgers = tuple(
            self._pipeline_build_entity_ledger(entity_id, entity_events, opening_balance, request.as_of)
            for entity_id, entity_events in events_by_entity.items()
        )
        snapshots = tuple(
            sorted(
                (snapshot for ledger in entity_ledgers for snapshot in ledger.snapshots),
                key=lambda snapshot: (snapshot.after_event.timestamp_utc, snapshot.after_event.sequence),
            )
        )
        closing_balance = balance_closing(sorted_events, opening_balance)
        stage_timeline.append(
            domain_build_stage_event(
                stage="balance",
                status="completed",
                details={
                    "event_count": len(sorted_events),
                    "entity_count": len(entity_ledgers),
                    "closing_balance": str(closing_balance),
                },
            )
        )

        if entity_ledgers:
            aging_report = aging_combine_reports([ledger.aging for ledger in entity_ledgers])
        else:
            aging_report = aging_build_report(
                events=(),
                as_of=request.as_of,
                timezone_name=self._timezone_name,
                opening_balance=opening_balance,
                boundaries=self._aging_boundaries_days,
            )
        stage_timeline.append(
            domain_build_stage_event(
                stage="aging",
                status="completed",
                details={
                    "as_of": request.as_of.isoformat(),
                    "total_amount": str(aging_report.total_amount),
                    "unapplied_credit": str(aging_report.unapplied_credit),
                },
            )
        )

        view = views_build(snapshots, request.filter_spec, self._timezone_name)
        stage_timeline.append(
            domain_build_stage_event(
                stage="view",
                status="completed",
                details={"matched_count": view.summary.count, "total_count": len(snapshots)},
            )
        )

        logger.debug(
            "Ledger pipeline entity=%s entities=%s events=%s skipped=%s matched=%s",
            request.entity_id,
            len(entity_ledgers),
            len(sorted_events),
            normalization.skipped_count,
            view.summary.count,
        )

        return LedgerPipelineResult(
            normalization=normalization,
            events=sorted_events,
            snapshots=snapshots,
            closing_balance=closing_balance,
            aging=aging_report,
            view=view,
            entity_ledgers=entity_ledgers,
            stage_timeline=stage_timeline,
        )

    def _pipeline_build_entity_ledger(
        self,
        entity_id: str,
        entity_events: Sequence[LedgerEvent],
        opening_balance: Decimal,
        as_of: date,
    ) -> EntityLedger:
        """Fold and age the sorted events of one entity."""

        events = tuple(entity_events)
        return EntityLedger(
            entity_id=entity_id,
            events=events,
            snapshots=balance_compute_running(events, opening_balance),
            closing_balance=balance_closing(events, opening_balance),
            aging=aging_build_report(
                events=events,
                as_of=as_of,
                timezone_name=self._timezone_name,
                opening_balance=opening_balance,
                boundaries=self._aging_boundaries_days,
            ),
        )


__all__ = [
    "EntityLedger",
    "LedgerPipelineRequest",
    "LedgerPipelineResult",
    "LedgerPipelineService",
    "LedgerRecordBatch",
]
