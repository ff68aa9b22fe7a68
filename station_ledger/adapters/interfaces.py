"""Typed interfaces for adapter-layer responsibilities."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol


@dataclass(frozen=True)
class AdapterFetchResult:
    """Result contract for one record fetch.

    Attributes:
        source: Source name the records were fetched for.
        records: Raw records in backend order, non-mapping entries included.
        stage_timeline: Structured stage timeline entries captured by adapter.
    """

    source: str
    records: list[Any]
    stage_timeline: list[dict[str, Any]]


class StationRecordSourcePort(Protocol):
    """Port definition for fetching raw ledger source records."""

    def adapter_source_name(self) -> str:
        """Return adapter source identifier for diagnostics.

        Returns:
            str: Human-readable upstream source identifier.

        Raises:
            RuntimeError: Raised when source metadata is unavailable.
        """

    def adapter_fetch_records(
        self,
        source: str,
        entity_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> AdapterFetchResult:
        """Fetch raw records of one source type.

        Args:
            source: Source name such as `payments` or `customer_activities`.
            entity_id: Optional customer/supplier/product restriction.
            from_date: Optional inclusive lower date bound passed to the backend.
            to_date: Optional inclusive upper date bound passed to the backend.

        Returns:
            AdapterFetchResult: Immutable fetch result payload contract.

        Raises:
            ConnectionError: Raised when upstream connection fails.
            TimeoutError: Raised when request exceeds timeout.
        """
