"""Station backend REST adapter that fetches raw ledger source records."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Final

import httpx

from station_ledger.config import LedgerSettings
from station_ledger.domain import LedgerEventKind, domain_build_stage_event
from station_ledger.ledger import (
    CUSTOMER_ACTIVITY_FIELDS,
    EXPENSE_FIELDS,
    PAYMENT_FIELDS,
    PRICE_HISTORY_FIELDS,
    SALES_TRANSACTION_FIELDS,
    LedgerRecordBatch,
    RecordFieldMap,
)

from .interfaces import AdapterFetchResult, StationRecordSourcePort
from .station_api_errors import (
    StationApiAuthError,
    StationApiConnectionError,
    StationApiResponseError,
    StationApiTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationApiSource:
    """Endpoint and ledger mapping for one backend record type.

    Attributes:
        path_template: Path with a `{station_id}` placeholder.
        kind: Ledger event kind for the records.
        field_map: Record shape description.
        entity_query_param: Query parameter restricting records to one entity.
    """

    path_template: str
    kind: LedgerEventKind
    field_map: RecordFieldMap
    entity_query_param: str


STATION_API_SOURCES: Final[dict[str, StationApiSource]] = {
    "sales": StationApiSource(
        path_template="/api/sales/{station_id}",
        kind=LedgerEventKind.SALE,
        field_map=SALES_TRANSACTION_FIELDS,
        entity_query_param="customerId",
    ),
    "payments": StationApiSource(
        path_template="/api/payments/{station_id}",
        kind=LedgerEventKind.PAYMENT,
        field_map=PAYMENT_FIELDS,
        entity_query_param="customerId",
    ),
    "supplier_payments": StationApiSource(
        path_template="/api/payments/{station_id}",
        kind=LedgerEventKind.PAYMENT,
        field_map=PAYMENT_FIELDS,
        entity_query_param="supplierId",
    ),
    "expenses": StationApiSource(
        path_template="/api/expenses/{station_id}",
        kind=LedgerEventKind.ADJUSTMENT,
        field_map=EXPENSE_FIELDS,
        entity_query_param="accountId",
    ),
    "price_history": StationApiSource(
        path_template="/api/price-history/{station_id}",
        kind=LedgerEventKind.PRICE_CHANGE,
        field_map=PRICE_HISTORY_FIELDS,
        entity_query_param="productId",
    ),
    # Activity rows carry their own kind; untyped rows are skipped as unknown_kind.
    "customer_activities": StationApiSource(
        path_template="/api/customer-activities/{station_id}",
        kind=LedgerEventKind.SALE,
        field_map=CUSTOMER_ACTIVITY_FIELDS,
        entity_query_param="customerId",
    ),
}


@dataclass(frozen=True)
class _AdapterRetryStrategy:
    """Immutable retry strategy config and calculation helpers.

    Attributes:
        retry_attempts: Number of request attempts.
        backoff_base_seconds: Base delay for exponential backoff.
        max_backoff_seconds: Exponential delay cap before jitter.
        random_unit_interval_provider: Provider returning value in [0.0, 1.0].
    """

    retry_attempts: int
    backoff_base_seconds: float
    max_backoff_seconds: float
    random_unit_interval_provider: Callable[[], float]

    def strategy_calculate_retry_wait_seconds(self, retry_index: int) -> float:
        """Calculate capped exponential wait with 0.5x-1.5x jitter.

        Args:
            retry_index: Zero-based retry index.

        Returns:
            float: Wait seconds before the next attempt.

        Raises:
            ValueError: Raised when retry index is negative.
            RuntimeError: Raised when jitter provider returns out-of-range value.
        """

        if retry_index < 0:
            raise ValueError("retry_index must be >= 0")

        random_ratio = float(self.random_unit_interval_provider())
        if random_ratio < 0.0 or random_ratio > 1.0:
            raise RuntimeError("random_unit_interval_provider must return a value in [0.0, 1.0]")

        capped_backoff_seconds = min(self.backoff_base_seconds * (2**retry_index), self.max_backoff_seconds)
        return capped_backoff_seconds * (0.5 + random_ratio)


class StationApiAdapter(StationRecordSourcePort):
    """Adapter fetching record lists from the station backend REST endpoints."""

    _USER_AGENT: Final[str] = "station-ledger/1.0 (Python/httpx)"
    _RETRYABLE_STATUS_CODES: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        base_url: str,
        station_id: str,
        token: str | None = None,
        request_timeout_seconds: float = 30.0,
        retry_attempts: int = 3,
        retry_backoff_base_seconds: float = 0.5,
        retry_max_backoff_seconds: float = 8.0,
        random_unit_interval_provider: Callable[[], float] | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize station API adapter.

        Args:
            base_url: Station backend base URL.
            station_id: Station identifier used in endpoint paths.
            token: Optional bearer token.
            request_timeout_seconds: HTTP request timeout in seconds.
            retry_attempts: Attempts per request.
            retry_backoff_base_seconds: Base retry delay used by exponential backoff.
            retry_max_backoff_seconds: Maximum retry delay before jitter.
            random_unit_interval_provider: Optional provider returning random values in [0.0, 1.0].
            transport: Optional httpx transport, used by tests.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when required config values are invalid.
        """

        normalized_base_url = base_url.strip()
        normalized_station_id = station_id.strip()

        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if not normalized_station_id:
            raise ValueError("station_id must not be blank")
        if retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        if retry_backoff_base_seconds < 0:
            raise ValueError("retry_backoff_base_seconds must be >= 0")
        if retry_max_backoff_seconds <= 0:
            raise ValueError("retry_max_backoff_seconds must be > 0")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._base_url = normalized_base_url.rstrip("/")
        self._station_id = normalized_station_id
        self._token = (token or "").strip() or None
        self._request_timeout_seconds = request_timeout_seconds
        self._transport = transport
        self._retry_strategy = _AdapterRetryStrategy(
            retry_attempts=retry_attempts,
            backoff_base_seconds=retry_backoff_base_seconds,
            max_backoff_seconds=retry_max_backoff_seconds,
            random_unit_interval_provider=random_unit_interval_provider or random.random,
        )

    @classmethod
    def from_settings(cls, settings: LedgerSettings, transport: httpx.BaseTransport | None = None) -> StationApiAdapter:
        """Build an adapter from validated runtime settings."""

        return cls(
            base_url=settings.station_api_base_url,
            station_id=settings.station_id,
            token=settings.station_api_token,
            request_timeout_seconds=settings.station_api_timeout_seconds,
            retry_attempts=settings.station_api_retry_attempts,
            retry_backoff_base_seconds=settings.station_api_backoff_base_seconds,
            retry_max_backoff_seconds=settings.station_api_backoff_max_seconds,
            transport=transport,
        )

    def adapter_source_name(self) -> str:
        """Return stable adapter source label.

        Returns:
            str: Source identifier.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return "station_rest_api"

    def adapter_fetch_records(
        self,
        source: str,
        entity_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> AdapterFetchResult:
        """Fetch one source record list with retry on transient failures.

        Args:
            source: Key of `STATION_API_SOURCES`.
            entity_id: Optional entity restriction forwarded as query parameter.
            from_date: Optional lower date bound forwarded as `fromDate`.
            to_date: Optional upper date bound forwarded as `toDate`.

        Returns:
            AdapterFetchResult: Raw records and stage timeline.

        Raises:
            ValueError: Raised when source is unknown.
            StationApiConnectionError: Raised for transport failures after all retries.
            StationApiTimeoutError: Raised when every attempt timed out.
            StationApiAuthError: Raised for `401`/`403` responses.
            StationApiResponseError: Raised for other client errors or invalid payloads.
        """

        source_config = self._adapter_resolve_source(source)
        query_parameters: dict[str, str] = {}
        normalized_entity_id = (entity_id or "").strip()
        if normalized_entity_id:
            query_parameters[source_config.entity_query_param] = normalized_entity_id
        if from_date is not None:
            query_parameters["fromDate"] = from_date.isoformat()
        if to_date is not None:
            query_parameters["toDate"] = to_date.isoformat()

        stage_timeline: list[dict[str, Any]] = []
        url = f"{self._base_url}{source_config.path_template.format(station_id=self._station_id)}"
        self._adapter_record_stage_event(stage_timeline, stage="fetch", status="started", details={"source": source})
        payload = self._adapter_http_get_json(url=url, query_parameters=query_parameters, stage_timeline=stage_timeline)
        records = self._adapter_extract_records(payload, source)
        self._adapter_record_stage_event(
            stage_timeline,
            stage="fetch",
            status="completed",
            details={
                "source": source,
                "record_count": len(records),
                "non_record_count": sum(1 for record in records if not isinstance(record, dict)),
            },
        )
        return AdapterFetchResult(source=source, records=records, stage_timeline=stage_timeline)

    def adapter_fetch_batch(
        self,
        source: str,
        entity_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> LedgerRecordBatch:
        """Fetch one source and wrap its records as a pipeline batch.

        Raises:
            ValueError: Raised when source is unknown.
            StationApiError: Raised when the fetch fails.
        """

        source_config = self._adapter_resolve_source(source)
        fetch_result = self.adapter_fetch_records(
            source=source,
            entity_id=entity_id,
            from_date=from_date,
            to_date=to_date,
        )
        return LedgerRecordBatch(
            records=tuple(fetch_result.records),
            kind=source_config.kind,
            field_map=source_config.field_map,
        )

    def _adapter_resolve_source(self, source: str) -> StationApiSource:
        source_config = STATION_API_SOURCES.get((source or "").strip())
        if source_config is None:
            raise ValueError(f"unsupported station api source={source}")
        return source_config

    def _adapter_http_get_json(
        self,
        url: str,
        query_parameters: dict[str, str],
        stage_timeline: list[dict[str, Any]],
    ) -> object:
        """Execute one GET with retries and return the decoded JSON payload.

        Raises:
            StationApiConnectionError: Raised for transport failures after all retries.
            StationApiTimeoutError: Raised when every attempt timed out.
            StationApiAuthError: Raised for `401`/`403` responses.
            StationApiResponseError: Raised for other client errors or non-JSON payloads.
        """

        headers = {"User-Agent": self._USER_AGENT, "Accept": "application/json"}
        if self._token is not None:
            headers["Authorization"] = f"Bearer {self._token}"

        last_error: Exception | None = None
        with httpx.Client(timeout=self._request_timeout_seconds, transport=self._transport) as client:
            for attempt_index in range(self._retry_strategy.retry_attempts):
                if attempt_index > 0:
                    wait_seconds = self._retry_strategy.strategy_calculate_retry_wait_seconds(attempt_index - 1)
                    if wait_seconds > 0:
                        time.sleep(wait_seconds)

                try:
                    response = client.get(url, params=query_parameters, headers=headers)
                except httpx.TimeoutException as error:
                    last_error = StationApiTimeoutError("station api request timed out")
                    last_error.__cause__ = error
                    self._adapter_record_attempt_failure(stage_timeline, attempt_index, reason="timeout")
                    continue
                except httpx.TransportError as error:
                    last_error = StationApiConnectionError("station api transport request failed")
                    last_error.__cause__ = error
                    self._adapter_record_attempt_failure(stage_timeline, attempt_index, reason="transport_error")
                    continue

                status_code = response.status_code
                if status_code in self._RETRYABLE_STATUS_CODES:
                    last_error = StationApiConnectionError(
                        f"station api returned HTTP {status_code}",
                        status_code=status_code,
                    )
                    self._adapter_record_attempt_failure(stage_timeline, attempt_index, reason=f"http_{status_code}")
                    continue
                if status_code in {401, 403}:
                    raise StationApiAuthError(f"station api rejected credentials: HTTP {status_code}", status_code)
                if status_code >= 400:
                    raise StationApiResponseError(f"station api returned HTTP {status_code}", status_code)

                try:
                    return response.json()
                except ValueError as error:
                    raise StationApiResponseError("station api returned a non-JSON payload", status_code) from error

        logger.warning(
            "Station api request failed after %s attempts: url=%s error=%s",
            self._retry_strategy.retry_attempts,
            url,
            last_error,
        )
        if last_error is None:
            raise StationApiConnectionError("station api request failed")
        raise last_error

    def _adapter_extract_records(self, payload: object, source: str) -> list[Any]:
        """Return the record list from a bare list or an `items`/`data` envelope.

        Entries are passed through unfiltered; the normalizer counts
        non-mapping entries as skipped records.

        Raises:
            StationApiResponseError: Raised when no record list is present.
        """

        if isinstance(payload, dict):
            for envelope_key in ("items", "data"):
                if isinstance(payload.get(envelope_key), list):
                    payload = payload[envelope_key]
                    break
        if not isinstance(payload, list):
            raise StationApiResponseError(f"station api payload for source={source} is not a record list")
        return list(payload)

    def _adapter_record_attempt_failure(
        self,
        stage_timeline: list[dict[str, Any]],
        attempt_index: int,
        reason: str,
    ) -> None:
        """Record one failed attempt as `retrying`, or `failed` when it was the last."""

        is_final_attempt = attempt_index + 1 >= self._retry_strategy.retry_attempts
        if not is_final_attempt:
            logger.info("Station api attempt %s failed, retrying: %s", attempt_index + 1, reason)
        self._adapter_record_stage_event(
            stage_timeline,
            stage="fetch",
            status="failed" if is_final_attempt else "retrying",
            details={"attempt": attempt_index + 1, "reason": reason},
        )

    def _adapter_record_stage_event(
        self,
        stage_timeline: list[dict[str, Any]],
        stage: str,
        status: str,
        details: dict[str, object] | None = None,
    ) -> None:
        """Append one structured stage event to the adapter timeline."""

        stage_timeline.append(domain_build_stage_event(stage=stage, status=status, details=details))


__all__ = ["STATION_API_SOURCES", "StationApiAdapter", "StationApiSource"]
