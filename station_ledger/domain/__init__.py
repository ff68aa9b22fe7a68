"""Domain contracts and parsing helpers shared across ledger layers."""

from .models import (
	DEFAULT_SEARCH_FIELDS,
	MONETARY_EVENT_KINDS,
	AgingBucket,
	AgingItem,
	AgingReport,
	BalanceSnapshot,
	FilteredLedgerView,
	FilterSpec,
	LedgerEvent,
	LedgerEventKind,
	LedgerSummary,
	NormalizationResult,
)
from .record_parsing import (
	domain_record_first_value,
	domain_record_local_date,
	domain_record_normalize_optional_text,
	domain_record_parse_decimal,
	domain_record_parse_timestamp_utc,
)
from .timeline import domain_build_stage_event

__all__ = [
	"DEFAULT_SEARCH_FIELDS",
	"MONETARY_EVENT_KINDS",
	"AgingBucket",
	"AgingItem",
	"AgingReport",
	"BalanceSnapshot",
	"FilteredLedgerView",
	"FilterSpec",
	"LedgerEvent",
	"LedgerEventKind",
	"LedgerSummary",
	"NormalizationResult",
	"domain_build_stage_event",
	"domain_record_first_value",
	"domain_record_local_date",
	"domain_record_normalize_optional_text",
	"domain_record_parse_decimal",
	"domain_record_parse_timestamp_utc",
]
