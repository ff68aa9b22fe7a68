"""Ledger layer package for event normalization, balances, aging and views."""

from .aging import (
	CURRENT_BUCKET_LABEL,
	DEFAULT_AGING_BOUNDARIES_DAYS,
	aging_age_in_days,
	aging_bucket_labels,
	aging_bucketize,
	aging_build_report,
	aging_combine_reports,
	aging_outstanding_items,
)
from .balance_engine import (
	balance_closing,
	balance_coerce_amount,
	balance_compute_running,
	balance_group_by_entity,
	balance_sort_events,
)
from .normalizer import (
	CUSTOMER_ACTIVITY_FIELDS,
	EXPENSE_FIELDS,
	PAYMENT_FIELDS,
	PRICE_HISTORY_FIELDS,
	SALES_TRANSACTION_FIELDS,
	RecordFieldMap,
	normalizer_merge_results,
	normalizer_normalize_records,
	normalizer_signed_amount,
)
from .periods import PERIOD_PRESETS, periods_local_today, periods_resolve_preset
from .pipeline import EntityLedger, LedgerPipelineRequest, LedgerPipelineResult, LedgerPipelineService, LedgerRecordBatch
from .presentation import presentation_export_csv, presentation_format_compact, presentation_round_money
from .views import ALL_FILTER_VALUE, views_apply_filters, views_build, views_summarize

__all__ = [
	"ALL_FILTER_VALUE",
	"CURRENT_BUCKET_LABEL",
	"CUSTOMER_ACTIVITY_FIELDS",
	"DEFAULT_AGING_BOUNDARIES_DAYS",
	"EXPENSE_FIELDS",
	"PAYMENT_FIELDS",
	"PERIOD_PRESETS",
	"PRICE_HISTORY_FIELDS",
	"SALES_TRANSACTION_FIELDS",
	"EntityLedger",
	"LedgerPipelineRequest",
	"LedgerPipelineResult",
	"LedgerPipelineService",
	"LedgerRecordBatch",
	"RecordFieldMap",
	"aging_age_in_days",
	"aging_bucket_labels",
	"aging_bucketize",
	"aging_build_report",
	"aging_combine_reports",
	"aging_outstanding_items",
	"balance_closing",
	"balance_coerce_amount",
	"balance_compute_running",
	"balance_group_by_entity",
	"balance_sort_events",
	"normalizer_merge_results",
	"normalizer_normalize_records",
	"normalizer_signed_amount",
	"periods_local_today",
	"periods_resolve_preset",
	"presentation_export_csv",
	"presentation_format_compact",
	"presentation_round_money",
	"views_apply_filters",
	"views_build",
	"views_summarize",
]
