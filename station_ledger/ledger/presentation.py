"""Presentation-time rounding, compact currency labels and CSV export."""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from station_ledger.domain import BalanceSnapshot, domain_record_local_date, domain_record_parse_decimal

from .views import ViewItem, views_event_of

CSV_EXPORT_COLUMNS = ("Date", "Entity", "Type", "Description", "Amount", "Balance", "Reference", "Status")

_CURRENCY_SYMBOLS = {"PKR": "₨", "USD": "$"}
_ONE_THOUSAND = Decimal("1000")
_ONE_MILLION = Decimal("1000000")


def presentation_round_money(value: Decimal, minor_units: int = 2) -> Decimal:
    """Round one money amount to the currency minor unit (half-up).

    Only used when rendering; ledger accumulation keeps full precision.

    Raises:
        ValueError: Raised when minor_units is negative.
    """

    if minor_units < 0:
        raise ValueError("minor_units must be >= 0")
    return value.quantize(Decimal(1).scaleb(-minor_units), rounding=ROUND_HALF_UP)


def presentation_format_compact(
    value: object,
    currency_code: str = "PKR",
    include_symbol: bool = True,
) -> str:
    """Format an amount as a compact label such as `₨1.5K` or `$2M`.

    Values of one thousand and above use one decimal with a `K`/`M` suffix and
    drop a trailing `.0`; smaller values keep up to two decimals. Unparseable
    input renders as `0`.

    Args:
        value: Numeric or numeric-string amount.
        currency_code: Currency code; PKR and USD map to symbols, others prefix as-is.
        include_symbol: Whether to prefix the currency symbol.

    Returns:
        str: Compact display label.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    numeric_value = domain_record_parse_decimal(value if value is not None else 0)
    if numeric_value is None:
        return "0"

    absolute_value = abs(numeric_value)
    if absolute_value >= _ONE_MILLION:
        formatted_value = _presentation_one_decimal(numeric_value / _ONE_MILLION) + "M"
    elif absolute_value >= _ONE_THOUSAND:
        formatted_value = _presentation_one_decimal(numeric_value / _ONE_THOUSAND) + "K"
    else:
        formatted_value = _presentation_trim_zeros(presentation_round_money(numeric_value, 2))

    if formatted_value[:-1].endswith(".0") and formatted_value[-1] in {"K", "M"}:
        formatted_value = formatted_value[:-3] + formatted_value[-1]

    if include_symbol:
        symbol = _CURRENCY_SYMBOLS.get(currency_code, currency_code)
        return f"{symbol}{formatted_value}"
    return formatted_value


def presentation_export_csv(
    items: Sequence[ViewItem],
    timezone_name: str,
    minor_units: int = 2,
) -> str:
    """Render ledger events or balance snapshots as CSV text.

    Args:
        items: Filtered view items.
        timezone_name: Station timezone for the Date column.
        minor_units: Decimal places for Amount and Balance.

    Returns:
        str: CSV document with a header row, newline-terminated rows.

    Raises:
        ValueError: Raised when minor_units is negative.
    """

    output_buffer = io.StringIO()
    writer = csv.writer(output_buffer, lineterminator="\n")
    writer.writerow(CSV_EXPORT_COLUMNS)
    for item in items:
        event = views_event_of(item)
        balance_cell = ""
        if isinstance(item, BalanceSnapshot):
            balance_cell = str(presentation_round_money(item.running_balance, minor_units))
        writer.writerow(
            (
                domain_record_local_date(event.timestamp_utc, timezone_name).isoformat(),
                event.entity_name or event.entity_id,
                event.kind.value,
                event.description or "",
                str(presentation_round_money(event.amount, minor_units)),
                balance_cell,
                event.reference_number or event.reference_id,
                event.status or "",
            )
        )
    return output_buffer.getvalue()


def _presentation_one_decimal(value: Decimal) -> str:
    return str(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _presentation_trim_zeros(value: Decimal) -> str:
    text_value = f"{value:f}"
    if "." in text_value:
        text_value = text_value.rstrip("0").rstrip(".")
    if text_value in {"-0", ""}:
        return "0"
    return text_value


__all__ = [
    "CSV_EXPORT_COLUMNS",
    "presentation_export_csv",
    "presentation_format_compact",
    "presentation_round_money",
]
