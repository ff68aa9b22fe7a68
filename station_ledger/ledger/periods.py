"""Station-local date helpers for report quick-select periods."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

PERIOD_PRESETS = ("today", "yesterday", "last7days", "last30days", "thisMonth", "lastMonth", "custom")


def periods_local_today(timezone_name: str, now_utc: datetime) -> date:
    """Resolve the station-local calendar date for one UTC instant.

    Args:
        timezone_name: IANA station timezone.
        now_utc: Offset-aware current instant.

    Returns:
        date: Local calendar date.

    Raises:
        ValueError: Raised when now_utc is offset-naive.
    """

    if now_utc.tzinfo is None or now_utc.utcoffset() is None:
        raise ValueError("now_utc must be offset-aware")
    return now_utc.astimezone(ZoneInfo(timezone_name)).date()


def periods_resolve_preset(preset: str, today: date) -> tuple[date, date] | None:
    """Resolve one quick-select preset into an inclusive date range.

    Args:
        preset: Preset name from `PERIOD_PRESETS`.
        today: Station-local current date.

    Returns:
        tuple[date, date] | None: Inclusive range, or None for `custom`.

    Raises:
        ValueError: Raised when the preset is unknown.
    """

    normalized_preset = preset.strip()
    if normalized_preset == "today":
        return today, today
    if normalized_preset == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if normalized_preset == "last7days":
        return today - timedelta(days=7), today
    if normalized_preset == "last30days":
        return today - timedelta(days=30), today
    if normalized_preset == "thisMonth":
        return _periods_month_bounds(today.year, today.month)
    if normalized_preset == "lastMonth":
        previous_month_day = today.replace(day=1) - timedelta(days=1)
        return _periods_month_bounds(previous_month_day.year, previous_month_day.month)
    if normalized_preset == "custom":
        return None
    raise ValueError(f"unsupported period preset={preset}")


def _periods_month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


__all__ = ["PERIOD_PRESETS", "periods_local_today", "periods_resolve_preset"]
