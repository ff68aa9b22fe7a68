"""Shared record value parsing helpers.

This module centralizes the null-sentinel, date and amount normalization used
when station backend rows are turned into ledger events, so every source type
follows one skip policy instead of per-screen guesses.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

_DOMAIN_RECORD_NULL_SENTINELS = frozenset({"-", "--", "N/A", "n/a", "null", "undefined"})

_DOMAIN_RECORD_DATE_FORMATS = ("%Y/%m/%d", "%Y%m%d")
_DOMAIN_RECORD_TIMESTAMP_FORMATS = ("%Y/%m/%d %H:%M:%S", "%Y/%m/%d %H:%M", "%Y-%m-%d %H:%M")


def domain_record_normalize_optional_text(value: object | None) -> str | None:
    """Normalize one optional text value using the shared null-sentinel policy.

    Args:
        value: Candidate value from a source record.

    Returns:
        str | None: Stripped text, or None when missing/sentinel.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        return None

    normalized_value = value.strip()
    if not normalized_value:
        return None
    if normalized_value in _DOMAIN_RECORD_NULL_SENTINELS:
        return None
    return normalized_value


def domain_record_first_value(record: Mapping[str, object], keys: Sequence[str]) -> object | None:
    """Return the first usable value found under candidate keys.

    Args:
        record: Source record mapping.
        keys: Ordered candidate keys.

    Returns:
        object | None: First value that is neither None nor a blank/sentinel string.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    for key in keys:
        value = record.get(key)
        if value is None:
            continue
        if isinstance(value, str) and domain_record_normalize_optional_text(value) is None:
            continue
        return value
    return None


def domain_record_parse_decimal(value: object | None) -> Decimal | None:
    """Parse one numeric or numeric-string amount into `Decimal`.

    Args:
        value: Candidate amount value.

    Returns:
        Decimal | None: Finite decimal amount, or None when unparseable.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        parsed_value = value
    elif isinstance(value, int):
        parsed_value = Decimal(value)
    elif isinstance(value, float):
        parsed_value = Decimal(str(value))
    elif isinstance(value, str):
        normalized_value = domain_record_normalize_optional_text(value)
        if normalized_value is None:
            return None
        try:
            parsed_value = Decimal(normalized_value.replace(",", "").replace(" ", ""))
        except InvalidOperation:
            return None
    else:
        return None

    if not parsed_value.is_finite():
        return None
    return parsed_value


def domain_record_parse_timestamp_utc(value: object | None, timezone_name: str) -> datetime | None:
    """Parse one date-like record value into an offset-aware UTC datetime.

    Naive timestamps and plain dates are interpreted in the station timezone;
    plain dates resolve to local midnight.

    Args:
        value: Candidate date, datetime or text value.
        timezone_name: IANA timezone used for naive values.

    Returns:
        datetime | None: UTC datetime, or None when the value is unparseable.

    Raises:
        ValueError: Raised when timezone_name is blank.
    """

    if not timezone_name or not timezone_name.strip():
        raise ValueError("timezone_name must not be blank")
    local_timezone = ZoneInfo(timezone_name.strip())

    if isinstance(value, datetime):
        return _domain_record_to_utc(value, local_timezone)
    if isinstance(value, date):
        return _domain_record_to_utc(datetime.combine(value, time.min), local_timezone)
    if not isinstance(value, str):
        return None

    normalized_value = domain_record_normalize_optional_text(value)
    if normalized_value is None:
        return None

    for candidate in _domain_record_build_timestamp_candidates(normalized_value):
        try:
            return _domain_record_to_utc(datetime.fromisoformat(candidate), local_timezone)
        except ValueError:
            continue

    for supported_format in _DOMAIN_RECORD_TIMESTAMP_FORMATS + _DOMAIN_RECORD_DATE_FORMATS:
        try:
            parsed_value = datetime.strptime(normalized_value, supported_format)
        except ValueError:
            continue
        return _domain_record_to_utc(parsed_value, local_timezone)

    return None


def domain_record_local_date(timestamp_utc: datetime, timezone_name: str) -> date:
    """Resolve the station-local calendar date of one UTC timestamp.

    Args:
        timestamp_utc: Offset-aware timestamp.
        timezone_name: IANA station timezone.

    Returns:
        date: Local calendar date.

    Raises:
        ValueError: Raised when the timestamp is offset-naive.
    """

    if timestamp_utc.tzinfo is None or timestamp_utc.utcoffset() is None:
        raise ValueError("timestamp_utc must be offset-aware")
    return timestamp_utc.astimezone(ZoneInfo(timezone_name)).date()


def _domain_record_build_timestamp_candidates(normalized_value: str) -> list[str]:
    """Build ordered ISO parse candidates for one text value."""

    candidate_values: list[str] = [normalized_value]
    if normalized_value.endswith(("Z", "z")):
        candidate_values.append(f"{normalized_value[:-1]}+00:00")
    if " " in normalized_value and "T" not in normalized_value:
        date_part, time_part = normalized_value.split(" ", maxsplit=1)
        candidate_values.append(f"{date_part}T{time_part.strip()}")

    seen_values: set[str] = set()
    unique_candidates: list[str] = []
    for candidate in candidate_values:
        if candidate in seen_values:
            continue
        seen_values.add(candidate)
        unique_candidates.append(candidate)
    return unique_candidates


def _domain_record_to_utc(value: datetime, local_timezone: ZoneInfo) -> datetime:
    """Attach the station timezone to naive values and convert to UTC."""

    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=local_timezone)
    return value.astimezone(timezone.utc)


__all__ = [
    "domain_record_first_value",
    "domain_record_local_date",
    "domain_record_normalize_optional_text",
    "domain_record_parse_decimal",
    "domain_record_parse_timestamp_utc",
]
