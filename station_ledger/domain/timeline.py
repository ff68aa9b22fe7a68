"""Structured diagnostics timeline helpers for ledger pipeline stages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def domain_build_stage_event(
    stage: str,
    status: str,
    details: dict[str, Any] | None = None,
    at_utc: datetime | None = None,
) -> dict[str, object]:
    """Build one structured stage event for pipeline diagnostics.

    Args:
        stage: Pipeline stage name (`normalize`, `balance`, `aging`, `view`).
        status: Stage status marker.
        details: Optional structured counters for the stage.
        at_utc: Optional event time; defaults to the current UTC time.

    Returns:
        dict[str, object]: Structured timeline event.

    Raises:
        ValueError: Raised when stage or status is blank.
    """

    if not stage.strip():
        raise ValueError("stage must not be blank")
    if not status.strip():
        raise ValueError("status must not be blank")

    event_time = at_utc or datetime.now(timezone.utc)
    event_payload: dict[str, object] = {
        "stage": stage.strip(),
        "status": status.strip(),
        "at_utc": event_time.astimezone(timezone.utc).isoformat(),
    }
    if details is not None:
        event_payload["details"] = dict(details)
    return event_payload
