"""Decide which shifts to add to the calendar and which events to remove."""

from __future__ import annotations

import logging
from datetime import datetime

from shiftsync.models import CalendarEvent, Shift, SyncPlan

logger = logging.getLogger(__name__)


def reconcile(shifts: list[Shift], events: list[CalendarEvent], now: datetime) -> SyncPlan:
    """Compare scraped shifts with upcoming calendar events.

    Shifts and events are matched only on (start, end) to the second; no
    other field is considered and input order does not matter.

      - A shift is inserted when no event has its key and it starts after ``now``.
        Past shifts are never inserted.
      - An event is deleted when no shift has its key. This includes any event
        on the calendar that was not created from a shift, which is why the
        target calendar must be dedicated to shifts.

    Shifts sharing a key are inserted once. Running again against a calendar
    that already reflects the plan yields an empty plan.
    """
    event_keys = {e.match_key for e in events}
    shift_keys = {s.match_key for s in shifts}

    to_insert: list[Shift] = []
    planned: set = set()
    for shift in shifts:
        key = shift.match_key
        if key in event_keys:
            continue
        if shift.start <= now:
            logger.debug(f"  PAST (not inserted): {shift.start.isoformat()} - {shift.end.isoformat()}")
            continue
        if key in planned:
            continue
        planned.add(key)
        to_insert.append(shift)

    to_delete = [e for e in events if e.match_key not in shift_keys]
    matched = len(events) - len(to_delete)

    logger.info(
        f"Reconciled {len(shifts)} shift(s) against {len(events)} event(s): "
        f"insert {len(to_insert)}, delete {len(to_delete)}, keep {matched}"
    )
    return SyncPlan(to_insert=to_insert, to_delete=to_delete, matched=matched)
