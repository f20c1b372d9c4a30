"""Verify that the Google Calendar service account can manage the shifts calendar.

Performs a full end-to-end write test:
  1. Resolves the target calendar (GOOGLE_CALENDAR_ID, or GOOGLE_CALENDAR_NAME)
     and refuses a primary calendar
  2. Lists upcoming events (the same call a sync run makes)
  3. Creates a temporary 1-minute test event tagged as managed by shiftsync
  4. Deletes the event (verifies delete access and cleans up)

Run this after:
  1. Creating a GCP project and enabling the Google Calendar API
  2. Creating a service account and downloading the JSON key
  3. Creating a calendar used only for shifts and sharing it with the
     service account email ("Make changes to events")
  4. Setting GOOGLE_SERVICE_ACCOUNT_JSON and GOOGLE_CALENDAR_ID in your .env

Usage:
  python scripts/verify_google_setup.py
"""

import json
import os
import sys
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv

from shiftsync.calendar_sync import (
    MANAGED_EVENT_TAG,
    delete_event,
    get_calendar_service,
    list_upcoming_events,
    resolve_calendar_id,
)
from shiftsync.errors import CalendarNotFoundError


def _check(label: str, ok: bool, detail: str = "") -> bool:
    status = "OK " if ok else "ERR"
    suffix = f" - {detail}" if detail else ""
    print(f"  [{status}] {label}{suffix}")
    return ok


def main() -> int:
    load_dotenv()

    sa_json = os.environ.get("GOOGLE_SERVICE_ACCOUNT_JSON")
    calendar_id = os.environ.get("GOOGLE_CALENDAR_ID", "").strip()
    calendar_name = os.environ.get("GOOGLE_CALENDAR_NAME", "").strip()

    if not sa_json:
        print("ERROR: GOOGLE_SERVICE_ACCOUNT_JSON not set in .env")
        return 1
    if not calendar_id and not calendar_name:
        print("ERROR: set GOOGLE_CALENDAR_ID or GOOGLE_CALENDAR_NAME in .env")
        return 1
    if calendar_id and not calendar_id.lower().endswith("@group.calendar.google.com"):
        print(f"ERROR: GOOGLE_CALENDAR_ID={calendar_id} is not a secondary calendar; every unmatched event on it would be deleted")
        return 1

    try:
        sa_info = json.loads(sa_json)
    except json.JSONDecodeError:
        print("ERROR: GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON")
        return 1

    print(f"Service account: {sa_info.get('client_email')}")
    print(f"Calendar:        {calendar_id or calendar_name}")
    print()
    print("Running verification...")
    print()

    service = get_calendar_service(sa_info)
    all_ok = True

    # ---- Step 1: Resolve calendar ----
    try:
        if not calendar_id:
            calendar_id = resolve_calendar_id(service, calendar_name)
        calendar = service.calendars().get(calendarId=calendar_id).execute()
        ok = _check("Read calendar", True, f"{calendar.get('summary', '')} ({calendar_id})")
    except CalendarNotFoundError as e:
        _check("Resolve calendar", False, str(e))
        return 1
    except Exception as e:
        _check("Read calendar", False, str(e))
        print()
        print("  Make sure you shared the calendar with the service account email")
        print("  and gave it 'Make changes to events' permission.")
        return 1
    all_ok = all_ok and ok

    # ---- Step 2: List upcoming events ----
    now = datetime.now(timezone.utc)
    try:
        events = list_upcoming_events(service, calendar_id, now, timezone.utc)
        ok = _check("List upcoming events", True, f"{len(events)} event(s)")
        if events:
            print("  NOTE: every upcoming event that is not a current shift is deleted on each sync.")
    except Exception as e:
        ok = _check("List upcoming events", False, str(e))
    all_ok = all_ok and ok

    # ---- Step 3: Create test event ----
    start = now + timedelta(hours=1)
    end = start + timedelta(minutes=1)

    test_event = {
        "summary": "[shiftsync verify - safe to delete]",
        "description": "Temporary test event created by verify_google_setup.py. Will be deleted immediately.",
        "start": {"dateTime": start.isoformat()},
        "end": {"dateTime": end.isoformat()},
        "extendedProperties": {
            "private": {
                MANAGED_EVENT_TAG: "verify",
            }
        },
    }

    try:
        created = service.events().insert(
            calendarId=calendar_id,
            body=test_event,
        ).execute()
        event_id = created.get("id")
        ok = _check("Create test event", bool(event_id), f"id={event_id}")
    except Exception as e:
        _check("Create test event", False, str(e))
        print()
        print("  The service account can read the calendar but not write to it.")
        print("  Verify the permission is set to 'Make changes to events'")
        print("  (not just 'See all event details').")
        return 1
    all_ok = all_ok and ok

    # ---- Step 4: Delete test event ----
    try:
        delete_event(service, calendar_id, event_id)
        ok = _check("Delete test event", True)
    except Exception as e:
        ok = _check("Delete test event", False, str(e))
        print(f"  WARNING: Test event {event_id!r} was not deleted; remove it manually.")
    all_ok = all_ok and ok

    print()
    if all_ok:
        print("All checks passed - Google Calendar integration is working correctly.")
        return 0
    else:
        print("Some checks failed - see details above.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
