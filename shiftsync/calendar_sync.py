"""Google Calendar integration: read upcoming events, add and remove shift events."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, tzinfo

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from shiftsync.config import Settings, is_dedicated_calendar_id
from shiftsync.errors import CalendarNotFoundError
from shiftsync.models import CalendarEvent, OperationResult, Shift, SyncPlan, SyncReport

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
# Private extended property stamped on inserted events so operators can filter
# them (privateExtendedProperty=shiftsync=true). Sync decisions never read it.
MANAGED_EVENT_TAG = "shiftsync"


def get_calendar_service(service_account_info: dict):
    """Build an authenticated Google Calendar API service using a service account."""
    creds = Credentials.from_service_account_info(
        service_account_info,
        scopes=SCOPES,
    )
    return build("calendar", "v3", credentials=creds)


def resolve_calendar_id(service, calendar_name: str) -> str:
    """Find the id of the calendar whose title is ``calendar_name``.

    Raises:
        CalendarNotFoundError: No such calendar, or it is not a dedicated secondary calendar.
    """
    page_token = None
    while True:
        result = service.calendarList().list(pageToken=page_token).execute()
        for entry in result.get("items", []):
            if entry.get("summary") != calendar_name:
                continue
            if entry.get("primary"):
                raise CalendarNotFoundError(
                    f"Calendar {calendar_name!r} is the primary calendar; use a calendar dedicated to shifts"
                )
            if not is_dedicated_calendar_id(entry["id"]):
                raise CalendarNotFoundError(
                    f"Calendar {calendar_name!r} ({entry['id']}) is not a secondary calendar; use a calendar dedicated to shifts"
                )
            logger.info(f"Resolved calendar {calendar_name!r} -> {entry['id']}")
            return entry["id"]
        page_token = result.get("nextPageToken")
        if not page_token:
            break
    raise CalendarNotFoundError(f"No calendar named {calendar_name!r} is visible to the service account")


def target_calendar_id(service, settings: Settings) -> str:
    """The configured calendar id, or the id looked up by name."""
    if settings.calendar_id:
        return settings.calendar_id
    return resolve_calendar_id(service, settings.calendar_name)


def _parse_event_time(value: dict, tz: tzinfo) -> datetime:
    if "dateTime" in value:
        dt = datetime.fromisoformat(value["dateTime"].replace("Z", "+00:00"))
        return dt if dt.tzinfo is not None else dt.replace(tzinfo=tz)
    # All-day events carry a bare date
    return datetime.combine(date.fromisoformat(value["date"]), time.min, tzinfo=tz)


def event_from_api(item: dict, tz: tzinfo) -> CalendarEvent:
    """Convert a Calendar API event resource into a CalendarEvent."""
    return CalendarEvent(
        id=item["id"],
        start=_parse_event_time(item["start"], tz),
        end=_parse_event_time(item["end"], tz),
        title=item.get("summary", ""),
    )


def list_upcoming_events(service, calendar_id: str, time_min: datetime, tz: tzinfo) -> list[CalendarEvent]:
    """List every event on the calendar that ends after ``time_min``."""
    events: list[CalendarEvent] = []
    page_token = None

    while True:
        result = service.events().list(
            calendarId=calendar_id,
            timeMin=time_min.isoformat(),
            singleEvents=True,
            orderBy="startTime",
            maxResults=250,
            pageToken=page_token,
        ).execute()

        events.extend(event_from_api(item, tz) for item in result.get("items", []))
        page_token = result.get("nextPageToken")
        if not page_token:
            break

    logger.info(f"Retrieved {len(events)} upcoming calendar event(s)")
    for e in events:
        logger.info(f"  EVENT: {e.start.isoformat()} - {e.title}")
    return events


def build_event_body(shift: Shift, settings: Settings) -> dict:
    """Event resource for a shift: duration label in the title, store as location."""
    return {
        "summary": f"({shift.hours:g}HR) {settings.event_label}",
        "location": shift.location or settings.event_location,
        "description": (
            f"Shift on {shift.day_label or shift.start.strftime('%A, %B %d')}\n"
            f"\nAutomatically added from {settings.schedule_url}"
        ),
        "start": {
            "dateTime": shift.start.isoformat(),
            "timeZone": settings.timezone,
        },
        "end": {
            "dateTime": shift.end.isoformat(),
            "timeZone": settings.timezone,
        },
        "reminders": {
            "useDefault": False,
            "overrides": [{"method": "popup", "minutes": m} for m in settings.reminder_minutes],
        },
        "extendedProperties": {
            "private": {
                MANAGED_EVENT_TAG: "true",
            },
        },
    }


def insert_shift(service, calendar_id: str, shift: Shift, settings: Settings) -> str:
    """Add a shift as a Google Calendar event and return the new event id."""
    event = service.events().insert(
        calendarId=calendar_id,
        body=build_event_body(shift, settings),
    ).execute()

    event_id = event["id"]
    logger.info(f"Inserted: {shift.start.isoformat()} - {shift.end.isoformat()} (id={event_id})")
    return event_id


def delete_event(service, calendar_id: str, event_id: str) -> None:
    service.events().delete(
        calendarId=calendar_id,
        eventId=event_id,
    ).execute()
    logger.info(f"Deleted event: {event_id}")


def apply_plan(service, calendar_id: str, plan: SyncPlan, settings: Settings) -> SyncReport:
    """Insert and delete one event at a time.

    A failed call is logged and recorded; the remaining calls still run.
    """
    report = SyncReport()

    logger.info(f"Inserting {len(plan.to_insert)} new shift(s)...")
    for shift in plan.to_insert:
        target = f"{shift.start.isoformat()} - {shift.end.isoformat()}"
        try:
            event_id = insert_shift(service, calendar_id, shift, settings)
        except (HttpError, OSError) as e:
            logger.warning(f"Could not insert shift {target}: {e}")
            report.results.append(OperationResult("insert", target, ok=False, error=str(e)))
        else:
            report.results.append(OperationResult("insert", target, ok=True, event_id=event_id))

    logger.info(f"Deleting {len(plan.to_delete)} removed event(s)...")
    for event in plan.to_delete:
        target = f"{event.start.isoformat()} - {event.end.isoformat()} (id={event.id})"
        try:
            delete_event(service, calendar_id, event.id)
        except (HttpError, OSError) as e:
            logger.warning(f"Could not delete event {target}: {e}")
            report.results.append(OperationResult("delete", target, ok=False, event_id=event.id, error=str(e)))
        else:
            report.results.append(OperationResult("delete", target, ok=True, event_id=event.id))

    return report
