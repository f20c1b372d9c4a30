"""Shared fakes: a scripted Playwright page and an in-memory Calendar API."""

from __future__ import annotations

import itertools
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import httplib2
import pytest
from googleapiclient.errors import HttpError
from playwright.sync_api import TimeoutError as PwTimeout

from shiftsync.config import Credentials, Settings

SECURITY_QUESTION = "What was the name of your first pet?"


def markers(
    credential: bool = False,
    password: bool = False,
    security: bool = False,
    schedule: bool = False,
    question: str = "",
) -> dict[str, Any]:
    """The dict the in-page marker script returns."""
    return {
        "credential": credential,
        "password": password,
        "security": security,
        "schedule": schedule,
        "question": question,
    }


CREDENTIAL = markers(credential=True)
PASSWORD = markers(password=True)
SECURITY = markers(security=True, question=SECURITY_QUESTION)
SCHEDULE = markers(schedule=True)
BLANK = markers()


# ── Fake Playwright page ─────────────────────────────────────────────────────

class FakeKeyboard:
    def __init__(self, page: FakePage) -> None:
        self.page = page

    def type(self, text: str) -> None:
        self.page.actions.append(("type", self.page.focused, text))


class FakePage:
    """Page whose classifications are played back from a script.

    Each classification consumes the next entry of ``readings``; the last
    entry repeats forever. An entry that is an exception is raised instead.
    """

    def __init__(
        self,
        readings: list[Any],
        shift_rows: list[dict] | None = None,
        settle_timeouts: int = 0,
    ) -> None:
        self.readings = list(readings)
        self.shift_rows = shift_rows or []
        self.settle_timeouts = settle_timeouts
        self.actions: list[tuple] = []
        self.focused: str | None = None
        self.keyboard = FakeKeyboard(self)
        self.classifications = 0

    def evaluate(self, script: str, arg: Any = None) -> Any:
        if "scheduleShiftTime" in script:
            return self.shift_rows
        self.classifications += 1
        self.actions.append(("classify",))
        reading = self.readings.pop(0) if len(self.readings) > 1 else self.readings[0]
        if isinstance(reading, Exception):
            raise reading
        return reading

    def fill(self, selector: str, value: str, timeout: float | None = None) -> None:
        self.actions.append(("fill", selector, value))

    def focus(self, selector: str, timeout: float | None = None) -> None:
        self.focused = selector

    def click(self, selector: str, timeout: float | None = None) -> None:
        self.actions.append(("click", selector))

    @contextmanager
    def expect_navigation(self, wait_until: str | None = None, timeout: float | None = None):
        yield

    def wait_for_load_state(self, state: str | None = None, timeout: float | None = None) -> None:
        self.actions.append(("settle", state))

    def wait_for_selector(self, selector: str, timeout: float | None = None, state: str | None = None) -> None:
        self.actions.append(("settle", selector))
        if self.settle_timeouts:
            self.settle_timeouts -= 1
            raise PwTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def wait_for_timeout(self, timeout: float) -> None:
        self.actions.append(("wait", timeout))

    def typed(self) -> list[str]:
        return [text for kind, _, text in (a for a in self.actions if a[0] == "type")]

    def clicks(self) -> int:
        return sum(1 for a in self.actions if a[0] == "click")

    def interactions(self) -> list[tuple]:
        return [a for a in self.actions if a[0] in ("fill", "type", "click")]


# ── Fake Calendar API ────────────────────────────────────────────────────────

class _Request:
    def __init__(self, fn) -> None:
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeEventsResource:
    def __init__(self, service: FakeCalendarService) -> None:
        self.service = service

    def list(self, calendarId: str, timeMin: str, pageToken: str | None = None, **kwargs) -> _Request:
        def run():
            self.service.calls.append(("list", calendarId))
            floor = datetime.fromisoformat(timeMin)
            items = [
                item for item in self.service.items.values()
                if datetime.fromisoformat(item["end"]["dateTime"]) > floor
            ]
            items.sort(key=lambda item: datetime.fromisoformat(item["start"]["dateTime"]))
            return {"items": items}
        return _Request(run)

    def insert(self, calendarId: str, body: dict) -> _Request:
        def run():
            self.service.calls.append(("insert", calendarId))
            if body["start"]["dateTime"] in self.service.reject_starts:
                raise HttpError(httplib2.Response({"status": "403"}), b"insert rejected")
            event_id = f"evt{next(self.service.ids)}"
            self.service.items[event_id] = {**body, "id": event_id}
            return self.service.items[event_id]
        return _Request(run)

    def delete(self, calendarId: str, eventId: str) -> _Request:
        def run():
            self.service.calls.append(("delete", calendarId))
            if eventId not in self.service.items:
                raise HttpError(httplib2.Response({"status": "404"}), f"{eventId} not found".encode())
            del self.service.items[eventId]
            return ""
        return _Request(run)


class FakeCalendarListResource:
    def __init__(self, service: FakeCalendarService) -> None:
        self.service = service

    def list(self, pageToken: str | None = None) -> _Request:
        return _Request(lambda: {"items": self.service.calendars})


class FakeCalendarService:
    """Stateful stand-in for the googleapiclient Calendar v3 service."""

    def __init__(self, items: list[dict] | None = None, calendars: list[dict] | None = None) -> None:
        self.items: dict[str, dict] = {item["id"]: item for item in items or []}
        self.calendars = calendars or []
        self.reject_starts: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.ids = itertools.count(1)
        self._events = FakeEventsResource(self)
        self._calendar_list = FakeCalendarListResource(self)

    def events(self) -> FakeEventsResource:
        return self._events

    def calendarList(self) -> FakeCalendarListResource:
        return self._calendar_list

    def count(self, kind: str) -> int:
        return sum(1 for call, _ in self.calls if call == kind)


def api_event(event_id: str, start: datetime, end: datetime, summary: str = "(5HR) Starbucks") -> dict:
    return {
        "id": event_id,
        "summary": summary,
        "start": {"dateTime": start.isoformat()},
        "end": {"dateTime": end.isoformat()},
    }


# ── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture()
def credentials() -> Credentials:
    return Credentials(
        partner_id="US1234567",
        password="hunter2",
        security_answers={SECURITY_QUESTION: "Rex"},
    )


@pytest.fixture()
def settings(credentials: Credentials) -> Settings:
    return Settings(
        credentials=credentials,
        service_account_info={},
        calendar_id="shifts@group.calendar.google.com",
        timezone="America/New_York",
        nav_timeout_ms=1000,
        nav_poll_interval_ms=10,
        nav_max_stalls=3,
        nav_max_steps=6,
    )
