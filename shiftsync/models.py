from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

MatchKey = tuple[datetime, datetime]


def match_key(start: datetime, end: datetime) -> MatchKey:
    """(start, end) at second precision: the only equality test between shifts and events."""
    return start.replace(microsecond=0), end.replace(microsecond=0)


class PageState(Enum):
    """Which screen of the partner site is currently rendered."""
    AWAITING_CREDENTIAL = "awaiting_credential"
    AWAITING_PASSWORD = "awaiting_password"
    AWAITING_SECURITY_ANSWER = "awaiting_security_answer"
    ON_SCHEDULE = "on_schedule"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class ScreenReading:
    """One classification of the current page."""
    state: PageState
    security_question: str = ""


@dataclass(frozen=True)
class RawShift:
    """A shift as scraped from the schedule page, before any parsing."""
    day_label: str  # e.g. "Friday, January 11"
    start_text: str  # e.g. "12:30 PM"
    end_text: str  # e.g. "06:00 PM"
    store_number: str | None = None  # e.g. "007629"
    store_name: str | None = None  # e.g. "Burlington Town Center"
    store_link: str | None = None


@dataclass(frozen=True)
class Shift:
    """A scheduled work interval with timezone-aware start and end."""
    start: datetime
    end: datetime
    day_label: str = ""
    store_number: str | None = None
    store_name: str | None = None

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Shift must start before it ends: {self.start} >= {self.end}")

    @property
    def match_key(self) -> MatchKey:
        return match_key(self.start, self.end)

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    @property
    def location(self) -> str:
        if self.store_name and self.store_number:
            return f"{self.store_name} - #{self.store_number}"
        return self.store_name or ""


@dataclass(frozen=True)
class CalendarEvent:
    """An event that already exists on the target calendar."""
    id: str
    start: datetime
    end: datetime
    title: str = ""

    @property
    def match_key(self) -> MatchKey:
        return match_key(self.start, self.end)


@dataclass
class SyncPlan:
    """What reconciliation decided: shifts to insert, events to delete."""
    to_insert: list[Shift] = field(default_factory=list)
    to_delete: list[CalendarEvent] = field(default_factory=list)
    matched: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.to_insert and not self.to_delete


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single insert or delete call."""
    action: str  # "insert" or "delete"
    target: str
    ok: bool
    event_id: str | None = None
    error: str | None = None


@dataclass
class SyncReport:
    results: list[OperationResult] = field(default_factory=list)

    def _count(self, action: str, ok: bool) -> int:
        return sum(1 for r in self.results if r.action == action and r.ok is ok)

    @property
    def inserted(self) -> int:
        return self._count("insert", True)

    @property
    def insert_failed(self) -> int:
        return self._count("insert", False)

    @property
    def deleted(self) -> int:
        return self._count("delete", True)

    @property
    def delete_failed(self) -> int:
        return self._count("delete", False)

    @property
    def failures(self) -> list[OperationResult]:
        return [r for r in self.results if not r.ok]


@dataclass
class RunSummary:
    """Everything a run did, for the end-of-run log block and notification."""
    screens: list[str] = field(default_factory=list)
    shifts_found: int = 0
    dropped_shifts: list[str] = field(default_factory=list)
    events_found: int = 0
    matched: int = 0
    report: SyncReport = field(default_factory=SyncReport)

    @property
    def has_problems(self) -> bool:
        return bool(self.dropped_shifts or self.report.failures)

    def lines(self) -> list[str]:
        out = [
            f"Screens traversed: {' -> '.join(self.screens) if self.screens else '(none)'}",
            f"Shifts found:      {self.shifts_found} ({len(self.dropped_shifts)} dropped)",
            f"Calendar events:   {self.events_found} upcoming, {self.matched} matched",
            f"Inserted:          {self.report.inserted} ok, {self.report.insert_failed} failed",
            f"Deleted:           {self.report.deleted} ok, {self.report.delete_failed} failed",
        ]
        for message in self.dropped_shifts:
            out.append(f"  DROPPED: {message}")
        for r in self.report.failures:
            out.append(f"  FAILED {r.action}: {r.target} ({r.error})")
        return out
