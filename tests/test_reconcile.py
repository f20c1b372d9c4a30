"""Tests for shift/event reconciliation."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from shiftsync.models import CalendarEvent, Shift
from shiftsync.reconcile import reconcile

TZ = ZoneInfo("America/New_York")
NOW = datetime(2024, 6, 10, 10, 0, tzinfo=TZ)


def _shift(day: int, start_h: int, end_h: int, start_m: int = 0, end_m: int = 0) -> Shift:
    return Shift(
        start=datetime(2024, 6, day, start_h, start_m, tzinfo=TZ),
        end=datetime(2024, 6, day, end_h, end_m, tzinfo=TZ),
    )


def _event(event_id: str, day: int, start_h: int, end_h: int, start_m: int = 0, end_m: int = 0) -> CalendarEvent:
    return CalendarEvent(
        id=event_id,
        start=datetime(2024, 6, day, start_h, start_m, tzinfo=TZ),
        end=datetime(2024, 6, day, end_h, end_m, tzinfo=TZ),
    )


def _as_event(shift: Shift, event_id: str) -> CalendarEvent:
    return CalendarEvent(id=event_id, start=shift.start, end=shift.end)


def _keys(items) -> set:
    return {i.match_key for i in items}


class TestReconcile:
    def test_new_future_shift_is_inserted(self) -> None:
        shift = _shift(11, 12, 17)
        plan = reconcile([shift], [], NOW)
        assert plan.to_insert == [shift]
        assert plan.to_delete == []

    def test_past_shift_is_never_inserted(self) -> None:
        plan = reconcile([_shift(9, 12, 17)], [], NOW)
        assert plan.to_insert == []

    def test_shift_starting_exactly_now_is_not_inserted(self) -> None:
        plan = reconcile([_shift(10, 10, 14)], [], NOW)
        assert plan.to_insert == []

    def test_unmatched_event_is_deleted(self) -> None:
        event = _event("e1", 11, 12, 17)
        plan = reconcile([], [event], NOW)
        assert plan.to_delete == [event]
        assert plan.matched == 0

    def test_matched_pair_is_left_alone(self) -> None:
        shift = _shift(11, 12, 17)
        plan = reconcile([shift], [_as_event(shift, "e1")], NOW)
        assert plan.is_empty
        assert plan.matched == 1

    def test_one_minute_difference_is_insert_plus_delete(self) -> None:
        shift = _shift(11, 12, 17)
        event = _event("e1", 11, 12, 17, end_m=1)
        plan = reconcile([shift], [event], NOW)
        assert plan.to_insert == [shift]
        assert plan.to_delete == [event]

    def test_sub_second_difference_still_matches(self) -> None:
        shift = _shift(11, 12, 17)
        event = CalendarEvent("e1", shift.start + timedelta(microseconds=400), shift.end)
        assert reconcile([shift], [event], NOW).is_empty

    def test_same_instant_in_other_offset_matches(self) -> None:
        shift = _shift(11, 12, 17)
        event = CalendarEvent("e1", shift.start.astimezone(timezone.utc), shift.end.astimezone(timezone.utc))
        assert reconcile([shift], [event], NOW).is_empty

    def test_duplicate_shifts_inserted_once(self) -> None:
        plan = reconcile([_shift(11, 12, 17), _shift(11, 12, 17)], [], NOW)
        assert len(plan.to_insert) == 1

    def test_past_shift_still_protects_its_event(self) -> None:
        # An in-progress shift keeps its event even though it is not insertable
        shift = _shift(10, 8, 14)
        plan = reconcile([shift], [_as_event(shift, "e1")], NOW)
        assert plan.to_delete == []


class TestReconcileProperties:
    SHIFTS = [_shift(11, 12, 17), _shift(12, 6, 14), _shift(9, 9, 13), _shift(14, 16, 22, end_m=30)]
    EVENTS = [_event("e1", 11, 12, 17), _event("e2", 13, 8, 12), _event("e3", 14, 16, 22)]

    def test_idempotent_when_calendar_mirrors_shifts(self) -> None:
        future = [s for s in self.SHIFTS if s.start > NOW]
        events = [_as_event(s, f"e{i}") for i, s in enumerate(future)]
        plan = reconcile(future, events, NOW)
        assert plan.to_insert == []
        assert plan.to_delete == []

    def test_second_pass_after_applying_plan_is_empty(self) -> None:
        first = reconcile(self.SHIFTS, self.EVENTS, NOW)
        deleted = {e.id for e in first.to_delete}
        calendar = [e for e in self.EVENTS if e.id not in deleted]
        calendar += [_as_event(s, f"new{i}") for i, s in enumerate(first.to_insert)]

        second = reconcile(self.SHIFTS, calendar, NOW)
        assert second.is_empty

    def test_order_independent(self) -> None:
        baseline = reconcile(self.SHIFTS, self.EVENTS, NOW)
        for shifts in itertools.permutations(self.SHIFTS):
            for events in itertools.permutations(self.EVENTS):
                plan = reconcile(list(shifts), list(events), NOW)
                assert _keys(plan.to_insert) == _keys(baseline.to_insert)
                assert {e.id for e in plan.to_delete} == {e.id for e in baseline.to_delete}

    def test_expected_plan(self) -> None:
        plan = reconcile(self.SHIFTS, self.EVENTS, NOW)
        assert _keys(plan.to_insert) == {_shift(12, 6, 14).match_key, _shift(14, 16, 22, end_m=30).match_key}
        assert [e.id for e in plan.to_delete] == ["e2", "e3"]
        assert plan.matched == 1
