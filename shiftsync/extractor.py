"""Read shifts off the schedule screen and turn them into dated intervals."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, tzinfo

from playwright.sync_api import Page

from shiftsync.errors import ShiftParseError
from shiftsync.models import RawShift, Shift

logger = logging.getLogger(__name__)

# Schedule page structure:
#   .scheduleDayRight
#     .scheduleDayTitle            "Friday, January 11"
#     .scheduleShift
#       .scheduleShiftStore        "#007629, Burlington Town Center" (link)
#       .scheduleShiftTime         "12:30 PM - 06:00 PM"
_SHIFTS_SCRIPT = """() => Array.from(document.querySelectorAll('.scheduleShift')).map((el) => {
    const dayEl = el.closest('.scheduleDayRight');
    const titleEl = dayEl ? dayEl.querySelector('.scheduleDayTitle') : null;
    const storeEl = el.querySelector('.scheduleShiftStore');
    const timeEl = el.querySelector('.scheduleShiftTime');
    return {
        day: titleEl ? titleEl.textContent.trim() : '',
        time: timeEl ? timeEl.textContent.trim() : '',
        store: storeEl ? storeEl.textContent.trim() : '',
        storeLink: storeEl ? storeEl.getAttribute('href') : null,
    };
})"""

TIME_SEPARATOR = "-"
_DATETIME_FORMATS = ("%B %d %Y, %I:%M %p", "%b %d %Y, %I:%M %p")


def split_time_range(time_text: str) -> tuple[str, str]:
    """Split "12:30 PM - 06:00 PM" into its start and end halves."""
    parts = time_text.split(TIME_SEPARATOR)
    if len(parts) != 2:
        raise ShiftParseError(f"Expected exactly one {TIME_SEPARATOR!r} in time range, got {time_text!r}")
    start, end = (p.strip() for p in parts)
    if not start or not end:
        raise ShiftParseError(f"Empty start or end in time range {time_text!r}")
    return start, end


def _parse_store(store_text: str) -> tuple[str | None, str | None]:
    """Parse "#007629, Burlington Town Center" into (number, name)."""
    if not store_text:
        return None, None
    head, sep, tail = store_text.partition(",")
    number = head.split("#", 1)[1].strip() if "#" in head else None
    if sep:
        name = tail.strip()
    elif number is None:
        name = head.strip()
    else:
        name = None
    return number or None, name or None


def extract_raw_shifts(page: Page) -> tuple[list[RawShift], list[str]]:
    """Collect one RawShift per schedule element on the current page.

    Returns:
        Tuple of (raw_shifts, dropped). Elements whose time range cannot be
        split are left out and described in dropped.
    """
    rows = page.evaluate(_SHIFTS_SCRIPT)
    raw_shifts: list[RawShift] = []
    dropped: list[str] = []
    for row in rows:
        try:
            start_text, end_text = split_time_range(row.get("time", ""))
        except ShiftParseError as e:
            logger.warning(f"Dropping shift on {row.get('day')!r}: {e}")
            dropped.append(f"{row.get('day')}: {e}")
            continue
        store_number, store_name = _parse_store(row.get("store", ""))
        raw_shifts.append(RawShift(
            day_label=row.get("day", ""),
            start_text=start_text,
            end_text=end_text,
            store_number=store_number,
            store_name=store_name,
            store_link=row.get("storeLink"),
        ))
    logger.info(f"Retrieved {len(raw_shifts)} shift(s) from schedule page")
    for s in raw_shifts:
        logger.info(f"  SHIFT: {s.day_label}, {s.start_text} - {s.end_text}")
    return raw_shifts, dropped


def _month_day(day_label: str) -> str:
    # "Friday, January 11" -> "January 11"
    _, sep, rest = day_label.partition(",")
    text = rest if sep else day_label
    text = " ".join(text.split())
    if not text:
        raise ShiftParseError(f"Day label has no month/day: {day_label!r}")
    return text


def infer_year(day_label: str, today: date) -> int:
    """Guess the year of a day label that carries none.

    The schedule only shows a few weeks ahead, so the current year is
    assumed, except that January labels seen in December belong to next year.
    """
    month = _month_day(day_label).split()[0]
    if today.month == 12 and month[:3].lower() == "jan":
        return today.year + 1
    return today.year


def _parse_datetime(month_day: str, year: int, time_text: str, tz: tzinfo) -> datetime:
    text = f"{month_day} {year}, {' '.join(time_text.upper().split())}"
    # "12:30PM" -> "12:30 PM"
    text = re.sub(r"(\d)([AP]M)$", r"\1 \2", text)
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=tz)
        except ValueError:
            continue
    raise ShiftParseError(f"Could not parse date/time {text!r}")


def parse_shift(raw: RawShift, today: date, tz: tzinfo) -> Shift:
    """Turn a scraped shift into a timezone-aware interval.

    Raises:
        ShiftParseError: The label or times do not parse, or the end is not after the start.
    """
    month_day = _month_day(raw.day_label)
    year = infer_year(raw.day_label, today)
    start = _parse_datetime(month_day, year, raw.start_text, tz)
    end = _parse_datetime(month_day, year, raw.end_text, tz)
    if end <= start:
        raise ShiftParseError(
            f"Shift on {raw.day_label!r} ends before it starts ({raw.start_text} - {raw.end_text})"
        )
    return Shift(
        start=start,
        end=end,
        day_label=raw.day_label,
        store_number=raw.store_number,
        store_name=raw.store_name,
    )


def normalize_shifts(raw_shifts: list[RawShift], today: date, tz: tzinfo) -> tuple[list[Shift], list[str]]:
    """Parse every raw shift, dropping the ones that fail.

    Returns:
        Tuple of (shifts, dropped) where dropped holds one message per failed shift.
    """
    shifts: list[Shift] = []
    dropped: list[str] = []
    for raw in raw_shifts:
        try:
            shifts.append(parse_shift(raw, today, tz))
        except ShiftParseError as e:
            logger.warning(f"Dropping shift: {e}")
            dropped.append(str(e))
    if dropped:
        logger.warning(f"Dropped {len(dropped)} of {len(raw_shifts)} shift(s) that could not be parsed")
    return shifts, dropped
