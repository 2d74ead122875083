import logging
import re
from datetime import date, datetime, timedelta, timezone
from itertools import groupby
from typing import Dict, List, Optional, Tuple

from icalendar import Calendar, Event

from .errors import EncodingFailed
from .models import UNKNOWN_COURSE, DeadlineEvent
from .normalize import normalize_time

logger = logging.getLogger(__name__)

PRODID = "-//Syllabus Deadlines//syllabus-deadlines//EN"
UID_DOMAIN = "syllabus-deadlines"

_TIME = re.compile(r"^(\d{2}):(\d{2})$")


# ============================================================
# DATE / TIME CHECKS
# ============================================================
def parse_event_date(value: str) -> Optional[Tuple[int, int, int]]:
    """(year, month, day) when the value looks like a usable date, else None."""
    parts = (value or "").split("-")
    if len(parts) != 3:
        return None
    try:
        y, m, d = (int(p) for p in parts)
    except ValueError:
        return None
    if y <= 0 or not 1 <= m <= 12 or not 1 <= d <= 31:
        return None
    return y, m, d


def to_calendar_date(value: str) -> Optional[date]:
    ymd = parse_event_date(value)
    if ymd is None:
        return None
    try:
        return date(*ymd)
    except ValueError:
        # passes the range check but is not a real day (e.g. Feb 31)
        return None


def parse_event_time(value: Optional[str]) -> Optional[Tuple[int, int]]:
    m = _TIME.match(normalize_time(value) or "")
    if not m:
        return None
    h, mi = int(m.group(1)), int(m.group(2))
    if h > 23 or mi > 59:
        return None
    return h, mi


# ============================================================
# ICS GENERATION
# ============================================================
def _description(parts: List[str]) -> Optional[str]:
    joined = " — ".join(p for p in parts if p and p.strip())
    return joined or None


def build_vevent(ev: DeadlineEvent, day: date, stamp: datetime) -> Event:
    e = Event()
    e.add("uid", f"{ev.id}@{UID_DOMAIN}")
    e.add("dtstamp", stamp)

    hm = parse_event_time(ev.time)
    if hm is not None:
        e.add("summary", f"{ev.course}: {ev.title}" if ev.course else ev.title)
        description = _description([ev.course, ev.notes])
        e.add("dtstart", datetime(day.year, day.month, day.day, hm[0], hm[1]))
        e.add("duration", timedelta(hours=1))
    else:
        if ev.time:
            logger.info("Event %s has unusable time %r; exporting as all-day", ev.id, ev.time)
        e.add("summary", ev.title)
        description = _description([ev.notes])
        e.add("dtstart", day)
        e.add("duration", timedelta(days=1))

    if description:
        e.add("description", description)
    return e


def events_to_ics(events: List[DeadlineEvent]) -> bytes:
    """Encode events as an iCalendar file, skipping ones with impossible dates.

    Raises EncodingFailed if the calendar cannot be serialized at all.
    """
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")

    stamp = datetime.now(timezone.utc).replace(microsecond=0)
    skipped = 0
    for ev in events:
        day = to_calendar_date(ev.date)
        if day is None:
            skipped += 1
            continue
        cal.add_component(build_vevent(ev, day, stamp))

    if skipped:
        logger.info("Skipped %d event(s) with invalid dates during export", skipped)

    try:
        payload = cal.to_ical()
    except Exception as e:
        logger.exception("Calendar serialization failed")
        raise EncodingFailed() from e

    if not payload:
        raise EncodingFailed()
    return payload


# ============================================================
# PLAIN-TEXT SUMMARY
# ============================================================
def format_date(value: str) -> str:
    day = to_calendar_date(value)
    if day is None:
        return value
    return f"{day:%a}, {day:%b} {day.day}, {day.year}"


def format_time(value: str) -> str:
    hm = parse_event_time(value)
    if hm is None:
        return value
    h, m = hm
    period = "PM" if h >= 12 else "AM"
    hour = 12 if h == 0 else h - 12 if h > 12 else h
    return f"{hour}:{m:02d} {period}"


def events_to_summary(events: List[DeadlineEvent]) -> str:
    order: Dict[str, int] = {}
    for ev in events:
        order.setdefault(ev.course or UNKNOWN_COURSE, len(order))

    def course_of(ev: DeadlineEvent) -> str:
        return ev.course or UNKNOWN_COURSE

    ordered = sorted(events, key=lambda ev: order[course_of(ev)])
    blocks: List[str] = []
    for course, group in groupby(ordered, key=course_of):
        lines = [course]
        for ev in group:
            line = f"  - {ev.title} — {format_date(ev.date)}"
            if ev.time:
                line += f" at {format_time(ev.time)}"
            lines.append(line)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
