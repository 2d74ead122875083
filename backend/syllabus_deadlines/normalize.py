"""Normalize and validate the model's JSON into DeadlineEvent records.

Field normalizers are total: they never raise and always hand back a value,
so salvage can re-run them on any element regardless of whether the response
as a whole was accepted. Validation only checks shape.
"""
import json
import logging
import re
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from dateutil import parser as dt_parser
from pydantic import ValidationError

from .config import DEFAULT_YEAR
from .errors import MalformedResponse, UnexpectedFormat
from .models import (
    UNKNOWN_COURSE,
    DeadlineEvent,
    ParseResponse,
    RawEvent,
    RawResponse,
    new_id,
)

logger = logging.getLogger(__name__)

# ============================================================
# FIELD NORMALIZATION
# ============================================================
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DASH_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_HHMM = re.compile(r"^\d{2}:\d{2}$")
_AMPM_TIME = re.compile(r"^(\d{1,2}):(\d{2})\s*(am|pm)$", re.IGNORECASE)
_SHORT_TIME = re.compile(r"^(\d{1,2}):(\d{2})$")

# checked in order; first bucket with a matching keyword wins
TYPE_KEYWORDS = [
    ("Exam", ("exam", "quiz", "test", "midterm", "final")),
    ("Assignment", ("assign", "homework", "hw", "project", "paper", "essay", "lab", "report")),
    ("Reading", ("read",)),
]


def normalize_date(raw: str, default_year: int = DEFAULT_YEAR) -> str:
    s = raw.strip()
    if _ISO_DATE.match(s):
        return s

    m = _DASH_DATE.match(s)
    if m:
        return f"{m.group(1)}-{int(m.group(2)):02d}-{int(m.group(3)):02d}"

    try:
        dt = dt_parser.parse(s, default=datetime(default_year, 1, 1))
    except (ValueError, OverflowError):
        return raw
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def normalize_time(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    if _HHMM.match(s):
        return s

    m = _AMPM_TIME.match(s)
    if m:
        hour = int(m.group(1))
        if hour > 12:
            return raw
        period = m.group(3).lower()
        if period == "pm" and hour != 12:
            hour += 12
        if period == "am" and hour == 12:
            hour = 0
        return f"{hour:02d}:{m.group(2)}"

    m = _SHORT_TIME.match(s)
    if m:
        return f"{int(m.group(1)):02d}:{m.group(2)}"

    return raw


def normalize_type(raw: str) -> str:
    lower = raw.lower()
    for event_type, keywords in TYPE_KEYWORDS:
        if any(k in lower for k in keywords):
            return event_type
    return "Other"


def to_deadline_event(raw: RawEvent, course_name: str) -> DeadlineEvent:
    return DeadlineEvent(
        id=new_id(),
        title=raw.title,
        date=normalize_date(raw.date),
        time=normalize_time(raw.time),
        type=normalize_type(raw.type),
        weight=raw.weight or "",
        notes=raw.notes or "",
        course=raw.course or course_name,
    )


# ============================================================
# VALIDATION
# ============================================================
def validate_raw_event(item: Any) -> Optional[RawEvent]:
    """Shape-check one candidate; None when it cannot be used."""
    if not isinstance(item, dict):
        return None
    try:
        return RawEvent.model_validate(item)
    except ValidationError:
        return None


def salvage_events(items: Iterable[Any], course_name: str) -> Tuple[List[DeadlineEvent], int]:
    """Keep the elements that validate on their own; count the rest."""
    valid: List[DeadlineEvent] = []
    dropped = 0
    for item in items:
        raw = validate_raw_event(item)
        if raw is None:
            dropped += 1
            continue
        valid.append(to_deadline_event(raw, course_name))
    return valid, dropped


# ============================================================
# RESPONSE PARSING
# ============================================================
def strip_code_fences(text: str) -> str:
    text = (text or "").strip()
    if text.startswith("```json"):
        text = text[7:].strip()
    if text.startswith("```"):
        text = text[3:].strip()
    if text.endswith("```"):
        text = text[:-3].strip()
    return text


def load_model_json(response_content: str) -> Any:
    try:
        return json.loads(strip_code_fences(response_content))
    except ValueError as e:
        raise MalformedResponse() from e


def parse_model_response(response_content: str) -> ParseResponse:
    """Raw model text -> ParseResponse, salvaging valid events where possible.

    Raises MalformedResponse when the text is not JSON and UnexpectedFormat
    when no event survives validation.
    """
    data = load_model_json(response_content)

    try:
        whole = RawResponse.model_validate(data)
    except ValidationError as e:
        whole = None
        first_error = e.errors()[0]["msg"] if e.errors() else str(e)
        logger.info("Model response failed whole validation (%s); salvaging events", first_error)

    if whole is not None:
        course_name = whole.courseName
        events = [to_deadline_event(raw, course_name) for raw in whole.events]
        dropped = 0
    else:
        obj = data if isinstance(data, dict) else {}
        items = obj.get("events")
        if not isinstance(items, list):
            items = []
        course_name = obj.get("courseName")
        if not isinstance(course_name, str):
            course_name = UNKNOWN_COURSE
        events, dropped = salvage_events(items, course_name)
        if dropped:
            logger.warning("Dropped %d of %d malformed events from model response", dropped, len(items))

    if not events:
        raise UnexpectedFormat()

    return ParseResponse(course_name=course_name, events=events, dropped=dropped)
