import uuid
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

EventType = Literal["Exam", "Assignment", "Reading", "Other"]
EVENT_TYPES = ("Exam", "Assignment", "Reading", "Other")
UNKNOWN_COURSE = "Unknown Course"


def new_id() -> str:
    return uuid.uuid4().hex


# ============================================================
# EVENTS
# ============================================================
class DeadlineEvent(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)
    date: str  # YYYY-MM-DD once normalized
    time: Optional[str] = None  # HH:mm, None means all-day
    type: EventType = "Other"
    weight: str = ""
    notes: str = ""
    course: str = ""


class RawEvent(BaseModel):
    """One candidate event exactly as the model produced it (shape check only)."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    time: Optional[str] = None
    type: str
    weight: Optional[str] = None
    notes: Optional[str] = None
    course: Optional[str] = None


class RawResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    courseName: str
    events: List[RawEvent]


# ============================================================
# API PAYLOADS
# ============================================================
class ParseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_name: str = Field(..., alias="courseName")
    events: List[DeadlineEvent]
    dropped: int = Field(default=0, exclude=True)


class ErrorResponse(BaseModel):
    error: str
    code: str


# ============================================================
# UPLOAD QUEUE
# ============================================================
class Source(str, Enum):
    FILE = "file"
    TEXT = "text"


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class Submission(BaseModel):
    """Exactly one of a document (bytes + declared MIME type) or a text blob."""

    source: Source
    filename: str = ""
    mime_type: str = ""
    content: bytes = b""
    text: str = ""

    @model_validator(mode="after")
    def _payload_matches_source(self) -> "Submission":
        if self.source == Source.FILE and self.text:
            raise ValueError("file submissions carry no text")
        if self.source == Source.TEXT and self.content:
            raise ValueError("text submissions carry no document")
        return self

    @classmethod
    def from_file(cls, filename: str, mime_type: str, content: bytes) -> "Submission":
        return cls(source=Source.FILE, filename=filename, mime_type=mime_type, content=content)

    @classmethod
    def from_text(cls, text: str) -> "Submission":
        return cls(source=Source.TEXT, text=text)

    @property
    def size(self) -> int:
        return len(self.content)


class FileQueueItem(BaseModel):
    id: str = Field(default_factory=new_id)
    submission: Submission
    course_name: str = ""
    detected_course: str = ""
    status: ItemStatus = ItemStatus.PENDING
    error: Optional[str] = None
    events: List[DeadlineEvent] = Field(default_factory=list)

    @property
    def source(self) -> Source:
        return self.submission.source

    @property
    def display_course(self) -> str:
        return self.course_name.strip() or self.detected_course
