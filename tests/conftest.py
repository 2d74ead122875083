import json
from types import SimpleNamespace

import pytest

from syllabus_deadlines.models import DeadlineEvent


class FakeGateway:
    """Stands in for CompletionGateway; records what it was asked to complete."""

    def __init__(self, response_text: str):
        self._response_text = response_text
        self.calls = []

    def complete_text(self, text: str) -> str:
        self.calls.append(("text", text))
        return self._response_text

    def complete_image(self, data: bytes, mime_type: str) -> str:
        self.calls.append(("image", mime_type))
        return self._response_text


class FakeOpenAIClient:
    """Mimics the slice of openai.OpenAI the gateway touches."""

    def __init__(self, content=None, error=None):
        self.requests = []
        self._content = content
        self._error = error
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self._error is not None:
            raise self._error
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def fake_gateway_factory():
    def _make(response_text: str):
        return FakeGateway(response_text)
    return _make


@pytest.fixture
def fake_openai_factory():
    def _make(content=None, error=None):
        return FakeOpenAIClient(content=content, error=error)
    return _make


@pytest.fixture
def model_response():
    """A well-formed model answer for a two-deadline syllabus."""
    return json.dumps({
        "courseName": "MATH 201",
        "events": [
            {
                "title": "Midterm Exam",
                "date": "2026-2-14",
                "time": "2:00 PM",
                "type": "exam",
                "weight": "25%",
                "notes": "Room 101",
            },
            {
                "title": "Problem Set 1",
                "date": "2026-01-30",
                "time": None,
                "type": "homework",
                "weight": "",
                "notes": "",
            },
        ],
    })


@pytest.fixture
def sample_events():
    return [
        DeadlineEvent(
            id="evt-timed",
            title="Midterm",
            date="2026-01-30",
            time="14:00",
            type="Exam",
            weight="25%",
            notes="Bring a calculator",
            course="MATH 201",
        ),
        DeadlineEvent(
            id="evt-allday",
            title="Essay 1",
            date="2026-02-03",
            time=None,
            type="Assignment",
            notes="",
            course="ENGL 110",
        ),
    ]
