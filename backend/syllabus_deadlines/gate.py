"""Admission checks that run before any extraction work is started."""
import logging
import time
from typing import Callable, Dict, List

from .config import (
    ACCEPTED_MIME_TYPES,
    IMAGE_TYPES,
    MAX_DOC_SIZE,
    MAX_DOC_SIZE_MB,
    MAX_IMAGE_SIZE,
    MAX_IMAGE_SIZE_MB,
    RATE_LIMIT_MAX,
    RATE_LIMIT_WINDOW_S,
)
from .errors import BadInput, RateLimited, TooLarge, UnsupportedType
from .models import Source, Submission

logger = logging.getLogger(__name__)

COMPACT_EVERY = 100


class SlidingWindowRateLimiter:
    """Per-address sliding window: at most ``max_requests`` per ``window_seconds``."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX,
        window_seconds: float = RATE_LIMIT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._checks = 0

    def _recent(self, stamps: List[float], now: float) -> List[float]:
        return [t for t in stamps if now - t < self.window_seconds]

    def compact(self, now: float) -> None:
        for key in list(self._hits):
            recent = self._recent(self._hits[key], now)
            if recent:
                self._hits[key] = recent
            else:
                del self._hits[key]

    def is_limited(self, address: str) -> bool:
        now = self._clock()
        self._checks += 1
        if self._checks % COMPACT_EVERY == 0:
            self.compact(now)

        recent = self._recent(self._hits.get(address, []), now)
        if len(recent) >= self.max_requests:
            self._hits[address] = recent
            return True

        recent.append(now)
        self._hits[address] = recent
        return False

    def check(self, address: str) -> None:
        if self.is_limited(address):
            logger.info("Rate limit hit for %s", address)
            raise RateLimited()

    def __len__(self) -> int:
        return len(self._hits)


def check_submission(submission: Submission) -> None:
    """Raise the matching admission error if the submission cannot be processed."""
    if submission.source == Source.TEXT:
        if not submission.text.strip():
            raise BadInput("No text provided.")
        return

    if not submission.content:
        raise BadInput("No file provided.")

    if submission.mime_type not in ACCEPTED_MIME_TYPES:
        logger.info("Rejected upload %r with type %r", submission.filename, submission.mime_type)
        raise UnsupportedType()

    if submission.mime_type in IMAGE_TYPES:
        max_size, max_label = MAX_IMAGE_SIZE, MAX_IMAGE_SIZE_MB
    else:
        max_size, max_label = MAX_DOC_SIZE, MAX_DOC_SIZE_MB

    if submission.size > max_size:
        logger.info("Rejected upload %r: %d bytes", submission.filename, submission.size)
        raise TooLarge(f"File too large. Maximum size is {max_label}MB.")
