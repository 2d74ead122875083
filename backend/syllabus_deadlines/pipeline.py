import asyncio
import logging
from typing import Optional

from .errors import DeadlineParserError, ExtractionFailed, InternalError
from .extraction import extract_text, is_image_type
from .gate import check_submission
from .gateway import CompletionGateway
from .models import ParseResponse, Source, Submission
from .normalize import parse_model_response

logger = logging.getLogger(__name__)

EMPTY_DOCUMENT_MESSAGE = "Could not extract text from this file. It may be image-based or empty."


class DeadlineExtractor:
    """Runs one submission through gate -> text extraction -> model -> normalizer."""

    def __init__(self, gateway: Optional[CompletionGateway] = None):
        self.gateway = gateway or CompletionGateway()

    def _complete(self, submission: Submission) -> str:
        if submission.source == Source.TEXT:
            return self.gateway.complete_text(submission.text)

        if is_image_type(submission.mime_type):
            return self.gateway.complete_image(submission.content, submission.mime_type)

        text = extract_text(submission.content, submission.mime_type)
        if not text:
            raise ExtractionFailed(EMPTY_DOCUMENT_MESSAGE)
        return self.gateway.complete_text(text)

    def extract_sync(self, submission: Submission) -> ParseResponse:
        check_submission(submission)
        raw = self._complete(submission)
        result = parse_model_response(raw)
        logger.info(
            "Extracted %d event(s) for %r (%d dropped)",
            len(result.events),
            result.course_name,
            result.dropped,
        )
        return result

    async def extract(self, submission: Submission) -> ParseResponse:
        """Async entry point; blocking decode and network work run in a thread."""
        try:
            return await asyncio.to_thread(self.extract_sync, submission)
        except DeadlineParserError:
            raise
        except Exception as e:
            logger.exception("Unclassified failure while extracting deadlines")
            raise InternalError() from e
