"""Typed failure conditions for the extraction and export pipeline.

Every error carries a stable ``code``, a short message that is safe to show a
user, and the HTTP status the API answers with.
"""
from typing import Optional


class DeadlineParserError(Exception):
    code = "internal_error"
    status_code = 500
    default_message = "An unexpected error occurred. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadInput(DeadlineParserError):
    code = "bad_input"
    status_code = 400
    default_message = "No file provided."


class UnsupportedType(DeadlineParserError):
    code = "unsupported_type"
    status_code = 400
    default_message = "Unsupported file type. Accepted: PDF, DOCX, XLSX, JPEG, PNG, HEIC."


class TooLarge(DeadlineParserError):
    code = "too_large"
    status_code = 400
    default_message = "File too large."


class RateLimited(DeadlineParserError):
    code = "rate_limited"
    status_code = 429
    default_message = "Too many requests. Please wait a moment."


class ExtractionFailed(DeadlineParserError):
    code = "extraction_failed"
    status_code = 422
    default_message = "Could not extract text from this file. It may be corrupted or empty."


class GatewayUnavailable(DeadlineParserError):
    code = "gateway_unavailable"
    status_code = 502
    default_message = "AI service is currently unavailable. Please try again later."


class EmptyModelResponse(DeadlineParserError):
    code = "empty_model_response"
    status_code = 502
    default_message = "AI returned an empty response. Please try again."


class MalformedResponse(DeadlineParserError):
    code = "malformed_model_response"
    status_code = 502
    default_message = "AI returned invalid data. Please try again."


class UnexpectedFormat(DeadlineParserError):
    code = "unexpected_format"
    status_code = 502
    default_message = "AI returned unexpected data format. Please try again."


class EncodingFailed(DeadlineParserError):
    code = "encoding_failed"
    status_code = 500
    default_message = "Failed to generate calendar file."


class InternalError(DeadlineParserError):
    pass


class InvalidTransition(ValueError):
    """Raised when a queue item is moved along an edge its state machine lacks."""
