import logging
from typing import List, Optional

from fastapi import Body, FastAPI, File, Form, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import API_HOST, API_PORT, API_VERSION, CORS_ORIGINS, OPENAI_API_KEY, configure_logging
from .errors import BadInput, DeadlineParserError, InternalError
from .export import events_to_ics, events_to_summary
from .gate import SlidingWindowRateLimiter
from .models import DeadlineEvent, ErrorResponse, ParseResponse, Submission
from .pipeline import DeadlineExtractor

# ============================================================
# LOGGING
# ============================================================
configure_logging()
logger = logging.getLogger(__name__)

# ============================================================
# FASTAPI
# ============================================================
app = FastAPI(title="Syllabus Deadlines", version=API_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.rate_limiter = SlidingWindowRateLimiter()
app.state.extractor = DeadlineExtractor()


# ============================================================
# ERROR HANDLING
# ============================================================
def _error_response(exc: DeadlineParserError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message, code=exc.code).model_dump(),
    )


@app.exception_handler(DeadlineParserError)
async def deadline_error_handler(request: Request, exc: DeadlineParserError):
    return _error_response(exc)


INVALID_REQUEST_MESSAGE = "Invalid request data."


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    for err in exc.errors():
        logger.info("Rejected request to %s: %s at %s", request.url.path, err.get("msg"), err.get("loc"))
    return _error_response(BadInput(INVALID_REQUEST_MESSAGE))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(InternalError())


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


# ============================================================
# ENDPOINTS
# ============================================================
@app.post(
    "/api/parse",
    response_model=ParseResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def parse_document(
    request: Request,
    input_type: str = Form("file", alias="type"),
    file: Optional[UploadFile] = File(None),
    text: Optional[str] = Form(None),
):
    request.app.state.rate_limiter.check(get_client_ip(request))

    if input_type == "text":
        submission = Submission.from_text(text or "")
    else:
        if file is None:
            raise BadInput("No file provided.")
        content = await file.read()
        submission = Submission.from_file(
            filename=file.filename or "",
            mime_type=file.content_type or "",
            content=content,
        )

    return await request.app.state.extractor.extract(submission)


@app.post("/api/calendar")
async def calendar_from_events(events: List[DeadlineEvent] = Body(...)):
    ics_bytes = events_to_ics(events)
    return Response(
        content=ics_bytes,
        media_type="text/calendar",
        headers={"Content-Disposition": 'attachment; filename="deadlines.ics"'},
    )


@app.post("/api/summary", response_class=PlainTextResponse)
async def summary_from_events(events: List[DeadlineEvent] = Body(...)):
    return events_to_summary(events)


@app.get("/")
async def root():
    return {
        "message": "Syllabus Deadlines API",
        "version": API_VERSION,
        "endpoints": {
            "parse": "/api/parse (POST)",
            "calendar": "/api/calendar (POST)",
            "summary": "/api/summary (POST)",
            "health": "/health (GET)",
            "docs": "/docs (GET)",
        },
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "openai_configured": bool(OPENAI_API_KEY),
        "message": "Syllabus Deadlines API is running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=API_HOST, port=API_PORT, reload=False)
