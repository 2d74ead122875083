import logging
import os
from datetime import date

from dotenv import load_dotenv

# ============================================================
# ENVIRONMENT
# ============================================================
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


# ============================================================
# MODEL
# ============================================================
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_TEXT_MODEL = os.getenv("OPENAI_TEXT_MODEL", "gpt-4o-mini")
OPENAI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", "gpt-4o")
OPENAI_TIMEOUT_S = float(os.getenv("OPENAI_TIMEOUT_S", "60"))

# year assumed when the document does not state one
DEFAULT_YEAR = _int_env("DEFAULT_YEAR", date.today().year)

# ============================================================
# ADMISSION
# ============================================================
MAX_DOC_SIZE_MB = _int_env("MAX_DOC_SIZE_MB", 5)
MAX_IMAGE_SIZE_MB = _int_env("MAX_IMAGE_SIZE_MB", 10)
MAX_DOC_SIZE = MAX_DOC_SIZE_MB * 1024 * 1024
MAX_IMAGE_SIZE = MAX_IMAGE_SIZE_MB * 1024 * 1024

RATE_LIMIT_MAX = _int_env("RATE_LIMIT_MAX", 15)
RATE_LIMIT_WINDOW_S = float(os.getenv("RATE_LIMIT_WINDOW_S", "60"))

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_TYPE = "application/vnd.ms-excel"

IMAGE_TYPES = {"image/jpeg", "image/png", "image/heic", "image/heif"}
DOCUMENT_TYPES = {PDF_TYPE, DOCX_TYPE, XLSX_TYPE, XLS_TYPE}
ACCEPTED_MIME_TYPES = DOCUMENT_TYPES | IMAGE_TYPES

# ============================================================
# UPLOAD QUEUE
# ============================================================
MAX_CONCURRENT = _int_env("MAX_CONCURRENT", 3)
MAX_QUEUE_ITEMS = _int_env("MAX_QUEUE_ITEMS", 10)

# ============================================================
# API
# ============================================================
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = _int_env("API_PORT", 8001)
API_VERSION = "1.0.0"

# ============================================================
# LOGGING
# ============================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
