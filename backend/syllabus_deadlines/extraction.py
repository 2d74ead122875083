"""Turn uploaded documents into plain text for the model.

Images are never text-extracted here; callers check :func:`is_image_type` and
hand the raw bytes to the vision path of the gateway instead.
"""
import csv
import io
import logging
from typing import Iterable, List

import fitz
import xlrd
from docx import Document
from openpyxl import load_workbook

from .config import DOCX_TYPE, IMAGE_TYPES, PDF_TYPE, XLS_TYPE, XLSX_TYPE
from .errors import ExtractionFailed, UnsupportedType

logger = logging.getLogger(__name__)


def is_image_type(mime_type: str) -> bool:
    return mime_type in IMAGE_TYPES


# ============================================================
# FORMAT READERS
# ============================================================
def extract_pdf_text(data: bytes) -> str:
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        if doc.page_count == 0:
            raise ValueError("PDF has no pages")
        pages = [page.get_text() for page in doc]
    finally:
        doc.close()
    return "\n".join(p.strip() for p in pages if p and p.strip())


def extract_docx_text(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    lines: List[str] = [p.text for p in document.paragraphs if p.text.strip()]

    # schedules usually live in tables, which paragraphs do not include
    for table in document.tables:
        for row in table.rows:
            cells = [c.text.strip() for c in row.cells]
            if any(cells):
                lines.append(" | ".join(cells))

    return "\n".join(lines)


def _sheet_block(title: str, rows: Iterable[Iterable]) -> List[str]:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return [f"--- {title} ---", buf.getvalue().rstrip("\n")]


def extract_xlsx_text(data: bytes) -> str:
    wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    parts: List[str] = []
    try:
        for ws in wb.worksheets:
            parts.extend(_sheet_block(ws.title, ws.iter_rows(values_only=True)))
    finally:
        wb.close()
    return "\n".join(parts)


def _xls_value(cell, datemode: int):
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
        return int(cell.value)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    return cell.value


def extract_xls_text(data: bytes) -> str:
    """Legacy BIFF workbooks (``.xls``), rendered like :func:`extract_xlsx_text`."""
    if data[:2] == b"PK":
        # OOXML workbook sent with the legacy mime type
        return extract_xlsx_text(data)
    book = xlrd.open_workbook(file_contents=data, on_demand=True)
    parts: List[str] = []
    try:
        for sheet in book.sheets():
            rows = (
                [_xls_value(cell, book.datemode) for cell in sheet.row(r)]
                for r in range(sheet.nrows)
            )
            parts.extend(_sheet_block(sheet.name, rows))
    finally:
        book.release_resources()
    return "\n".join(parts)


_READERS = {
    PDF_TYPE: extract_pdf_text,
    DOCX_TYPE: extract_docx_text,
    XLSX_TYPE: extract_xlsx_text,
    XLS_TYPE: extract_xls_text,
}


# ============================================================
# ENTRY POINT
# ============================================================
def extract_text(data: bytes, mime_type: str) -> str:
    """Return the stripped text of a document, or raise ExtractionFailed.

    An empty result is returned as ``""``; the caller decides how to report it.
    """
    reader = _READERS.get(mime_type)
    if reader is None:
        raise UnsupportedType()

    try:
        text = reader(data)
    except Exception as e:
        logger.warning("Text extraction failed for %s: %s", mime_type, e)
        raise ExtractionFailed() from e

    return (text or "").strip()
