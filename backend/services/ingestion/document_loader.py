"""
Document loader: extracts plain text from uploaded lecture files.
"""
import io
import logging
import zipfile
from pathlib import PurePath

import fitz  # PyMuPDF
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.exc import PackageNotFoundError

from core.errors import EmptyContent, UnsupportedFormat

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".txt", ".md", ".text"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {".pdf", ".pptx"}


def extract_text(filename: str, data: bytes) -> str:
    """
    Extract text from a lecture document.

    Args:
        filename: Original file name; the extension selects the reader
        data: Raw file bytes

    Returns:
        Extracted text

    Raises:
        UnsupportedFormat: unknown extension or unreadable file
        EmptyContent: the document contains no text
    """
    extension = PurePath(filename or "").suffix.lower()

    if extension in TEXT_EXTENSIONS:
        text = data.decode("utf-8", errors="replace")
    elif extension == ".pdf":
        text = _extract_pdf_text(data)
    elif extension == ".pptx":
        text = _extract_pptx_text(data)
    else:
        raise UnsupportedFormat(
            f"Unsupported file format: '{extension or filename}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
        )

    if not text.strip():
        raise EmptyContent(f"No text content found in {filename}")

    logger.info(f"Extracted {len(text)} chars from {filename}")
    return text


def _extract_pdf_text(data: bytes) -> str:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise UnsupportedFormat(f"Could not read PDF: {e}") from e

    with doc:
        return "".join(page.get_text() + "\n" for page in doc)


def _iter_text_frames(shapes):
    for shape in shapes:
        if shape.shape_type == MSO_SHAPE_TYPE.GROUP:
            yield from _iter_text_frames(shape.shapes)
        elif shape.has_text_frame:
            yield shape.text_frame
        elif shape.has_table:
            for row in shape.table.rows:
                for cell in row.cells:
                    yield cell.text_frame


def _extract_pptx_text(data: bytes) -> str:
    """Slide text runs in presentation order, one header per slide."""
    try:
        presentation = Presentation(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as e:
        raise UnsupportedFormat(f"Could not read PPTX: {e}") from e

    full_text = ""
    has_text = False
    for number, slide in enumerate(presentation.slides, start=1):
        runs = [
            run.text
            for frame in _iter_text_frames(slide.shapes)
            for paragraph in frame.paragraphs
            for run in paragraph.runs
        ]
        has_text = has_text or any(run.strip() for run in runs)
        full_text += f"--- Slide {number} ---\n{' '.join(runs)}\n\n"

    return full_text if has_text else ""
