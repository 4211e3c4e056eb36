"""
Analysis-related API routes.
"""
import logging

from fastapi import APIRouter, File, HTTPException, UploadFile

from api.errors import to_http_exception
from api.models.requests import AnalysisRequest
from api.models.responses import AnalysisResponse
from core.config import MAX_UPLOAD_BYTES
from core.errors import StudyforgeError
from core.pipeline import pipeline
from core.session_state import session_state
from services.ingestion.document_loader import extract_text

logger = logging.getLogger(__name__)

router = APIRouter()


async def _analyse(text: str, source_name: str) -> AnalysisResponse:
    try:
        await pipeline.run(session_state, text, source_name=source_name)
    except StudyforgeError as e:
        raise to_http_exception(e)
    return AnalysisResponse.from_run(session_state.run)


@router.post("", response_model=AnalysisResponse)
async def analyse_text(request: AnalysisRequest):
    """
    Run the full analysis over pasted lecture text.
    Processes synchronously; the response carries all artifacts once Ready.
    """
    return await _analyse(request.text, request.source_name)


@router.post("/upload", response_model=AnalysisResponse)
async def analyse_upload(file: UploadFile = File(...)):
    """Extract text from an uploaded document (txt, md, pdf, pptx) and analyse it."""
    data = await file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    try:
        text = extract_text(file.filename or "", data)
    except StudyforgeError as e:
        logger.warning(f"Rejected upload {file.filename}: {e}")
        raise to_http_exception(e)

    return await _analyse(text, file.filename or "upload")


@router.get("", response_model=AnalysisResponse)
async def get_analysis():
    """Current analysis stage, retry counts, failure and artifacts."""
    return AnalysisResponse.from_run(session_state.run)


@router.delete("", response_model=AnalysisResponse)
async def new_analysis():
    """Discard the current analysis and quiz; in-flight results are ignored."""
    session_state.reset()
    return AnalysisResponse.from_run(session_state.run)
