"""
Quiz-related API routes.
"""
from fastapi import APIRouter, HTTPException

from api.errors import to_http_exception
from api.models.requests import OptionSelectRequest
from api.models.responses import QuizResponse
from core.errors import StudyforgeError
from core.session_state import session_state
from services.assessment.quiz_engine import assessment_engine

router = APIRouter()


@router.get("", response_model=QuizResponse)
async def get_quiz():
    """Active quiz session."""
    if session_state.quiz is None:
        raise HTTPException(status_code=404, detail="No active quiz")
    return QuizResponse.from_session(session_state.quiz)


@router.post("/select", response_model=QuizResponse)
async def select_option(request: OptionSelectRequest):
    try:
        session = assessment_engine.select(session_state, request.option)
    except StudyforgeError as e:
        raise to_http_exception(e)
    return QuizResponse.from_session(session)


@router.post("/submit", response_model=QuizResponse)
async def submit_answer():
    try:
        assessment_engine.submit(session_state)
    except StudyforgeError as e:
        raise to_http_exception(e)
    return QuizResponse.from_session(session_state.quiz)


@router.post("/advance", response_model=QuizResponse)
async def advance_question():
    try:
        session = assessment_engine.advance(session_state)
    except StudyforgeError as e:
        raise to_http_exception(e)
    return QuizResponse.from_session(session)


@router.post("/retake", response_model=QuizResponse)
async def adaptive_retake():
    """Regenerate the completed quiz, adapted to its score."""
    try:
        session = await assessment_engine.adaptive_retake(session_state)
    except StudyforgeError as e:
        raise to_http_exception(e)
    return QuizResponse.from_session(session)


@router.post("/{topic_id}", response_model=QuizResponse)
async def start_quiz(topic_id: str):
    """Generate a quiz for one topic of the Ready analysis."""
    try:
        session = await assessment_engine.start_quiz(session_state, topic_id)
    except StudyforgeError as e:
        raise to_http_exception(e)
    return QuizResponse.from_session(session)
