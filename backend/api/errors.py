"""
Mapping of Studyforge errors to HTTP errors.
"""
from fastapi import HTTPException

from core.errors import (
    InvalidSelection,
    InvalidTransition,
    RateLimited,
    SchemaViolation,
    GenericFailure,
    StudyforgeError,
    SupersededError,
    UnsupportedInput,
    user_message_for,
)


def to_http_exception(error: StudyforgeError) -> HTTPException:
    """Translate a domain error into an HTTPException with a user-facing detail."""
    if isinstance(error, UnsupportedInput):
        return HTTPException(status_code=400, detail=error.message)
    if isinstance(error, RateLimited):
        return HTTPException(status_code=429, detail=user_message_for(error))
    if isinstance(error, (SchemaViolation, GenericFailure)):
        return HTTPException(status_code=502, detail=user_message_for(error))
    if isinstance(error, InvalidSelection):
        return HTTPException(status_code=422, detail=str(error))
    if isinstance(error, (InvalidTransition, SupersededError)):
        return HTTPException(status_code=409, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
