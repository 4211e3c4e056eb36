"""
Error taxonomy for the analysis pipeline and assessment engine.

Every failure that reaches a caller carries a classification, which decides
retry eligibility in the reasoning client and the message shown to users.
"""
from typing import Optional


RATE_LIMITED_MESSAGE = (
    "The reasoning service is rate limiting requests. Please wait a minute and try again."
)
ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please try again with different content."


class StudyforgeError(Exception):
    """Base class for all Studyforge errors."""
    pass


class ClassifiedError(StudyforgeError):
    """An error with a classification used for retry and messaging decisions."""

    classification = "generic"

    def __init__(self, message: str, *, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class RateLimited(ClassifiedError):
    """Quota or rate-limit rejection from the reasoning service. Retryable."""

    classification = "rate_limited"


class SchemaViolation(ClassifiedError):
    """Service output is malformed or violates a contract invariant."""

    classification = "schema_violation"


class GenericFailure(ClassifiedError):
    """Any other service or transport failure."""

    classification = "generic"


class StageTimeout(GenericFailure):
    """A pipeline stage exceeded its time budget."""
    pass


class UnsupportedInput(ClassifiedError):
    """The source document cannot be analysed."""

    classification = "unsupported_input"


class UnsupportedFormat(UnsupportedInput):
    pass


class EmptyContent(UnsupportedInput):
    pass


class InvalidTransition(StudyforgeError):
    """Operation is not valid in the current pipeline or quiz state."""
    pass


class InvalidSelection(StudyforgeError):
    """Selected option is not one of the current question's options."""
    pass


class SupersededError(StudyforgeError):
    """A newer run or quiz session replaced the one this result belonged to."""
    pass


def user_message_for(error: Exception) -> str:
    """Map a failure to the message shown to the user."""
    if isinstance(error, RateLimited):
        return RATE_LIMITED_MESSAGE
    if isinstance(error, UnsupportedInput):
        return error.message
    return ANALYSIS_FAILED_MESSAGE
