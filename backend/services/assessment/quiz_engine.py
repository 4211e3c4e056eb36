"""
Adaptive assessment engine: quiz state machine and score-driven regeneration.
"""
import asyncio
import logging
from typing import Optional

from core.config import QUIZ_QUESTION_COUNT, STAGE_TIMEOUT_SEC
from core.errors import InvalidSelection, InvalidTransition, StageTimeout
from core.reasoning_client import ResilientReasoningClient, reasoning_client
from core.session_state import SessionState
from models.artifact_models import QuizArtifact, Topic
from models.session_models import QuizDirective, QuizPhase, QuizSession
from services.extraction.contracts import QUIZ_CONTRACT, quiz_prompt_params

logger = logging.getLogger(__name__)


def compute_directive(score: int, total: int) -> Optional[QuizDirective]:
    """
    Pick the regeneration directive from the previous result.

    Below half correct asks for easier questions, a perfect score asks for
    advanced ones, anything in between regenerates neutrally.
    """
    if score < total / 2:
        return QuizDirective.EASIER
    if score == total:
        return QuizDirective.ADVANCED
    return None


def render_directive(
    directive: Optional[QuizDirective],
    score: int,
    total: int,
    question_count: int = QUIZ_QUESTION_COUNT,
) -> str:
    """Directive sentence prepended to the quiz generation prompt."""
    if directive == QuizDirective.EASIER:
        return (
            f"The student answered {score}/{total} questions correctly. "
            f"Regenerate {question_count} easier questions focusing on fundamentals."
        )
    if directive == QuizDirective.ADVANCED:
        return (
            f"The student answered {score}/{total} correctly. "
            f"Generate {question_count} advanced-level application-based questions (scenario-based)."
        )
    return ""


class AdaptiveAssessmentEngine:
    """Drives the quiz session held in SessionState."""

    def __init__(
        self,
        client: ResilientReasoningClient = reasoning_client,
        question_count: int = QUIZ_QUESTION_COUNT,
        generation_timeout: float = STAGE_TIMEOUT_SEC,
    ):
        self.client = client
        self.question_count = question_count
        self.generation_timeout = generation_timeout

    async def _generate(self, topic: Topic, directive_text: str = "") -> QuizArtifact:
        try:
            return await asyncio.wait_for(
                self.client.invoke(
                    QUIZ_CONTRACT,
                    **quiz_prompt_params(topic, self.question_count, directive_text),
                ),
                timeout=self.generation_timeout,
            )
        except asyncio.TimeoutError as e:
            raise StageTimeout(
                f"Quiz generation exceeded {self.generation_timeout:.0f}s",
                stage=QUIZ_CONTRACT.name,
            ) from e

    @staticmethod
    def _require_session(state: SessionState) -> QuizSession:
        if state.quiz is None:
            raise InvalidTransition("No active quiz session")
        return state.quiz

    async def start_quiz(self, state: SessionState, topic_id: str) -> QuizSession:
        """
        Generate the first quiz for a topic and make it the active session.

        Raises:
            InvalidTransition: analysis is not Ready or the topic is unknown
            RateLimited, SchemaViolation, GenericFailure: generation failed
            SupersededError: another quiz or analysis started meanwhile
        """
        artifacts = state.artifacts
        if artifacts is None:
            raise InvalidTransition("Analysis is not ready; run the pipeline first")
        topic = artifacts.topics.find(topic_id)
        if topic is None:
            raise InvalidTransition(f"Unknown topic: {topic_id}")

        token = state.begin_quiz()
        logger.info(f"Generating quiz {token} for topic '{topic.title}'")
        quiz = await self._generate(topic)

        session = QuizSession(token=token, topic=topic, questions=quiz.quiz)
        state.install_quiz(session)
        return session

    def select(self, state: SessionState, option: str) -> QuizSession:
        """Record a tentative choice; repeated calls overwrite it."""
        session = self._require_session(state)
        if session.phase != QuizPhase.PRESENTING:
            raise InvalidTransition(f"Cannot select an option while {session.phase.value}")
        if option not in session.current_question.options:
            raise InvalidSelection(f"'{option}' is not an option of the current question")
        session.selection = option
        return session

    def submit(self, state: SessionState) -> bool:
        """
        Lock in the tentative choice for the current question.

        Returns:
            True if the selection matched the correct answer
        """
        session = self._require_session(state)
        if session.phase != QuizPhase.PRESENTING:
            raise InvalidTransition(f"Cannot submit while {session.phase.value}")
        if session.selection is None:
            raise InvalidTransition("Select an option before submitting")

        correct = session.selection == session.current_question.correct_answer
        session.answers[session.current_index] = session.selection
        if correct:
            session.score += 1
        session.phase = QuizPhase.ANSWERED
        return correct

    def advance(self, state: SessionState) -> QuizSession:
        session = self._require_session(state)
        if session.phase != QuizPhase.ANSWERED:
            raise InvalidTransition(f"Cannot advance while {session.phase.value}")

        if session.current_index + 1 < session.total:
            session.current_index += 1
            session.selection = None
            session.phase = QuizPhase.PRESENTING
        else:
            session.phase = QuizPhase.COMPLETED
            logger.info(
                f"Quiz {session.token} completed: {session.score}/{session.total} "
                f"on '{session.topic.title}'"
            )
        return session

    async def adaptive_retake(self, state: SessionState) -> QuizSession:
        """
        Regenerate the quiz adapted to the completed session's score.

        The completed session stays active and unchanged if generation fails.

        Raises:
            InvalidTransition: the session is not Completed
            RateLimited, SchemaViolation, GenericFailure: generation failed
            SupersededError: another quiz or analysis started meanwhile
        """
        session = self._require_session(state)
        if session.phase != QuizPhase.COMPLETED:
            raise InvalidTransition(f"Cannot retake while {session.phase.value}")

        directive = compute_directive(session.score, session.total)
        directive_text = render_directive(
            directive, session.score, session.total, self.question_count
        )
        logger.info(
            f"Adaptive retake of quiz {session.token} "
            f"({session.score}/{session.total}, directive={directive.value if directive else 'none'})"
        )
        quiz = await self._generate(session.topic, directive_text)

        replacement = QuizSession(
            token=state.next_quiz_token(session.token),
            topic=session.topic,
            questions=quiz.quiz,
            attempt=session.attempt + 1,
            directive=directive,
        )
        state.install_quiz(replacement)
        return replacement


# Global assessment engine instance
assessment_engine = AdaptiveAssessmentEngine()
