"""
Process-wide session state: the current pipeline run and the active quiz session.

Only the pipeline orchestrator and the assessment engine mutate this object, and
only through the methods below. Each new run or quiz session gets a fresh
generation token; a completion carrying an older token is stale and is rejected.
"""
import logging
from datetime import datetime
from typing import Optional

from core.errors import SupersededError
from models.session_models import (
    FailureReport,
    PipelineRun,
    PipelineStage,
    QuizSession,
    StudyArtifacts,
)

logger = logging.getLogger(__name__)


class SessionState:
    """Owner of the single live PipelineRun and QuizSession."""

    def __init__(self):
        self._run_counter = 0
        self._quiz_counter = 0
        self.run = PipelineRun(token=0)
        self.quiz: Optional[QuizSession] = None

    @property
    def stage(self) -> PipelineStage:
        return self.run.stage

    @property
    def artifacts(self) -> Optional[StudyArtifacts]:
        """Artifacts of the current run, visible only once it is Ready."""
        if self.run.stage != PipelineStage.READY:
            return None
        return self.run.artifacts

    # Pipeline runs

    def begin_run(self, source_name: Optional[str] = None) -> int:
        """Start a new run, superseding any in-flight run and the active quiz."""
        self._run_counter += 1
        self._invalidate_quiz()
        self.run = PipelineRun(
            token=self._run_counter,
            stage=PipelineStage.INGESTING,
            source_name=source_name,
            started_at=datetime.now(),
        )
        return self._run_counter

    def is_current_run(self, token: int) -> bool:
        return token == self._run_counter

    def _require_current_run(self, token: int) -> None:
        if not self.is_current_run(token):
            raise SupersededError(
                f"Pipeline run {token} was superseded by run {self._run_counter}"
            )

    def set_stage(self, token: int, stage: PipelineStage) -> None:
        self._require_current_run(token)
        self.run.stage = stage

    def record_retry(self, token: int, stage_name: str) -> None:
        # Late retries of a superseded run are ignored
        if self.is_current_run(token):
            self.run.stage_retries[stage_name] = self.run.stage_retries.get(stage_name, 0) + 1

    def complete_run(self, token: int, artifacts: StudyArtifacts) -> None:
        """Publish all artifacts and move to Ready in one step."""
        self._require_current_run(token)
        self.run.artifacts = artifacts
        self.run.failure = None
        self.run.stage = PipelineStage.READY
        self.run.finished_at = datetime.now()

    def fail_run(self, token: int, failure: FailureReport) -> None:
        self._require_current_run(token)
        self.run.artifacts = None
        self.run.failure = failure
        self.run.stage = PipelineStage.FAILED
        self.run.finished_at = datetime.now()

    def reset(self) -> None:
        """New analysis: discard the run and quiz, back to Idle."""
        self._run_counter += 1
        self.run = PipelineRun(token=self._run_counter)
        self._invalidate_quiz()
        logger.info("Session reset to idle")

    # Quiz sessions

    def _invalidate_quiz(self) -> None:
        self._quiz_counter += 1
        self.quiz = None

    def begin_quiz(self) -> int:
        """Reserve a token for a new quiz session; the previous session is dropped."""
        self._invalidate_quiz()
        return self._quiz_counter

    def is_current_quiz(self, token: int) -> bool:
        return token == self._quiz_counter

    def next_quiz_token(self, expected_token: int) -> int:
        """Reserve a token for a session replacing the one holding ``expected_token``."""
        if not self.is_current_quiz(expected_token):
            raise SupersededError(
                f"Quiz session {expected_token} was superseded by {self._quiz_counter}"
            )
        self._quiz_counter += 1
        return self._quiz_counter

    def install_quiz(self, session: QuizSession) -> None:
        if not self.is_current_quiz(session.token):
            raise SupersededError(
                f"Quiz session {session.token} was superseded by {self._quiz_counter}"
            )
        self.quiz = session


# Global session state instance
session_state = SessionState()
