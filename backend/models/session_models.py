"""
Data models for pipeline runs and quiz sessions.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from models.artifact_models import (
    KnowledgeGraphArtifact,
    QuizQuestion,
    SummaryArtifact,
    Topic,
    TopicsArtifact,
)


class PipelineStage(str, Enum):
    """Lifecycle of a pipeline run."""
    IDLE = "idle"
    INGESTING = "ingesting"
    SUMMARIZING = "summarizing"
    GRAPH_EXTRACTION = "graph_extraction"
    TOPIC_EXTRACTION = "topic_extraction"
    READY = "ready"
    FAILED = "failed"


STAGE_PROGRESS_MESSAGES = {
    PipelineStage.INGESTING: "Reading lecture content...",
    PipelineStage.SUMMARIZING: "Distilling core intelligence...",
    PipelineStage.GRAPH_EXTRACTION: "Mapping semantic relationships...",
    PipelineStage.TOPIC_EXTRACTION: "Deconstructing lecture architecture...",
}


class QuizPhase(str, Enum):
    PRESENTING = "presenting"
    ANSWERED = "answered"
    COMPLETED = "completed"


class QuizDirective(str, Enum):
    """Adaptive hint for quiz regeneration, derived from the previous score."""
    EASIER = "easier"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class StudyArtifacts:
    """All three stage outputs; only ever published together"""
    summary: SummaryArtifact
    knowledge_graph: KnowledgeGraphArtifact
    topics: TopicsArtifact


@dataclass(frozen=True)
class FailureReport:
    classification: str
    message: str  # user-facing
    detail: str = ""
    stage: Optional[str] = None


@dataclass
class PipelineRun:
    """One analysis of one document"""
    token: int
    stage: PipelineStage = PipelineStage.IDLE
    artifacts: Optional[StudyArtifacts] = None
    stage_retries: Dict[str, int] = field(default_factory=dict)
    failure: Optional[FailureReport] = None
    source_name: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def progress_message(self) -> Optional[str]:
        return STAGE_PROGRESS_MESSAGES.get(self.stage)


@dataclass
class QuizSession:
    """Adaptive quiz over one topic"""
    token: int
    topic: Topic
    questions: Tuple[QuizQuestion, ...]

    # Position
    current_index: int = 0
    phase: QuizPhase = QuizPhase.PRESENTING

    # Answers
    selection: Optional[str] = None  # tentative choice for the current question
    answers: Dict[int, str] = field(default_factory=dict)  # question index -> submitted option
    score: int = 0

    # Adaptation
    attempt: int = 1
    directive: Optional[QuizDirective] = None

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> QuizQuestion:
        return self.questions[self.current_index]

    @property
    def is_completed(self) -> bool:
        return self.phase == QuizPhase.COMPLETED
