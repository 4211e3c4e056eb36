"""
Pydantic response models for API endpoints.
"""
from datetime import datetime

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Tuple

from models.artifact_models import (
    KnowledgeGraphArtifact,
    SummaryArtifact,
    Topic,
)
from models.session_models import PipelineRun, QuizPhase, QuizSession


class FailureResponse(BaseModel):
    """Why the last analysis failed."""
    classification: str
    message: str
    stage: Optional[str] = None


class ArtifactsResponse(BaseModel):
    """All artifacts of a Ready analysis."""
    summary: SummaryArtifact
    knowledge_graph: KnowledgeGraphArtifact
    topics: Tuple[Topic, ...]


class AnalysisResponse(BaseModel):
    """Response model for the current analysis run."""
    stage: str
    progress_message: Optional[str] = None
    source_name: Optional[str] = None
    stage_retries: Dict[str, int] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    failure: Optional[FailureResponse] = None
    artifacts: Optional[ArtifactsResponse] = None

    @classmethod
    def from_run(cls, run: PipelineRun) -> "AnalysisResponse":
        failure = None
        if run.failure is not None:
            failure = FailureResponse(
                classification=run.failure.classification,
                message=run.failure.message,
                stage=run.failure.stage,
            )
        artifacts = None
        if run.artifacts is not None:
            artifacts = ArtifactsResponse(
                summary=run.artifacts.summary,
                knowledge_graph=run.artifacts.knowledge_graph,
                topics=run.artifacts.topics.topics,
            )
        return cls(
            stage=run.stage.value,
            progress_message=run.progress_message,
            source_name=run.source_name,
            stage_retries=dict(run.stage_retries),
            started_at=run.started_at,
            finished_at=run.finished_at,
            failure=failure,
            artifacts=artifacts,
        )


class QuestionView(BaseModel):
    """Current question as presented; the answer is revealed once answered."""
    question_id: str
    question: str
    difficulty: float
    options: List[str]
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class QuizResponse(BaseModel):
    """Response model for the active quiz session."""
    topic_id: str
    topic_title: str
    phase: str
    question_number: int = Field(ge=1, description="1-based position of the current question")
    total_questions: int
    score: int
    attempt: int
    directive: Optional[str] = None
    selection: Optional[str] = None
    last_answer_correct: Optional[bool] = None
    answers: Dict[int, str] = Field(
        default_factory=dict, description="Submitted option per 0-based question index"
    )
    question: Optional[QuestionView] = None

    @classmethod
    def from_session(cls, session: QuizSession) -> "QuizResponse":
        question = None
        last_answer_correct = None
        if session.phase != QuizPhase.COMPLETED:
            current = session.current_question
            answered = session.phase == QuizPhase.ANSWERED
            question = QuestionView(
                question_id=current.question_id,
                question=current.question,
                difficulty=current.difficulty,
                options=list(current.options),
                correct_answer=current.correct_answer if answered else None,
                explanation=current.explanation if answered else None,
            )
            if answered:
                last_answer_correct = session.selection == current.correct_answer

        return cls(
            topic_id=session.topic.topic_id,
            topic_title=session.topic.title,
            phase=session.phase.value,
            question_number=session.current_index + 1,
            total_questions=session.total,
            score=session.score,
            attempt=session.attempt,
            directive=session.directive.value if session.directive else None,
            selection=session.selection,
            last_answer_correct=last_answer_correct,
            answers=dict(session.answers),
            question=question,
        )
