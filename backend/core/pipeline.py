"""
Main pipeline orchestration for lecture analysis.
"""
import asyncio
import logging
from typing import Optional

from core.config import STAGE_TIMEOUT_SEC
from core.errors import EmptyContent, StageTimeout, SupersededError, user_message_for
from core.reasoning_client import ResilientReasoningClient, reasoning_client
from core.session_state import SessionState
from models.artifact_models import ArtifactModel
from models.session_models import FailureReport, PipelineStage, StudyArtifacts
from services.extraction.contracts import (
    ExtractionContract,
    KNOWLEDGE_GRAPH_CONTRACT,
    SUMMARY_CONTRACT,
    TOPICS_CONTRACT,
)

logger = logging.getLogger(__name__)

# Stages are independent (each reads the raw text) and run one at a time
PIPELINE_STAGES = [
    (PipelineStage.SUMMARIZING, SUMMARY_CONTRACT),
    (PipelineStage.GRAPH_EXTRACTION, KNOWLEDGE_GRAPH_CONTRACT),
    (PipelineStage.TOPIC_EXTRACTION, TOPICS_CONTRACT),
]


class AnalysisPipeline:
    """Orchestrates the Summary -> KnowledgeGraph -> Topics analysis."""

    def __init__(
        self,
        client: ResilientReasoningClient = reasoning_client,
        stage_timeout: float = STAGE_TIMEOUT_SEC,
    ):
        self.client = client
        self.stage_timeout = stage_timeout

    async def run(
        self,
        state: SessionState,
        text: str,
        source_name: Optional[str] = None,
    ) -> StudyArtifacts:
        """
        Run the complete analysis over one document.

        Pipeline Stages:
        1. Summary
        2. Knowledge graph extraction
        3. Topic extraction

        Args:
            state: Session state receiving the run
            text: Raw document text
            source_name: Optional file name, for display

        Returns:
            All three artifacts, also published on ``state``

        Raises:
            EmptyContent: text is empty or whitespace
            RateLimited, SchemaViolation, GenericFailure: a stage failed; the run
                is left Failed with no artifacts
            SupersededError: a newer run or reset replaced this one meanwhile
        """
        if not text or not text.strip():
            raise EmptyContent("No lecture content to analyse")

        token = state.begin_run(source_name)
        logger.info(f"Pipeline run {token} started ({len(text)} chars)")

        produced = {}
        try:
            for stage, contract in PIPELINE_STAGES:
                state.set_stage(token, stage)
                logger.info(f"Run {token}: {stage.value}")
                produced[contract.name] = await self._run_stage(state, token, contract, text)
        except SupersededError:
            logger.info(f"Run {token} superseded, discarding results")
            raise
        except Exception as e:
            if not state.is_current_run(token):
                logger.info(f"Run {token} superseded, discarding failure: {e}")
                raise SupersededError(f"Pipeline run {token} was superseded") from e

            failure = FailureReport(
                classification=getattr(e, "classification", "generic"),
                message=user_message_for(e),
                detail=str(e),
                stage=getattr(e, "stage", None),
            )
            state.fail_run(token, failure)
            logger.error(
                f"Run {token} failed at {failure.stage or 'unknown stage'} "
                f"[{failure.classification}]: {e}"
            )
            raise

        artifacts = StudyArtifacts(
            summary=produced[SUMMARY_CONTRACT.name],
            knowledge_graph=produced[KNOWLEDGE_GRAPH_CONTRACT.name],
            topics=produced[TOPICS_CONTRACT.name],
        )
        state.complete_run(token, artifacts)
        logger.info(
            f"Run {token} ready: {len(artifacts.topics.topics)} topics, "
            f"{len(artifacts.knowledge_graph.entities)} entities"
        )
        return artifacts

    async def _run_stage(
        self,
        state: SessionState,
        token: int,
        contract: ExtractionContract,
        text: str,
    ) -> ArtifactModel:
        """Invoke one stage under the stage timeout, counting rate-limit retries."""
        def on_retry(attempt, delay, error):
            state.record_retry(token, contract.name)

        try:
            result = await asyncio.wait_for(
                self.client.invoke(contract, on_retry=on_retry, text=text),
                timeout=self.stage_timeout,
            )
        except asyncio.TimeoutError as e:
            raise StageTimeout(
                f"Stage '{contract.name}' exceeded {self.stage_timeout:.0f}s",
                stage=contract.name,
            ) from e

        if not state.is_current_run(token):
            raise SupersededError(f"Pipeline run {token} was superseded")
        return result


# Global pipeline instance
pipeline = AnalysisPipeline()
