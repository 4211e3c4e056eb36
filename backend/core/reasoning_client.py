"""
Resilient reasoning client: contract enforcement on top of the Gemini transport,
with rate-limit retry.
"""
import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from core.config import (
    GEMINI_MODEL,
    RETRY_MAX_ATTEMPTS,
    RETRY_BASE_DELAY_SEC,
    RETRY_JITTER_MAX_SEC,
)
from core.errors import GenericFailure, RateLimited
from core.gemini_client import GeminiClient, ReasoningServiceError, gemini
from core.retry import RetryCallback, is_rate_limit_error, retry_on_rate_limit
from models.artifact_models import ArtifactModel
from services.extraction.contracts import ExtractionContract

logger = logging.getLogger(__name__)


def classify_service_error(error: Exception, stage: Optional[str] = None) -> Exception:
    """Map a transport/service error to RateLimited or GenericFailure."""
    if is_rate_limit_error(error):
        return RateLimited(str(error), stage=stage)
    return GenericFailure(str(error), stage=stage)


class ResilientReasoningClient:
    """Invokes the reasoning service under an extraction contract."""

    def __init__(
        self,
        transport: GeminiClient = gemini,
        model: str = GEMINI_MODEL,
        max_attempts: int = RETRY_MAX_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY_SEC,
        jitter_max: float = RETRY_JITTER_MAX_SEC,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[float, float], float] = random.uniform,
    ):
        self.transport = transport
        self.model = model
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter_max = jitter_max
        self.sleep = sleep
        self.rng = rng

    async def _attempt(self, contract: ExtractionContract, params: dict) -> ArtifactModel:
        request = contract.build_request(self.model, **params)
        try:
            raw = await self.transport.generate_content(request)
        except ReasoningServiceError as e:
            raise classify_service_error(e, stage=contract.name) from e

        # SchemaViolation from parse is never retried
        return contract.parse(raw)

    async def invoke(
        self,
        contract: ExtractionContract,
        on_retry: Optional[RetryCallback] = None,
        **params: Any,
    ) -> ArtifactModel:
        """
        Send a contract request and return the validated output.

        Args:
            contract: Stage contract (template, schema, validators)
            on_retry: Observer for each scheduled backoff (attempt, delay, error)
            **params: Template parameters for the contract's prompt

        Returns:
            Parsed and validated response model

        Raises:
            RateLimited: after exhausting retry attempts (last failure, unchanged)
            SchemaViolation: malformed or semantically invalid output
            GenericFailure: any other service/transport error
        """
        logger.debug(f"Invoking reasoning service for contract '{contract.name}'")
        return await retry_on_rate_limit(
            lambda: self._attempt(contract, params),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            jitter_max=self.jitter_max,
            sleep=self.sleep,
            rng=self.rng,
            on_retry=on_retry,
        )


# Global reasoning client instance
reasoning_client = ResilientReasoningClient()
