"""
Unit tests for the resilient reasoning client and its retry policy.
"""
import asyncio

import pytest

from core.errors import GenericFailure, RateLimited, SchemaViolation
from core.gemini_client import ReasoningServiceError
from core.reasoning_client import classify_service_error
from core.retry import compute_backoff_delay, is_rate_limit_error, retry_on_rate_limit
from models.artifact_models import SummaryArtifact
from services.extraction.contracts import SUMMARY_CONTRACT
from fakes import (
    FakeTransport,
    RecordingSleep,
    SUMMARY_PAYLOAD,
    make_client,
    rate_limit_error,
)


class TestBackoff:
    """Test delay computation and rate-limit detection."""

    def test_delay_doubles_per_attempt(self):
        no_jitter = lambda low, high: 0.0
        assert compute_backoff_delay(0, 1.0, 1.0, no_jitter) == 1.0
        assert compute_backoff_delay(1, 1.0, 1.0, no_jitter) == 2.0
        assert compute_backoff_delay(2, 1.0, 1.0, no_jitter) == 4.0

    def test_jitter_is_added_within_bounds(self):
        calls = []

        def rng(low, high):
            calls.append((low, high))
            return high

        assert compute_backoff_delay(1, 1.0, 0.75, rng) == 2.75
        assert calls == [(0.0, 0.75)]

    @pytest.mark.parametrize("message", [
        "Gemini API error: 429 Too Many Requests",
        "RESOURCE_EXHAUSTED: quota exceeded",
        "You exceeded your current quota",
        "rate limit reached",
    ])
    def test_rate_limit_markers(self, message):
        assert is_rate_limit_error(Exception(message)) is True

    def test_other_errors_are_not_rate_limits(self):
        assert is_rate_limit_error(Exception("Gemini API error: 500 internal")) is False


class TestRetryLoop:
    """Test the bounded retry loop directly."""

    def test_non_rate_limit_error_is_not_retried(self):
        attempts = []

        async def operation():
            attempts.append(1)
            raise GenericFailure("boom")

        sleep = RecordingSleep()
        with pytest.raises(GenericFailure):
            asyncio.run(retry_on_rate_limit(operation, sleep=sleep))

        assert len(attempts) == 1
        assert sleep.delays == []

    def test_on_retry_reports_attempt_and_delay(self):
        outcomes = [RateLimited("429"), "done"]
        seen = []

        async def operation():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        result = asyncio.run(retry_on_rate_limit(
            operation,
            max_attempts=3,
            base_delay=1.0,
            jitter_max=0.0,
            sleep=RecordingSleep(),
            on_retry=lambda attempt, delay, error: seen.append((attempt, delay)),
        ))

        assert result == "done"
        assert seen == [(1, 1.0)]


class TestErrorClassification:
    """Test mapping of service errors to classifications."""

    def test_quota_error_is_rate_limited(self):
        error = classify_service_error(rate_limit_error(), stage="summary")
        assert isinstance(error, RateLimited)
        assert error.stage == "summary"

    def test_other_service_error_is_generic(self):
        error = classify_service_error(ReasoningServiceError("Gemini API error: 503 unavailable"))
        assert isinstance(error, GenericFailure)
        assert error.classification == "generic"


class TestInvoke:
    """Test contract invocation with retry."""

    def test_success_returns_validated_model(self):
        transport = FakeTransport({"summary": [SUMMARY_PAYLOAD]})
        client = make_client(transport)

        result = asyncio.run(client.invoke(SUMMARY_CONTRACT, text="Lecture"))

        assert isinstance(result, SummaryArtifact)
        assert result.key_takeaways == ("Energy is conserved", "Entropy increases")
        assert transport.requests[0].model == "test-model"
        assert "Lecture" in transport.requests[0].contents

    def test_two_rate_limits_then_success(self):
        transport = FakeTransport({
            "summary": [rate_limit_error(), rate_limit_error(), SUMMARY_PAYLOAD],
        })
        sleep = RecordingSleep()
        client = make_client(transport, sleep)

        result = asyncio.run(client.invoke(SUMMARY_CONTRACT, text="Lecture"))

        assert result.overview == SUMMARY_PAYLOAD["overview"]
        assert len(transport.calls) == 3
        assert len(sleep.delays) == 2
        assert all(delay >= client.base_delay for delay in sleep.delays)
        assert sleep.delays == [1.5, 2.5]

    def test_third_rate_limit_propagates(self):
        transport = FakeTransport({
            "summary": [
                ReasoningServiceError("429 first"),
                ReasoningServiceError("429 second"),
                ReasoningServiceError("429 third"),
            ],
        })
        sleep = RecordingSleep()
        client = make_client(transport, sleep)

        with pytest.raises(RateLimited) as exc_info:
            asyncio.run(client.invoke(SUMMARY_CONTRACT, text="Lecture"))

        assert "429 third" in str(exc_info.value)
        assert len(transport.calls) == 3
        assert len(sleep.delays) == 2

    def test_generic_failure_fails_fast(self):
        transport = FakeTransport({
            "summary": [ReasoningServiceError("Gemini API error: 500 internal"), SUMMARY_PAYLOAD],
        })
        sleep = RecordingSleep()
        client = make_client(transport, sleep)

        with pytest.raises(GenericFailure):
            asyncio.run(client.invoke(SUMMARY_CONTRACT, text="Lecture"))

        assert len(transport.calls) == 1
        assert sleep.delays == []

    def test_schema_violation_fails_fast(self):
        transport = FakeTransport({"summary": ['{"overview": "only"}', SUMMARY_PAYLOAD]})
        sleep = RecordingSleep()
        client = make_client(transport, sleep)

        with pytest.raises(SchemaViolation):
            asyncio.run(client.invoke(SUMMARY_CONTRACT, text="Lecture"))

        assert len(transport.calls) == 1
        assert sleep.delays == []
