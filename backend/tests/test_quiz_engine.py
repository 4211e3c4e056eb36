"""
Unit tests for the adaptive assessment engine.
"""
import asyncio
import itertools

import pytest

from core.errors import (
    GenericFailure,
    InvalidSelection,
    InvalidTransition,
    StageTimeout,
    SupersededError,
)
from core.gemini_client import ReasoningServiceError
from models.session_models import QuizDirective, QuizPhase
from services.assessment.quiz_engine import (
    AdaptiveAssessmentEngine,
    compute_directive,
    render_directive,
)
from fakes import FakeTransport, make_client, quiz_payload


def make_engine(transport, question_count=5):
    return AdaptiveAssessmentEngine(client=make_client(transport), question_count=question_count)


def answer_all(engine, state, correct_flags):
    """Answer every question, choosing the right option where the flag is set."""
    for n, correct in enumerate(correct_flags, start=1):
        engine.select(state, f"A{n}" if correct else f"B{n}")
        engine.submit(state)
        engine.advance(state)


class TestDirective:
    """Test directive selection from the previous score."""

    @pytest.mark.parametrize("score,total,expected", [
        (0, 5, QuizDirective.EASIER),
        (2, 5, QuizDirective.EASIER),
        (3, 5, None),
        (4, 5, None),
        (5, 5, QuizDirective.ADVANCED),
        (2, 4, None),
        (1, 4, QuizDirective.EASIER),
    ])
    def test_directive_table(self, score, total, expected):
        assert compute_directive(score, total) == expected

    def test_easier_text(self):
        text = render_directive(QuizDirective.EASIER, 1, 5, 5)
        assert "1/5" in text
        assert "easier questions focusing on fundamentals" in text

    def test_advanced_text(self):
        text = render_directive(QuizDirective.ADVANCED, 5, 5, 5)
        assert "advanced-level application-based questions" in text

    def test_neutral_has_no_text(self):
        assert render_directive(None, 3, 5) == ""


class TestStartQuiz:
    """Test quiz session creation."""

    def test_requires_ready_analysis(self, state):
        transport = FakeTransport({})
        with pytest.raises(InvalidTransition, match="not ready"):
            asyncio.run(make_engine(transport).start_quiz(state, "t1"))
        assert transport.calls == []

    def test_unknown_topic_rejected(self, ready_state):
        transport = FakeTransport({})
        with pytest.raises(InvalidTransition, match="Unknown topic"):
            asyncio.run(make_engine(transport).start_quiz(ready_state, "missing"))
        assert transport.calls == []

    def test_starts_presenting_first_question(self, ready_state):
        transport = FakeTransport({"quiz": [quiz_payload(5)]})

        session = asyncio.run(make_engine(transport).start_quiz(ready_state, "t1"))

        assert ready_state.quiz is session
        assert session.topic.topic_id == "t1"
        assert session.total == 5
        assert session.current_index == 0
        assert session.phase == QuizPhase.PRESENTING
        assert session.score == 0
        assert session.attempt == 1
        assert session.directive is None
        prompt = transport.requests[0].contents
        assert "First Law" in prompt
        assert prompt.startswith("Generate 5 multiple-choice questions")

    def test_generation_failure_leaves_no_session(self, ready_state):
        transport = FakeTransport({"quiz": [ReasoningServiceError("500 internal")]})

        with pytest.raises(GenericFailure):
            asyncio.run(make_engine(transport).start_quiz(ready_state, "t1"))

        assert ready_state.quiz is None

    def test_generation_timeout_leaves_no_session(self, ready_state):
        class HangingTransport(FakeTransport):
            async def generate_content(self, request):
                await asyncio.sleep(10)

        engine = AdaptiveAssessmentEngine(
            client=make_client(HangingTransport({})), generation_timeout=0.01
        )

        with pytest.raises(StageTimeout) as exc_info:
            asyncio.run(engine.start_quiz(ready_state, "t1"))

        assert exc_info.value.stage == "quiz"
        assert ready_state.quiz is None

    def test_starting_another_quiz_replaces_session(self, ready_state):
        transport = FakeTransport({"quiz": [quiz_payload(5), quiz_payload(3, prefix="r")]})
        engine = make_engine(transport)

        first = asyncio.run(engine.start_quiz(ready_state, "t1"))
        second = asyncio.run(engine.start_quiz(ready_state, "t2"))

        assert ready_state.quiz is second
        assert second.token != first.token
        assert second.topic.topic_id == "t2"


class TestAnswering:
    """Test the Presenting/Answered/Completed state machine."""

    @pytest.fixture
    def engine(self, ready_state):
        engine = make_engine(FakeTransport({"quiz": [quiz_payload(3)]}), question_count=3)
        asyncio.run(engine.start_quiz(ready_state, "t1"))
        return engine

    def test_selection_can_change_before_submit(self, engine, ready_state):
        engine.select(ready_state, "B1")
        engine.select(ready_state, "A1")

        assert ready_state.quiz.selection == "A1"
        assert ready_state.quiz.score == 0
        assert ready_state.quiz.phase == QuizPhase.PRESENTING

    def test_unknown_option_rejected(self, engine, ready_state):
        with pytest.raises(InvalidSelection):
            engine.select(ready_state, "Z9")

    def test_submit_without_selection_rejected(self, engine, ready_state):
        with pytest.raises(InvalidTransition, match="Select an option"):
            engine.submit(ready_state)

    def test_correct_submit_scores(self, engine, ready_state):
        engine.select(ready_state, "A1")

        assert engine.submit(ready_state) is True
        assert ready_state.quiz.score == 1
        assert ready_state.quiz.phase == QuizPhase.ANSWERED
        assert ready_state.quiz.answers == {0: "A1"}

    def test_wrong_submit_does_not_score(self, engine, ready_state):
        engine.select(ready_state, "C1")

        assert engine.submit(ready_state) is False
        assert ready_state.quiz.score == 0

    def test_answered_question_is_locked(self, engine, ready_state):
        engine.select(ready_state, "A1")
        engine.submit(ready_state)

        with pytest.raises(InvalidTransition):
            engine.select(ready_state, "B1")
        with pytest.raises(InvalidTransition):
            engine.submit(ready_state)
        assert ready_state.quiz.score == 1

    def test_advance_requires_answer(self, engine, ready_state):
        with pytest.raises(InvalidTransition):
            engine.advance(ready_state)

    def test_advance_moves_to_next_question(self, engine, ready_state):
        engine.select(ready_state, "A1")
        engine.submit(ready_state)

        session = engine.advance(ready_state)

        assert session.current_index == 1
        assert session.selection is None
        assert session.phase == QuizPhase.PRESENTING

    def test_advance_past_last_question_completes(self, engine, ready_state):
        answer_all(engine, ready_state, [True, False, True])

        session = ready_state.quiz
        assert session.phase == QuizPhase.COMPLETED
        assert session.is_completed
        assert session.score == 2
        assert session.current_index == 2

    def test_completed_session_rejects_answering(self, engine, ready_state):
        answer_all(engine, ready_state, [True, False, True])

        for operation in (
            lambda: engine.select(ready_state, "A3"),
            lambda: engine.submit(ready_state),
            lambda: engine.advance(ready_state),
        ):
            with pytest.raises(InvalidTransition):
                operation()

        session = ready_state.quiz
        assert session.phase == QuizPhase.COMPLETED
        assert session.score == 2
        assert session.current_index == 2
        assert session.answers == {0: "A1", 1: "B2", 2: "A3"}

    def test_no_operations_without_session(self, state):
        engine = make_engine(FakeTransport({}))
        with pytest.raises(InvalidTransition, match="No active quiz"):
            engine.select(state, "A1")

    def test_score_never_exceeds_total(self, ready_state):
        for flags in itertools.product([True, False], repeat=3):
            engine = make_engine(FakeTransport({"quiz": [quiz_payload(3)]}), question_count=3)
            asyncio.run(engine.start_quiz(ready_state, "t1"))

            answer_all(engine, ready_state, flags)

            assert 0 <= ready_state.quiz.score <= ready_state.quiz.total
            assert ready_state.quiz.score == sum(flags)


class TestAdaptiveRetake:
    """Test score-driven regeneration."""

    def completed_session(self, ready_state, transport, flags):
        engine = make_engine(transport, question_count=len(flags))
        asyncio.run(engine.start_quiz(ready_state, "t1"))
        answer_all(engine, ready_state, flags)
        return engine

    def test_retake_requires_completion(self, ready_state):
        engine = make_engine(FakeTransport({"quiz": [quiz_payload(5)]}))
        asyncio.run(engine.start_quiz(ready_state, "t1"))

        with pytest.raises(InvalidTransition, match="Cannot retake"):
            asyncio.run(engine.adaptive_retake(ready_state))

    def test_low_score_requests_easier_questions(self, ready_state):
        transport = FakeTransport({"quiz": [quiz_payload(5), quiz_payload(5, prefix="r")]})
        engine = self.completed_session(ready_state, transport, [False] * 5)
        completed = ready_state.quiz

        session = asyncio.run(engine.adaptive_retake(ready_state))

        assert ready_state.quiz is session
        assert session.token != completed.token
        assert session.attempt == 2
        assert session.directive == QuizDirective.EASIER
        assert session.score == 0
        assert session.current_index == 0
        assert session.phase == QuizPhase.PRESENTING
        assert session.topic == completed.topic
        assert session.questions[0].question_id == "r1"
        assert transport.requests[-1].contents.startswith("The student answered 0/5")
        assert "easier questions" in transport.requests[-1].contents

    def test_perfect_score_requests_advanced_questions(self, ready_state):
        transport = FakeTransport({"quiz": [quiz_payload(5), quiz_payload(5, prefix="r")]})
        engine = self.completed_session(ready_state, transport, [True] * 5)

        session = asyncio.run(engine.adaptive_retake(ready_state))

        assert session.directive == QuizDirective.ADVANCED
        assert "advanced-level" in transport.requests[-1].contents

    def test_middle_score_regenerates_without_directive(self, ready_state):
        transport = FakeTransport({"quiz": [quiz_payload(5), quiz_payload(5, prefix="r")]})
        engine = self.completed_session(ready_state, transport, [True, True, True, False, False])

        session = asyncio.run(engine.adaptive_retake(ready_state))

        assert session.directive is None
        assert transport.requests[-1].contents.startswith("Generate 5 multiple-choice questions")

    def test_failed_retake_keeps_completed_session(self, ready_state):
        transport = FakeTransport({
            "quiz": [quiz_payload(5), ReasoningServiceError("Gemini API error: 500 internal")],
        })
        engine = self.completed_session(ready_state, transport, [False] * 5)
        completed = ready_state.quiz

        with pytest.raises(GenericFailure):
            asyncio.run(engine.adaptive_retake(ready_state))

        assert ready_state.quiz is completed
        assert completed.phase == QuizPhase.COMPLETED
        assert completed.score == 0
        assert completed.attempt == 1

    def test_timed_out_retake_keeps_completed_session(self, ready_state):
        class SlowRetakeTransport(FakeTransport):
            async def generate_content(self, request):
                if self.calls:
                    await asyncio.sleep(10)
                return await super().generate_content(request)

        transport = SlowRetakeTransport({"quiz": [quiz_payload(5)]})
        engine = self.completed_session(ready_state, transport, [True] * 5)
        engine.generation_timeout = 0.01
        completed = ready_state.quiz

        with pytest.raises(StageTimeout):
            asyncio.run(engine.adaptive_retake(ready_state))

        assert ready_state.quiz is completed
        assert completed.phase == QuizPhase.COMPLETED
        assert completed.score == 5

    def test_retake_superseded_by_new_analysis(self, ready_state):
        class ResettingTransport(FakeTransport):
            async def generate_content(self, request):
                result = await super().generate_content(request)
                if len(self.calls) == 2:
                    ready_state.reset()
                return result

        transport = ResettingTransport({"quiz": [quiz_payload(5), quiz_payload(5, prefix="r")]})
        engine = self.completed_session(ready_state, transport, [True] * 5)

        with pytest.raises(SupersededError):
            asyncio.run(engine.adaptive_retake(ready_state))

        assert ready_state.quiz is None
