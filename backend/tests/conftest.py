import pytest

from core.session_state import SessionState
from fakes import RecordingSleep, mark_ready


@pytest.fixture
def state():
    return SessionState()


@pytest.fixture
def ready_state(state):
    mark_ready(state)
    return state


@pytest.fixture
def sleep():
    return RecordingSleep()
