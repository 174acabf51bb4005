import logging

import pytest

from interview_gate.interview.guard import StoppingGuard
from interview_gate.interview.scorer import TraitScorer
from interview_gate.interview.testing import ManualClock, create_scripted_session


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scorer():
    return TraitScorer()


@pytest.fixture
def guard():
    return StoppingGuard(unproductive_limit=2)


@pytest.fixture
def scripted():
    """Session already at background_asked, timer started at t=0."""
    return create_scripted_session(advance_to_background=True)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


CONFIG_ENV_VARS = (
    "INTERVIEW_TIMEBOX_MS", "INTERVIEW_UNPRODUCTIVE_LIMIT", "INTERVIEWER_NAME",
    "INTERVIEW_LOG_FILE", "INTERVIEW_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
