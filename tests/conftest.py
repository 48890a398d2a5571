import os
import sys
from pathlib import Path

import pytest

# Keep Kivy quiet and away from the command line and root logger
os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_LOG_MODE", "PYTHON")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from liveworkout.controller import SessionController  # noqa: E402
from liveworkout.models import SessionKind, SessionMode  # noqa: E402
from utils import ManualClock, RecordingClient, make_state  # noqa: E402


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def client():
    return RecordingClient()


@pytest.fixture
def free_form_session(clock):
    """Started guest session: 3 exercises of 2 sets, no exercise countdown."""
    controller = SessionController(make_state(3, target_sets=2), clock=clock)
    controller.start()
    yield controller
    controller.teardown()


@pytest.fixture
def corrective_session(clock):
    """Started guest session: 2 holds of 30s with 15s rest."""
    state = make_state(
        2,
        kind=SessionKind.CORRECTIVE,
        target_sets=1,
        duration_seconds=30,
        rest_seconds=15,
    )
    controller = SessionController(state, clock=clock)
    controller.start()
    yield controller
    controller.teardown()


@pytest.fixture
def authenticated_session(clock, client):
    """Started free-form session that mirrors writes to ``client``."""
    state = make_state(2, target_sets=2, mode=SessionMode.AUTHENTICATED)
    controller = SessionController(state, client, clock=clock)
    controller.start()
    yield controller
    controller.teardown()
    controller.sync.wait(timeout=5)
