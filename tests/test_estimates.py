import argparse

from liveworkout import settings
from liveworkout.api_client import LiveWorkoutClient, PostureCareClient
from liveworkout.estimates import add_fatigue, calories_for_seconds, hold_calories, set_calories
from liveworkout.models import Exercise, Phase, SessionKind
from main import client_for, describe, format_seconds
from utils import make_state


def test_set_calories_rounds_down():
    # 12 reps * 3s at MET 5 for 70kg: 5 * 70 * 36 / 3600 = 3.5
    assert set_calories(Exercise(0, "Squats", met=5.0), 12) == 3
    assert set_calories(Exercise(0, "Squats", met=5.0), 12, weight_kg=0) == 0


def test_hold_calories_use_planned_duration():
    hold = Exercise(0, "Plank", duration_seconds=60, met=3.0)
    assert hold_calories(hold, 90) == 4
    assert calories_for_seconds(3.0, 0) == 0


def test_fatigue_is_capped():
    assert add_fatigue(0.0) == 0.2
    assert add_fatigue(1.0, 3) == 1.6
    assert add_fatigue(9.9, 5) == 10.0


def test_describe_lines():
    assert format_seconds(75) == "01:15"
    state = make_state(2, kind=SessionKind.CORRECTIVE)
    state.phase_time_remaining = 12
    assert describe(state) == "[00:00] exercise Exercise 1 set 0/2 (00:12 left)"
    state.phase = Phase.COMPLETE
    state.current_index = 2
    assert describe(state).startswith("[00:00] complete")


def test_client_for_matches_session_kind(monkeypatch):
    monkeypatch.setattr(
        settings,
        "_settings_cache",
        [{"key": "api_base_url", "value": "http://stored.test/api", "type": "str"}],
    )
    args = argparse.Namespace(guest=False, token="tok")
    assert isinstance(client_for(SessionKind.CORRECTIVE, args), PostureCareClient)
    assert isinstance(client_for(SessionKind.FREE_FORM, args), LiveWorkoutClient)
    assert client_for(SessionKind.FREE_FORM, argparse.Namespace(guest=True, token=None)) is None
