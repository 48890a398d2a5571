"""Build session state from collaborator payloads or the local demo plans.

Payloads use the backend's snake_case keys. Generated workout plans name
their counts ``selected_sets``/``selected_reps`` while live sessions use
``target_sets``/``target_reps``; both are accepted.
"""

from __future__ import annotations

from core import (
    DEFAULT_EXERCISE_DURATION,
    DEFAULT_MET,
    DEFAULT_SETS_PER_EXERCISE,
    DEFAULT_TARGET_REPS,
)
from liveworkout.models import Exercise, SessionKind, SessionMode, SessionState, Totals

# Used when a strength session cannot be started remotely
DEMO_STRENGTH_PLAN = [
    {"name": "Push-ups", "selected_sets": 3, "selected_reps": 15, "met": 3.8},
    {"name": "Squats", "selected_sets": 3, "selected_reps": 20, "met": 5.0},
    {"name": "Plank", "selected_sets": 3, "selected_reps": 60, "met": 3.0},
]

# Used when the daily corrective plan cannot be fetched
DEMO_CORRECTIVE_PLAN = [
    {
        "name": "Chin Tucks",
        "target_area": "neck",
        "duration_seconds": 30,
        "rest_seconds": 15,
        "met": 2.0,
        "instructions": "Sit tall and draw your chin straight back.",
    },
    {
        "name": "Wall Angels",
        "target_area": "posture",
        "duration_seconds": 45,
        "rest_seconds": 15,
        "met": 2.5,
        "instructions": "Keep head, back and arms against the wall while sliding up.",
    },
    {
        "name": "Doorway Chest Stretch",
        "target_area": "shoulders",
        "duration_seconds": 30,
        "rest_seconds": 15,
        "met": 2.0,
        "instructions": "Forearms on the frame, lean forward gently.",
    },
]


def _first(data: dict, *keys, default=None):
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def exercise_from_payload(data: dict, index: int, kind: SessionKind) -> Exercise:
    """Return an :class:`Exercise` for one plan entry."""

    default_sets = 1 if kind is SessionKind.CORRECTIVE else DEFAULT_SETS_PER_EXERCISE
    rest_seconds = _first(data, "rest_seconds")
    return Exercise(
        index=index,
        name=data.get("name") or f"Exercise {index + 1}",
        target_sets=int(_first(data, "target_sets", "selected_sets", "sets", default=default_sets)),
        target_reps=int(_first(data, "target_reps", "selected_reps", "reps", default=DEFAULT_TARGET_REPS)),
        duration_seconds=int(_first(data, "duration_seconds", default=DEFAULT_EXERCISE_DURATION)),
        completed_sets=int(_first(data, "completed_sets", default=0)),
        rest_seconds=int(rest_seconds) if rest_seconds is not None else None,
        met=float(_first(data, "met", default=DEFAULT_MET)),
        target_area=data.get("target_area") or "",
        instructions=data.get("instructions") or "",
    )


def exercises_from_plan(items: list[dict], kind: SessionKind) -> list[Exercise]:
    if not items:
        raise ValueError("Plan has no exercises")
    return [exercise_from_payload(item, idx, kind) for idx, item in enumerate(items)]


def state_from_session_payload(payload: dict, mode: SessionMode = SessionMode.AUTHENTICATED) -> SessionState:
    """Return the state of a free-form session reported by ``start_session``."""

    exercises = exercises_from_plan(payload.get("exercises") or [], SessionKind.FREE_FORM)
    index = int(payload.get("current_exercise_index") or 0)
    if not 0 <= index < len(exercises):
        raise ValueError(f"Current exercise index {index} is out of range")
    totals = Totals(
        sets_completed=int(payload.get("total_sets_completed") or 0),
        calories_estimate=int(payload.get("accumulated_calories") or 0),
        fatigue=float(payload.get("accumulated_fatigue") or 0.0),
    )
    return SessionState(
        exercises,
        kind=SessionKind.FREE_FORM,
        mode=mode,
        current_index=index,
        totals=totals,
    )


def state_from_daily_plan(payload: dict, mode: SessionMode = SessionMode.AUTHENTICATED) -> SessionState:
    """Return a corrective session for a ``get_daily_plan`` response."""

    plan = payload.get("plan") or payload
    exercises = exercises_from_plan(plan.get("exercises") or [], SessionKind.CORRECTIVE)
    return SessionState(exercises, kind=SessionKind.CORRECTIVE, mode=mode)


def demo_strength_state() -> SessionState:
    return SessionState(
        exercises_from_plan(DEMO_STRENGTH_PLAN, SessionKind.FREE_FORM),
        kind=SessionKind.FREE_FORM,
        mode=SessionMode.GUEST,
    )


def demo_corrective_state() -> SessionState:
    return SessionState(
        exercises_from_plan(DEMO_CORRECTIVE_PLAN, SessionKind.CORRECTIVE),
        kind=SessionKind.CORRECTIVE,
        mode=SessionMode.GUEST,
    )
