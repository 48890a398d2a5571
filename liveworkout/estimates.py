"""Client-side calorie and fatigue estimates.

Calories follow the MET formula ``MET * weight_kg * hours``. A logged set is
assumed to take :data:`core.SECONDS_PER_REP` seconds per repetition, a
corrective hold its planned duration. Results are rounded down to whole
calories.
"""

from __future__ import annotations

import math

from core import (
    DEFAULT_BODY_WEIGHT_KG,
    FATIGUE_PER_SET,
    MAX_FATIGUE,
    SECONDS_PER_REP,
)
from liveworkout.models import Exercise


def calories_for_seconds(met: float, seconds: float, weight_kg: float = DEFAULT_BODY_WEIGHT_KG) -> int:
    if seconds <= 0 or met <= 0 or weight_kg <= 0:
        return 0
    return math.floor(met * weight_kg * seconds / 3600)


def set_calories(exercise: Exercise, reps: int, weight_kg: float = DEFAULT_BODY_WEIGHT_KG) -> int:
    """Return the estimate for one logged set of ``reps`` repetitions."""

    return calories_for_seconds(exercise.met, reps * SECONDS_PER_REP, weight_kg)


def hold_calories(exercise: Exercise, weight_kg: float = DEFAULT_BODY_WEIGHT_KG) -> int:
    """Return the estimate for a full timed hold of ``exercise``."""

    return calories_for_seconds(exercise.met, exercise.duration_seconds, weight_kg)


def add_fatigue(current: float, sets: int = 1) -> float:
    return round(min(current + FATIGUE_PER_SET * sets, MAX_FATIGUE), 2)
