"""Data records shared by the session engine components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from core import (
    DEFAULT_CORRECTIVE_REST_DURATION,
    DEFAULT_EXERCISE_DURATION,
    DEFAULT_FREE_REST_DURATION,
    DEFAULT_MET,
    DEFAULT_SETS_PER_EXERCISE,
    DEFAULT_TARGET_REPS,
)


class Phase(str, Enum):
    EXERCISE = "exercise"
    REST = "rest"
    COMPLETE = "complete"


class SessionMode(str, Enum):
    AUTHENTICATED = "authenticated"
    GUEST = "guest"


class SessionKind(str, Enum):
    """Flavor of a session.

    ``FREE_FORM`` sessions log sets one by one with no exercise countdown.
    ``CORRECTIVE`` sessions run every exercise as a timed hold.
    """

    FREE_FORM = "free_form"
    CORRECTIVE = "corrective"

    @property
    def default_rest(self) -> int:
        if self is SessionKind.CORRECTIVE:
            return DEFAULT_CORRECTIVE_REST_DURATION
        return DEFAULT_FREE_REST_DURATION


class Feedback(str, Enum):
    BETTER = "better"
    SAME = "same"


@dataclass
class Exercise:
    """One entry of a session plan with its live progress."""

    index: int
    name: str
    target_sets: int = DEFAULT_SETS_PER_EXERCISE
    target_reps: int = DEFAULT_TARGET_REPS
    duration_seconds: int = DEFAULT_EXERCISE_DURATION
    completed_sets: int = 0
    rest_seconds: int | None = None
    met: float = DEFAULT_MET
    target_area: str = ""
    instructions: str = ""

    def __post_init__(self) -> None:
        if self.target_sets < 1:
            raise ValueError(f"Exercise '{self.name}' needs at least one set")
        if self.target_reps < 1:
            raise ValueError(f"Exercise '{self.name}' needs at least one rep")
        if self.duration_seconds < 0:
            raise ValueError(f"Exercise '{self.name}' has a negative duration")
        if self.rest_seconds is not None and self.rest_seconds < 0:
            raise ValueError(f"Exercise '{self.name}' has a negative rest time")
        self.completed_sets = max(0, min(self.completed_sets, self.target_sets))

    @property
    def is_complete(self) -> bool:
        return self.completed_sets >= self.target_sets

    def rest_for(self, kind: SessionKind) -> int:
        """Return the rest countdown that follows this exercise."""

        if self.rest_seconds is None:
            return kind.default_rest
        return self.rest_seconds

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "name": self.name,
            "target_sets": self.target_sets,
            "target_reps": self.target_reps,
            "duration_seconds": self.duration_seconds,
            "completed_sets": self.completed_sets,
            "rest_seconds": self.rest_seconds,
            "met": self.met,
            "target_area": self.target_area,
            "instructions": self.instructions,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Exercise":
        return cls(**data)


@dataclass
class Totals:
    sets_completed: int = 0
    calories_estimate: int = 0
    fatigue: float = 0.0


@dataclass
class SessionState:
    """Complete local state of a running session.

    The controller is the only writer. Observers receive deep copies via
    :meth:`SessionController.snapshot`.
    """

    exercises: list[Exercise]
    kind: SessionKind = SessionKind.FREE_FORM
    mode: SessionMode = SessionMode.GUEST
    current_index: int = 0
    phase: Phase = Phase.EXERCISE
    phase_time_remaining: int = 0
    elapsed_seconds: int = 0
    paused: bool = False
    totals: Totals = field(default_factory=Totals)
    feedback: Feedback | None = None

    @property
    def current_exercise(self) -> Exercise | None:
        if self.current_index < len(self.exercises):
            return self.exercises[self.current_index]
        return None

    @property
    def next_exercise(self) -> Exercise | None:
        if self.current_index + 1 < len(self.exercises):
            return self.exercises[self.current_index + 1]
        return None

    @property
    def exercises_completed(self) -> int:
        return sum(1 for ex in self.exercises if ex.is_complete)

    def to_dict(self) -> dict:
        return {
            "exercises": [ex.to_dict() for ex in self.exercises],
            "kind": self.kind.value,
            "mode": self.mode.value,
            "current_index": self.current_index,
            "phase": self.phase.value,
            "phase_time_remaining": self.phase_time_remaining,
            "elapsed_seconds": self.elapsed_seconds,
            "paused": self.paused,
            "totals": {
                "sets_completed": self.totals.sets_completed,
                "calories_estimate": self.totals.calories_estimate,
                "fatigue": self.totals.fatigue,
            },
            "feedback": self.feedback.value if self.feedback else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        feedback = data.get("feedback")
        return cls(
            exercises=[Exercise.from_dict(ex) for ex in data["exercises"]],
            kind=SessionKind(data.get("kind", SessionKind.FREE_FORM.value)),
            mode=SessionMode(data.get("mode", SessionMode.GUEST.value)),
            current_index=data.get("current_index", 0),
            phase=Phase(data.get("phase", Phase.EXERCISE.value)),
            phase_time_remaining=data.get("phase_time_remaining", 0),
            elapsed_seconds=data.get("elapsed_seconds", 0),
            paused=data.get("paused", False),
            totals=Totals(**data.get("totals", {})),
            feedback=Feedback(feedback) if feedback else None,
        )


@dataclass
class Transition:
    """Result of a phase change decided by the sequencer."""

    previous: Phase
    phase: Phase
    current_index: int
    duration: int


@dataclass
class AdvanceResult:
    next: Exercise | None = None
    session_complete: bool = False


@dataclass
class SequencerResult:
    exercise_index: int
    completed_sets: int
    exercise_complete: bool
    calories: int = 0
    transition: Transition | None = None


@dataclass
class CompletionResult:
    """Outcome of finalizing a session.

    ``synced`` is ``False`` when nothing was sent to the backend (guest mode).
    On failure ``message`` is withheld and ``error`` carries the reason.
    """

    success: bool
    message: str | None = None
    error: str | None = None
    synced: bool = True
