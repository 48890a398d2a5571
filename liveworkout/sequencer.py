from __future__ import annotations

from core import DEFAULT_BODY_WEIGHT_KG
from liveworkout.estimates import add_fatigue, hold_calories, set_calories
from liveworkout.models import (
    AdvanceResult,
    Phase,
    SequencerResult,
    SessionKind,
    SessionState,
    Transition,
)


class ExerciseSequencer:
    """Ordered exercise list with the phase state machine of a session.

    The sequencer mutates the :class:`SessionState` it was given and reports
    every phase change as a :class:`Transition`. It owns no timers; the
    caller restarts the countdown using ``Transition.duration``.

    ``Exercise -> Rest`` happens when all sets are logged, the exercise
    countdown expires or the user skips, unless it is the last exercise, in
    which case the session completes directly. ``Rest -> Exercise`` advances
    the index first. ``Complete`` is terminal.
    """

    def __init__(self, state: SessionState, body_weight_kg: float = DEFAULT_BODY_WEIGHT_KG):
        if not state.exercises:
            raise ValueError("A session needs at least one exercise")
        self.state = state
        self.body_weight_kg = body_weight_kg

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_complete(self) -> bool:
        return self.state.phase is Phase.COMPLETE

    @property
    def is_last_exercise(self) -> bool:
        return self.state.current_index >= len(self.state.exercises) - 1

    @property
    def phase_is_timed(self) -> bool:
        """Whether the current phase runs a countdown.

        Rest is always timed. Free-form exercise phases are open ended.
        """

        if self.state.phase is Phase.REST:
            return True
        if self.state.phase is Phase.EXERCISE:
            return self.state.kind is SessionKind.CORRECTIVE
        return False

    def phase_duration(self) -> int:
        """Return the countdown length for the current phase."""

        exercise = self.state.current_exercise
        if exercise is None or not self.phase_is_timed:
            return 0
        if self.state.phase is Phase.REST:
            return exercise.rest_for(self.state.kind)
        return exercise.duration_seconds

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def log_set(self, exercise_index: int, reps: int, weight_kg: float | None = None) -> SequencerResult:
        """Count one finished set of the current exercise.

        ``weight_kg`` is the load lifted; it is only mirrored to the backend
        and does not take part in the local estimates.
        """

        self._ensure_active()
        if self.state.phase is not Phase.EXERCISE:
            raise RuntimeError("Sets can only be logged during an exercise phase")
        if exercise_index != self.state.current_index:
            raise ValueError(
                f"Cannot log a set for exercise {exercise_index} while "
                f"exercise {self.state.current_index} is active"
            )
        if reps < 1:
            raise ValueError("A set needs at least one rep")

        exercise = self.state.exercises[exercise_index]
        exercise.completed_sets = min(exercise.completed_sets + 1, exercise.target_sets)
        calories = set_calories(exercise, reps, self.body_weight_kg)
        totals = self.state.totals
        totals.sets_completed += 1
        totals.calories_estimate += calories
        totals.fatigue = add_fatigue(totals.fatigue)

        result = SequencerResult(
            exercise_index=exercise_index,
            completed_sets=exercise.completed_sets,
            exercise_complete=exercise.is_complete,
            calories=calories,
        )
        if result.exercise_complete:
            result.transition = self._leave_exercise(credit_hold=False)
        return result

    def advance(self) -> AdvanceResult:
        self._ensure_active()
        if self.state.current_index + 1 < len(self.state.exercises):
            self.state.current_index += 1
            return AdvanceResult(next=self.state.exercises[self.state.current_index])
        return AdvanceResult(session_complete=True)

    def expire_phase(self) -> Transition:
        """React to the countdown of the current phase reaching zero."""

        return self._complete_phase()

    def skip_current(self) -> Transition:
        """Force the transition an expiry would cause, without waiting."""

        return self._complete_phase()

    def finish(self) -> Transition:
        """End the session early from any phase."""

        self._ensure_active()
        return self._enter_complete(self.state.phase)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_active(self) -> None:
        if self.is_complete:
            raise RuntimeError("Session is already complete")

    def _complete_phase(self) -> Transition:
        self._ensure_active()
        if self.state.phase is Phase.EXERCISE:
            return self._leave_exercise(
                credit_hold=self.state.kind is SessionKind.CORRECTIVE
            )
        return self._leave_rest()

    def _leave_exercise(self, credit_hold: bool) -> Transition:
        exercise = self.state.current_exercise
        if credit_hold and not exercise.is_complete:
            # a finished hold counts as every planned set of that exercise
            missing = exercise.target_sets - exercise.completed_sets
            exercise.completed_sets = exercise.target_sets
            totals = self.state.totals
            totals.sets_completed += missing
            totals.calories_estimate += hold_calories(exercise, self.body_weight_kg)
            totals.fatigue = add_fatigue(totals.fatigue, missing)

        if self.is_last_exercise:
            return self._enter_complete(Phase.EXERCISE)

        self.state.phase = Phase.REST
        return Transition(
            previous=Phase.EXERCISE,
            phase=Phase.REST,
            current_index=self.state.current_index,
            duration=self.phase_duration(),
        )

    def _leave_rest(self) -> Transition:
        result = self.advance()
        if result.session_complete:
            return self._enter_complete(Phase.REST)
        self.state.phase = Phase.EXERCISE
        return Transition(
            previous=Phase.REST,
            phase=Phase.EXERCISE,
            current_index=self.state.current_index,
            duration=self.phase_duration(),
        )

    def _enter_complete(self, previous: Phase) -> Transition:
        self.state.phase = Phase.COMPLETE
        self.state.current_index = len(self.state.exercises)
        self.state.phase_time_remaining = 0
        return Transition(
            previous=previous,
            phase=Phase.COMPLETE,
            current_index=self.state.current_index,
            duration=0,
        )
