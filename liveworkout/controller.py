"""Orchestration of a live session.

:class:`SessionController` is the only writer of a :class:`SessionState`.
It reacts to user actions and to the two timers, asks the
:class:`ExerciseSequencer` for the resulting phase, restarts the countdown
and mirrors the change through :class:`ProgressSync`. Observers bind to
``on_state`` and receive a deep copy after every change.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path

from kivy.clock import Clock
from kivy.event import EventDispatcher

from core import DEFAULT_BODY_WEIGHT_KG, REST_ADJUST_STEP
from liveworkout import plans
from liveworkout.models import (
    CompletionResult,
    Feedback,
    Phase,
    SessionKind,
    SessionMode,
    SessionState,
    Transition,
)
from liveworkout.recovery import (
    clear_recovery_files,
    load_recovery_state,
    save_recovery_state,
)
from liveworkout.sequencer import ExerciseSequencer
from liveworkout.sync import ProgressSync, SyncCommand
from liveworkout.timers import PhaseTimer, SessionClock


class SessionController(EventDispatcher):
    """Drive one session from start to completion.

    Events:

    ``on_state(snapshot)``
        Fired after every change with a copy of the state.
    ``on_complete(result)``
        Fired once with the :class:`CompletionResult` of finalizing the
        session. Always delivered on the clock, never on the sync worker.
    ``on_exit()``
        Fired when control goes back to the caller.
    """

    __events__ = ("on_state", "on_complete", "on_exit")

    def __init__(
        self,
        state: SessionState,
        client=None,
        *,
        clock=None,
        sync: ProgressSync | None = None,
        body_weight_kg: float = DEFAULT_BODY_WEIGHT_KG,
        recovery_base: Path | None = None,
    ):
        super().__init__()
        self._clock = clock or Clock
        self.state = state
        self.sequencer = ExerciseSequencer(state, body_weight_kg=body_weight_kg)
        self.sync = sync or ProgressSync(client, state.mode)
        self.recovery_base = recovery_base
        self.completion: CompletionResult | None = None

        self.session_clock = SessionClock(self._clock, elapsed=state.elapsed_seconds)
        self.phase_timer = PhaseTimer(self._clock)
        self.session_clock.bind(elapsed=self._on_elapsed)
        self.phase_timer.bind(
            remaining=self._on_remaining,
            on_expired=self._on_phase_expired,
        )

        self._started = False
        self._closed = False

    def on_state(self, *args):
        pass

    def on_complete(self, *args):
        pass

    def on_exit(self, *args):
        pass

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_complete(self) -> bool:
        return self.state.phase is Phase.COMPLETE

    def snapshot(self) -> SessionState:
        return copy.deepcopy(self.state)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def start(self, remaining: int | None = None) -> None:
        """Start both timers.

        ``remaining`` resumes the current countdown at that value instead of
        the full phase duration.
        """

        if self._started:
            raise RuntimeError("Session already started")
        if self.is_complete:
            raise RuntimeError("Session is already complete")
        self._started = True
        if not self.state.paused:
            self.session_clock.start()
        self._restart_phase_timer(
            self.sequencer.phase_duration() if remaining is None else remaining
        )
        logging.info(
            "Started %s session (%s) with %d exercises",
            self.state.kind.value,
            self.state.mode.value,
            len(self.state.exercises),
        )
        self._save_recovery()
        self._publish()

    def log_set(self, exercise_index: int, reps: int, weight_kg: float | None = None):
        """Record a finished set locally, then mirror it in the background."""

        self._ensure_running()
        if self.state.kind is SessionKind.CORRECTIVE:
            raise RuntimeError("Corrective holds are timed; use skip() to move on")
        result = self.sequencer.log_set(exercise_index, reps, weight_kg)
        self.sync.log_set(exercise_index, reps, weight_kg, set_number=result.completed_sets)
        if result.transition:
            self._apply_transition(result.transition)
        else:
            self._save_recovery()
            self._publish()
        return result

    def skip(self) -> Transition:
        """Move on now, exactly as if the current countdown had expired.

        The timer is stopped first, which also drops an expiry that fired in
        the same tick but has not been delivered yet.
        """

        self._ensure_running()
        self.phase_timer.stop()
        transition = self.sequencer.skip_current()
        self._apply_transition(transition)
        return transition

    def finish(self) -> Transition:
        """End the session now, whatever the current phase."""

        self._ensure_running()
        self.phase_timer.stop()
        transition = self.sequencer.finish()
        self._apply_transition(transition)
        return transition

    def pause(self) -> None:
        self._ensure_running()
        if self.state.paused:
            return
        self.state.paused = True
        self.session_clock.pause()
        self.phase_timer.pause()
        self._save_recovery()
        self._publish()

    def resume(self) -> None:
        self._ensure_running()
        if not self.state.paused:
            return
        self.state.paused = False
        self.session_clock.resume()
        self.phase_timer.resume()
        self._save_recovery()
        self._publish()

    def add_rest_time(self, seconds: int = REST_ADJUST_STEP) -> None:
        """Lengthen (or with a negative value shorten) the running rest."""

        self._ensure_running()
        if self.state.phase is not Phase.REST:
            raise RuntimeError("Rest time can only be adjusted while resting")
        self.phase_timer.add_time(seconds)
        if not self.is_complete:
            self.state.phase_time_remaining = int(self.phase_timer.remaining)
            self._publish()

    def submit_feedback(self, feedback) -> None:
        """Attach ``better``/``same`` to a completed session.

        After :meth:`exit` the feedback is still recorded locally, but
        nothing is sent any more.
        """

        if not self.is_complete:
            raise RuntimeError("Feedback can only be given after completion")
        self.state.feedback = Feedback(feedback)
        self.sync.send_feedback(
            self.state.elapsed_seconds,
            self.state.exercises_completed,
            self.state.feedback.value,
        )
        self._publish()

    def exit(self) -> None:
        """Hand control back to the caller."""

        self.teardown()
        self.dispatch("on_exit")

    def cancel(self) -> None:
        """Discard the session without completing it.

        Only free-form sessions exist remotely before completion, so only
        they are cancelled on the backend.
        """

        if self._closed:
            raise RuntimeError("Session has been closed")
        if self.is_complete:
            raise RuntimeError("Session is already complete")
        self._stop_timers()
        if self.recovery_base:
            clear_recovery_files(self.recovery_base)
        if self.state.kind is SessionKind.FREE_FORM:
            self.sync.cancel_session()
        logging.info("Session discarded at exercise %d", self.state.current_index)
        self._close()
        self.dispatch("on_exit")

    def teardown(self) -> None:
        """Stop all timers when the view goes away.

        An unfinished session is kept in the recovery files so it can be
        resumed later.
        """

        if self._closed:
            return
        self._stop_timers()
        if not self.is_complete:
            self._save_recovery()
        self._close()

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _on_elapsed(self, instance, value):
        self.state.elapsed_seconds = int(value)
        self._publish()

    def _on_remaining(self, instance, value):
        if self.is_complete:
            return
        self.state.phase_time_remaining = int(value)
        self._publish()

    def _on_phase_expired(self, instance):
        if self.is_complete or self._closed:
            return
        self._apply_transition(self.sequencer.expire_phase())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_running(self) -> None:
        if not self._started:
            raise RuntimeError("Session not started")
        if self._closed:
            raise RuntimeError("Session has been closed")
        if self.is_complete:
            raise RuntimeError("Session is already complete")

    def _restart_phase_timer(self, duration: int) -> None:
        if self.sequencer.phase_is_timed:
            self.phase_timer.restart(duration, paused=self.state.paused)
        else:
            self.phase_timer.clear()
        self.state.phase_time_remaining = int(self.phase_timer.remaining)

    def _apply_transition(self, transition: Transition) -> None:
        logging.info(
            "Phase %s -> %s at exercise %d",
            transition.previous.value,
            transition.phase.value,
            transition.current_index,
        )
        if transition.phase is Phase.COMPLETE:
            self._complete()
            return
        self._restart_phase_timer(transition.duration)
        self._save_recovery()
        self._publish()

    def _complete(self) -> None:
        self._stop_timers()
        self.state.phase_time_remaining = 0
        self.state.paused = False
        if self.recovery_base:
            clear_recovery_files(self.recovery_base)
        self._publish()
        logging.info(
            "Session complete after %d seconds, %d exercises done",
            self.state.elapsed_seconds,
            self.state.exercises_completed,
        )
        future = self.sync.complete_session(
            self.state.elapsed_seconds, self.state.exercises_completed
        )
        future.add_done_callback(self._on_completion_done)

    def _on_completion_done(self, future) -> None:
        # may run on the sync worker; hand the result over to the clock
        result = future.result()
        self._clock.schedule_once(lambda dt: self._deliver_completion(result), 0)

    def _deliver_completion(self, result: CompletionResult) -> None:
        self.completion = result
        if not result.success:
            logging.warning("Session could not be saved: %s", result.error)
        self.dispatch("on_complete", result)

    def _stop_timers(self) -> None:
        self.phase_timer.stop()
        self.session_clock.stop()

    def _close(self) -> None:
        self._closed = True
        self.sync.close(wait=False)

    def _save_recovery(self) -> None:
        if not self.recovery_base:
            return
        save_recovery_state(
            {
                "state": self.state.to_dict(),
                "failed_sync": [
                    command.to_dict() for command in self.sync.failed_commands()
                ],
            },
            self.recovery_base,
        )

    def _publish(self) -> None:
        self.dispatch("on_state", self.snapshot())


# ----------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------


def start_live_session(
    client=None,
    mode: SessionMode = SessionMode.AUTHENTICATED,
    *,
    plan: list[dict] | None = None,
    clock=None,
    body_weight_kg: float = DEFAULT_BODY_WEIGHT_KG,
    recovery_base: Path | None = None,
) -> SessionController:
    """Start a free-form strength session.

    Authenticated sessions are opened through ``client.start_session()``.
    If that fails the session runs in guest mode on ``plan`` (or the demo
    plan) and nothing is sent to the backend.
    """

    state = None
    if mode is SessionMode.AUTHENTICATED and client is not None:
        try:
            state = plans.state_from_session_payload(client.start_session(), mode)
        except Exception:
            logging.exception("Could not start session remotely, continuing as guest")
    if state is None:
        if plan:
            state = SessionState(
                plans.exercises_from_plan(plan, SessionKind.FREE_FORM),
                kind=SessionKind.FREE_FORM,
                mode=SessionMode.GUEST,
            )
        else:
            state = plans.demo_strength_state()

    controller = SessionController(
        state,
        client,
        clock=clock,
        body_weight_kg=body_weight_kg,
        recovery_base=recovery_base,
    )
    controller.start()
    return controller


def start_corrective_session(
    client=None,
    mode: SessionMode = SessionMode.AUTHENTICATED,
    *,
    exercises: list[dict] | None = None,
    clock=None,
    body_weight_kg: float = DEFAULT_BODY_WEIGHT_KG,
    recovery_base: Path | None = None,
) -> SessionController:
    """Start a corrective session of timed holds.

    ``exercises`` (already fetched by the caller) take precedence over
    ``client.get_daily_plan()``. Without either, the demo plan runs as guest.
    """

    state = None
    guest = mode is SessionMode.GUEST or client is None
    if exercises:
        state = SessionState(
            plans.exercises_from_plan(exercises, SessionKind.CORRECTIVE),
            kind=SessionKind.CORRECTIVE,
            mode=SessionMode.GUEST if guest else mode,
        )
    elif not guest:
        try:
            state = plans.state_from_daily_plan(client.get_daily_plan(), mode)
        except Exception:
            logging.exception("Could not load the daily plan, continuing as guest")
    if state is None:
        state = plans.demo_corrective_state()

    controller = SessionController(
        state,
        client,
        clock=clock,
        body_weight_kg=body_weight_kg,
        recovery_base=recovery_base,
    )
    controller.start()
    return controller


def resume_from_recovery(
    client=None,
    *,
    recovery_base: Path,
    client_factory=None,
    clock=None,
    body_weight_kg: float = DEFAULT_BODY_WEIGHT_KG,
) -> SessionController | None:
    """Rebuild and restart the session kept in the recovery files.

    ``client_factory(kind)`` picks the collaborator matching the recovered
    :class:`SessionKind`; it takes precedence over ``client``.
    """

    data = load_recovery_state(recovery_base)
    if not data:
        return None
    state = SessionState.from_dict(data["state"])
    if state.phase is Phase.COMPLETE:
        clear_recovery_files(recovery_base)
        return None
    if client_factory is not None:
        client = client_factory(state.kind)

    controller = SessionController(
        state,
        client,
        clock=clock,
        body_weight_kg=body_weight_kg,
        recovery_base=recovery_base,
    )
    controller.sync.failed.extend(
        SyncCommand(**command) for command in data.get("failed_sync", [])
    )
    controller.start(remaining=state.phase_time_remaining)
    return controller
