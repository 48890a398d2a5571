"""Test doubles shared by the session engine tests."""

from __future__ import annotations

import threading
import time

from liveworkout.models import Exercise, SessionKind, SessionMode, SessionState


class ManualEvent:
    def __init__(self, clock, callback, timeout, repeat):
        self.clock = clock
        self.callback = callback
        self.timeout = timeout
        self.repeat = repeat
        self.cancelled = False

    def cancel(self):
        self.cancelled = True
        self.clock._discard(self)


class ManualClock:
    """Stand-in for ``kivy.clock.Clock`` that only moves when told to.

    :meth:`tick_intervals` fires every interval callback once (one second of
    real time); :meth:`run_pending` then runs callbacks scheduled with
    ``schedule_once``, the way the next Kivy frame would.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.intervals: list[ManualEvent] = []
        self.once: list[ManualEvent] = []

    def schedule_interval(self, callback, timeout):
        event = ManualEvent(self, callback, timeout, repeat=True)
        with self._lock:
            self.intervals.append(event)
        return event

    def schedule_once(self, callback, timeout=0):
        event = ManualEvent(self, callback, timeout, repeat=False)
        with self._lock:
            self.once.append(event)
        return event

    def _discard(self, event):
        with self._lock:
            for events in (self.intervals, self.once):
                if event in events:
                    events.remove(event)

    def tick_intervals(self):
        with self._lock:
            due = list(self.intervals)
        for event in due:
            if not event.cancelled:
                event.callback(1.0)

    def run_pending(self):
        while True:
            with self._lock:
                if not self.once:
                    return
                event = self.once.pop(0)
            if not event.cancelled:
                event.callback(0)

    def advance(self, seconds=1):
        for _ in range(seconds):
            self.tick_intervals()
            self.run_pending()


class RecordingClient:
    """Collaborator double that records every call it receives.

    Method names listed in ``fail`` raise ``ConnectionError`` after being
    recorded.
    """

    def __init__(self, start_payload=None, plan_payload=None, fail=(), message="Session saved"):
        self.start_payload = start_payload
        self.plan_payload = plan_payload
        self.fail = set(fail)
        self.message = message
        self.calls: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def _record(self, name, **kwargs):
        with self._lock:
            self.calls.append((name, kwargs))
        if name in self.fail:
            raise ConnectionError(f"{name} unavailable")

    def names(self):
        with self._lock:
            return [name for name, _ in self.calls]

    def start_session(self):
        self._record("start_session")
        return self.start_payload

    def get_daily_plan(self):
        self._record("get_daily_plan")
        return self.plan_payload

    def log_set(self, exercise_index, reps, weight_kg=None):
        self._record("log_set", exercise_index=exercise_index, reps=reps, weight_kg=weight_kg)

    def complete_session(self, duration_seconds, exercises_completed, feedback=None):
        self._record(
            "complete_session",
            duration_seconds=duration_seconds,
            exercises_completed=exercises_completed,
            feedback=feedback,
        )
        return {"message": self.message}

    def cancel_session(self):
        self._record("cancel_session")


def wait_for_completion(clock, controller, timeout=5.0):
    """Pump ``clock`` until the controller has delivered its completion."""
    deadline = time.monotonic() + timeout
    while controller.completion is None and time.monotonic() < deadline:
        clock.run_pending()
        time.sleep(0.01)
    return controller.completion


def make_state(
    count=3,
    *,
    kind=SessionKind.FREE_FORM,
    mode=SessionMode.GUEST,
    target_sets=2,
    duration_seconds=30,
    rest_seconds=None,
):
    exercises = [
        Exercise(
            index=idx,
            name=f"Exercise {idx + 1}",
            target_sets=target_sets,
            target_reps=10,
            duration_seconds=duration_seconds,
            rest_seconds=rest_seconds,
        )
        for idx in range(count)
    ]
    return SessionState(exercises, kind=kind, mode=mode)
