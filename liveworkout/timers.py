"""One-second timers driving a live session.

Both timers schedule themselves on the Kivy clock and keep the returned
event as an owned handle, so stopping a timer always cancels its callback.
A different clock object (anything with ``schedule_interval`` and
``schedule_once``) can be injected, which is how the tests step time.
"""

from __future__ import annotations

from kivy.clock import Clock
from kivy.event import EventDispatcher
from kivy.properties import BooleanProperty, NumericProperty


class _SecondTimer(EventDispatcher):
    running = BooleanProperty(False)

    def __init__(self, clock=None):
        super().__init__()
        self._clock = clock or Clock
        self._event = None

    def _schedule(self) -> None:
        self._cancel()
        self._event = self._clock.schedule_interval(self._tick, 1.0)
        self.running = True

    def _cancel(self) -> None:
        if self._event is not None:
            self._event.cancel()
            self._event = None
        self.running = False

    def _tick(self, dt):
        raise NotImplementedError


class SessionClock(_SecondTimer):
    """Elapsed seconds for a whole session."""

    elapsed = NumericProperty(0)
    finished = BooleanProperty(False)

    def __init__(self, clock=None, elapsed: int = 0):
        super().__init__(clock)
        self.elapsed = elapsed

    def start(self) -> None:
        if self.finished:
            raise RuntimeError("Session clock already stopped")
        if not self.running:
            self._schedule()

    def pause(self) -> None:
        self._cancel()

    def resume(self) -> None:
        if not self.finished and not self.running:
            self._schedule()

    def stop(self) -> None:
        """Stop for good; the final value stays in :attr:`elapsed`."""

        self._cancel()
        self.finished = True

    def _tick(self, dt):
        self.elapsed += 1


class PhaseTimer(_SecondTimer):
    """Countdown for the current phase.

    When :attr:`remaining` reaches zero the timer stops and dispatches
    ``on_expired`` on the next clock pass. The pending dispatch belongs to
    the timer, so :meth:`stop` and :meth:`restart` discard it together with
    the interval. What happens after expiry is left to the listener.
    """

    __events__ = ("on_expired",)

    remaining = NumericProperty(0)
    duration = NumericProperty(0)

    def __init__(self, clock=None):
        super().__init__(clock)
        self._expiry_event = None
        # armed by restart() or pause() but waiting for resume()
        self._held = False

    def on_expired(self, *args):
        pass

    @property
    def is_active(self) -> bool:
        """``True`` while a countdown exists, including a paused one."""

        return self.running or self._held or self._expiry_event is not None

    @property
    def expiry_pending(self) -> bool:
        return self._expiry_event is not None

    def restart(self, duration: int, paused: bool = False) -> None:
        """Drop the current countdown and start a fresh one of ``duration``."""

        if duration < 0:
            raise ValueError("Countdown duration cannot be negative")
        self.stop()
        self.duration = duration
        self.remaining = duration
        if paused:
            self._held = True
        else:
            self._arm()

    def clear(self) -> None:
        """Stop and reset for a phase without a countdown."""

        self.stop()
        self.duration = 0
        self.remaining = 0

    def stop(self) -> None:
        self._cancel()
        self._cancel_expiry()
        self._held = False

    def pause(self) -> None:
        if self.running or self._expiry_event is not None:
            self.stop()
            self._held = True

    def resume(self) -> None:
        if self._held:
            self._held = False
            self._arm()

    def add_time(self, seconds: int) -> None:
        """Shift the remaining time by ``seconds`` (negative shortens it)."""

        if not self.is_active:
            raise RuntimeError("No countdown is active")
        self.remaining = max(0, self.remaining + seconds)
        self.duration = max(self.duration, self.remaining)
        if self.remaining == 0:
            self._expire_now()
        elif self._expiry_event is not None:
            self._cancel_expiry()
            self._schedule()

    def zero_out(self) -> None:
        if not self.is_active:
            raise RuntimeError("No countdown is active")
        self.remaining = 0
        self._expire_now()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _arm(self) -> None:
        if self.remaining > 0:
            self._schedule()
        else:
            self._schedule_expiry()

    def _tick(self, dt):
        if self.remaining > 0:
            self.remaining -= 1
        if self.remaining <= 0:
            self._cancel()
            self._schedule_expiry()

    def _schedule_expiry(self) -> None:
        self._cancel_expiry()
        self._expiry_event = self._clock.schedule_once(self._fire_expired, 0)

    def _cancel_expiry(self) -> None:
        if self._expiry_event is not None:
            self._expiry_event.cancel()
            self._expiry_event = None

    def _fire_expired(self, dt):
        self._expiry_event = None
        self.dispatch("on_expired")

    def _expire_now(self) -> None:
        self.stop()
        self.dispatch("on_expired")
