"""Best-effort mirroring of local session progress to the backend.

Local state is always updated before anything is sent here. Every write is
wrapped in a :class:`SyncCommand` and handed to a single worker thread, so
writes reach the backend in the order they were issued and the caller never
waits on the network. Guest sessions never call the client.

A failed background write is logged and kept in :attr:`ProgressSync.failed`.
Nothing is retried automatically; :meth:`ProgressSync.replay_failed` sends
the kept commands again when the caller decides to.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import asdict, dataclass

from liveworkout.models import CompletionResult, SessionMode

GUEST_COMPLETION_MESSAGE = "Great job! (Stats are not saved in Guest Mode)"
DEFAULT_COMPLETION_MESSAGE = "Session completed!"


@dataclass
class SyncCommand:
    """A remote write: client method ``name`` called with ``payload``.

    ``key`` identifies the write so the same command is never kept twice.
    """

    name: str
    payload: dict
    key: str

    def to_dict(self) -> dict:
        return asdict(self)


class ProgressSync:
    def __init__(self, client, mode: SessionMode, executor: ThreadPoolExecutor | None = None):
        self.client = client
        self.mode = mode
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="progress-sync"
        )
        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._closed = False
        self.failed: list[SyncCommand] = []

    @property
    def is_guest(self) -> bool:
        return self.mode is SessionMode.GUEST or self.client is None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def log_set(
        self,
        exercise_index: int,
        reps: int,
        weight_kg: float | None = None,
        set_number: int | None = None,
    ) -> Future | None:
        payload = {"exercise_index": exercise_index, "reps": reps, "weight_kg": weight_kg}
        return self.submit(
            SyncCommand("log_set", payload, f"log_set:{exercise_index}:{set_number}")
        )

    def send_feedback(self, duration_seconds: int, exercises_completed: int, feedback: str) -> Future | None:
        """Send the optional post-session feedback as a second completion call."""

        payload = {
            "duration_seconds": duration_seconds,
            "exercises_completed": exercises_completed,
            "feedback": feedback,
        }
        return self.submit(SyncCommand("complete_session", payload, "feedback"))

    def cancel_session(self) -> Future | None:
        return self.submit(SyncCommand("cancel_session", {}, "cancel_session"))

    def complete_session(
        self,
        duration_seconds: int,
        exercises_completed: int,
        feedback: str | None = None,
    ) -> Future:
        """Finalize the session remotely.

        The returned future always resolves to a :class:`CompletionResult`;
        a failure is reported in the result instead of being raised.
        """

        if self.is_guest:
            future: Future = Future()
            future.set_result(
                CompletionResult(True, message=GUEST_COMPLETION_MESSAGE, synced=False)
            )
            return future

        payload = {
            "duration_seconds": duration_seconds,
            "exercises_completed": exercises_completed,
        }
        if feedback is not None:
            payload["feedback"] = feedback
        command = SyncCommand("complete_session", payload, "complete_session")
        return self._track(self._executor.submit(self._run_completion, command))

    def submit(self, command: SyncCommand) -> Future | None:
        """Queue ``command`` for the worker.

        Returns ``None`` for guests and once :meth:`close` has been called;
        a command dropped after closing is only logged.
        """

        if self.is_guest:
            return None
        if self._closed:
            logging.warning("Sync already closed, dropping %s", command.key)
            return None
        return self._track(self._executor.submit(self._run, command))

    def failed_commands(self) -> list[SyncCommand]:
        with self._lock:
            return list(self.failed)

    def replay_failed(self) -> list[Future]:
        """Queue every kept failed command again, oldest first."""

        with self._lock:
            commands, self.failed = self.failed, []
        futures = []
        for command in commands:
            future = self.submit(command)
            if future is not None:
                futures.append(future)
        if commands:
            logging.info("Replaying %d failed sync command(s)", len(commands))
        return futures

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def wait(self, timeout: float | None = None) -> bool:
        """Block until queued writes finish; ``False`` on timeout."""

        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def close(self, wait: bool = True) -> None:
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _track(self, future: Future) -> Future:
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._untrack)
        return future

    def _untrack(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _remember_failure(self, command: SyncCommand) -> None:
        with self._lock:
            if all(kept.key != command.key for kept in self.failed):
                self.failed.append(command)

    def _run(self, command: SyncCommand) -> bool:
        try:
            getattr(self.client, command.name)(**command.payload)
        except Exception:
            logging.exception("Background sync of %s failed", command.key)
            self._remember_failure(command)
            return False
        return True

    def _run_completion(self, command: SyncCommand) -> CompletionResult:
        try:
            response = self.client.complete_session(**command.payload)
        except Exception as exc:
            logging.exception("Completing the session failed")
            return CompletionResult(False, error=str(exc))
        message = None
        if isinstance(response, dict):
            message = response.get("message")
        return CompletionResult(True, message=message or DEFAULT_COMPLETION_MESSAGE)
