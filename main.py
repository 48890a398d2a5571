"""Run a live session from the terminal.

The session is driven by the real Kivy clock. In strength sessions a set
with the target reps is logged automatically every ``--set-every`` seconds
of the exercise phase; corrective sessions simply follow their timers.

Examples::

    python main.py corrective --guest
    python main.py strength --token <jwt> --set-every 5
    python main.py resume
"""

from __future__ import annotations

import argparse
import logging
import sys

from kivy.clock import Clock

from liveworkout import settings
from liveworkout.api_client import LiveWorkoutClient, PostureCareClient
from liveworkout.controller import (
    resume_from_recovery,
    start_corrective_session,
    start_live_session,
)
from liveworkout.models import Phase, SessionKind, SessionMode
from core import DEFAULT_RECOVERY_BASE


def format_seconds(value: int) -> str:
    minutes, seconds = divmod(int(value), 60)
    return f"{minutes:02d}:{seconds:02d}"


def describe(state) -> str:
    exercise = state.current_exercise
    if state.phase is Phase.COMPLETE or exercise is None:
        return (
            f"[{format_seconds(state.elapsed_seconds)}] complete: "
            f"{state.totals.sets_completed} sets, "
            f"~{state.totals.calories_estimate} kcal"
        )
    line = (
        f"[{format_seconds(state.elapsed_seconds)}] {state.phase.value:<8} "
        f"{exercise.name} set {exercise.completed_sets}/{exercise.target_sets}"
    )
    if state.phase_time_remaining:
        line += f" ({format_seconds(state.phase_time_remaining)} left)"
    if state.paused:
        line += " paused"
    return line


def client_for(kind: SessionKind, args):
    """Return the backend client matching a session kind, or ``None`` for guests."""
    if args.guest:
        return None
    if kind is SessionKind.CORRECTIVE:
        return PostureCareClient.from_settings(args.token)
    return LiveWorkoutClient.from_settings(args.token)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("kind", choices=["strength", "corrective", "resume"])
    parser.add_argument("--guest", action="store_true", help="never contact the backend")
    parser.add_argument("--token", help="bearer token for the backend")
    parser.add_argument(
        "--set-every",
        type=int,
        default=5,
        help="seconds between automatically logged sets",
    )
    parser.add_argument("--feedback", choices=["better", "same"])
    parser.add_argument("--no-recovery", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    mode = SessionMode.GUEST if args.guest else SessionMode.AUTHENTICATED
    recovery_base = None
    if settings.get_value("recovery_enabled") and not args.no_recovery:
        recovery_base = DEFAULT_RECOVERY_BASE
    body_weight_kg = settings.get_value("body_weight_kg")

    if args.kind == "corrective":
        client = client_for(SessionKind.CORRECTIVE, args)
        controller = start_corrective_session(
            client, mode, body_weight_kg=body_weight_kg, recovery_base=recovery_base
        )
    elif args.kind == "strength":
        client = client_for(SessionKind.FREE_FORM, args)
        controller = start_live_session(
            client, mode, body_weight_kg=body_weight_kg, recovery_base=recovery_base
        )
    else:
        if recovery_base is None:
            print("Session recovery is disabled", file=sys.stderr)
            return 1
        controller = resume_from_recovery(
            recovery_base=recovery_base,
            client_factory=lambda kind: client_for(kind, args),
            body_weight_kg=body_weight_kg,
        )
        if controller is None:
            print("No session to resume", file=sys.stderr)
            return 1

    finished = []
    last_line = [""]

    def on_state(_controller, state):
        line = describe(state)
        if line != last_line[0]:
            print(line)
            last_line[0] = line

    def on_complete(_controller, result):
        if result.success:
            print(result.message)
        else:
            print(f"Session could not be saved ({result.error}); you can still exit.")
        if args.feedback:
            controller.submit_feedback(args.feedback)
        controller.exit()

    def on_exit(_controller):
        finished.append(True)

    def auto_log(dt):
        state = controller.state
        if (
            state.kind is SessionKind.FREE_FORM
            and state.phase is Phase.EXERCISE
            and not state.paused
        ):
            exercise = state.current_exercise
            controller.log_set(state.current_index, exercise.target_reps)

    controller.bind(on_state=on_state, on_complete=on_complete, on_exit=on_exit)
    print(describe(controller.state))
    auto_event = Clock.schedule_interval(auto_log, max(1, args.set_every))
    try:
        while not finished:
            Clock.tick()
    except KeyboardInterrupt:
        print("\nStopping; progress kept for resume" if recovery_base else "\nStopping")
        controller.teardown()
    finally:
        auto_event.cancel()
    controller.sync.wait(timeout=5)
    return 0


if __name__ == "__main__":
    sys.exit(main())
