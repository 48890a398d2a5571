import json

from liveworkout.controller import SessionController, resume_from_recovery
from liveworkout.models import Phase, SessionKind, SessionMode
from liveworkout.recovery import (
    clear_recovery_files,
    load_recovery_state,
    recovery_files,
    save_recovery_state,
)
from utils import ManualClock, RecordingClient, make_state


def test_recovery_files_and_clear(tmp_path):
    base = tmp_path / "session_recovery"
    save_recovery_state({"state": {"current_index": 1}}, base)
    f1, f2 = recovery_files(base)
    assert f1.name == "session_recovery_1.json"
    with f1.open() as fh:
        data1 = json.load(fh)
    with f2.open() as fh:
        data2 = json.load(fh)
    assert data1 == data2 == {"state": {"current_index": 1}}

    # simulate loss of primary file and ensure backup loads
    f1.unlink()
    assert load_recovery_state(base) == data2

    clear_recovery_files(base)
    assert not f2.exists()
    assert load_recovery_state(base) is None


def test_corrupt_primary_falls_back_to_backup(tmp_path):
    base = tmp_path / "session_recovery"
    save_recovery_state({"ok": True}, base)
    f1, _ = recovery_files(base)
    f1.write_text("{not json")
    assert load_recovery_state(base) == {"ok": True}


def test_session_state_roundtrip():
    state = make_state(2, kind=SessionKind.CORRECTIVE, rest_seconds=15)
    state.phase = Phase.REST
    state.totals.sets_completed = 2
    assert type(state).from_dict(json.loads(json.dumps(state.to_dict()))) == state


def test_resume_continues_where_it_stopped(clock, tmp_path):
    base = tmp_path / "session_recovery"
    state = make_state(2, kind=SessionKind.CORRECTIVE, target_sets=1, rest_seconds=15)
    controller = SessionController(state, clock=clock, recovery_base=base)
    controller.start()
    clock.advance(35)
    controller.teardown()
    assert controller.state.phase is Phase.REST

    later = ManualClock()
    resumed = resume_from_recovery(recovery_base=base, clock=later)
    assert resumed.state.phase is Phase.REST
    assert resumed.state.phase_time_remaining == 10
    assert resumed.state.elapsed_seconds == 35
    assert resumed.state.totals.sets_completed == 1

    later.advance(10)
    assert resumed.state.phase is Phase.EXERCISE
    assert resumed.state.current_index == 1
    later.advance(30)
    assert resumed.is_complete
    assert resumed.state.elapsed_seconds == 75
    assert load_recovery_state(base) is None


def test_resume_brings_back_failed_writes(clock, tmp_path):
    base = tmp_path / "session_recovery"
    client = RecordingClient(fail={"log_set"})
    controller = SessionController(
        make_state(2, mode=SessionMode.AUTHENTICATED), client, clock=clock, recovery_base=base
    )
    controller.start()
    controller.log_set(0, 10)
    controller.sync.wait(timeout=5)
    controller.teardown()

    client.fail.clear()
    resumed = resume_from_recovery(client, recovery_base=base, clock=ManualClock())
    assert [command.key for command in resumed.sync.failed] == ["log_set:0:1"]
    futures = resumed.sync.replay_failed()
    assert all(future.result(timeout=5) for future in futures)
    assert client.names() == ["log_set", "log_set"]
    resumed.teardown()


def test_nothing_to_resume(tmp_path):
    assert resume_from_recovery(recovery_base=tmp_path / "missing") is None


def test_resume_picks_client_for_recovered_kind(clock, tmp_path):
    base = tmp_path / "session_recovery"
    state = make_state(
        2, kind=SessionKind.CORRECTIVE, target_sets=1, mode=SessionMode.AUTHENTICATED
    )
    controller = SessionController(state, RecordingClient(), clock=clock, recovery_base=base)
    controller.start()
    clock.advance(10)
    controller.teardown()

    requested = []
    posture = RecordingClient()

    def client_factory(kind):
        requested.append(kind)
        return posture

    resumed = resume_from_recovery(
        RecordingClient(), recovery_base=base, client_factory=client_factory, clock=ManualClock()
    )
    assert requested == [SessionKind.CORRECTIVE]
    assert resumed.sync.client is posture
    resumed.teardown()
