from liveworkout.models import SessionMode
from liveworkout.sync import (
    DEFAULT_COMPLETION_MESSAGE,
    GUEST_COMPLETION_MESSAGE,
    ProgressSync,
)
from utils import RecordingClient


def test_guest_sync_is_a_no_op():
    client = RecordingClient()
    sync = ProgressSync(client, SessionMode.GUEST)
    assert sync.log_set(0, 10) is None
    assert sync.cancel_session() is None
    result = sync.complete_session(60, 2).result(timeout=1)
    assert result.success
    assert not result.synced
    assert result.message == GUEST_COMPLETION_MESSAGE
    assert client.calls == []
    sync.close()


def test_missing_client_means_guest():
    sync = ProgressSync(None, SessionMode.AUTHENTICATED)
    assert sync.is_guest
    assert sync.complete_session(10, 0).result(timeout=1).message == GUEST_COMPLETION_MESSAGE
    sync.close()


def test_writes_reach_client_in_order():
    client = RecordingClient()
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    for reps in (8, 9, 10):
        sync.log_set(1, reps, set_number=reps)
    sync.cancel_session()
    assert sync.wait(timeout=5)
    assert client.names() == ["log_set", "log_set", "log_set", "cancel_session"]
    assert [kwargs.get("reps") for _, kwargs in client.calls[:3]] == [8, 9, 10]
    sync.close()


def test_failed_writes_are_kept_once_and_replayed():
    client = RecordingClient(fail={"log_set"})
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    sync.log_set(0, 10, set_number=1)
    sync.log_set(0, 10, set_number=1)
    sync.log_set(0, 10, set_number=2)
    sync.wait(timeout=5)
    assert [command.key for command in sync.failed] == ["log_set:0:1", "log_set:0:2"]

    client.fail.clear()
    futures = sync.replay_failed()
    assert len(futures) == 2
    assert all(future.result(timeout=5) for future in futures)
    assert sync.failed == []
    assert client.names().count("log_set") == 5
    sync.close()


def test_completion_uses_backend_message():
    client = RecordingClient(message="Great job! You burned 12 calories!")
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    result = sync.complete_session(300, 3).result(timeout=5)
    assert result.success
    assert result.synced
    assert result.message == "Great job! You burned 12 calories!"
    assert client.calls == [
        ("complete_session", {"duration_seconds": 300, "exercises_completed": 3, "feedback": None})
    ]
    sync.close()


def test_completion_without_message_gets_default():
    client = RecordingClient(message=None)
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    assert sync.complete_session(5, 0).result(timeout=5).message == DEFAULT_COMPLETION_MESSAGE
    sync.close()


def test_completion_failure_is_returned_not_raised():
    client = RecordingClient(fail={"complete_session"})
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    result = sync.complete_session(5, 0).result(timeout=5)
    assert not result.success
    assert result.error == "complete_session unavailable"
    assert sync.failed == []
    sync.close()


def test_feedback_goes_out_as_second_completion():
    client = RecordingClient()
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    sync.send_feedback(120, 2, "better")
    sync.wait(timeout=5)
    assert client.calls == [
        ("complete_session", {"duration_seconds": 120, "exercises_completed": 2, "feedback": "better"})
    ]
    sync.close()


def test_closed_sync_drops_writes():
    client = RecordingClient()
    sync = ProgressSync(client, SessionMode.AUTHENTICATED)
    sync.close()
    assert sync.log_set(0, 10, set_number=1) is None
    assert sync.send_feedback(60, 1, "same") is None
    assert client.calls == []
    assert sync.failed_commands() == []
