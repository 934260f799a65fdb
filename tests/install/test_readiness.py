import pytest

from assisted.errors import RemoteFailureError, TriggerError, WaitTimeoutError, ApiError
from assisted.install.completion import wait_until_installed
from assisted.install.deadline import Deadline
from assisted.install.readiness import READINESS_CEILING, readiness_budget, wait_until_ready
from assisted.install.trigger import trigger_installation


def test_readiness_budget_is_half_capped_at_ceiling():
    assert readiness_budget(60) == 30
    assert readiness_budget(90 * 60) == READINESS_CEILING
    assert readiness_budget(0.2) == pytest.approx(0.1)


def test_ready_with_too_few_hosts_keeps_waiting(fake_source):
    src = fake_source([("ready", 1), ("ready", 2), ("ready", 3)])
    snap = wait_until_ready(src, "c1", 3, Deadline(5))
    assert src.fetch_calls == 3
    assert snap.host_count == 3


def test_more_hosts_than_expected_is_ready(fake_source):
    src = fake_source([("ready", 5)])
    snap = wait_until_ready(src, "c1", 3, Deadline(5))
    assert snap.host_count == 5
    assert src.fetch_calls == 1


def test_error_is_fatal_during_readiness(fake_source):
    src = fake_source([("insufficient", 1), ("error", 1, "No hosts were discovered")])
    with pytest.raises(RemoteFailureError) as ei:
        wait_until_ready(src, "c1", 3, Deadline(5))
    assert ei.value.phase == "readiness"
    assert "No hosts were discovered" in str(ei.value)


def test_readiness_uses_half_of_the_budget(fake_source):
    src = fake_source([("insufficient", 1)])
    parent = Deadline(1.0)
    with pytest.raises(WaitTimeoutError) as ei:
        wait_until_ready(src, "c1", 3, parent)
    assert ei.value.phase == "readiness"
    # the unused half is still there for the completion phase
    assert parent.remaining() > 0.3


def test_completion_waits_through_in_flight_statuses(fake_source):
    src = fake_source([
        ("preparing-for-installation", 3),
        ("installing", 3),
        ("installing-pending-user-action", 3),
        ("finalizing", 3),
        ("installed", 3),
    ])
    snap = wait_until_installed(src, "c1", Deadline(5))
    assert snap.status == "installed"
    assert src.fetch_calls == 5


def test_completion_unknown_status_continues(fake_source):
    src = fake_source([("installing", 3), ("some-new-status", 3), ("installed", 3)])
    snap = wait_until_installed(src, "c1", Deadline(5))
    assert snap.status == "installed"


@pytest.mark.parametrize("terminal", ["error", "cancelled"])
def test_completion_failure_statuses(fake_source, terminal):
    src = fake_source([("installing", 3), (terminal, 3, "installation aborted")])
    with pytest.raises(RemoteFailureError) as ei:
        wait_until_installed(src, "c1", Deadline(5))
    assert ei.value.phase == "completion"
    assert ei.value.status == terminal


def test_trigger_wraps_errors(fake_source):
    src = fake_source([("ready", 3)], trigger_error=ApiError(409, "cluster is not ready"))
    with pytest.raises(TriggerError) as ei:
        trigger_installation(src, "c1", Deadline(5))
    assert src.trigger_calls == 1
    assert "409" in str(ei.value)


def test_trigger_refuses_when_deadline_is_gone(fake_source):
    src = fake_source([("ready", 3)])
    d = Deadline(5)
    d.cancel()
    with pytest.raises(TriggerError):
        trigger_installation(src, "c1", d)
    assert src.trigger_calls == 0
