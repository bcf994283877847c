# tests/test_prober_service.py
import pytest

from conftest import FakeConnector
from portwait.core.exceptions.exceptions import DependencyUnavailableError
from portwait.schemas.target import ProbeTarget
from portwait.services.prober_service import ProberService

WEB = ProbeTarget(host="web", port=8000)


def make_prober(script, fake_clock, http_client=None, default=None):
    kwargs = {} if default is None else {"default": default}
    tcp = FakeConnector(script=script, **kwargs)
    prober = ProberService(tcp_client=tcp, http_client=http_client, sleep=fake_clock.sleep, clock=fake_clock)
    return prober, tcp


def test_refuses_three_times_then_ready(fake_clock, structured_logs):
    prober, tcp = make_prober([False, False, False, True], fake_clock)

    result = prober.wait_until_ready(WEB, interval=0.1)

    assert result.ready is True
    assert result.attempts == 4
    assert tcp.calls == ["web:8000"] * 4
    assert fake_clock.sleeps == [0.1, 0.1, 0.1]

    events = [m["message"] for m in structured_logs()]
    assert events.count("probe.waiting") == 1
    assert events.count("probe.attempt_failed") == 3
    assert events.count("probe.ready") == 1
    assert events.index("probe.ready") > max(i for i, e in enumerate(events) if e == "probe.attempt_failed")


def test_ready_on_first_attempt_does_not_sleep(fake_clock):
    prober, _ = make_prober([True], fake_clock)
    result = prober.wait_until_ready(WEB, interval=0.5)
    assert result.attempts == 1
    assert fake_clock.sleeps == []


def test_unbounded_wait_keeps_retrying(fake_clock):
    prober, tcp = make_prober([False] * 200 + [True], fake_clock)
    result = prober.wait_until_ready(WEB, interval=0.25)
    assert result.attempts == 201
    assert len(tcp.calls) == 201


def test_dns_and_refused_errors_are_retried_alike(fake_clock):
    script = [
        (False, "gaierror: [Errno -2] Name or service not known"),
        (False, "ConnectionRefusedError: [Errno 111] Connection refused"),
        (False, "TimeoutError: timed out"),
        (True, None),
    ]
    prober, _ = make_prober(script, fake_clock)
    assert prober.wait_until_ready(WEB).attempts == 4


def test_max_attempts_raises_dependency_unavailable(fake_clock):
    prober, tcp = make_prober([], fake_clock)

    with pytest.raises(DependencyUnavailableError) as exc:
        prober.wait_until_ready(WEB, interval=0.1, max_attempts=3)

    assert exc.value.attempts == 3
    assert exc.value.target == "web:8000"
    assert "Connection refused" in exc.value.last_error
    assert len(tcp.calls) == 3
    # no sleep after the final attempt
    assert fake_clock.sleeps == [0.1, 0.1]


def test_timeout_raises_before_oversleeping(fake_clock):
    prober, tcp = make_prober([], fake_clock)

    with pytest.raises(DependencyUnavailableError) as exc:
        prober.wait_until_ready(WEB, interval=0.5, timeout=1.2)

    # attempts at t=0.0, 0.5, 1.0; another sleep would end at 1.5 > 1.2
    assert exc.value.attempts == 3
    assert fake_clock.now == pytest.approx(1.0)


def test_failed_attempts_leave_no_state(fake_clock):
    prober, _ = make_prober([False, False, True, False, False, True], fake_clock)
    first = prober.wait_until_ready(WEB)
    second = prober.wait_until_ready(WEB)
    assert first.attempts == second.attempts == 3


class FakeHealth:
    def __init__(self, script):
        self.script = list(script)
        self.closed = False

    def check(self, target):
        ok = self.script.pop(0)
        return ok, None if ok else "HTTP 503"

    def close(self):
        self.closed = True


def test_http_check_required_after_tcp(fake_clock):
    health = FakeHealth([False, True])
    prober, tcp = make_prober([True, True], fake_clock, http_client=health)

    result = prober.wait_until_ready(WEB)

    assert result.attempts == 2
    assert len(tcp.calls) == 2
    prober.close()
    assert health.closed


def test_http_check_skipped_when_tcp_fails(fake_clock):
    health = FakeHealth([True])
    prober, _ = make_prober([False, True], fake_clock, http_client=health)
    prober.wait_until_ready(WEB)
    # only the second (connected) attempt reached the health check
    assert health.script == []


def test_probe_single_attempt_shape(fake_clock):
    prober, _ = make_prober([False], fake_clock)
    res = prober.probe(WEB)
    assert res["target"] == "web:8000"
    assert res["is_ready"] is False
    assert res["error"].startswith("ConnectionRefusedError")
    assert res["probed_at"] is not None


def test_http_path_builds_health_client():
    prober = ProberService(http_path="/healthz")
    try:
        assert prober.http_client is not None
        assert prober.http_client.path == "/healthz"
    finally:
        prober.close()
