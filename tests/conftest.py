# tests/conftest.py
import logging
import socket
from collections import deque

import pytest


class FakeConnector:
    """
    script: sequence of results returned by check(), one per call.
    Each entry is either a bool or a (bool, error) tuple.
    When the script runs out, `default` is returned.
    """
    def __init__(self, script=None, default=(False, "ConnectionRefusedError: [Errno 111] Connection refused")):
        self.script = deque(script or [])
        self.default = default
        self.calls = []

    def check(self, target):
        self.calls.append(str(target))
        if self.script:
            res = self.script.popleft()
        else:
            res = self.default
        if isinstance(res, bool):
            return res, None if res else "ConnectionRefusedError: [Errno 111] Connection refused"
        return res


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def structured_logs(caplog):
    """Decoded `message` fields of every structured log line."""
    import json

    caplog.set_level(logging.DEBUG, logger="PortwaitLogger")

    def messages():
        out = []
        for record in caplog.records:
            if record.name != "PortwaitLogger":
                continue
            out.append(json.loads(record.getMessage()))
        return out
    return messages


@pytest.fixture
def listening_port():
    """A loopback port that accepts connections."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(8)
    yield srv.getsockname()[1]
    srv.close()


@pytest.fixture
def closed_port():
    """A loopback port that refuses connections (bound, not listening)."""
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    yield srv
    srv.close()
