import threading
import time

import pytest
import requests

from ipfs_blocks.options import UploadOptions


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


class FakeGateway:
    """Stands in for ``requests.head``; answers from per-URL scripts."""

    def __init__(self, default=404):
        self.default = default
        self.scripts = {}
        self.calls = []
        self.call_times = []
        self._lock = threading.Lock()

    def script(self, url, *outcomes):
        self.scripts[url] = list(outcomes)

    def calls_for(self, url):
        return [call for call in self.calls if call[0] == url]

    def __call__(self, url, timeout=None, **kwargs):
        with self._lock:
            self.calls.append((url, timeout))
            self.call_times.append(time.monotonic())
            outcomes = self.scripts.get(url)
            outcome = outcomes.pop(0) if outcomes else self.default
        if isinstance(outcome, type) and issubclass(outcome, BaseException):
            raise outcome()
        if isinstance(outcome, BaseException):
            raise outcome
        return FakeResponse(outcome)


class RecordingSender:
    def __init__(self, error=None):
        self.batches = []
        self.error = error

    def __call__(self, payloads):
        self.batches.append(list(payloads))
        if self.error is not None:
            raise self.error


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    monkeypatch.setattr(requests, "head", fake)
    return fake


@pytest.fixture
def messages():
    return []


@pytest.fixture
def progress():
    return []


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def options(messages, progress, sender):
    return UploadOptions(
        log=messages.append,
        status_callback=progress.append,
        transaction_sender=sender,
        gateway_url="https://gateway.test",
        timeout=1,
        throttle_interval=0,
    )


@pytest.fixture
def two_files():
    return [("a.txt", b"hi"), ("dir/b.txt", b"bye")]


@pytest.fixture
def make_failing_sender():
    """Build a RecordingSender that raises ``error`` on every batch."""

    def build(error):
        return RecordingSender(error=error)

    return build
