"""Pytest configuration for micro-monkey tests."""

import signal
import sys

import pytest


DEFAULT_TIMEOUT = 10


def pytest_configure(config):
    config.addinivalue_line("markers", "timeout(seconds): fail the test after this many seconds")


def _on_alarm(signum, frame):
    pytest.fail("Test timed out")


@pytest.fixture(autouse=True)
def test_timeout(request):
    """Fail any test that runs longer than its timeout.

    A runaway Monkey program should end in a stack overflow error; this
    catches the cases where it does not.  Uses SIGALRM, so it does nothing
    on Windows.
    """
    if sys.platform == "win32":
        yield
        return

    marker = request.node.get_closest_marker("timeout")
    seconds = marker.args[0] if marker else DEFAULT_TIMEOUT
    previous = signal.signal(signal.SIGALRM, _on_alarm)
    signal.alarm(seconds)
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, previous)
