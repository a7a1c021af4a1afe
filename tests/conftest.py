import io
import os

import pytest

from rowbar import ProgressBar, TerminalSession


class FakeTTY(io.StringIO):
    """In-memory stream that claims to be a terminal"""

    def isatty(self):
        return True


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeSession(TerminalSession):
    """Terminal session with the raw-mode and cursor-query primitives faked out"""

    def __init__(self, cursor_row=5, height=24, width=200):
        super().__init__()
        self.cursor_row = cursor_row
        self.height = height
        self.width = width
        self.read_fd, self.write_fd = os.pipe()
        self.raw_entered = 0
        self.raw_exited = 0
        self.queries = 0

    def _terminal_size(self):
        return self.width, self.height

    def _open_input(self):
        return self.read_fd, False

    def _enter_raw_mode(self, fd):
        self.raw_entered += 1
        return 'saved'

    def _exit_raw_mode(self, fd, saved):
        assert saved == 'saved'
        self.raw_exited += 1

    def _query_cursor_row(self, fd):
        self.queries += 1
        return self.cursor_row

    def cleanup(self):
        os.close(self.read_fd)
        os.close(self.write_fd)


@pytest.fixture
def session():
    fake = FakeSession()
    yield fake
    fake.restore()
    fake.cleanup()


@pytest.fixture
def tty_stream():
    return FakeTTY()


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_bar(session, clock):
    """Build bars bound to the fake session and clock, closing them afterwards"""
    bars = []

    def factory(description='Test', bar_width=10, target_total=100, **kwargs):
        kwargs.setdefault('session', session)
        kwargs.setdefault('clock', clock)
        bar = ProgressBar(description, bar_width, target_total, **kwargs)
        bars.append(bar)
        return bar

    yield factory

    for bar in bars:
        bar.close()
