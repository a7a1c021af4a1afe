import io
import os
import threading

import pytest

from rowbar import Cursor, ProgressBar, TerminalError, TerminalSession


def test_rows_are_distinct_and_increasing(make_bar, tty_stream):
    bars = [make_bar(f'Bar {i}', stream=tty_stream) for i in range(3)]
    rows = [bar.assigned_row for bar in bars]
    assert rows == sorted(set(rows))
    assert len(rows) == 3


def test_headless_rows_share_the_counter(make_bar, tty_stream, log_stream):
    first = make_bar(stream=tty_stream)
    second = make_bar(stream=log_stream)
    third = make_bar(stream=tty_stream)
    assert first.assigned_row < second.assigned_row < third.assigned_row


def test_session_entered_once(make_bar, session, tty_stream):
    for _ in range(3):
        make_bar(stream=tty_stream)
    assert session.queries == 1
    assert session.raw_entered == 1
    assert tty_stream.getvalue().count(Cursor.HIDE) == 1
    assert session.live_bars == 3


def test_tick_draws_on_own_row(make_bar, session, tty_stream):
    session.cursor_row = 7
    top = make_bar('Top', stream=tty_stream)
    bottom = make_bar('Bottom', stream=tty_stream)

    bottom.tick(10)
    top.tick(10)
    assert f'{Cursor.move_to(7)}{Cursor.CLEAR_LINE}Top ' in tty_stream.getvalue()
    assert f'{Cursor.move_to(8)}{Cursor.CLEAR_LINE}Bottom ' in tty_stream.getvalue()


def test_interactive_frames_have_no_newline(make_bar, tty_stream):
    bar = make_bar(stream=tty_stream)
    before = tty_stream.getvalue()
    bar.tick(10)
    bar.tick(20)
    assert '\n' not in tty_stream.getvalue()[len(before):]


def test_restored_after_last_bar(make_bar, session, tty_stream):
    first = make_bar(stream=tty_stream)
    second = make_bar(stream=tty_stream)

    first.close()
    assert session.initialized
    assert session.raw_exited == 0

    second.close()
    assert not session.initialized
    assert session.raw_exited == 1
    assert tty_stream.getvalue().endswith(f'{Cursor.move_to(6)}\r\n{Cursor.SHOW}')


def test_close_twice_is_noop(make_bar, session, tty_stream):
    bar = make_bar(stream=tty_stream)
    bar.close()
    output = tty_stream.getvalue()
    bar.close()
    session.release()
    assert session.raw_exited == 1
    assert tty_stream.getvalue() == output


def test_release_headless_without_acquire(session):
    session.release(interactive=False)
    session.release()
    session.restore()
    assert session.raw_exited == 0


def test_new_session_after_full_release(make_bar, session, tty_stream):
    make_bar(stream=tty_stream).close()
    session.cursor_row = 12
    bar = make_bar(stream=tty_stream)
    assert bar.assigned_row == 1
    assert session.raw_entered == 2
    assert session.screen_row(bar.assigned_row) == 12


def test_scrolls_when_rows_run_out(make_bar, session, tty_stream):
    session.cursor_row = 23
    session.height = 24
    bars = [make_bar(stream=tty_stream) for _ in range(3)]

    assert [bar.assigned_row for bar in bars] == [0, 1, 2]
    assert [session.screen_row(bar.assigned_row) for bar in bars] == [22, 23, 24]
    assert f'{Cursor.move_to(24)}\n' in tty_stream.getvalue()


def test_restore_with_live_bars(make_bar, session, tty_stream, caplog):
    bar = make_bar(stream=tty_stream)
    with caplog.at_level('WARNING', logger='rowbar'):
        session.restore()
    assert 'still open' in caplog.text
    assert not session.initialized
    bar.close()
    assert session.raw_exited == 1


def test_failed_cursor_query_aborts_construction(session, tty_stream):
    def broken_query(fd):
        raise TerminalError('no reply')

    session._query_cursor_row = broken_query
    with pytest.raises(TerminalError):
        ProgressBar('Broken', 10, 100, stream=tty_stream, session=session)

    assert not session.initialized
    assert session.raw_exited == 1
    assert session.next_row == 0
    assert session.live_bars == 0


def test_concurrent_allocation(session):
    rows = []
    rows_lock = threading.Lock()

    def worker():
        bar = ProgressBar('Worker', 10, 100, stream=io.StringIO(), session=session)
        with rows_lock:
            rows.append(bar.assigned_row)
        bar.close()

    threads = [threading.Thread(target=worker) for _ in range(32)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(rows) == list(range(32))


def test_concurrent_interactive_allocation(session, tty_stream):
    bars = []
    bars_lock = threading.Lock()

    def worker():
        bar = ProgressBar('Worker', 10, 100, stream=tty_stream, session=session)
        with bars_lock:
            bars.append(bar)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert session.raw_entered == 1
    assert sorted(bar.assigned_row for bar in bars) == list(range(16))
    for bar in bars:
        bar.close()
    assert session.raw_exited == 1


def test_instance_is_shared():
    assert TerminalSession.instance() is TerminalSession.instance()


def test_cursor_query_parses_report():
    read_fd, write_fd = os.pipe()
    try:
        session = TerminalSession()
        session._stream = io.StringIO()
        os.write(write_fd, b'typed\x1b[12;40R')
        assert session._query_cursor_row(read_fd) == 12
        assert session._stream.getvalue() == Cursor.QUERY_POSITION
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_cursor_query_times_out():
    read_fd, write_fd = os.pipe()
    try:
        session = TerminalSession()
        session.query_timeout = 0.05
        session._stream = io.StringIO()
        with pytest.raises(TerminalError):
            session._query_cursor_row(read_fd)
    finally:
        os.close(read_fd)
        os.close(write_fd)


def test_headless_bar_takes_no_screen_line(make_bar, session, tty_stream, log_stream):
    session.cursor_row = 7
    top = make_bar('Top', stream=tty_stream)
    make_bar('Log', stream=log_stream)
    bottom = make_bar('Bottom', stream=tty_stream)

    assert [session.screen_row(top.assigned_row), session.screen_row(bottom.assigned_row)] == [7, 8]

    bottom.tick(10)
    assert f'{Cursor.move_to(8)}{Cursor.CLEAR_LINE}Bottom ' in tty_stream.getvalue()

    top.close()
    bottom.close()
    assert tty_stream.getvalue().endswith(f'{Cursor.move_to(8)}\r\n{Cursor.SHOW}')
