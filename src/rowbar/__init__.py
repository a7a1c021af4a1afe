# -*- coding: utf-8 -*-
"""
Rowbar – In-place terminal progress bars that stack on their own rows.
Copyright (c) 2025 Igor Iatsenko
Licensed under the MIT License.
"""

import os
import re
import sys
import time
import atexit
import select
import shutil
import threading
import termios
import tty
from dataclasses import dataclass
from enum import Enum
from typing import (
        Protocol,
        Optional,
        Tuple,
        List,
        Dict,
        Callable,
        Iterable,
        Iterator,
        TextIO,
        Any,
)
import logging

__all__ = [
    'ProgressBar',
    'TerminalSession',
    'TerminalMode',
    'CancellationProbe',
    'KeyboardProbe',
    'NullProbe',
    'FillStyle',
    'EmptyStyle',
    'Color',
    'Colors',
    'Cursor',
    'FrameStats',
    'RowbarError',
    'ConfigurationError',
    'TerminalError',
    'compute_stats',
    'format_rate',
    'format_clock',
    'gradient_cells',
    'track',
    'hide_cursor',
    'show_cursor',
    'clear_screen',
]

logger = logging.getLogger('rowbar')

# Lower bound for elapsed time and speed so the first tick never divides by zero
_EPSILON = 1e-4
_RATE_UNITS = ('B/s', 'KB/s', 'MB/s')
_CURSOR_REPORT = re.compile(rb'\x1b\[(\d+);(\d+)R')
_CTRL_C = b'\x03'

# Serializes readiness checks and reads on terminal input across threads
_input_lock = threading.Lock()


# ============================================================================
# Errors
# ============================================================================

class RowbarError(Exception):
    """Base class for all rowbar errors"""


class ConfigurationError(RowbarError, ValueError):
    """Invalid bar construction or presentation arguments"""


class TerminalError(RowbarError, OSError):
    """The terminal could not be queried, switched or written to"""


# ============================================================================
# Terminal utilities
# ============================================================================

class TerminalMode(Enum):
    """How a bar talks to its output stream, decided once at construction"""
    INTERACTIVE = 'interactive'  # Real terminal: cursor positioning and colors
    HEADLESS = 'headless'        # Redirected: plain append-only lines


class Colors:
    """ANSI color codes and utilities"""
    RESET = '\033[0m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    BRIGHT_BLACK = '\033[90m'

    @staticmethod
    def rgb(r: int, g: int, b: int) -> str:
        """Create 24-bit RGB color"""
        return f'\033[38;2;{r};{g};{b}m'

    @staticmethod
    def interpolate(progress: float,
                    start_color: Tuple[int, int, int],
                    end_color: Tuple[int, int, int]) -> Tuple[int, int, int]:
        """Linear per-channel interpolation between two RGB triples (0.0 to 1.0)"""
        r = int(start_color[0] + (end_color[0] - start_color[0]) * progress)
        g = int(start_color[1] + (end_color[1] - start_color[1]) * progress)
        b = int(start_color[2] + (end_color[2] - start_color[2]) * progress)
        return (r, g, b)

    @staticmethod
    def gradient(progress: float, start_color: Tuple[int, int, int], end_color: Tuple[int, int, int]) -> str:
        """Generate gradient color based on progress (0.0 to 1.0)"""
        return Colors.rgb(*Colors.interpolate(progress, start_color, end_color))


class Cursor:
    """ANSI cursor and screen control sequences"""
    HIDE = '\033[?25l'
    SHOW = '\033[?25h'
    CLEAR_LINE = '\033[2K'
    CLEAR_SCREEN = '\033[2J'
    HOME = '\033[H'
    QUERY_POSITION = '\033[6n'

    @staticmethod
    def move_to(row: int, column: int = 1) -> str:
        """Move to a 1-based screen position"""
        return f'\033[{row};{column}H'


class FillStyle(Enum):
    """Glyph used for completed cells"""
    SOLID = 'solid'
    HASH = 'hash'
    EQUAL = 'equal'
    THIN = 'thin'


class EmptyStyle(Enum):
    """Glyph used for remaining cells"""
    SOLID = 'solid'
    SPACE = 'space'
    DASH = 'dash'
    THIN = 'thin'


class Color(Enum):
    """Named colors usable for flat fills and gradient endpoints"""
    RED = 'red'
    GREEN = 'green'
    YELLOW = 'yellow'
    BLUE = 'blue'
    PINK = 'pink'
    GRAY = 'gray'
    CYAN = 'cyan'
    RESET = 'reset'


@dataclass(frozen=True)
class ColorSpec:
    """Rendering primitives for one named color"""
    ansi: str
    rgb: Tuple[int, int, int]


_FILL_GLYPHS: Dict[FillStyle, str] = {
    FillStyle.SOLID: '█',
    FillStyle.HASH: '#',
    FillStyle.EQUAL: '=',
    FillStyle.THIN: '━',
}

_EMPTY_GLYPHS: Dict[EmptyStyle, str] = {
    EmptyStyle.SOLID: '░',
    EmptyStyle.SPACE: ' ',
    EmptyStyle.DASH: '-',
    EmptyStyle.THIN: '─',
}

_COLOR_TABLE: Dict[Color, ColorSpec] = {
    Color.RED: ColorSpec(Colors.RED, (255, 0, 0)),
    Color.GREEN: ColorSpec(Colors.GREEN, (0, 255, 0)),
    Color.YELLOW: ColorSpec(Colors.YELLOW, (255, 255, 0)),
    Color.BLUE: ColorSpec(Colors.BLUE, (0, 0, 255)),
    Color.PINK: ColorSpec(Colors.MAGENTA, (255, 105, 180)),
    Color.GRAY: ColorSpec(Colors.BRIGHT_BLACK, (128, 128, 128)),
    Color.CYAN: ColorSpec(Colors.CYAN, (0, 255, 255)),
    Color.RESET: ColorSpec(Colors.RESET, (255, 255, 255)),
}


def _lookup(table: Dict[Any, Any], key: Any, what: str) -> Any:
    try:
        return table[key]
    except (KeyError, TypeError):
        raise ConfigurationError(f'unknown {what}: {key!r}') from None


def _trim(text: str, width: int) -> str:
    """Trim text to fit within the specified width"""
    if width <= 0:
        return ''

    if len(text) <= width:
        return text

    text = text[:max(0, width-3)]
    return text + '.' * (width - len(text))


def _is_terminal(stream: TextIO) -> bool:
    """Check whether a stream is attached to a terminal device"""
    isatty = getattr(stream, 'isatty', None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except (ValueError, OSError):
        # Closed or detached streams
        return False


def _get_terminal_size(default: Optional[os.terminal_size] = None) -> Tuple[int, int]:
    """Return the (columns, lines) of the terminal, with a safe fallback."""
    if default is None:
        default = os.terminal_size([80, 24])
    try:
        return tuple(os.get_terminal_size())
    except OSError:
        # No controlling terminal on stdout (cron, CI, redirected stdout)
        pass
    return tuple(shutil.get_terminal_size(fallback=default))


def _emit(stream: TextIO, data: str):
    """Write and flush, surfacing I/O failures as TerminalError"""
    try:
        stream.write(data)
        stream.flush()
    except OSError as exc:
        raise TerminalError(f'Failed to write to terminal: {exc}') from exc


def hide_cursor(stream: Optional[TextIO] = None):
    """Hide the cursor if the stream is a terminal"""
    stream = stream or sys.stdout
    if _is_terminal(stream):
        _emit(stream, Cursor.HIDE)


def show_cursor(stream: Optional[TextIO] = None):
    """Show the cursor if the stream is a terminal"""
    stream = stream or sys.stdout
    if _is_terminal(stream):
        _emit(stream, Cursor.SHOW)


def clear_screen(stream: Optional[TextIO] = None):
    """Clear the screen and home the cursor if the stream is a terminal"""
    stream = stream or sys.stdout
    if _is_terminal(stream):
        _emit(stream, Cursor.CLEAR_SCREEN + Cursor.HOME)


# ============================================================================
# Frame computation
# ============================================================================

@dataclass(frozen=True)
class FrameStats:
    """Numbers shown by one rendered frame"""
    progress: float
    percent: int
    filled: int
    empty: int
    elapsed: float
    speed: float
    eta: float


def compute_stats(progress: float, target_total: int, bar_width: int, elapsed: float) -> FrameStats:
    """
    Compute one frame's numbers from the latest absolute progress value.

    Args:
        progress: Absolute progress toward target_total, clamped into [0, target_total]
        target_total: Value representing 100%, must be positive
        bar_width: Number of track cells
        elapsed: Seconds since the bar was created
    """
    if target_total <= 0:
        raise ConfigurationError('target_total must be greater than zero')

    progress = min(max(progress, 0), target_total)
    percent = int(progress * 100 // target_total)
    filled = percent * bar_width // 100
    elapsed = max(elapsed, 0.0)

    speed = progress / max(elapsed, _EPSILON)
    remaining = max(target_total - progress, 0)
    eta = max(remaining / max(speed, _EPSILON), 0.0)

    return FrameStats(progress=progress,
                      percent=percent,
                      filled=filled,
                      empty=bar_width - filled,
                      elapsed=elapsed,
                      speed=speed,
                      eta=eta)


def format_rate(bytes_per_second: float) -> str:
    """Format a byte rate, scaling B/s up to at most MB/s"""
    value = float(bytes_per_second)
    unit = 0
    while value >= 1024 and unit < len(_RATE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f'{value:.2f} {_RATE_UNITS[unit]}'


def format_clock(seconds: float) -> str:
    """Format seconds as MM:SS; minutes are not wrapped into hours"""
    minutes, seconds = divmod(int(seconds), 60)
    return '{:02d}:{:02d}'.format(minutes, seconds)


def gradient_cells(count: int,
                   start_color: Tuple[int, int, int],
                   end_color: Tuple[int, int, int]) -> List[Tuple[int, int, int]]:
    """RGB value of each filled cell, ramping from start_color to end_color"""
    span = max(count - 1, 1)
    return [Colors.interpolate(index / span, start_color, end_color) for index in range(count)]


# ============================================================================
# Terminal session
# ============================================================================

class TerminalSession:
    """
    Process-wide terminal state shared by every progress bar.

    Hands out display rows, enters raw mode and hides the cursor when the
    first interactive bar is created, and restores the terminal once the
    last live interactive bar is released.

    Row numbers are unique ids drawn from one counter for all bars. Only
    interactive rows take a line on screen: the first one is drawn at the
    cursor row captured on entry, each later one on the next line down.
    When a new line would fall off the bottom of the screen the screen is
    scrolled and the baseline moves up, so assigned rows keep their lines.

    An abort key seen by any bar's probe is latched here, so every bar
    sharing the session reports the abort.
    """
    _instance: Optional['TerminalSession'] = None
    _instance_lock = threading.Lock()

    # Seconds to wait for the terminal's cursor position report
    query_timeout: float = 1.0

    def __init__(self):
        self._lock = threading.RLock()
        self._stream: Optional[TextIO] = None
        self._initialized = False
        self._next_row = 0
        self._screen_offsets: Dict[int, int] = {}
        self._base_row = 1
        self._live_bars = 0
        self._abort_requested = False
        self._input_fd: Optional[int] = None
        self._owns_input_fd = False
        self._saved_attributes: Any = None
        self._exit_hook_registered = False

    @classmethod
    def instance(cls) -> 'TerminalSession':
        """Get the process-wide session"""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @property
    def initialized(self) -> bool:
        """Whether raw mode is currently entered"""
        return self._initialized

    @property
    def live_bars(self) -> int:
        """Number of interactive bars holding the session open"""
        return self._live_bars

    @property
    def next_row(self) -> int:
        """The row the next bar will be assigned"""
        return self._next_row

    @property
    def input_fd(self) -> Optional[int]:
        """Raw-mode input descriptor while the session is entered"""
        return self._input_fd

    @property
    def abort_requested(self) -> bool:
        """Whether an abort key arrived since the session was entered"""
        return self._abort_requested

    def request_abort(self):
        """Latch an abort for every bar on this session"""
        self._abort_requested = True

    @property
    def columns(self) -> int:
        """Terminal width in cells"""
        return self._terminal_size()[0]

    def acquire_row(self, stream: Optional[TextIO] = None, interactive: bool = True) -> int:
        """
        Allocate the next display row.

        The first interactive allocation captures the cursor row as the
        baseline, enters raw mode and hides the cursor. Headless allocations
        only advance the counter and never touch the terminal.
        """
        with self._lock:
            row = self._next_row
            self._next_row += 1

            if not interactive:
                logger.debug('Allocated headless row %d', row)
                return row

            if not self._initialized:
                try:
                    self._enter(stream or sys.stdout)
                except BaseException:
                    self._next_row -= 1
                    raise

            self._live_bars += 1
            self._screen_offsets[row] = len(self._screen_offsets)
            try:
                self._ensure_visible(row)
            except BaseException:
                self.release()
                raise
            logger.debug('Allocated row %d (screen row %d)', row, self.screen_row(row))
            return row

    def release(self, interactive: bool = True):
        """Give back one interactive bar; restore the terminal after the last one"""
        if not interactive:
            return

        with self._lock:
            if self._live_bars == 0:
                return

            self._live_bars -= 1
            if self._live_bars == 0:
                self._leave()

    def restore(self):
        """Unconditionally restore the terminal, whatever bars are still live"""
        with self._lock:
            if not self._initialized:
                return
            if self._live_bars:
                logger.warning('Restoring terminal with %d progress bar(s) still open', self._live_bars)
            self._live_bars = 0
            self._leave()

    def screen_row(self, row: int) -> int:
        """1-based screen row of an interactive row allocated in this session"""
        return self._base_row + self._screen_offsets[row]

    def draw(self, stream: TextIO, row: int, text: str):
        """Overwrite a row in place"""
        with self._lock:
            data = f'{Cursor.move_to(self.screen_row(row))}{Cursor.CLEAR_LINE}{text}'
            _emit(stream, data)

    # ------------------------------------------------------------------------
    # Entering and leaving
    # ------------------------------------------------------------------------

    def _enter(self, stream: TextIO):
        self._stream = stream
        fd, owns_fd = self._open_input()
        try:
            saved = self._enter_raw_mode(fd)
        except BaseException:
            if owns_fd:
                os.close(fd)
            raise

        try:
            base_row = self._query_cursor_row(fd)
            _emit(stream, Cursor.HIDE)
        except BaseException:
            self._exit_raw_mode(fd, saved)
            if owns_fd:
                os.close(fd)
            raise

        self._input_fd = fd
        self._owns_input_fd = owns_fd
        self._saved_attributes = saved
        self._base_row = base_row
        self._screen_offsets = {}
        self._abort_requested = False
        self._initialized = True

        if not self._exit_hook_registered:
            atexit.register(self._restore_at_exit)
            self._exit_hook_registered = True

        logger.debug('Entered raw mode, baseline screen row %d', base_row)

    def _leave(self):
        stream = self._stream
        last_screen_row = self._base_row + max(len(self._screen_offsets) - 1, 0)
        try:
            _emit(stream, f'{Cursor.move_to(last_screen_row)}\r\n{Cursor.SHOW}')
        finally:
            fd = self._input_fd
            try:
                self._exit_raw_mode(fd, self._saved_attributes)
            finally:
                if self._owns_input_fd:
                    os.close(fd)
                self._input_fd = None
                self._owns_input_fd = False
                self._saved_attributes = None
                self._screen_offsets = {}
                self._initialized = False
                logger.debug('Left raw mode')

    def _restore_at_exit(self):
        try:
            self.restore()
        except Exception:
            logger.exception('Failed to restore terminal at exit')

    def _ensure_visible(self, row: int):
        """Scroll the screen until a row fits above the bottom edge"""
        height = self._terminal_size()[1]
        screen_row = self.screen_row(row)
        while screen_row > height and self._base_row > 1:
            _emit(self._stream, f'{Cursor.move_to(height)}\n')
            self._base_row -= 1
            screen_row -= 1
            logger.debug('Scrolled terminal, baseline screen row now %d', self._base_row)

    # ------------------------------------------------------------------------
    # Terminal primitives
    # ------------------------------------------------------------------------

    def _terminal_size(self) -> Tuple[int, int]:
        return _get_terminal_size()

    def _open_input(self) -> Tuple[int, bool]:
        """Descriptor to read terminal replies and keys from, and whether we own it"""
        if _is_terminal(sys.stdin):
            return sys.stdin.fileno(), False
        try:
            return os.open('/dev/tty', os.O_RDWR | os.O_NOCTTY), True
        except OSError as exc:
            raise TerminalError(f'No terminal available for input: {exc}') from exc

    def _enter_raw_mode(self, fd: int) -> Any:
        try:
            saved = termios.tcgetattr(fd)
            tty.setraw(fd)
        except (termios.error, OSError) as exc:
            raise TerminalError(f'Failed to enter raw mode: {exc}') from exc
        return saved

    def _exit_raw_mode(self, fd: int, saved: Any):
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        except (termios.error, OSError) as exc:
            raise TerminalError(f'Failed to leave raw mode: {exc}') from exc

    def _query_cursor_row(self, fd: int) -> int:
        """Ask the terminal for the cursor position and return its 1-based row"""
        _emit(self._stream, Cursor.QUERY_POSITION)

        deadline = time.monotonic() + self.query_timeout
        reply = b''
        while True:
            match = _CURSOR_REPORT.search(reply)
            if match:
                return int(match.group(1))

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TerminalError('Terminal did not report the cursor position')

            try:
                readable, _, _ = select.select([fd], [], [], remaining)
                if not readable:
                    continue
                chunk = os.read(fd, 32)
            except OSError as exc:
                raise TerminalError(f'Failed to read cursor position: {exc}') from exc

            if not chunk:
                raise TerminalError('Terminal input closed while reading cursor position')
            reply += chunk


# ============================================================================
# Cancellation
# ============================================================================

class CancellationProbe(Protocol):
    """Non-blocking query called once per tick; True means the user aborted"""
    def __call__(self) -> bool:
        ...


class NullProbe:
    """Probe that never cancels"""

    def __call__(self) -> bool:
        return False


class KeyboardProbe:
    """
    Poll terminal input for an abort key without blocking.

    Raw mode stops Ctrl+C from raising KeyboardInterrupt, so the key arrives
    as a plain byte and is picked up here instead. Once an abort key has been
    seen the probe keeps reporting it, and so does every other probe on the
    same session.

    Args:
        session: Session whose raw-mode input descriptor is polled
        abort_keys: Byte sequences that request cancellation
        fd: Poll this descriptor instead of the session's
    """

    def __init__(self,
                 session: Optional[TerminalSession] = None,
                 abort_keys: Tuple[bytes, ...] = (_CTRL_C,),
                 fd: Optional[int] = None):
        if not abort_keys:
            raise ConfigurationError('abort_keys must not be empty')
        self._session = session
        self._abort_keys = tuple(abort_keys)
        self._fd = fd
        self._triggered = False

    @property
    def triggered(self) -> bool:
        if self._session is not None and self._session.abort_requested:
            return True
        return self._triggered

    def _input_fd(self) -> Optional[int]:
        if self._fd is not None:
            return self._fd
        if self._session is not None:
            return self._session.input_fd
        return None

    def __call__(self) -> bool:
        if self.triggered:
            return True

        fd = self._input_fd()
        if fd is None:
            return False

        data = _read_pending(fd)
        if data and any(key in data for key in self._abort_keys):
            logger.debug('Abort key received')
            self._triggered = True
            if self._session is not None:
                self._session.request_abort()
        return self.triggered


def _read_pending(fd: int, size: int = 64) -> bytes:
    """Read whatever input is already waiting on fd, or b'' without blocking"""
    # select() and read() stay under one lock so no other poller drains fd in between
    with _input_lock:
        try:
            readable, _, _ = select.select([fd], [], [], 0)
            if not readable:
                return b''
            return os.read(fd, size)
        except OSError as exc:
            raise TerminalError(f'Failed to poll terminal input: {exc}') from exc


# ============================================================================
# Progress Bar
# ============================================================================

class ProgressBar:
    """Single-row progress bar redrawn in place on every tick"""

    # Output stream for new bars; None means sys.stdout
    stream: Optional[TextIO] = None

    default_fill_style: FillStyle = FillStyle.HASH
    default_empty_style: EmptyStyle = EmptyStyle.DASH
    default_fill_color: Color = Color.GREEN
    default_empty_color: Color = Color.GRAY

    def __init__(self,
                 description: str,
                 bar_width: int,
                 target_total: int,
                 *,
                 stream: Optional[TextIO] = None,
                 session: Optional[TerminalSession] = None,
                 probe: Optional[CancellationProbe] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Create a progress bar and claim a display row.

        Args:
            description: Label shown before the bar
            bar_width: Number of track cells
            target_total: Value representing 100% completion, must be positive
            stream: Output stream (default ProgressBar.stream, then sys.stdout)
            session: Terminal session (default the process-wide one)
            probe: Cancellation probe (default keyboard polling when interactive)
            clock: Monotonic time source in seconds
        """
        self._closed = True

        if bar_width <= 0:
            raise ConfigurationError('bar_width must be positive')
        if target_total < 0:
            raise ConfigurationError('target_total must be non-negative')
        if target_total == 0:
            raise ConfigurationError('target_total must be greater than zero')

        self._description = str(description)
        self._bar_width = int(bar_width)
        self._target_total = target_total
        self._stream: TextIO = stream or ProgressBar.stream or sys.stdout
        self._session = session or TerminalSession.instance()
        self._mode = TerminalMode.INTERACTIVE if _is_terminal(self._stream) else TerminalMode.HEADLESS
        self._clock = clock

        self.set_style(self.default_fill_style, self.default_empty_style)
        self.set_colors(self.default_fill_color, self.default_empty_color)
        self._gradient: Optional[Tuple[Color, Color]] = None

        self._current_progress: float = 0
        self._last_stats: Optional[FrameStats] = None
        self._start_time = self._clock()

        self._assigned_row = self._session.acquire_row(self._stream, interactive=self.interactive)
        self._closed = False

        if probe is not None:
            self._probe: CancellationProbe = probe
        elif self.interactive:
            self._probe = KeyboardProbe(self._session)
        else:
            self._probe = NullProbe()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        if getattr(self, '_closed', True):
            return
        try:
            self.close()
        except Exception:
            logger.exception('Failed to release progress bar row')

    def __repr__(self):
        return (f'{type(self).__name__}({self._description!r}, bar_width={self._bar_width}, '
                f'target_total={self._target_total}, row={self._assigned_row}, mode={self._mode.value})')

    @property
    def description(self) -> str:
        return self._description

    @property
    def bar_width(self) -> int:
        return self._bar_width

    @property
    def target_total(self) -> int:
        return self._target_total

    @property
    def current_progress(self) -> float:
        """Last value passed to tick()"""
        return self._current_progress

    @property
    def start_time(self) -> float:
        return self._start_time

    @property
    def assigned_row(self) -> int:
        return self._assigned_row

    @property
    def mode(self) -> TerminalMode:
        return self._mode

    @property
    def interactive(self) -> bool:
        return self._mode is TerminalMode.INTERACTIVE

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fill_glyph(self) -> str:
        return self._fill_glyph

    @property
    def empty_glyph(self) -> str:
        return self._empty_glyph

    @property
    def fill_color(self) -> Color:
        return self._fill_color

    @property
    def empty_color(self) -> Color:
        return self._empty_color

    @property
    def gradient(self) -> Optional[Tuple[Color, Color]]:
        """(start, end) colors while gradient mode is on, else None"""
        return self._gradient

    @property
    def last_stats(self) -> Optional[FrameStats]:
        """Numbers of the most recently drawn frame"""
        return self._last_stats

    # ------------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------------

    def set_style(self, fill: FillStyle, empty: EmptyStyle):
        """Select the glyphs for filled and empty cells"""
        fill_glyph = _lookup(_FILL_GLYPHS, fill, 'fill style')
        empty_glyph = _lookup(_EMPTY_GLYPHS, empty, 'empty style')
        self._fill_glyph = fill_glyph
        self._empty_glyph = empty_glyph

    def set_colors(self, fill: Color, empty: Color):
        """Select flat colors; an active gradient still overrides the fill color"""
        _lookup(_COLOR_TABLE, fill, 'color')
        _lookup(_COLOR_TABLE, empty, 'color')
        self._fill_color = fill
        self._empty_color = empty

    def set_gradient(self, start: Color, end: Color):
        """Ramp the filled cells from start to end; identical colors turn the gradient off"""
        _lookup(_COLOR_TABLE, start, 'color')
        _lookup(_COLOR_TABLE, end, 'color')
        self._gradient = (start, end) if start != end else None

    # ------------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------------

    def tick(self, progress: float) -> bool:
        """
        Record the latest absolute progress and redraw the bar.

        Returns True, without drawing, when the cancellation probe reports
        an abort; the caller should stop ticking.
        """
        if self._closed:
            raise RowbarError('tick() called on a closed progress bar')

        if self._probe():
            logger.debug('Progress bar %r cancelled', self._description)
            return True

        self._current_progress = progress
        stats = compute_stats(progress, self._target_total, self._bar_width,
                              self._clock() - self._start_time)
        text = self.render(stats, self._session.columns if self.interactive else None)

        if self.interactive:
            self._session.draw(self._stream, self._assigned_row, text)
        else:
            _emit(self._stream, text + '\n')

        self._last_stats = stats
        return False

    def render(self, stats: FrameStats, columns: Optional[int] = None) -> str:
        """
        Format one frame; colored only in interactive mode.

        With columns set, the frame is cut to that many cells: the
        description is shortened first, then the trailing figures, then
        the track.
        """
        head = f'{self._description} '
        tail = (f' {stats.percent}%  '
                f'elapsed {format_clock(stats.elapsed)}  <  '
                f'ETA {format_clock(stats.eta)}  @ {format_rate(stats.speed)}')
        filled, empty = stats.filled, stats.empty

        if columns is not None:
            overflow = len(head) + filled + empty + len(tail) - max(columns, 0)
            if overflow > 0:
                cut = min(overflow, len(head))
                description = _trim(self._description, len(head) - cut - 1)
                head = f'{description} ' if description else ''
                overflow -= cut
            if overflow > 0:
                cut = min(overflow, len(tail))
                tail = tail[:len(tail) - cut]
                overflow -= cut
            if overflow > 0:
                track = max(filled + empty - overflow, 0)
                filled = min(filled, track)
                empty = track - filled

        if self.interactive:
            fill = self._render_fill(filled)
            empty_part = self._paint(_COLOR_TABLE[self._empty_color].ansi, self._empty_glyph * empty)
        else:
            fill = self._fill_glyph * filled
            empty_part = self._empty_glyph * empty

        return f'{head}{fill}{empty_part}{tail}'

    def _render_fill(self, filled: int) -> str:
        if self._gradient is None:
            return self._paint(_COLOR_TABLE[self._fill_color].ansi, self._fill_glyph * filled)

        if filled == 0:
            return ''

        start, end = (_COLOR_TABLE[color].rgb for color in self._gradient)
        cells = [f'{Colors.rgb(*rgb)}{self._fill_glyph}' for rgb in gradient_cells(filled, start, end)]
        return ''.join(cells) + Colors.RESET

    @staticmethod
    def _paint(color: str, text: str) -> str:
        if not text:
            return ''
        return f'{color}{text}{Colors.RESET}'

    # ------------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------------

    def close(self):
        """Release the bar's row; the last interactive bar restores the terminal"""
        if self._closed:
            return
        self._closed = True
        self._session.release(interactive=self.interactive)


# ============================================================================
# Convenience Functions
# ============================================================================

def track(iterable: Iterable,
          description: str,
          bar_width: int = 40,
          total: Optional[int] = None,
          **kwargs) -> Iterator:
    """
    Wrap an iterable, ticking a progress bar with the number of items seen.

    Iteration stops early when the bar's cancellation probe reports an abort.

    Example:
        for chunk in track(chunks, "Uploading"):
            send(chunk)

    Args:
        iterable: The iterable to wrap
        description: Progress bar label
        bar_width: Number of track cells
        total: Total items (auto-detected if possible)
        **kwargs: Additional arguments for ProgressBar
    """
    if total is None:
        try:
            total = len(iterable)
        except TypeError:
            raise ConfigurationError('total is required for iterables without a length') from None

    if total == 0:
        yield from iterable
        return

    with ProgressBar(description, bar_width, total, **kwargs) as bar:
        if bar.tick(0):
            return
        for index, item in enumerate(iterable, 1):
            yield item
            if bar.tick(index):
                return
