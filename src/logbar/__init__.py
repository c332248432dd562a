# -*- coding: utf-8 -*-
"""
logbar – Leveled console logging with live spinners and progress bars.
Licensed under the MIT License.
"""

import io
import sys
import math
import time
import threading
import traceback
from contextlib import contextmanager
from enum import Enum
from typing import (
        Protocol,
        Optional,
        Tuple,
        List,
        Dict,
        Mapping,
        Callable,
        Any,
        Awaitable,
        Iterable,
        Iterator,
        Union,
        TextIO,
)
import logging

from rich.console import Console as RichConsole
from rich.pretty import Pretty

__all__ = [
    'Console',
    'ConsoleState',
    'Colors',
    'Widget',
    'Spinner',
    'SpinnerWidget',
    'ProgressBarWidget',
    'SPINNER_STYLES',
    'PROGRESS_BAR_STYLES',
    'LOG_LEVELS',
    'ETA_UNKNOWN',
    'format_delta_time',
    'format_args',
    'render_bar',
]

logger = logging.getLogger('logbar')


REFRESH_INTERVAL = 0.1
ETA_UNKNOWN = '--'

# ============================================================================
# Terminal utilities
# ============================================================================

CLEAR_LINE = '\r\033[2K'
NEWLINE = '\r\n'


def _cursor_up(lines: int) -> str:
    return f'\033[{lines}A'


class Colors:
    """ANSI color codes"""
    RESET = '\033[0m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'

    BRIGHT_BLACK = '\033[90m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_CYAN = '\033[96m'


def _bracket(symbol: str) -> str:
    """Wrap a glyph in grey brackets"""
    return f'{Colors.BRIGHT_BLACK}[{Colors.RESET}{symbol}{Colors.BRIGHT_BLACK}]{Colors.RESET}'


def _lookup_style(table: Mapping[str, Any], name: str, kind: str) -> Any:
    try:
        return table[name]
    except KeyError:
        raise ValueError(f"unknown {kind} style {name!r}, expected one of: {', '.join(table)}") from None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _now_ms() -> float:
    return time.perf_counter() * 1000


# ============================================================================
# Value formatting
# ============================================================================

_inspector = RichConsole(file=io.StringIO(), force_terminal=True, color_system='standard', width=100)


def _inspect(value: Any) -> str:
    """Pretty print a structured value with syntax highlighting"""
    with _inspector.capture() as capture:
        _inspector.print(Pretty(value), end='')
    return capture.get()


def _arg_to_string(arg: Any) -> str:
    if isinstance(arg, str):
        return arg
    return _inspect(arg)


def format_args(*args: Any) -> str:
    """
    Join log call arguments into a single message.

    A leading string may contain ``{}`` placeholders, each filled with the
    next argument. Remaining arguments are appended, separated by spaces.
    Anything that is not a string goes through the pretty printer.

    Example:
        format_args("found {} items in {}", 5, "Hello.txt")
        # 'found 5 items in Hello.txt'
    """
    out = ''
    i = 0

    while i < len(args):
        if out:
            out += ' '

        arg = args[i]
        if i == 0 and isinstance(arg, str):
            pieces = arg.split('{}')
            out += pieces[0]
            for piece in pieces[1:]:
                if i + 1 < len(args):
                    i += 1
                    out += _arg_to_string(args[i])
                else:
                    out += '{}'
                out += piece
        else:
            out += _arg_to_string(arg)

        i += 1

    return out


TIME_SUFFIXES: Tuple[Tuple[str, int], ...] = (
    ('d', 1000 * 60 * 60 * 24),
    ('h', 1000 * 60 * 60),
    ('m', 1000 * 60),
    ('s', 1000),
)


def format_delta_time(delta: float, rounded: bool = False) -> str:
    """Format a duration in milliseconds using its largest fitting unit"""
    for suffix, size in TIME_SUFFIXES:
        if delta >= size:
            if rounded:
                return f'{_round_half_up(delta / size)}{suffix}'
            return f'{delta / size:.1f}{suffix}'

    return f'{_round_half_up(delta)}ms'


def _token_str(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ============================================================================
# Spinner Engine
# ============================================================================

SPINNER_STYLES: Dict[str, Tuple[str, ...]] = {
    'dots': ('⠇', '⠋', '⠙', '⠸', '⠴', '⠦'),
    'geometry': ('▱▱▱▱▱', '▰▱▱▱▱', '▰▰▱▱▱', '▰▰▰▱▱', '▰▰▰▰▱', '▰▰▰▰▰'),
    'classic': ('|', '/', '-', '\\'),
    'fill': ('▁', '▂', '▃', '▄', '▅', '▆', '▇', '█'),
    'sus': ('     ', '    ඞ', '   ඞ ', '  ඞ  ', ' ඞ   ', 'ඞ    ', '     '),
}


class Spinner:
    """Endless rotation over the frames of a spinner style"""

    def __init__(self, style: str = 'dots'):
        self.frames = _lookup_style(SPINNER_STYLES, style, 'spinner')
        self.style = style
        self.frame_index = 0

    def render(self) -> str:
        """Return the current frame and move on to the next one"""
        frame = self.frames[self.frame_index]
        self.frame_index = (self.frame_index + 1) % len(self.frames)
        return frame


# ============================================================================
# Cell Renderer
# ============================================================================

PROGRESS_BAR_STYLES: Dict[str, Dict[float, str]] = {
    'shadow': {
        25: '░',
        50: '▒',
        75: '▓',
        100: '█',
    },
    'block': {
        12.5: '▏',
        25: '▎',
        37.5: '▍',
        50: '▌',
        62.5: '▋',
        75: '▊',
        87.5: '▉',
        100: '█',
    },
    'classic': {
        100: '=',
    },
    'line': {
        0: f'{Colors.BRIGHT_BLACK}─{Colors.RESET}',
        100: f'{Colors.GREEN}─{Colors.RESET}',
    },
}


def render_bar(style: Union[str, Mapping[float, str]], fraction: float, width: int) -> str:
    """
    Render a bar of ``width`` cells filled up to ``fraction``.

    Whole cells use the glyph at threshold 100. The last, partially filled
    cell uses the glyph of the largest threshold its fill percentage reaches.
    The rest is padded with the glyph at threshold 0, or spaces.

    Args:
        style: Style name from PROGRESS_BAR_STYLES or a threshold table
        fraction: Fill ratio between 0.0 and 1.0
        width: Number of cells
    """
    table = _lookup_style(PROGRESS_BAR_STYLES, style, 'progress bar') if isinstance(style, str) else style

    progress = fraction * width
    cells: List[str] = []

    while progress >= 1:
        cells.append(table[100])
        progress -= 1

    if progress >= 0:
        partial: Optional[float] = None
        for threshold in table:
            if threshold in (0, 100):
                continue
            if progress * 100 >= threshold and (partial is None or threshold > partial):
                partial = threshold

        if partial is not None:
            cells.append(table[partial])

    pad = table.get(0, ' ')
    return ''.join(cells) + pad * max(width - len(cells), 0)


# ============================================================================
# Widgets
# ============================================================================

class Widget(Protocol):
    """Anything the console can draw as one live line"""

    def render(self) -> str:
        ...


class SpinnerWidget:
    """Spinner followed by a status text"""

    def __init__(self, console: 'Console', text: str, style: str = 'dots'):
        self.console = console
        self.text = text
        self.spinner = Spinner(style)

    def update(self, text: str):
        """Replace the status text"""
        with self.console.lock():
            self.text = text

    def render(self) -> str:
        frame = self.spinner.render()
        return f'{_bracket(f"{Colors.YELLOW}{frame}{Colors.RESET}")} {self.text}'

    def success(self, message: str, *args: Any):
        """Remove the spinner and log a success line"""
        self.console.remove(self)
        self.console.success(message, *args)

    def error(self, message: str, *args: Any):
        """Remove the spinner and log an error line"""
        self.console.remove(self)
        self.console.error(message, *args)


class ProgressBarWidget:
    """Progress bar rendered from a format template"""

    def __init__(self,
                 console: 'Console',
                 max: float,
                 value: float = 0,
                 style: str = 'shadow',
                 format: str = '{bar}',
                 width: int = 20,
                 spinner_style: str = 'dots'):
        """
        Create a progress bar.

        Args:
            console: Owning console
            max: Value at which the bar is full
            value: Initial value
            style: Bar style name from PROGRESS_BAR_STYLES
            format: Template with {value}, {max}, {eta}, {eta_rounded},
                {bar}, {progress} and {spinner} placeholders
            width: Bar width in cells
            spinner_style: Style of the {spinner} token
        """
        if max <= 0:
            raise ValueError("max must be positive")
        if width < 0:
            raise ValueError("width must be non-negative")

        self.console = console
        self.max = max
        self.style = style
        self.bar_style = _lookup_style(PROGRESS_BAR_STYLES, style, 'progress bar')
        self.format = format
        self.width = width
        self.spinner = Spinner(spinner_style)
        self.extra_tokens: Dict[str, Any] = {}

        self.value: float = 0
        self._update_internal(value)
        self.start_time = _now_ms()

    def stop(self):
        """Remove the bar from the console"""
        self.console.remove(self)

    def update(self, value: float, extra_tokens: Optional[Dict[str, Any]] = None):
        """Set the current value, clamped to [0, max]"""
        with self.console.lock():
            self._update_internal(value, extra_tokens)

    def _update_internal(self, value: float, extra_tokens: Optional[Dict[str, Any]] = None):
        if value < 0:
            value = 0
        self.value = min(value, self.max)
        if extra_tokens is not None:
            self.extra_tokens = extra_tokens

    def step(self, delta: float = 1, extra_tokens: Optional[Dict[str, Any]] = None):
        """Advance the current value by delta"""
        with self.console.lock():
            self._update_internal(self.value + delta, extra_tokens)

    def tokens(self) -> Dict[str, Any]:
        """Compute the values of all standard template tokens"""
        elapsed = _now_ms() - self.start_time

        if self.value == 0:
            eta = eta_rounded = ETA_UNKNOWN
        else:
            remaining = elapsed / self.value * (self.max - self.value)
            eta = format_delta_time(remaining)
            eta_rounded = format_delta_time(remaining, True)

        return {
            'value': self.value,
            'max': self.max,
            'eta': eta,
            'eta_rounded': eta_rounded,
            'bar': render_bar(self.bar_style, self.value / self.max, self.width),
            'progress': _round_half_up(self.value / self.max * 100),
            'spinner': self.spinner.render(),
        }

    def render(self) -> str:
        tokens = self.tokens()
        line = self.format

        for name, value in tokens.items():
            line = line.replace(f'{{{name}}}', _token_str(value))

        # Extra token names only resolve to standard token values
        for name in self.extra_tokens:
            if name in tokens:
                line = line.replace(f'{{{name}}}', _token_str(tokens[name]))

        return line


# ============================================================================
# Console
# ============================================================================

LOG_LEVELS: Tuple[str, ...] = ('error', 'warn', 'success', 'info', 'debug', 'trace')

_LEVEL_SYMBOLS: Dict[str, str] = {
    'error': f'{Colors.RED}✗{Colors.RESET}',
    'warn': f'{Colors.YELLOW}!{Colors.RESET}',
    'success': f'{Colors.BRIGHT_GREEN}✓{Colors.RESET}',
    'info': f'{Colors.BRIGHT_BLUE}i{Colors.RESET}',
    'debug': f'{Colors.BRIGHT_YELLOW}d{Colors.RESET}',
    'trace': f'{Colors.BRIGHT_CYAN}t{Colors.RESET}',
}


class ConsoleState(Enum):
    IDLE = 'idle'
    PAINTING = 'painting'


class Console:
    """Writes log lines and keeps live widgets painted below them"""

    def __init__(self,
                 widget_margin: int = 1,
                 log_level: str = 'trace',
                 stream: Optional[TextIO] = None,
                 autostart: bool = True):
        """
        Create a console.

        Args:
            widget_margin: Blank lines between the log output and the widgets
            log_level: Least important level that still gets written
            stream: Output stream (defaults to sys.stdout)
            autostart: Start the background redraw thread right away
        """
        self._lock = threading.RLock()
        self._stream = stream
        self._options: Dict[str, Any] = {'widget_margin': 1, 'log_level': 'trace'}
        self.configure(widget_margin=widget_margin, log_level=log_level)

        self._widgets: List[Widget] = []
        self._last_painted_count = 0
        self._has_rendered = False
        self._painting = False
        self._repaint_pending = False

        self._stop_event = threading.Event()
        self._ticker: Optional[threading.Thread] = None
        self._closed = False

        if autostart:
            self.start()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def lock(self):
        """Context manager for thread-safe operations"""
        with self._lock:
            yield self._lock

    # Configuration

    def configure(self, **options: Any):
        """Merge options into the current configuration"""
        for name, value in options.items():
            if name == 'widget_margin':
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise ValueError("widget_margin must be a non-negative integer")
            elif name == 'log_level':
                if value not in LOG_LEVELS:
                    raise ValueError(f"unknown log level {value!r}, expected one of: {', '.join(LOG_LEVELS)}")
            else:
                raise ValueError(f"unknown option {name!r}")

        with self.lock():
            self._options.update(options)

    @property
    def widget_margin(self) -> int:
        return self._options['widget_margin']

    @property
    def log_level(self) -> str:
        return self._options['log_level']

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    @property
    def widgets(self) -> Tuple[Widget, ...]:
        with self.lock():
            return tuple(self._widgets)

    @property
    def last_painted_count(self) -> int:
        """Number of widget lines on screen after the last repaint"""
        return self._last_painted_count

    @property
    def state(self) -> ConsoleState:
        """PAINTING once a widget line was drawn, until the region is fully cleared"""
        with self.lock():
            if self._has_rendered:
                return ConsoleState.PAINTING
            return ConsoleState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    # Lifecycle

    def start(self):
        """Start the background redraw thread"""
        with self.lock():
            if self._closed:
                raise RuntimeError("console is closed")
            if self._ticker is not None:
                return

            self._ticker = threading.Thread(target=self._redraw_loop, name='logbar-redraw', daemon=True)
            self._ticker.start()

    def close(self):
        """Blank the widget region and stop all further output"""
        with self.lock():
            if self._closed:
                return

            self._widgets = []
            self._redraw_internal()

            self._closed = True
            self._stop_event.set()
            ticker, self._ticker = self._ticker, None

        if ticker is not None and ticker is not threading.current_thread():
            ticker.join()

    def _redraw_loop(self):
        error_count = 0
        max_errors = 10

        while not self._stop_event.wait(REFRESH_INTERVAL):
            try:
                self.redraw()
                error_count = 0
            except Exception:
                error_count += 1
                if error_count <= max_errors:
                    logger.exception('Widget redraw failed (error %d/%d)', error_count, max_errors)
                elif error_count == max_errors + 1:
                    logger.error('Widget redraw: suppressing further errors')

    # Widget registry

    def spinner(self, text: str, style: str = 'dots') -> SpinnerWidget:
        """Create and add a new spinner"""
        widget = SpinnerWidget(self, text, style=style)
        self.add(widget)
        return widget

    def progress(self, max: float, **options: Any) -> ProgressBarWidget:
        """Create and add a new progress bar"""
        widget = ProgressBarWidget(self, max, **options)
        self.add(widget)
        return widget

    def add(self, widget: Widget):
        """Append a widget below the existing ones"""
        with self.lock():
            self._widgets.append(widget)

    def contains(self, widget: Widget) -> bool:
        """Check if a widget is still live"""
        with self.lock():
            return any(w is widget for w in self._widgets)

    def remove(self, widget: Widget):
        """Remove a widget and repaint"""
        with self.lock():
            self._widgets = [w for w in self._widgets if w is not widget]
            self._redraw_internal()

    def remove_all_widgets(self):
        """Remove every widget and repaint"""
        with self.lock():
            self._widgets = []
            self._redraw_internal()

    def redraw(self):
        """Repaint the widget region"""
        with self.lock():
            self._redraw_internal()

    def _redraw_internal(self):
        # A repaint requested while rendering (e.g. a render removing a
        # widget) runs after the current one has been written
        if self._painting:
            self._repaint_pending = True
            return

        self._painting = True
        try:
            self._repaint_pending = True
            while self._repaint_pending and not self._closed:
                self._repaint_pending = False
                self._paint_internal()
        finally:
            self._painting = False
            self._repaint_pending = False

    def _paint_internal(self):
        painted = self._last_painted_count
        widgets = list(self._widgets)

        if painted == 0 and not widgets:
            return

        margin = self.widget_margin
        out = [f'{CLEAR_LINE}{NEWLINE}' * margin]

        # Every slot painted last time is rewritten, vacated ones as blank lines
        for index in range(painted):
            if index < len(widgets):
                out.append(f'{CLEAR_LINE}{widgets[index].render()}{NEWLINE}')
            else:
                out.append(f'{CLEAR_LINE}{NEWLINE}')

        lines_up = painted + margin
        if lines_up:
            out.append(_cursor_up(lines_up))

        self._write(''.join(out))
        self._last_painted_count = len(widgets)

        if not widgets:
            self._has_rendered = False
        elif painted:
            self._has_rendered = True

    def _write(self, data: str):
        stream = self.stream
        stream.write(data)
        stream.flush()

    # Log lines

    def can_log(self, level: str) -> bool:
        """Check if the configured log level lets a level through"""
        return LOG_LEVELS.index(level) <= LOG_LEVELS.index(self.log_level)

    def _log(self, level: str, args: Tuple[Any, ...]):
        with self.lock():
            if self._closed or not self.can_log(level):
                return

            self._write(f'{CLEAR_LINE}{_bracket(_LEVEL_SYMBOLS[level])} {format_args(*args)}{NEWLINE}')
            self._redraw_internal()

    def error(self, *args: Any):
        self._log('error', args)

    def warn(self, *args: Any):
        self._log('warn', args)

    def success(self, *args: Any):
        self._log('success', args)

    def info(self, *args: Any):
        self._log('info', args)

    def debug(self, *args: Any):
        self._log('debug', args)

    def trace(self, *args: Any):
        """Log a message followed by the stack of the calling code"""
        with self.lock():
            if self._closed or not self.can_log('trace'):
                return

            stack = ''.join(traceback.format_stack()[:-1]).rstrip('\n').split('\n')
            header = f'{_bracket(_LEVEL_SYMBOLS["trace"])} {format_args(*args)}'
            block = '\n'.join([header] + stack)

            self._write(f'{CLEAR_LINE}{block}{NEWLINE}')
            self._redraw_internal()

    # Convenience wrappers

    def with_spinner(self, message: str, callback: Callable[[SpinnerWidget], Any], style: str = 'dots') -> Any:
        """Create a spinner and hand it to callback"""
        spinner = self.spinner(message, style=style)
        return callback(spinner)

    def with_progress(self, callback: Callable[[ProgressBarWidget], Any], max: float, **options: Any) -> Any:
        """Create a progress bar and hand it to callback"""
        bar = self.progress(max, **options)
        return callback(bar)

    @contextmanager
    def spinning(self,
                 message: str,
                 success: str = 'success',
                 error: str = 'error',
                 style: str = 'dots') -> Iterator[SpinnerWidget]:
        """
        Show a spinner while the block runs.

        Example:
            with console.spinning("Downloading...", success="Downloaded"):
                download()

        The spinner finishes with the success message, or with the error
        message if the block raises. The exception is re-raised. A spinner
        already finished inside the block is left alone.
        """
        spinner = self.spinner(message, style=style)
        try:
            yield spinner
        except BaseException:
            if self.contains(spinner):
                spinner.error(error)
            raise

        if self.contains(spinner):
            spinner.success(success)

    async def wait(self,
                   awaitable: Awaitable[Any],
                   message: str,
                   success: str = 'success',
                   error: str = 'error',
                   style: str = 'dots') -> Any:
        """Await with a spinner shown until the result is ready"""
        with self.spinning(message, success=success, error=error, style=style):
            return await awaitable

    def track(self, iterable: Iterable[Any], max: Optional[float] = None, **options: Any) -> Iterator[Any]:
        """
        Wrap an iterable to step a progress bar for every item.

        Example:
            for item in console.track(items, format="{bar} {progress}%"):
                process(item)

        Args:
            iterable: The iterable to wrap
            max: Total items (taken from len() if omitted)
            **options: Additional arguments for ProgressBarWidget
        """
        if max is None:
            try:
                max = len(iterable)  # type: ignore[arg-type]
            except TypeError:
                raise ValueError("max is required for iterables without a length") from None

        if not max:
            yield from iterable
            return

        bar = self.progress(max, **options)
        try:
            for item in iterable:
                yield item
                bar.step()
        finally:
            bar.stop()
