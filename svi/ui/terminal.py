"""
Terminal handling for the svi text editor.

TerminalSession owns everything the editor changes about the controlling
terminal: raw mode, non-blocking input and the resize signal. It turns the
bytes arriving on the input descriptor into TermEvents.

Key decoding is timing based: after an ESC byte the decoder only looks at
bytes that are already available. If there are none, the key was a lone
Esc rather than the start of an escape sequence.
"""
import enum
import fcntl
import os
import re
import select
import signal
import termios
import time
from dataclasses import dataclass

from svi import logger
from svi.errors import FatalError

ESC = 0x1b
CR = 0x0d
DEL = 0x7f

# how long to wait for the answer to the cursor position probe, in ms
RESIZE_FALLBACK_MS = 500
SIZE_PROBE = b"\x1b[9999;9999H\x1b[6n"
# the terminal answers the probe with ESC [ rows ; cols R
_CURSOR_REPORT = re.compile(rb"\x1b\[(\d+);(\d+)R")
_CURSOR_REPORT_MAX = 16

CLEAR_SCREEN = b"\x1b[2J\x1b[H"

class EventType(enum.Enum):
    RESIZE = "resize"
    KEY = "key"

class Key(enum.Enum):
    CHAR = "char"
    ESC = "esc"
    ARROW_UP = "up"
    ARROW_DOWN = "down"
    ARROW_RIGHT = "right"
    ARROW_LEFT = "left"
    ENTER = "enter"
    BACKSPACE = "backspace"
    DELETE = "delete"

@dataclass(frozen=True)
class TermEvent:
    type: EventType
    key: Key = None
    ch: int = None

RESIZE_EVENT = TermEvent(EventType.RESIZE)

def key_event(key: Key, ch: int = None) -> TermEvent:
    return TermEvent(EventType.KEY, key, ch)

def char_event(ch) -> TermEvent:
    """Event for a plain character key; ch is a byte value or a 1-char str."""
    if isinstance(ch, str):
        ch = ord(ch)
    return TermEvent(EventType.KEY, Key.CHAR, ch)

# ESC [ <byte>
_CSI_KEYS = {
    ord("A"): Key.ARROW_UP,
    ord("B"): Key.ARROW_DOWN,
    ord("C"): Key.ARROW_RIGHT,
    ord("D"): Key.ARROW_LEFT,
}

def decode_key(read_byte):
    """
    Decode one key from the bytes returned by read_byte(), which gives the
    next available byte or None when nothing is available right now.

    Returns a key TermEvent, or None once the available input runs out
    without producing a key. Unknown escape sequences and bytes above 0x7f
    are dropped.
    """
    while True:
        c = read_byte()
        if c is None:
            return None

        if c == ESC:
            c = read_byte()
            if c is None:
                # it's just <ESC>
                return key_event(Key.ESC)
            if c == ord("["):
                c = read_byte()
                if c in _CSI_KEYS:
                    return key_event(_CSI_KEYS[c])
                if c == ord("3") and read_byte() == ord("~"):
                    return key_event(Key.DELETE)
            # unknown sequence, drop it
            continue

        if c == CR:
            return key_event(Key.ENTER)
        if c == DEL:
            return key_event(Key.BACKSPACE)
        if c < DEL:
            return char_event(c)
        # only ASCII is supported, ignore everything else

def _os_error(err) -> OSError:
    """termios.error carries (errno, strerror) but isn't an OSError."""
    return OSError(*err.args)

class TerminalSession:
    """
    The terminal the editor runs on. init() switches it to raw mode and
    shutdown() puts everything back; shutdown() may be called any number
    of times, including from the fatal-error path.

    The resize signal (SIGWINCH where it exists, or whatever is passed as
    resize_signal; None disables resize events) is blocked everywhere except
    while waiting in wait_event(). Its handler only sets a flag; the
    signal's wakeup pipe is what interrupts the wait.
    """
    def __init__(self, infd: int = 0, outfd: int = 1,
                 resize_signal=getattr(signal, "SIGWINCH", None),
                 probe_timeout_ms: int = RESIZE_FALLBACK_MS):
        self.infd = infd
        self.outfd = outfd
        self.resize_signal = resize_signal
        self.probe_timeout_ms = probe_timeout_ms
        self.initialized = False

        self._saved_attrs = None
        self._saved_flags = None
        self._resized = False
        self._signal_installed = False
        self._old_handler = None
        self._old_wakeup_fd = -1
        self._old_mask = None
        self._wakeup_r = None
        self._wakeup_w = None

    def __enter__(self):
        try:
            self.init()
        except BaseException:
            # init() may have got half way
            self.shutdown()
            raise
        return self

    def __exit__(self, *exc):
        self.shutdown()
        return False

    ##########################################
    # LIFECYCLE
    ##########################################
    def init(self):
        """Initialize the terminal for use by the editor."""
        if not os.isatty(self.infd) or not os.isatty(self.outfd):
            raise FatalError("stdin and stdout must be a terminal")
        try:
            attrs = termios.tcgetattr(self.infd)
        except termios.error as e:
            raise FatalError("tcgetattr:", _os_error(e))
        self._saved_attrs = attrs

        raw = list(attrs)
        raw[6] = list(attrs[6])
        raw[0] &= ~(termios.IGNBRK | termios.BRKINT | termios.PARMRK | termios.ISTRIP
                    | termios.INLCR | termios.IGNCR | termios.ICRNL | termios.IXON)
        raw[1] &= ~termios.OPOST
        raw[3] &= ~(termios.ECHO | termios.ECHONL | termios.ICANON | termios.ISIG
                    | termios.IEXTEN)
        raw[2] &= ~(termios.CSIZE | termios.PARENB)
        raw[2] |= termios.CS8
        raw[6][termios.VMIN] = 1
        raw[6][termios.VTIME] = 0
        try:
            termios.tcsetattr(self.infd, termios.TCSANOW, raw)
        except termios.error as e:
            raise FatalError("tcsetattr:", _os_error(e))
        self.initialized = True

        try:
            flags = fcntl.fcntl(self.infd, fcntl.F_GETFL)
            self._saved_flags = flags
            fcntl.fcntl(self.infd, fcntl.F_SETFL, flags | os.O_NONBLOCK)
        except OSError as e:
            raise FatalError("fcntl:", e)

        if self.resize_signal is not None:
            self._install_resize_handler()

        self.write(CLEAR_SCREEN)
        logger.log("terminal: raw mode on")

    def _install_resize_handler(self):
        sig = self.resize_signal
        try:
            self._wakeup_r, self._wakeup_w = os.pipe()
            os.set_blocking(self._wakeup_r, False)
            os.set_blocking(self._wakeup_w, False)
            self._old_handler = signal.signal(sig, self._on_resize)
            self._signal_installed = True
            self._old_wakeup_fd = signal.set_wakeup_fd(self._wakeup_w,
                                                       warn_on_full_buffer=False)
            self._old_mask = signal.pthread_sigmask(signal.SIG_BLOCK, {sig})
        except OSError as e:
            raise FatalError("sigaction:", e)
        except ValueError as e:
            # signals can only be set up from the main thread
            raise FatalError(f"sigaction: {e}")

    def shutdown(self):
        """Restore the terminal to the state init() found it in."""
        if not self.initialized:
            self._restore_resize_handler()
            return
        # avoid doing this twice if something below fails
        self.initialized = False
        self._restore_resize_handler()

        try:
            termios.tcsetattr(self.infd, termios.TCSANOW, self._saved_attrs)
        except termios.error as e:
            raise FatalError("tcsetattr:", _os_error(e))
        if self._saved_flags is not None:
            try:
                fcntl.fcntl(self.infd, fcntl.F_SETFL, self._saved_flags)
            except OSError as e:
                raise FatalError("fcntl:", e)
            self._saved_flags = None

        self.write(CLEAR_SCREEN)
        logger.log("terminal: restored")

    def _restore_resize_handler(self):
        if self._signal_installed:
            self._signal_installed = False
            signal.set_wakeup_fd(self._old_wakeup_fd)
            signal.signal(self.resize_signal, self._old_handler or signal.SIG_DFL)
            if self._old_mask is not None:
                signal.pthread_sigmask(signal.SIG_SETMASK, self._old_mask)
                self._old_mask = None
        for fd in (self._wakeup_r, self._wakeup_w):
            if fd is not None:
                os.close(fd)
        self._wakeup_r = self._wakeup_w = None

    def _on_resize(self, signum, frame):
        self._resized = True

    ##########################################
    # INPUT
    ##########################################
    def _try_read_byte(self):
        """Read one byte from the input, or return None if none is available."""
        try:
            data = os.read(self.infd, 1)
        except BlockingIOError:
            return None
        except OSError as e:
            raise FatalError("read:", e)
        if not data:
            raise FatalError("read: end of input")
        return data[0]

    def _drain_wakeup(self) -> bytes:
        """Empty the wakeup pipe, returning the signal numbers it carried."""
        received = b""
        while True:
            try:
                data = os.read(self._wakeup_r, 64)
            except BlockingIOError:
                return received
            if not data:
                return received
            received += data

    def _set_resize_blocked(self, blocked: bool):
        if self._signal_installed:
            how = signal.SIG_BLOCK if blocked else signal.SIG_UNBLOCK
            signal.pthread_sigmask(how, {self.resize_signal})

    def wait_event(self) -> TermEvent:
        """Wait for a terminal event: either a resize or a key press."""
        while True:
            fds = [self.infd]
            if self._wakeup_r is not None:
                fds.append(self._wakeup_r)

            self._set_resize_blocked(False)
            try:
                readable, _, _ = select.select(fds, [], [])
            except OSError as e:
                raise FatalError("select:", e)
            finally:
                self._set_resize_blocked(True)

            if self._wakeup_r is not None and self._wakeup_r in readable:
                if self.resize_signal in self._drain_wakeup():
                    self._resized = True
            if self._resized:
                self._resized = False
                return RESIZE_EVENT

            if self.infd in readable:
                event = decode_key(self._try_read_byte)
                if event is not None:
                    return event

    ##########################################
    # OUTPUT
    ##########################################
    def write(self, data: bytes):
        """Write all of data to the terminal."""
        view = memoryview(data)
        while view:
            try:
                count = os.write(self.outfd, view)
            except BlockingIOError:
                # stdin and stdout usually share the tty, and with it O_NONBLOCK
                select.select([], [self.outfd], [])
                continue
            except OSError as e:
                raise FatalError("write:", e)
            view = view[count:]

    ##########################################
    # SIZE
    ##########################################
    def size(self):
        """
        Return the terminal's size as (width, height), or None if it can't
        be found out.
        """
        try:
            columns, lines = os.get_terminal_size(self.infd)
        except OSError:
            columns = lines = 0
        if columns and lines:
            return columns, lines
        # fall back to asking the terminal where the cursor ends up
        return self._probe_size()

    def _probe_size(self):
        try:
            self.write(SIZE_PROBE)
        except FatalError as e:
            logger.log(f"size probe failed: {e}")
            return None

        deadline = time.monotonic() + self.probe_timeout_ms / 1000
        response = b""
        while len(response) < _CURSOR_REPORT_MAX and not response.endswith(b"R"):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            try:
                readable, _, _ = select.select([self.infd], [], [], remaining)
                if not readable:
                    return None
                data = os.read(self.infd, 1)
            except BlockingIOError:
                continue
            except OSError:
                return None
            if not data:
                return None
            response += data

        match = _CURSOR_REPORT.fullmatch(response)
        if not match:
            return None
        lines, columns = int(match.group(1)), int(match.group(2))
        if not columns or not lines:
            return None
        return columns, lines
