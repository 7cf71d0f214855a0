"""
svi/ui/screen.py

Drawing primitives for the svi text editor. The screen is never repainted
as a whole: every change clears and reprints just the row it touched, and
the cursor is positioned with a separate escape sequence afterwards.

All functions take the editor context and write through `context.term`.
"""
import curses

from wcwidth import wcwidth

COLORS = {
    "black": curses.COLOR_BLACK,
    "red": curses.COLOR_RED,
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "blue": curses.COLOR_BLUE,
    "magenta": curses.COLOR_MAGENTA,
    "cyan": curses.COLOR_CYAN,
    "white": curses.COLOR_WHITE,
}

COLOR_RESET = b"\x1b[0m"

def color_sequence(name: str) -> bytes:
    """SGR sequence selecting the foreground color called name."""
    return b"\x1b[%dm" % (30 + COLORS[name])

def move_sequence(x: int, y: int) -> bytes:
    return b"\x1b[%d;%dH" % (y + 1, x + 1)

def fit_to_width(text: str, width: int) -> str:
    """Cut text down to at most width terminal columns."""
    used = 0
    for i, ch in enumerate(text):
        w = wcwidth(ch)
        if w < 0:
            w = 0
        if used + w > width:
            return text[:i]
        used += w
    return text

def clear_row(context, y: int):
    """Clear the row at y-coordinate y."""
    if y < 0:
        return
    context.term.write(b"\x1b[%d;H\x1b[2K" % (y + 1))

def print_row(context, x: int, y: int, text, color: str = None):
    """
    Clear the row at y-coordinate y and print text at (x, y). Buffer text
    comes in as bytes; messages come in as str and are clipped by display
    width.
    """
    if x < 0 or y < 0:
        return
    room = max(0, context.width - x)
    if isinstance(text, str):
        data = fit_to_width(text, room).encode("utf-8", "replace")
    else:
        data = bytes(text[:room])
    out = move_sequence(x, y) + b"\x1b[2K"
    if color:
        out += color_sequence(color) + data + COLOR_RESET
    else:
        out += data
    context.term.write(out)

def set_cursor(context, x: int, y: int):
    """Set the cursor to the location (x, y)."""
    if x < 0 or y < 0:
        return
    context.term.write(move_sequence(x, y))

def status_row(context) -> int:
    """The last row is reserved for the mode indicator and the command line."""
    return context.height - 1

def show_status(context, message: str, color: str = None):
    """Print message on the status row and remember it."""
    context.status_message = message
    print_row(context, 0, status_row(context), message, color)

def show_error(context, message: str):
    """Print an error on the status row in the attention color."""
    show_status(context, message, context.config.attention_color)

def clear_status(context):
    context.status_message = ""
    clear_row(context, status_row(context))

def redraw_row(context, y: int):
    """Reprint a buffer row after it changed."""
    print_row(context, 0, y, context.buffer.row_bytes(y))

def redraw_command(context):
    """Reprint the command line after the command text changed."""
    print_row(context, 0, status_row(context), b":" + context.cmd.value())
