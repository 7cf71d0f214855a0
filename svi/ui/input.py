"""
Input handling for the svi text editor.

Key events are dispatched through a table with one handler per
(mode, key) pair. Every handler returns the mode the editor is in
afterwards; a pair without a handler is ignored on purpose.
"""
import os

from svi import commands
from svi.ui import screen
from svi.ui.terminal import EventType, Key

NORMAL = "normal"
INSERT = "insert"
COMMAND = "command"

#########################################
# Cursor movement, shared by normal and insert mode
#########################################
def cursor_up(context):
    if context.y > 0:
        context.y -= 1
        length = context.buffer.line_length(context.y)
        if context.x > length:
            context.x = length
        screen.set_cursor(context, context.x, context.y)

def cursor_down(context):
    # the last row holds the command text or mode indicator
    if context.y < context.height - 2:
        context.y += 1
        length = context.buffer.line_length(context.y)
        if context.x > length:
            context.x = length
        screen.set_cursor(context, context.x, context.y)

def cursor_right(context):
    if context.x < context.width - 1 and context.x < context.buffer.line_length(context.y):
        context.x += 1
        screen.set_cursor(context, context.x, context.y)

def cursor_left(context):
    if context.x > 0:
        context.x -= 1
        screen.set_cursor(context, context.x, context.y)

def cursor_start(context):
    context.x = 0
    screen.set_cursor(context, context.x, context.y)

def cursor_end(context):
    """Move onto the last character of the row."""
    length = context.buffer.line_length(context.y)
    context.x = length - 1 if length else 0
    screen.set_cursor(context, context.x, context.y)

def cursor_start_next_row(context):
    if context.y < context.height - 2:
        context.x = 0
        context.y += 1
        screen.set_cursor(context, context.x, context.y)

def cursor_end_previous_row(context):
    if context.y > 0:
        context.y -= 1
        context.x = context.buffer.line_length(context.y)
        screen.set_cursor(context, context.x, context.y)

def _movement(move):
    """Wrap a cursor movement into a handler that keeps the current mode."""
    def handler(context, event):
        move(context)
        return context.mode
    handler.__name__ = move.__name__
    return handler

#########################################
# Normal mode
#########################################
def normal_backspace(context, event):
    """Move to the previous character, wrapping to the end of the previous row."""
    if context.x == 0 and context.y > 0:
        cursor_end_previous_row(context)
    else:
        cursor_left(context)
    return NORMAL

def start_insert(context):
    context.log_command("i: insert")
    screen.show_status(context, "INSERT")
    screen.set_cursor(context, context.x, context.y)
    return INSERT

def start_append(context):
    cursor_right(context)
    return start_insert(context)

def start_command_line(context):
    context.storedx = context.x
    context.x = 1
    screen.show_status(context, ":")
    screen.set_cursor(context, context.x, screen.status_row(context))
    return COMMAND

NORMAL_CHAR_COMMANDS = {
    "h": _movement(cursor_left),
    "j": _movement(cursor_down),
    "k": _movement(cursor_up),
    "l": _movement(cursor_right),
    "0": _movement(cursor_start),
    "$": _movement(cursor_end),
    "i": lambda context, event: start_insert(context),
    "a": lambda context, event: start_append(context),
    ":": lambda context, event: start_command_line(context),
}

def normal_char(context, event):
    handler = NORMAL_CHAR_COMMANDS.get(chr(event.ch))
    if handler is None:
        # not a normal mode command, nothing to do
        return NORMAL
    return handler(context, event)

#########################################
# Insert mode
#########################################
def insert_escape(context, event):
    context.log_command("esc: normal")
    screen.clear_status(context)
    screen.set_cursor(context, context.x, context.y)
    return NORMAL

def insert_backspace(context, event):
    """Remove the character behind the cursor."""
    if context.x > 0 and context.buffer.line_length(context.y):
        context.modified = True
        context.buffer.remove_char(context.y, context.x - 1)
        screen.redraw_row(context, context.y)
        context.x -= 1
        screen.set_cursor(context, context.x, context.y)
    return INSERT

def insert_delete(context, event):
    """Remove the character under the cursor."""
    if context.buffer.line_length(context.y):
        context.modified = True
        context.buffer.remove_char(context.y, context.x)
        screen.redraw_row(context, context.y)
        screen.set_cursor(context, context.x, context.y)
    return INSERT

def insert_char(context, event):
    if context.x < context.width - 1:
        context.modified = True
        context.buffer.insert_char(context.y, context.x, event.ch)
        screen.redraw_row(context, context.y)
        context.x += 1
        screen.set_cursor(context, context.x, context.y)
    return INSERT

#########################################
# Command-line mode
#########################################
def _leave_command_line(context):
    context.cmd.clear()
    context.x = context.storedx
    screen.set_cursor(context, context.x, context.y)
    return NORMAL

def command_escape(context, event):
    """Discard the command and return to normal mode."""
    screen.clear_status(context)
    return _leave_command_line(context)

def command_enter(context, event):
    """Execute the command and return to normal mode."""
    cmd = os.fsdecode(context.cmd.value())
    if commands.process_command(context, cmd):
        screen.clear_status(context)
    return _leave_command_line(context)

def command_right(context, event):
    if context.x < context.width - 1 and context.x - 1 < len(context.cmd):
        context.x += 1
        screen.set_cursor(context, context.x, screen.status_row(context))
    return COMMAND

def command_left(context, event):
    if context.x > 1:
        context.x -= 1
        screen.set_cursor(context, context.x, screen.status_row(context))
    return COMMAND

def command_backspace(context, event):
    if context.x > 1 and len(context.cmd):
        context.cmd.remove(context.x - 2)
        screen.redraw_command(context)
        context.x -= 1
        screen.set_cursor(context, context.x, screen.status_row(context))
    return COMMAND

def command_delete(context, event):
    if len(context.cmd):
        context.cmd.remove(context.x - 1)
        screen.redraw_command(context)
        screen.set_cursor(context, context.x, screen.status_row(context))
    return COMMAND

def command_char(context, event):
    if 0 < context.x < context.width - 1:
        context.cmd.insert(event.ch, context.x - 1)
        screen.redraw_command(context)
        context.x += 1
        screen.set_cursor(context, context.x, screen.status_row(context))
    return COMMAND

#########################################
# Dispatch table
#########################################
HANDLERS = {
    (NORMAL, Key.ARROW_UP): _movement(cursor_up),
    (NORMAL, Key.ARROW_DOWN): _movement(cursor_down),
    (NORMAL, Key.ARROW_RIGHT): _movement(cursor_right),
    (NORMAL, Key.ARROW_LEFT): _movement(cursor_left),
    (NORMAL, Key.ENTER): _movement(cursor_start_next_row),
    (NORMAL, Key.BACKSPACE): normal_backspace,
    (NORMAL, Key.CHAR): normal_char,

    (INSERT, Key.ESC): insert_escape,
    (INSERT, Key.ARROW_UP): _movement(cursor_up),
    (INSERT, Key.ARROW_DOWN): _movement(cursor_down),
    (INSERT, Key.ARROW_RIGHT): _movement(cursor_right),
    (INSERT, Key.ARROW_LEFT): _movement(cursor_left),
    (INSERT, Key.ENTER): _movement(cursor_start_next_row),
    (INSERT, Key.BACKSPACE): insert_backspace,
    (INSERT, Key.DELETE): insert_delete,
    (INSERT, Key.CHAR): insert_char,

    (COMMAND, Key.ESC): command_escape,
    (COMMAND, Key.ENTER): command_enter,
    (COMMAND, Key.ARROW_RIGHT): command_right,
    (COMMAND, Key.ARROW_LEFT): command_left,
    (COMMAND, Key.BACKSPACE): command_backspace,
    (COMMAND, Key.DELETE): command_delete,
    (COMMAND, Key.CHAR): command_char,
}

def dispatch(context, event):
    """Handle one terminal event."""
    if event.type is EventType.RESIZE:
        context.handle_resize()
        return
    handler = HANDLERS.get((context.mode, event.key))
    if handler is None:
        # e.g. Esc in normal mode or vertical movement on the command line
        return
    context.mode = handler(context, event)
