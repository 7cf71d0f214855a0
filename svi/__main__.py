"""
Main entry point and editor context for the svi text editor.
"""
import os
import sys

from svi import buffer, config, logger
from svi.errors import FatalError, format_fatal
from svi.ui import input as ui_input, screen, terminal

class EditorContext:
    """
    Holds the state of the editor: the line buffer, the cursor, the current
    mode and the command being typed, plus the flags that decide whether
    quitting and writing are allowed.
    """
    def __init__(self, term, filename: str = None, conf: config.Config = None):
        self.term = term
        self.config = conf if conf is not None else config.Config()

        # Buffer management
        self.buffer = buffer.LineBuffer(
            self.config.initial_buffer_rows,
            self.config.buffer_increment,
            self.config.initial_row_size,
            self.config.row_increment,
        )

        # Command-line buffer and status
        self.cmd = buffer.Line(self.config.initial_cmd_size, self.config.cmd_increment)
        self.status_message = ""

        # Window size and cursor
        self.width = self.config.fallback_width
        self.height = self.config.fallback_height
        self.x = 0
        self.y = 0
        # x position before entering command-line mode
        self.storedx = 0

        # Editor modes: "normal", "insert", "command"
        self.mode = ui_input.NORMAL

        self.filename = filename
        # whether the buffer has unwritten changes
        self.modified = False
        # whether we've written into a file once
        self.written = False

        # Running flag
        self.done = False

    def log_command(self, msg: str):
        """Log a command or action to the debug log file."""
        logger.log(msg)

    def graceful_exit(self):
        """Make the main loop finish after the current event."""
        logger.log("Editor exited.")
        self.done = True

    def query_size(self):
        """Ask the terminal for its size, falling back to the configured one."""
        size = self.term.size()
        if size is None:
            logger.log("terminal size unknown, using fallback size")
            size = (self.config.fallback_width, self.config.fallback_height)
        self.width, self.height = size
        if self.height < 2:
            raise FatalError("terminal height too low")

    def handle_resize(self):
        self.query_size()
        self.log_command(f"resize: {self.width}x{self.height}")

        # the cursor might be outside the window if it got smaller
        if self.x > self.width - 1:
            self.x = self.width - 1
        if self.storedx > self.width - 1:
            self.storedx = self.width - 1
        if self.y > self.height - 2:
            self.y = self.height - 2

        if self.mode == ui_input.COMMAND:
            screen.set_cursor(self, self.x, screen.status_row(self))
        else:
            screen.set_cursor(self, self.x, self.y)

def main(context: EditorContext):
    """Main loop: wait for terminal events until the editor is done."""
    context.query_size()
    screen.set_cursor(context, 0, 0)

    while not context.done:
        event = context.term.wait_event()
        ui_input.dispatch(context, event)

def run(argv=None, term=None) -> int:
    """
    Run the editor on the controlling terminal. Returns the exit status:
    0 after a normal quit, 1 after a fatal error.
    """
    if argv is None:
        argv = sys.argv
    prog = os.path.basename(argv[0]) if argv else "svi"
    filename = argv[1] if len(argv) > 1 else None

    conf = config.load_config()
    logger.configure(conf.log_file)
    for problem in conf.problems:
        logger.log(problem)
    logger.log(f"Editor started (file: {filename})")

    if term is None:
        term = terminal.TerminalSession(probe_timeout_ms=conf.resize_timeout_ms)
    try:
        with term:
            main(EditorContext(term, filename, conf))
    except MemoryError:
        err = FatalError("out of memory")
    except FatalError as e:
        err = e
    else:
        return 0

    logger.log(f"fatal: {err}")
    sys.stderr.write(format_fatal(prog, err))
    sys.stderr.flush()
    return 1

if __name__ == "__main__":
    sys.exit(run())
