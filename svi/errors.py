"""
Fatal error handling for the svi text editor.

Low-level code never exits the process by itself. It raises FatalError,
and the entry point restores the terminal before reporting it.
"""

class FatalError(Exception):
    """
    An unrecoverable condition. When the message ends in a colon, the
    description of the underlying OS error is appended, e.g.
    "tcgetattr: Inappropriate ioctl for device".
    """
    def __init__(self, message: str, error: OSError = None):
        super().__init__(message)
        self.message = message
        self.error = error

    def __str__(self):
        if self.message.endswith(":"):
            reason = None
            if self.error is not None:
                reason = self.error.strerror or str(self.error)
            return f"{self.message} {reason or 'unknown error'}"
        return self.message

def format_fatal(prog: str, err: Exception) -> str:
    """Format a fatal error the way it is written to stderr."""
    if prog:
        return f"{prog}: {err}\n"
    return f"{err}\n"
