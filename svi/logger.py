"""
Logger module for the svi text editor.

Provides a simple file-based logger for debugging and error tracking. The
editor owns the terminal, so nothing may ever be printed to it; everything
goes to the log file instead.
"""
import datetime

# Define the log file path; None or "" disables logging
LOG_FILE_PATH = "svi.log"

def configure(path) -> None:
    """Point the logger at a different file (or disable it with None/"")."""
    global LOG_FILE_PATH
    LOG_FILE_PATH = path

def log(message: str) -> None:
    """Append a timestamped message to the log file."""
    if not LOG_FILE_PATH:
        return
    try:
        with open(LOG_FILE_PATH, 'a', encoding='utf-8') as f:
            timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            f.write(f"[{timestamp}] {message}\n")
    except OSError:
        # If logging fails (e.g., file not writable), ignore to avoid crashing the editor.
        pass
