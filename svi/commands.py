"""
Command parsing and execution for the svi text editor.

This module handles command-line mode input (':' mode). A command is a verb,
an optional bang ('!') that forces it past a safety check, and an optional
argument separated by a space:

    q, q!, w [name], w! [name], wq [name], wq! [name]
"""
from svi import logger
from svi.ui import screen

def match_verb(cmd: str, verb: str) -> bool:
    """
    Check whether cmd (not counting the argument) is verb, with an optional
    bang at the end. match_verb(cmd, "q") is true for "q", "q!", "q ..." and
    "q! ...", but not for "quit".
    """
    if not cmd.startswith(verb):
        return False
    end = len(verb)
    # if there's a bang, count it as part of the command
    if cmd[end:end + 1] == "!":
        end += 1
    return end == len(cmd) or cmd[end] == " "

def has_bang(cmd: str, verb: str) -> bool:
    """Whether the verb at the start of cmd carries a bang."""
    return cmd[len(verb):len(verb) + 1] == "!"

def command_argument(cmd: str):
    """The first space-delimited token after the verb, or None if there's none."""
    _, sep, rest = cmd.partition(" ")
    if not sep:
        return None
    tokens = rest.split(" ")
    for token in tokens:
        if token:
            return token
    return None

def quit_command(context, cmd: str) -> bool:
    """:q and :q!"""
    if not has_bang(cmd, "q") and context.modified:
        screen.show_error(context, "buffer modified")
        context.log_command("q: refused, buffer modified")
        return False
    context.log_command("q: quit")
    context.graceful_exit()
    return True

def write_command(context, cmd: str) -> bool:
    """:w, :w!, :wq and :wq!"""
    verb = "wq" if match_verb(cmd, "wq") else "w"
    arg = command_argument(cmd)
    name = arg if arg else context.filename
    bang = has_bang(cmd, verb)

    if arg and not context.filename:
        context.filename = arg
    if not name:
        screen.show_error(context, "no file name specified")
        return False

    overwrite = bang or context.written
    try:
        num_bytes = context.buffer.write_to_file(
            name, overwrite,
            mode=context.config.new_file_mode,
            iov_size=context.config.iov_size,
        )
    except FileExistsError:
        screen.show_error(context, "file exists (add ! to override)")
        context.log_command(f"{verb}: {name} exists")
        return False
    except OSError as e:
        screen.show_error(context, f"writing to file failed: {e.strerror or e}")
        context.log_command(f"{verb}: error writing {name}: {e}")
        return False

    context.modified = False
    context.written = True
    context.log_command(f"{verb}: write {name} ({num_bytes} bytes)")
    if verb == "wq":
        context.graceful_exit()
    return True

COMMANDS = [
    ("q", quit_command),
    ("wq", write_command),
    ("w", write_command),
]

def process_command(context, command: str) -> bool:
    """
    Parse and execute a command-line (':' mode) command string. Returns True
    on success; failures have already been reported on the status row.
    """
    for verb, func in COMMANDS:
        if match_verb(command, verb):
            return func(context, command)
    if command:
        # unknown verbs are accepted and do nothing
        logger.log(f"ignored unknown command: {command}")
    return True
