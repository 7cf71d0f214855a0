"""
Configuration for the svi text editor.

Settings live in a plain `key=value` file, ~/svi/config/svi.conf unless the
SVI_CONFIG environment variable points somewhere else. A missing file means
defaults; broken lines are skipped and collected in `Config.problems`, which the
caller logs after pointing the logger at the configured file.
"""
import os
from dataclasses import dataclass, field, fields

from svi import buffer, logger
from svi.ui import screen

CONFIG_PATH = "~/svi/config/svi.conf"

# if getting the terminal's size fails, the following size is used instead
FALLBACK_WIDTH = 80
FALLBACK_HEIGHT = 24
# how long to wait for the terminal's answer to the size probe, cant be higher than 999
RESIZE_FALLBACK_MS = 500
# how many characters to initially allocate for the command buffer
INITIAL_CMD_SIZE = 16
# how many characters to add to the command buffer's size when it's too small
CMD_SIZE_INCREMENT = 16

@dataclass
class Config:
    fallback_width: int = FALLBACK_WIDTH
    fallback_height: int = FALLBACK_HEIGHT
    resize_timeout_ms: int = RESIZE_FALLBACK_MS
    initial_buffer_rows: int = buffer.INITIAL_BUFFER_ROWS
    buffer_increment: int = buffer.BUF_SIZE_INCREMENT
    initial_row_size: int = buffer.INITIAL_ROW_SIZE
    row_increment: int = buffer.ROW_SIZE_INCREMENT
    initial_cmd_size: int = INITIAL_CMD_SIZE
    cmd_increment: int = CMD_SIZE_INCREMENT
    iov_size: int = buffer.IOV_SIZE
    new_file_mode: int = buffer.NEW_FILE_MODE
    attention_color: str = "red"
    log_file: str = logger.LOG_FILE_PATH
    # messages about lines that were skipped, logged once the log file is set up
    problems: list = field(default_factory=list, init=False, compare=False, repr=False)

# smallest accepted value for each integer setting
_MINIMUMS = {
    "fallback_width": 1,
    "fallback_height": 2,
    "resize_timeout_ms": 1,
    "initial_buffer_rows": 1,
    "buffer_increment": 1,
    "initial_row_size": 2,
    "row_increment": 1,
    "initial_cmd_size": 2,
    "cmd_increment": 1,
    "iov_size": 1,
    "new_file_mode": 0,
}

def _parse_value(name: str, raw: str):
    """Convert raw into the type of the setting, raising ValueError if it doesn't fit."""
    if name == "new_file_mode":
        value = int(raw, 8)
        if value > 0o7777:
            raise ValueError(f"{raw} is not a file mode")
    elif name == "attention_color":
        value = raw.lower()
        if value not in screen.COLORS:
            raise ValueError(f"unknown color {raw}")
        return value
    elif name == "log_file":
        return os.path.expanduser(raw) if raw else ""
    else:
        value = int(raw)
    if value < _MINIMUMS[name]:
        raise ValueError(f"{name} must be at least {_MINIMUMS[name]}")
    if name == "resize_timeout_ms" and value > 999:
        raise ValueError("resize_timeout_ms can't be higher than 999")
    if name == "iov_size" and value > buffer.max_iov_size():
        raise ValueError(f"iov_size can't be higher than {buffer.max_iov_size()}")
    return value

def parse_config(lines) -> Config:
    """Build a Config from an iterable of `key=value` lines."""
    config = Config()
    known = {f.name for f in fields(Config) if f.init}
    for number, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            config.problems.append(f"config line {number}: expected key=value, got '{line}'")
            continue
        key, raw = (part.strip() for part in line.split("=", 1))
        if key not in known:
            config.problems.append(f"config line {number}: unknown setting '{key}'")
            continue
        try:
            setattr(config, key, _parse_value(key, raw))
        except ValueError as e:
            config.problems.append(f"config line {number}: bad value for {key}: {e}")
    return config

def load_config(path: str = None) -> Config:
    """
    Load the configuration from path, $SVI_CONFIG or ~/svi/config/svi.conf.
    A missing or unreadable file yields the defaults.
    """
    if path is None:
        path = os.environ.get("SVI_CONFIG") or CONFIG_PATH
    path = os.path.expanduser(path)
    if not os.path.isfile(path):
        return Config()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return parse_config(f)
    except (OSError, UnicodeDecodeError) as e:
        config = Config()
        config.problems.append(f"error reading config {path}: {e}")
        return config
