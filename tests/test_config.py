"""Tests for configuration loading."""

from svi import buffer, logger
from svi.config import Config, load_config, parse_config
from svi.ui import screen


def test_defaults():
    config = Config()
    assert (config.fallback_width, config.fallback_height) == (80, 24)
    assert config.resize_timeout_ms == 500
    assert config.initial_buffer_rows == 32
    assert config.buffer_increment == 16
    assert config.initial_row_size == 128
    assert config.row_increment == 64
    assert config.iov_size == 32
    assert config.new_file_mode == 0o666
    assert config.attention_color == "red"


def test_missing_file(tmp_path):
    assert load_config(str(tmp_path / "nope.conf")) == Config()


def test_env_var(tmp_path, monkeypatch):
    path = tmp_path / "svi.conf"
    path.write_text("fallback_width=100\n")
    monkeypatch.setenv("SVI_CONFIG", str(path))
    assert load_config().fallback_width == 100


def test_parse_values():
    config = parse_config(
        [
            "# comment",
            "",
            "fallback_height = 40",
            "new_file_mode=600",
            "attention_color=Yellow",
            "iov_size=4",
            "log_file=",
        ]
    )
    assert config.fallback_height == 40
    assert config.new_file_mode == 0o600
    assert config.attention_color == "yellow"
    assert config.iov_size == 4
    assert config.log_file == ""


def test_bad_lines_are_collected_and_skipped(tmp_path):
    config = parse_config(
        [
            "no equals sign",
            "colour=red",
            "initial_row_size=1",
            "resize_timeout_ms=1000",
            "attention_color=pink",
            "buffer_increment=lots",
        ]
    )
    assert config == Config()
    assert len(config.problems) == 6
    log = "\n".join(config.problems)
    assert "expected key=value" in log
    assert "unknown setting 'colour'" in log
    assert "bad value for initial_row_size" in log
    assert "bad value for resize_timeout_ms" in log
    assert "bad value for attention_color" in log
    assert "bad value for buffer_increment" in log
    assert not (tmp_path / "svi.log").exists()


def test_problems_are_not_a_setting():
    config = parse_config(["problems=oops"])
    assert config.problems == ["config line 1: unknown setting 'problems'"]


def test_iov_size_limited_by_system(monkeypatch):
    monkeypatch.setattr(buffer, "max_iov_size", lambda: 1024)
    assert parse_config(["iov_size=1024"]).iov_size == 1024
    config = parse_config(["iov_size=4096"])
    assert config.iov_size == buffer.IOV_SIZE
    assert "bad value for iov_size" in config.problems[0]


def test_unreadable_file(tmp_path):
    path = tmp_path / "svi.conf"
    path.write_bytes(b"fallback_width=\xff\n")
    config = load_config(str(path))
    assert config == Config()
    assert config.problems[0].startswith("error reading config")


def test_color_sequences():
    assert screen.color_sequence("red") == b"\x1b[31m"
    assert screen.color_sequence("white") == b"\x1b[37m"
    assert len(screen.COLORS) == 8


def test_logger_disabled(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    logger.configure("")
    logger.log("nothing")
    assert list(tmp_path.iterdir()) == []


def test_logger_format(tmp_path):
    logger.log("hello")
    line = (tmp_path / "svi.log").read_text().splitlines()[-1]
    assert line.startswith("[")
    assert line.endswith("] hello")
