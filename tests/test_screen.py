"""Tests for the drawing primitives."""

from svi.ui import screen


def test_fit_to_width_ascii():
    assert screen.fit_to_width("hello", 3) == "hel"
    assert screen.fit_to_width("hi", 10) == "hi"


def test_fit_to_width_wide_chars():
    # each of these takes two columns
    assert screen.fit_to_width("日本語", 5) == "日本"
    assert screen.fit_to_width("日本語", 6) == "日本語"


def test_print_row_clips_bytes(context, term):
    term.output.clear()
    screen.print_row(context, 78, 0, b"abcdef")
    assert bytes(term.output) == b"\x1b[1;79H\x1b[2Kab"


def test_print_row_colored(context, term):
    term.output.clear()
    screen.print_row(context, 0, 3, "oops", "green")
    assert bytes(term.output) == b"\x1b[4;1H\x1b[2K\x1b[32moops\x1b[0m"


def test_negative_positions_are_ignored(context, term):
    term.output.clear()
    screen.print_row(context, -1, 0, b"x")
    screen.set_cursor(context, 0, -1)
    screen.clear_row(context, -1)
    assert bytes(term.output) == b""


def test_show_error_uses_attention_color(context, term):
    context.config.attention_color = "magenta"
    term.output.clear()
    screen.show_error(context, "no file name specified")
    assert bytes(term.output) == b"\x1b[24;1H\x1b[2K\x1b[35mno file name specified\x1b[0m"
    assert context.status_message == "no file name specified"

