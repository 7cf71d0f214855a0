"""End-to-end tests driving the editor through run() with a fake terminal."""

import pytest

from svi import __main__ as svi_main
from svi.__main__ import EditorContext, main, run
from svi.errors import FatalError, format_fatal

from conftest import FakeTerminal, buffer_lines, keys


@pytest.fixture(autouse=True)
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def test_type_and_write_quit(tmp_path, capsys):
    term = FakeTerminal(events=keys("ihi\rbye\x1b:wq out.txt\r"))
    assert run(["svi"], term=term) == 0
    assert (tmp_path / "out.txt").read_bytes() == b"hi\nbye\n"
    assert term.shutdowns == 1
    assert capsys.readouterr().err == ""


def test_buffer_rows_after_typing():
    term = FakeTerminal(events=keys("ihi\rbye\x1b:q!\r"))
    context = EditorContext(term)
    main(context)
    assert buffer_lines(context.buffer) == [b"hi", b"bye"]
    assert context.done


def test_quit_refused_when_modified(tmp_path):
    term = FakeTerminal(events=keys("ix\x1b:q\r"))
    context = EditorContext(term)
    with pytest.raises(AssertionError, match="more input"):
        main(context)
    assert context.status_message == "buffer modified"
    assert not context.done

    term.events = keys(":q!\r")
    main(context)
    assert context.done
    assert list(tmp_path.iterdir()) == [tmp_path / "svi.log"]


def test_write_twice_to_same_file(tmp_path):
    term = FakeTerminal(events=keys("ia\x1b:w\r"))
    context = EditorContext(term, "notes.txt")
    with pytest.raises(AssertionError):
        main(context)
    assert context.written
    assert (tmp_path / "notes.txt").read_bytes() == b"a\n"

    term.events = keys("ib\x1b:w\r:q\r")
    main(context)
    assert (tmp_path / "notes.txt").read_bytes() == b"ab\n"
    assert context.done


def test_file_argument_is_write_target(tmp_path):
    term = FakeTerminal(events=keys("iz\x1b:wq\r"))
    assert run(["svi", "target.txt"], term=term) == 0
    assert (tmp_path / "target.txt").read_bytes() == b"z\n"


def test_existing_file_argument_is_not_clobbered(tmp_path):
    (tmp_path / "keep.txt").write_bytes(b"precious\n")
    term = FakeTerminal(events=keys("iz\x1b:w\r:q!\r"))
    assert run(["svi", "keep.txt"], term=term) == 0
    assert (tmp_path / "keep.txt").read_bytes() == b"precious\n"


def test_config_problems_go_to_configured_log(tmp_path, monkeypatch):
    conf = tmp_path / "svi.conf"
    custom_log = tmp_path / "custom.log"
    conf.write_text(f"log_file={custom_log}\niov_size=0\n")
    monkeypatch.setenv("SVI_CONFIG", str(conf))
    assert run(["svi"], term=FakeTerminal(events=keys(":q\r"))) == 0
    assert "bad value for iov_size" in custom_log.read_text()
    assert not (tmp_path / "svi.log").exists()


def test_too_small_terminal_is_fatal(capsys):
    term = FakeTerminal(size=(80, 1))
    assert run(["/usr/bin/svi"], term=term) == 1
    assert term.shutdowns == 1
    assert capsys.readouterr().err == "svi: terminal height too low\n"


def test_fatal_error_from_event_loop(capsys):
    class BrokenTerminal(FakeTerminal):
        def wait_event(self):
            raise FatalError("select:", OSError(9, "Bad file descriptor"))

    term = BrokenTerminal()
    assert run(["svi"], term=term) == 1
    assert term.shutdowns == 1
    assert capsys.readouterr().err == "svi: select: Bad file descriptor\n"


def test_out_of_memory_is_fatal(monkeypatch, capsys):
    def no_memory(context):
        raise MemoryError

    monkeypatch.setattr(svi_main, "main", no_memory)
    assert run(["svi"], term=FakeTerminal()) == 1
    assert capsys.readouterr().err == "svi: out of memory\n"


def test_startup_places_cursor():
    term = FakeTerminal(events=keys(":q\r"))
    main(EditorContext(term))
    assert term.output.startswith(b"\x1b[1;1H")


def test_size_fallback_at_startup():
    term = FakeTerminal(size=None, events=keys(":q\r"))
    context = EditorContext(term)
    main(context)
    assert (context.width, context.height) == (80, 24)


class TestFatalError:
    def test_plain_message(self):
        assert str(FatalError("terminal height too low")) == "terminal height too low"

    def test_colon_appends_reason(self):
        err = FatalError("tcgetattr:", OSError(25, "Inappropriate ioctl for device"))
        assert str(err) == "tcgetattr: Inappropriate ioctl for device"

    def test_colon_without_reason(self):
        assert str(FatalError("fcntl:")) == "fcntl: unknown error"

    def test_format(self):
        assert format_fatal("svi", FatalError("boom")) == "svi: boom\n"
        assert format_fatal("", FatalError("boom")) == "boom\n"
