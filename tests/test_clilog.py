import io
import logging
import time

from wings.clilog import CliHandler


class TtyStream(io.StringIO):
    def isatty(self):
        return True


def make_record(level, msg, **extra):
    data = {"levelno": level, "levelname": logging.getLevelName(level), "msg": msg}
    data.update(extra)
    return logging.makeLogRecord(data)


def emit(record, use_colors=False, stream=None):
    stream = stream if stream is not None else io.StringIO()
    CliHandler(stream, use_colors).emit(record)
    return stream.getvalue()


def test_level_labels():
    assert emit(make_record(logging.INFO, "x")).startswith(" INFO: [")
    assert emit(make_record(logging.DEBUG, "x")).startswith("DEBUG: [")
    assert emit(make_record(logging.WARNING, "x")).startswith(" WARN: [")
    assert emit(make_record(logging.ERROR, "x")).startswith("ERROR: [")
    assert emit(make_record(logging.CRITICAL, "x")).startswith("FATAL: [")


def test_message_is_padded_and_line_ends():
    out = emit(make_record(logging.INFO, "hi"))
    assert "] hi" + " " * 23 in out
    assert out.endswith("\n")
    assert out.count("\n") == 1


def test_timestamp_format():
    created = time.mktime((2006, 1, 2, 15, 4, 5, 0, 0, -1)) + 0.5
    out = emit(make_record(logging.INFO, "hi", created=created))
    assert "[Jan  2 15:04:05.500]" in out


def test_fields_sorted_and_source_skipped():
    out = emit(make_record(logging.INFO, "hi", zeta="z", alpha="a", source="here"))
    assert out.index(" alpha=a") < out.index(" zeta=z")
    assert "source=" not in out


def test_error_field_adds_stacktrace():
    try:
        raise ValueError("boom")
    except ValueError as err:
        caught = err
    out = emit(make_record(logging.ERROR, "failed", error=caught))
    assert " error=boom" in out
    assert "\nStacktrace:\n" in out
    assert "ValueError: boom" in out


def test_no_stacktrace_for_plain_error_string():
    out = emit(make_record(logging.ERROR, "failed", error="text"))
    assert "Stacktrace:" not in out
    assert " error=text" in out


def test_no_colors_for_non_tty():
    out = emit(make_record(logging.INFO, "hi"), use_colors=True)
    assert "\x1b[" not in out


def test_colors_on_tty():
    out = emit(make_record(logging.INFO, "hi"), use_colors=True, stream=TtyStream())
    assert "\x1b[34m" in out
    assert "\x1b[1m INFO\x1b[0m" in out


def test_colors_disabled_on_tty_when_not_requested():
    out = emit(make_record(logging.INFO, "hi"), use_colors=False, stream=TtyStream())
    assert "\x1b[" not in out


def test_works_through_logger():
    stream = io.StringIO()
    logger = logging.getLogger("wings.test.clilog")
    logger.propagate = False
    handler = CliHandler(stream, False)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        logger.warning("careful", extra={"server": "abc"})
    finally:
        logger.removeHandler(handler)
    out = stream.getvalue()
    assert out.startswith(" WARN: [")
    assert "careful" in out
    assert " server=abc" in out