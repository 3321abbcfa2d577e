"""A logging handler that writes coloured, aligned lines to a terminal."""

from __future__ import annotations

import logging
import sys
import time
import traceback
from typing import Optional, TextIO

_LEVELS = (
    (logging.CRITICAL, "FATAL"),
    (logging.ERROR, "ERROR"),
    (logging.WARNING, " WARN"),
    (logging.INFO, " INFO"),
)

_COLORS = {
    "DEBUG": "37",
    " INFO": "34",
    " WARN": "33",
    "ERROR": "31",
    "FATAL": "31",
}

_BOLD = "1"
_BOLD_RED = "1;31"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _level_name(levelno: int) -> str:
    for threshold, name in _LEVELS:
        if levelno >= threshold:
            return name
    return "DEBUG"


def _stamp(created: float) -> str:
    millis_total = int(created * 1000)
    t = time.localtime(millis_total // 1000)
    ms = millis_total % 1000
    return (
        f"{_MONTHS[t.tm_mon - 1]} {t.tm_mday:>2} "
        f"{t.tm_hour:02d}:{t.tm_min:02d}:{t.tm_sec:02d}.{ms:03d}"
    )


class CliHandler(logging.Handler):
    """Writes each record as ``LEVEL: [time] message key=value ...``.

    Extra attributes on the record become the fields. An exception given as
    the ``error`` field, or through ``exc_info``, is followed by its traceback.
    Colours are used only when asked for and the stream is a terminal.
    """

    def __init__(self, stream: Optional[TextIO] = None, use_colors: bool = True):
        super().__init__()
        self.stream = stream if stream is not None else sys.stderr
        isatty = getattr(self.stream, "isatty", None)
        self.use_colors = bool(use_colors and isatty is not None and isatty())
        self.padding = 2

    def _paint(self, code: Optional[str], text: str) -> str:
        if not self.use_colors or code is None:
            return text
        return f"\x1b[{code}m{text}\x1b[0m"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = _level_name(record.levelno)
            color = _COLORS[level]
            fields = {
                key: value
                for key, value in vars(record).items()
                if key not in _STANDARD_ATTRS and not key.startswith("_")
            }
            label = self._paint(_BOLD, f"{level:>{self.padding + 1}}")
            head = f"{label}: [{_stamp(record.created)}] {record.getMessage():<25}"
            parts = [self._paint(color, head)]
            for name in sorted(fields):
                if name == "source":
                    continue
                parts.append(f" {self._paint(color, name)}={fields[name]}")
            parts.append("\n")

            error = fields.get("error")
            if not isinstance(error, BaseException):
                error = record.exc_info[1] if record.exc_info else None
            if isinstance(error, BaseException):
                trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
                parts.append(f"\n{self._paint(_BOLD_RED, 'Stacktrace:')}\n{trace.rstrip(chr(10))}\n\n")

            self.stream.write("".join(parts))
            flush = getattr(self.stream, "flush", None)
            if flush is not None:
                flush()
        except Exception:
            self.handleError(record)