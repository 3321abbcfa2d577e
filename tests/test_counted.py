import io

import pytest

from wings.ufs.counted import CountedReader, CountedWriter


class _FailingFile:
    def __init__(self, exc):
        self.exc = exc
        self.calls = 0

    def write(self, data):
        self.calls += 1
        raise self.exc


class _FailingReader:
    def __init__(self, exc):
        self.exc = exc

    def read(self, size=-1):
        raise self.exc


def test_writer_counts_bytes():
    buf = io.BytesIO()
    writer = CountedWriter(buf)
    assert writer.write(b"hello") == 5
    assert writer.write(b" world") == 6
    assert writer.bytes_written == len(b"hello world")
    assert buf.getvalue() == b"hello world"
    assert writer.error() is None


def test_writer_delegates_attributes():
    buf = io.BytesIO()
    writer = CountedWriter(buf)
    writer.write(b"abc")
    assert writer.getvalue() == b"abc"
    assert writer.tell() == 3


def test_writer_keeps_error_and_refuses_further_writes():
    failure = OSError("disk full")
    target = _FailingFile(failure)
    writer = CountedWriter(target)
    assert writer.write(b"data") == 0
    assert writer.error() is failure
    with pytest.raises(EOFError):
        writer.write(b"more")
    assert target.calls == 1
    assert writer.bytes_written == 0


def test_writer_eof_error_is_raised_and_not_reported():
    writer = CountedWriter(_FailingFile(EOFError()))
    with pytest.raises(EOFError):
        writer.write(b"data")
    assert writer.error() is None


def test_writer_read_from_copies_everything():
    data = bytes(range(256)) * 500
    buf = io.BytesIO()
    writer = CountedWriter(buf)
    assert writer.read_from(io.BytesIO(data)) == len(data)
    assert buf.getvalue() == data
    assert writer.bytes_written == len(data)


def test_writer_read_from_empty_source():
    writer = CountedWriter(io.BytesIO())
    assert writer.read_from(io.BytesIO(b"")) == 0
    assert writer.bytes_written == 0


def test_reader_counts_bytes_until_end():
    data = b"some bytes to read"
    reader = CountedReader(io.BytesIO(data))
    parts = []
    while True:
        chunk = reader.read(4)
        if not chunk:
            break
        parts.append(chunk)
    assert b"".join(parts) == data
    assert reader.bytes_read == len(data)
    assert reader.error() is None
    assert reader.read() == b""


def test_reader_keeps_error():
    failure = OSError("broken")
    reader = CountedReader(_FailingReader(failure))
    assert reader.read(10) == b""
    assert reader.error() is failure
    assert reader.read(10) == b""
    assert reader.bytes_read == 0