"""Writers and readers that count the bytes passing through them."""

from __future__ import annotations

import errno
import threading
from typing import Any, BinaryIO, Optional

_CHUNK = 32 * 1024


class CountedReader:
    """Wraps a reader and counts the bytes read from it.

    Once the underlying reader fails or reaches its end, further reads return
    ``b""``; the failure is kept and available from :meth:`error`.
    """

    def __init__(self, reader: BinaryIO):
        self._reader = reader
        self._lock = threading.Lock()
        self._count = 0
        self._err: Optional[BaseException] = None

    @property
    def bytes_read(self) -> int:
        """Total bytes read so far."""
        with self._lock:
            return self._count

    def error(self) -> Optional[BaseException]:
        """The error the reader stopped on, or None if it simply reached its end."""
        if isinstance(self._err, EOFError):
            return None
        return self._err

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the underlying reader."""
        if self._err is not None:
            return b""
        try:
            data = self._reader.read(size)
        except (OSError, EOFError) as err:
            self._err = err
            return b""
        if data is None:
            data = b""
        with self._lock:
            self._count += len(data)
        if not data:
            self._err = EOFError()
        return data


class CountedWriter:
    """Wraps a file and counts the bytes written to it.

    Other attributes are looked up on the wrapped file. A failed write is
    remembered and returned from :meth:`error`; every later write raises
    :class:`EOFError`.
    """

    def __init__(self, file: Any):
        self.file = file
        self._lock = threading.Lock()
        self._count = 0
        self._err: Optional[BaseException] = None

    def __getattr__(self, name: str) -> Any:
        return getattr(self.file, name)

    @property
    def bytes_written(self) -> int:
        """Total bytes written so far."""
        with self._lock:
            return self._count

    def error(self) -> Optional[BaseException]:
        """The error a write failed with, or None."""
        if isinstance(self._err, EOFError):
            return None
        return self._err

    def write(self, data) -> int:
        """Write ``data`` to the file and return the number of bytes written."""
        if self._err is not None:
            raise EOFError("write after a failed write")
        try:
            written = self.file.write(data) or 0
        except EOFError as err:
            self._err = err
            raise
        except OSError as err:
            self._err = err
            return 0
        with self._lock:
            self._count += written
        return written

    def read_from(self, reader: BinaryIO) -> int:
        """Copy everything from ``reader`` into the file and return the byte count."""
        source = CountedReader(reader)
        total = 0
        try:
            while True:
                chunk = source.read(_CHUNK)
                if not chunk:
                    break
                view = memoryview(chunk)
                while view:
                    written = self.file.write(view) or 0
                    if written <= 0:
                        raise OSError(errno.EIO, "short write")
                    total += written
                    view = view[written:]
        finally:
            with self._lock:
                self._count += total
        return total