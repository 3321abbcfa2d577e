"""Errors reported by the Panel API."""

from __future__ import annotations

from typing import Optional

_MISSING_STATUS = 0


class RequestError(Exception):
    """An error response returned by the Panel for an API request."""

    def __init__(
        self,
        code: str = "",
        status: str = "",
        detail: str = "",
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.status = status
        self.detail = detail
        self.status_code = status_code
        super().__init__(str(self))

    def __str__(self) -> str:
        code = _MISSING_STATUS if self.status_code is None else self.status_code
        return f"来自面板的错误响应: {self.code}: {self.detail} (HTTP/{code})"


class SftpInvalidCredentialsError(Exception):
    """The SFTP credentials given were rejected by the Panel."""

    def __init__(self) -> None:
        super().__init__("提供的凭据无效")


def _chain(err: Optional[BaseException]):
    seen = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = err.__cause__ if err.__cause__ is not None else err.__context__


def as_request_error(err: Optional[BaseException]) -> Optional[RequestError]:
    """Return the RequestError in the exception or its causes, or None."""
    for candidate in _chain(err):
        if isinstance(candidate, RequestError):
            return candidate
    return None


def is_request_error(err: Optional[BaseException]) -> bool:
    """Whether the exception is, or was caused by, a RequestError."""
    return as_request_error(err) is not None