"""Data exchanged with the Panel API."""

from __future__ import annotations

import base64
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Pattern, Union

log = logging.getLogger(__name__)

_REGEX_PREFIX = "regex:"


class SftpAuthRequestType(str, enum.Enum):
    """How an SFTP user is authenticating."""

    PASSWORD = "password"
    PUBLIC_KEY = "public_key"


@dataclass
class Pagination:
    """Pagination details of a paged API response."""

    current_page: int = 0
    from_: int = 0
    last_page: int = 0
    per_page: int = 0
    to: int = 0
    total: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Pagination":
        data = data or {}
        return cls(
            current_page=int(data.get("current_page") or 0),
            from_=int(data.get("from") or 0),
            last_page=int(data.get("last_page") or 0),
            per_page=int(data.get("per_page") or 0),
            to=int(data.get("to") or 0),
            total=int(data.get("total") or 0),
        )


class OutputLineMatcher:
    """Matches console output lines against a plain string or, with a "regex:" prefix, a pattern."""

    def __init__(self, raw: str):
        if not isinstance(raw, str):
            raise ValueError(f"output line matcher must be a string, got {raw!r}")
        self.raw = raw
        self.pattern: Optional[Pattern[bytes]] = None
        if raw.startswith(_REGEX_PREFIX) and len(raw.encode()) > len(_REGEX_PREFIX):
            expression = raw[len(_REGEX_PREFIX):]
            try:
                self.pattern = re.compile(expression.encode())
            except re.error as err:
                log.warning(
                    "failed to compile output line marked as being regex",
                    extra={"error": str(err), "raw": raw},
                )

    def matches(self, line: Union[str, bytes]) -> bool:
        """Whether the line contains the raw string or matches the pattern."""
        data = line.encode() if isinstance(line, str) else bytes(line)
        if self.pattern is None:
            return self.raw.encode() in data
        return self.pattern.search(data) is not None

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"OutputLineMatcher({self.raw!r})"


@dataclass
class ProcessStopConfiguration:
    """How a server instance is stopped."""

    type: str = ""
    value: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProcessStopConfiguration":
        data = data or {}
        return cls(type=data.get("type") or "", value=data.get("value") or "")


@dataclass
class ProcessConfiguration:
    """Startup detection, stop behaviour and configuration file edits for a server."""

    done: List[OutputLineMatcher] = field(default_factory=list)
    user_interaction: List[str] = field(default_factory=list)
    strip_ansi: bool = False
    stop: ProcessStopConfiguration = field(default_factory=ProcessStopConfiguration)
    configs: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ProcessConfiguration":
        data = data or {}
        startup = data.get("startup") or {}
        return cls(
            done=[OutputLineMatcher(raw) for raw in startup.get("done") or []],
            user_interaction=list(startup.get("user_interaction") or []),
            strip_ansi=bool(startup.get("strip_ansi", False)),
            stop=ProcessStopConfiguration.from_dict(data.get("stop")),
            configs=list(data.get("configs") or []),
        )


@dataclass
class ServerConfigurationResponse:
    """Server settings and process configuration returned by the Panel."""

    settings: Any = None
    process_configuration: Optional[ProcessConfiguration] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ServerConfigurationResponse":
        data = data or {}
        raw = data.get("process_configuration")
        return cls(
            settings=data.get("settings"),
            process_configuration=None if raw is None else ProcessConfiguration.from_dict(raw),
        )


@dataclass
class InstallationScript:
    """The script used to install a server."""

    container_image: str = ""
    entrypoint: str = ""
    script: str = ""

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "InstallationScript":
        data = data or {}
        return cls(
            container_image=data.get("container_image") or "",
            entrypoint=data.get("entrypoint") or "",
            script=data.get("script") or "",
        )


@dataclass
class RawServerData:
    """A server as listed by the Panel, with its settings left unparsed."""

    uuid: str = ""
    settings: Any = None
    process_configuration: Any = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "RawServerData":
        data = data or {}
        return cls(
            uuid=data.get("uuid") or "",
            settings=data.get("settings"),
            process_configuration=data.get("process_configuration"),
        )


def _encode_bytes(value: Optional[bytes]) -> Optional[str]:
    return None if value is None else base64.b64encode(bytes(value)).decode("ascii")


@dataclass
class SftpAuthRequest:
    """Credentials passed to the Panel for SFTP authentication."""

    type: SftpAuthRequestType = SftpAuthRequestType.PASSWORD
    user: str = ""
    password: str = ""
    ip: str = ""
    session_id: Optional[bytes] = None
    client_version: Optional[bytes] = None

    def to_dict(self) -> dict:
        """Return the JSON form; byte fields are base64 encoded."""
        return {
            "type": SftpAuthRequestType(self.type).value,
            "username": self.user,
            "password": self.password,
            "ip": self.ip,
            "session_id": _encode_bytes(self.session_id),
            "client_version": _encode_bytes(self.client_version),
        }


@dataclass
class SftpAuthResponse:
    """The server and permissions matched by valid SFTP credentials."""

    server: str = ""
    user: str = ""
    permissions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SftpAuthResponse":
        data = data or {}
        return cls(
            server=data.get("server") or "",
            user=data.get("user") or "",
            permissions=list(data.get("permissions") or []),
        )


@dataclass
class BackupRemoteUploadResponse:
    """Presigned upload URLs for a backup and the size of each part."""

    parts: List[str] = field(default_factory=list)
    part_size: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BackupRemoteUploadResponse":
        data = data or {}
        return cls(parts=list(data.get("parts") or []), part_size=int(data.get("part_size") or 0))


@dataclass
class BackupPart:
    """One uploaded part of a backup."""

    etag: str = ""
    part_number: int = 0

    def to_dict(self) -> dict:
        return {"etag": self.etag, "part_number": self.part_number}


@dataclass
class BackupRequest:
    """The result of a backup, reported to the Panel."""

    checksum: str = ""
    checksum_type: str = ""
    size: int = 0
    successful: bool = False
    parts: Optional[List[BackupPart]] = None

    def to_dict(self) -> dict:
        return {
            "checksum": self.checksum,
            "checksum_type": self.checksum_type,
            "size": self.size,
            "successful": self.successful,
            "parts": None if self.parts is None else [part.to_dict() for part in self.parts],
        }


@dataclass
class InstallStatusRequest:
    """The result of a server installation, reported to the Panel."""

    successful: bool = False
    reinstall: bool = False

    def to_dict(self) -> dict:
        return {"successful": self.successful, "reinstall": self.reinstall}