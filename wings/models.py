"""Activity log records kept locally until they are sent to the Panel."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

_TIMESTAMP_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def _split_host(address: str) -> Optional[str]:
    """Return the host part of a ``host:port`` address, or None if it has no port."""
    colon = address.rfind(":")
    if colon < 0:
        return None
    if address.startswith("["):
        end = address.find("]")
        if end < 0 or end + 1 != colon:
            return None
        if "[" in address[1:] or "]" in address[end + 1 :]:
            return None
        return address[1:end]
    host = address[:colon]
    if ":" in host or "[" in address or "]" in address:
        return None
    return host


def _format_timestamp(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.astimezone()
    text = (
        f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"
        f"T{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}"
    )
    if ts.microsecond:
        text += "." + f"{ts.microsecond:06d}".rstrip("0")
    offset = ts.utcoffset() or timedelta(0)
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _parse_timestamp(text: Any) -> datetime:
    if not isinstance(text, str):
        raise ValueError(f"invalid timestamp: {text!r}")
    match = _TIMESTAMP_RE.match(text)
    if match is None:
        raise ValueError(f"invalid timestamp: {text!r}")
    date, clock, fraction, zone = match.groups()
    micro = (fraction or "").ljust(6, "0")[:6]
    if zone.upper() == "Z":
        zone = "+00:00"
    return datetime.fromisoformat(f"{date}T{clock}.{micro}{zone}")


@dataclass
class Activity:
    """An activity event for a server, performed by a user or the system."""

    server: str = ""
    event: str = ""
    user: Optional[str] = None
    metadata: Optional[dict] = None
    ip: str = ""
    timestamp: Optional[datetime] = None
    id: int = 0

    def set_user(self, user: str) -> "Activity":
        """Return a copy with the user set; an empty user is stored as null."""
        return dataclasses.replace(self, user=user or None)

    def before_create(self) -> None:
        """Normalise the record before it is stored."""
        host = _split_host(self.ip.strip())
        if host is not None:
            self.ip = host
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)
        self.timestamp = self.timestamp.astimezone(timezone.utc)
        if self.metadata is None:
            self.metadata = {}

    def to_dict(self) -> dict:
        """Return the JSON form sent to the Panel; the id is not included."""
        return {
            "user": self.user,
            "server": self.server,
            "event": self.event,
            "metadata": self.metadata,
            "ip": self.ip,
            "timestamp": None if self.timestamp is None else _format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        """Build an activity from its JSON form."""
        user = data.get("user")
        if user is not None and not isinstance(user, str):
            raise ValueError(f"activity user must be a string or null, got {user!r}")
        metadata = data.get("metadata")
        if metadata is not None and not isinstance(metadata, dict):
            raise ValueError(f"activity metadata must be an object or null, got {metadata!r}")
        raw_ts = data.get("timestamp")
        return cls(
            server=data.get("server", ""),
            event=data.get("event", ""),
            user=user,
            metadata=None if metadata is None else dict(metadata),
            ip=data.get("ip", ""),
            timestamp=None if raw_ts is None else _parse_timestamp(raw_ts),
        )