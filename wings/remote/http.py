"""Authenticated HTTP client for the Panel's remote API."""

from __future__ import annotations

import json
import logging
import random
import time
from typing import Any, Mapping, Optional

import requests

from .exceptions import RequestError

log = logging.getLogger(__name__)

CLIENT_VERSION = "develop"

_TIMEOUT = 15.0
_INITIAL_INTERVAL = 0.5
_MULTIPLIER = 1.5
_RANDOMIZATION = 0.5
_MAX_INTERVAL = 12.0
_MAX_ELAPSED = 30.0

_MISSING_CODE = "_MissingResponseCode"
_MISSING_DETAIL = "No error response returned from API endpoint."


class Response:
    """A Panel API response with helpers for reading data and errors."""

    def __init__(self, raw: Optional[requests.Response]):
        self.raw = raw

    @property
    def status_code(self) -> Optional[int]:
        return None if self.raw is None else self.raw.status_code

    def has_error(self) -> bool:
        """Whether the status is outside 2xx; False when no request was made."""
        if self.raw is None:
            return False
        return self.raw.status_code >= 300 or self.raw.status_code < 200

    def read(self) -> bytes:
        """Return the response body; it can be read any number of times."""
        if self.raw is None:
            raise RuntimeError("remote: attempting to read missing response")
        return self.raw.content

    def bind_json(self) -> Any:
        """Return the body decoded as JSON."""
        body = self.read()
        try:
            return json.loads(body)
        except ValueError as err:
            raise ValueError("remote: could not unmarshal response") from err

    def error(self) -> Optional[RequestError]:
        """Return the first error reported by the Panel, or None if the call succeeded."""
        if not self.has_error():
            return None
        try:
            data = self.bind_json()
        except (ValueError, RuntimeError):
            data = None
        status_code = self.raw.status_code
        first = None
        if isinstance(data, dict):
            errors = data.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                first = errors[0]
        if first is not None and all(
            isinstance(first.get(key, ""), str) for key in ("code", "status", "detail")
        ):
            return RequestError(
                first.get("code", ""), first.get("status", ""), first.get("detail", ""), status_code
            )
        return RequestError(_MISSING_CODE, str(status_code), _MISSING_DETAIL, status_code)


def _log_request(request: requests.PreparedRequest) -> None:
    if not log.isEnabledFor(logging.DEBUG):
        return
    headers = {
        key: ("(redacted)" if key == "Authorization" and value else value)
        for key, value in request.headers.items()
    }
    log.debug(
        "making request to external HTTP endpoint",
        extra={"method": request.method, "endpoint": request.url, "headers": headers},
    )


class HttpClient:
    """Makes authenticated requests to the Panel, retrying server-side failures.

    With ``max_attempts`` above zero the request is retried at most that many
    times; otherwise retries continue for about thirty seconds.
    """

    def __init__(
        self,
        base: str,
        token_id: str = "",
        token: str = "",
        session: Optional[requests.Session] = None,
        max_attempts: int = 0,
    ):
        self.base_url = base.removesuffix("/") + "/api/remote"
        self.token_id = token_id
        self.token = token
        self.session = session if session is not None else requests.Session()
        self.max_attempts = max_attempts

    def get(self, path: str, query: Optional[Mapping[str, str]] = None) -> Response:
        """Execute a GET request with the given query parameters."""
        return self.request("GET", path, None, query)

    def post(self, path: str, data: Any = None) -> Response:
        """Execute a POST request with ``data`` encoded as JSON."""
        return self.request("POST", path, json.dumps(data).encode("utf-8"))

    def request_once(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        query: Optional[Mapping[str, str]] = None,
    ) -> Response:
        """Make a single authenticated request without retrying."""
        request = requests.Request(
            method=method or "GET",
            url=self.base_url + path,
            data=body or None,
            params=dict(query) if query else None,
            headers={
                "User-Agent": f"Pterodactyl Wings/v{CLIENT_VERSION} (id:{self.token_id})",
                "Accept": "application/vnd.pterodactyl.v1+json",
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.token_id}.{self.token}",
            },
        )
        prepared = self.session.prepare_request(request)
        _log_request(prepared)
        return Response(self.session.send(prepared, timeout=_TIMEOUT))

    def request(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        query: Optional[Mapping[str, str]] = None,
    ) -> Response:
        """Make a request, retrying with exponential backoff.

        4xx responses raise their RequestError at once; 5xx responses and
        connection failures are retried, and the last failure is raised.
        """
        start = time.monotonic()
        interval = _INITIAL_INTERVAL
        retries = 0
        while True:
            try:
                response = self.request_once(method, path, body, query)
            except requests.RequestException as err:
                failure: BaseException = err
            else:
                if not response.has_error():
                    return response
                failure = response.error()
                if 400 <= response.status_code < 500:
                    raise failure
            if self.max_attempts > 0 and retries >= self.max_attempts:
                raise failure
            delay = interval * (1 + _RANDOMIZATION * random.uniform(-1.0, 1.0))
            if time.monotonic() - start + delay > _MAX_ELAPSED:
                raise failure
            time.sleep(delay)
            retries += 1
            interval = min(interval * _MULTIPLIER, _MAX_INTERVAL)