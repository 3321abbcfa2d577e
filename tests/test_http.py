import json
from unittest import mock
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from wings.remote.exceptions import RequestError, as_request_error
from wings.remote.http import HttpClient, Response

BASE = "http://panel.example.com"
URL = BASE + "/api/remote"
TOKEN_ID = "testid"
TOKEN = "token"


def make_client(max_attempts=1):
    return HttpClient(BASE, token_id=TOKEN_ID, token=TOKEN, max_attempts=max_attempts)


def test_base_url_is_trimmed_and_extended():
    assert HttpClient(BASE + "/").base_url == URL
    assert HttpClient(BASE).base_url == URL


def test_request_sets_headers_and_path():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/test", status=200)
        res = client.request_once("", "/test")
        sent = rsps.calls[0].request
    assert sent.headers["Accept"] == "application/vnd.pterodactyl.v1+json"
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.headers["Authorization"] == "Bearer testid.token"
    assert sent.headers["User-Agent"].endswith("(id:testid)")
    assert urlparse(sent.url).path == "/api/remote/test"
    assert res.status_code == 200
    assert res.has_error() is False


def test_request_retry_succeeds_after_server_error():
    client = make_client(max_attempts=2)
    with responses.RequestsMock() as rsps:
        with mock.patch("time.sleep") as sleep:
            rsps.add(responses.GET, URL, status=500)
            rsps.add(responses.GET, URL, status=200)
            res = client.request("", "")
            calls = len(rsps.calls)
    assert res.status_code == 200
    assert calls == 2
    assert sleep.call_count == 1


def test_request_retry_gives_up_after_limit():
    client = make_client(max_attempts=2)
    with responses.RequestsMock() as rsps:
        with mock.patch("time.sleep"):
            rsps.add(responses.GET, URL, status=500)
            with pytest.raises(RequestError) as info:
                client.request("get", "")
            calls = len(rsps.calls)
    err = as_request_error(info.value)
    assert err.status_code == 500
    assert calls == 3


def test_client_errors_are_not_retried():
    client = make_client(max_attempts=5)
    body = {"errors": [{"code": "HttpForbiddenException", "status": "403", "detail": "nope"}]}
    with responses.RequestsMock() as rsps:
        with mock.patch("time.sleep") as sleep:
            rsps.add(responses.GET, URL + "/servers", status=403, json=body)
            with pytest.raises(RequestError) as info:
                client.get("/servers")
            calls = len(rsps.calls)
    assert calls == 1
    assert sleep.call_count == 0
    assert info.value.code == "HttpForbiddenException"
    assert info.value.detail == "nope"
    assert info.value.status_code == 403


def test_connection_errors_are_raised_after_retries():
    client = make_client(max_attempts=1)
    with responses.RequestsMock() as rsps:
        with mock.patch("time.sleep") as sleep:
            with pytest.raises(requests.ConnectionError):
                client.get("/missing")
            calls = len(rsps.calls)
    assert calls == 2
    assert sleep.call_count == 1


def test_get_sends_query():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/test", status=200)
        res = client.get("/test", {"hello": "world"})
        sent = rsps.calls[0].request
    assert sent.method == "GET"
    assert parse_qs(urlparse(sent.url).query) == {"hello": ["world"]}
    assert res.status_code == 200


def test_post_sends_json_body():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL + "/test", status=200)
        res = client.post("/test", {"hello": "world"})
        sent = rsps.calls[0].request
    assert sent.method == "POST"
    assert json.loads(sent.body) == {"hello": "world"}
    assert res.status_code == 200


def test_post_without_data_sends_null():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, URL + "/servers/reset", status=204)
        res = client.post("/servers/reset")
        sent = rsps.calls[0].request
    assert json.loads(sent.body) is None
    assert res.status_code == 204


def test_response_without_request():
    res = Response(None)
    assert res.has_error() is False
    assert res.error() is None
    with pytest.raises(RuntimeError):
        res.read()


def test_response_read_and_bind_json():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/data", status=200, json={"data": [1, 2]})
        res = client.get("/data")
    assert res.bind_json() == {"data": [1, 2]}
    assert json.loads(res.read()) == {"data": [1, 2]}
    assert res.error() is None


def test_response_bind_json_invalid_body():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/data", status=200, body="not json")
        res = client.get("/data")
    with pytest.raises(ValueError):
        res.bind_json()


def test_error_without_body_uses_missing_code():
    client = make_client()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/gone", status=404, body="")
        with pytest.raises(RequestError) as info:
            client.get("/gone")
    err = info.value
    assert err.code == "_MissingResponseCode"
    assert err.status == "404"
    assert err.detail == "No error response returned from API endpoint."
    assert err.status_code == 404