from datetime import timedelta
from email.utils import parsedate_to_datetime
from urllib.parse import parse_qsl, urlsplit
import xml.etree.ElementTree as ET

import pytest
import responses

from osskit.errors import OSSError
from osskit.regions import HANGZHOU
from osskit.signature import create_signature, string_to_sign
from osskit.transport import (
    SDK_CLIENT,
    Connection,
    Request,
    copy_header,
    partially_escaped_path,
)


def _connection(**kwargs):
    return Connection("placeholder", access_key_secret="secret", **kwargs)


def _base():
    return HANGZHOU.get_endpoint(False, "bucket", False)


def test_partially_escaped_path_keeps_subresource_question_mark():
    assert partially_escaped_path("/bucket/?acl") == "/bucket/?acl"


def test_partially_escaped_path_escapes_plus():
    assert partially_escaped_path("/a+b") == "/a%2Bb"


def test_partially_escaped_path_escapes_space():
    assert partially_escaped_path("/dir/my file") == "/dir/my%20file"


def test_partially_escaped_path_only_second_segment_unescaped():
    assert partially_escaped_path("/?x/?y") == "/%3Fx/?y"


def test_copy_header_is_independent():
    original = {"X-A": ["1", "2"], "X-B": "3"}
    copied = copy_header(original)
    assert copied == {"X-A": ["1", "2"], "X-B": ["3"]}
    copied["X-A"].append("9")
    assert original["X-A"] == ["1", "2"]


def test_copy_header_of_none_is_empty():
    assert copy_header(None) == {}


def test_request_url_sorts_and_encodes_query():
    req = Request(
        baseurl=_base(),
        path="/obj",
        params={"b": ["2"], "a": ["1"], "acl": [""]},
    )
    parts = urlsplit(req.url())
    assert parts.path == "/obj"
    assert parts.netloc == urlsplit(_base()).netloc
    assert parse_qsl(parts.query, keep_blank_values=True) == [
        ("a", "1"),
        ("acl", ""),
        ("b", "2"),
    ]


def test_request_url_replaces_base_path():
    req = Request(baseurl="http://host.example.com/ignored", path="/x")
    assert urlsplit(req.url()).path == "/x"
    assert urlsplit(req.url()).query == ""


def test_request_url_bad_base_raises():
    req = Request(baseurl="http://[invalid", path="/x")
    with pytest.raises(ValueError):
        req.url()


def test_set_base_url_uses_region():
    conn = _connection()
    req = Request(bucket="bucket")
    conn.set_base_url(req)
    assert req.baseurl == HANGZHOU.get_endpoint(False, "bucket", False)


def test_set_base_url_uses_endpoint_override():
    conn = _connection(endpoint="oss.example.com", secure=True)
    req = Request(bucket="bucket")
    conn.set_base_url(req)
    assert req.baseurl == "https://oss.example.com"


def test_prepare_fills_defaults_and_signs():
    conn = _connection()
    req = Request(bucket="bucket", path="obj")
    conn.prepare(req)
    assert req.method == "GET"
    assert req.path == "/obj"
    assert req.prepared
    date = req.headers["Date"][0]
    assert parsedate_to_datetime(date).utcoffset() == timedelta(0)
    expected = create_signature(
        string_to_sign("GET", "bucket", "/obj", req.params, req.headers), "secret"
    )
    assert req.headers["Authorization"] == [f"OSS placeholder:{expected}"]


def test_prepare_twice_keeps_path():
    conn = _connection()
    req = Request(bucket="bucket", path="obj")
    conn.prepare(req)
    conn.prepare(req)
    assert req.path == "/obj"
    assert len(req.headers["Authorization"]) == 1


def test_prepare_adds_security_token():
    conn = _connection(security_token="token")
    req = Request(bucket="bucket", path="/obj")
    conn.prepare(req)
    assert req.headers["x-oss-security-token"] == ["token"]


def test_prepare_signs_url_when_access_key_in_params():
    conn = _connection()
    req = Request(
        bucket="bucket",
        path="/obj",
        params={"OSSAccessKeyId": ["placeholder"], "Expires": ["1700000000"]},
    )
    conn.prepare(req)
    assert "Authorization" not in req.headers
    expected = create_signature(
        string_to_sign("GET", "bucket", "/obj", req.params, req.headers), "secret"
    )
    assert req.params["Signature"] == [expected]


def test_prepare_does_not_mutate_caller_headers():
    headers = {"X-Custom": ["1"]}
    req = Request(bucket="bucket", path="/obj", headers=headers)
    _connection().prepare(req)
    assert headers == {"X-Custom": ["1"]}
    assert req.headers["X-Custom"] == ["1"]


def test_query_parses_body_and_sends_signed_headers():
    conn = _connection()
    url = _base() + "/obj"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body="<R><V>ok</V></R>", status=200)
        req = Request(bucket="bucket", path="/obj")
        result = conn.query(req, lambda data: ET.fromstring(data).findtext("V"))
        sent = rsps.calls[0].request
    assert result == "ok"
    assert sent.headers["X-SDK-Client"] == SDK_CLIENT
    assert sent.headers["Authorization"].startswith("OSS placeholder:")


def test_run_raises_oss_error():
    conn = _connection()
    url = _base() + "/missing"
    body = (
        "<Error><Code>NoSuchKey</Code><Message>gone</Message>"
        "<RequestId>rid</RequestId></Error>"
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body=body, status=404)
        req = Request(bucket="bucket", path="/missing")
        conn.prepare(req)
        with pytest.raises(OSSError) as info:
            conn.run(req)
    assert info.value.status_code == 404
    assert info.value.code == "NoSuchKey"
    assert info.value.message == "gone"
    assert info.value.request_id == "rid"


def test_build_error_falls_back_to_status_line():
    conn = _connection()
    url = _base() + "/denied"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, url, body="", status=403)
        req = Request(bucket="bucket", path="/denied")
        with pytest.raises(OSSError) as info:
            conn.query(req)
    assert info.value.status_code == 403
    assert info.value.message == "403 Forbidden"


def test_run_sends_payload_and_accepts_204():
    conn = _connection()
    url = _base() + "/obj"
    payload = b"content"
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, url, status=204)
        req = Request(
            method="PUT",
            bucket="bucket",
            path="/obj",
            headers={"Content-Length": [str(len(payload))]},
            payload=payload,
        )
        conn.prepare(req)
        response, result = conn.run(req)
        sent = rsps.calls[0].request
    assert response.status_code == 204
    assert result is None
    assert sent.body == payload
    assert sent.headers["Content-Length"] == str(len(payload))


def test_query_uses_endpoint_override():
    conn = _connection(endpoint="oss.example.com")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, "http://oss.example.com/obj", status=204)
        req = Request(method="DELETE", bucket="bucket", path="/obj")
        result = conn.query(req)
        sent = rsps.calls[0].request
    assert result is None
    assert sent.method == "DELETE"
    assert urlsplit(sent.url).netloc == "oss.example.com"