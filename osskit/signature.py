"""Request signing for OSS."""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Mapping, Sequence
from urllib.parse import quote_plus

HEADER_OSS_PREFIX = "x-oss-"

OSS_PARAMS_TO_SIGN = frozenset(
    {
        "acl",
        "delete",
        "location",
        "logging",
        "notification",
        "partNumber",
        "policy",
        "requestPayment",
        "torrent",
        "uploadId",
        "uploads",
        "versionId",
        "versioning",
        "versions",
        "response-content-type",
        "response-content-language",
        "response-expires",
        "response-cache-control",
        "response-content-disposition",
        "response-content-encoding",
        "bucketInfo",
    }
)

Values = Mapping[str, "str | Sequence[str]"]


def _as_list(value: str | Sequence[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


def _param(params: Values, name: str) -> str:
    values = _as_list(params.get(name, []))
    return values[0] if values else ""


def _header(headers: Values, name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            values = _as_list(value)
            return values[0] if values else ""
    return ""


def create_signature(string_to_sign: str, secret: str) -> str:
    """Return the base64 HMAC-SHA1 of the string under the secret."""
    digest = hmac.new(secret.encode(), string_to_sign.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def encode_params(params: Values) -> str:
    """Encode parameters sorted by key; empty values are written as the bare key."""
    parts = []
    for key in sorted(params):
        prefix = quote_plus(key)
        for value in _as_list(params[key]):
            parts.append(f"{prefix}={quote_plus(value)}" if value else prefix)
    return "&".join(parts)


def canonicalize_header(headers: Values) -> tuple[dict[str, list[str]], str]:
    """Lower-case the OSS headers and return them with their canonical string."""
    new_headers: dict[str, list[str]] = {}
    oss_names = []
    for key, value in headers.items():
        lower = key.lower()
        if lower.startswith(HEADER_OSS_PREFIX):
            new_headers[lower] = _as_list(value)
            oss_names.append(lower)
        else:
            new_headers[key] = _as_list(value)
    oss_names.sort()
    canonical = "".join(f"{name}:{_header(headers, name)}\n" for name in oss_names)
    return new_headers, canonical


def string_to_sign(
    method: str, bucket: str, path: str, params: Values, headers: Values
) -> str:
    """Build the text that the signature covers."""
    url_signature = bool(_param(params, "OSSAccessKeyId"))
    content_md5 = _header(headers, "Content-Md5")
    content_type = _header(headers, "Content-Type")
    date = _param(params, "Expires") if url_signature else _header(headers, "Date")

    resource = f"/{bucket}{path}" if bucket else path
    signed = {key: value for key, value in params.items() if key in OSS_PARAMS_TO_SIGN}
    if signed:
        resource = f"{resource}?{encode_params(signed)}"

    _, canonical_headers = canonicalize_header(headers)
    return f"{method}\n{content_md5}\n{content_type}\n{date}\n{canonical_headers}{resource}"


def sign_request(
    method: str,
    bucket: str,
    path: str,
    params: Values,
    headers: Values,
    access_key_id: str,
    access_key_secret: str,
) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Return copies of params and headers carrying the request signature.

    A request whose parameters hold OSSAccessKeyId is signed in the query;
    any other gets an Authorization header.
    """
    new_params = {key: _as_list(value) for key, value in params.items()}
    new_headers = {key: _as_list(value) for key, value in headers.items()}
    signature = create_signature(
        string_to_sign(method, bucket, path, new_params, new_headers),
        access_key_secret,
    )
    if _param(new_params, "OSSAccessKeyId"):
        new_params["Signature"] = [signature]
    else:
        for key in [k for k in new_headers if k.lower() == "authorization"]:
            del new_headers[key]
        new_headers["Authorization"] = [f"OSS {access_key_id}:{signature}"]
    return new_params, new_headers