"""Building, signing and sending OSS requests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from email.utils import formatdate
from typing import Any, BinaryIO
from urllib.parse import SplitResult, quote, quote_plus, urlsplit, urlunsplit

import requests

from .errors import OSSError
from .regions import DEFAULT_REGION, Region, get_protocol
from .signature import sign_request

logger = logging.getLogger(__name__)

SDK_CLIENT = "osskit/0.1.0"

# Characters left as they are when a path is escaped for a URL.
_PATH_SAFE = "$&+,/:;=@"
_OK_STATUSES = frozenset({200, 204, 206})
_XML_TYPES = frozenset({"application/xml", "text/xml"})

HeaderMap = dict[str, list[str]]


def _as_list(value: str | Sequence[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


def copy_header(headers: Mapping[str, str | Sequence[str]] | None) -> HeaderMap:
    """Return a deep copy of a header or parameter mapping."""
    if not headers:
        return {}
    return {key: _as_list(value) for key, value in headers.items()}


def _get_header(headers: Mapping[str, Sequence[str]], name: str) -> str:
    wanted = name.lower()
    for key, values in headers.items():
        if key.lower() == wanted:
            return values[0] if values else ""
    return ""


def _del_header(headers: HeaderMap, name: str) -> None:
    for key in [k for k in headers if k.lower() == name.lower()]:
        del headers[key]


def _set_header(headers: HeaderMap, name: str, value: str) -> None:
    _del_header(headers, name)
    headers[name] = [value]


def _escape_path(path: str) -> str:
    return quote(path, safe=_PATH_SAFE)


def _encode_query(params: Mapping[str, Sequence[str]]) -> str:
    return "&".join(
        f"{quote_plus(key)}={quote_plus(value)}"
        for key in sorted(params)
        for value in params[key]
    )


def partially_escaped_path(path: str) -> str:
    """Escape a path, keeping a literal '?' right after the bucket segment.

    Sub-resource requests such as ``/bucket/?acl`` need that question mark
    unescaped; a '+' is always escaped.
    """
    escaped = _escape_path(path)
    if escaped and not escaped.startswith("/"):
        first = escaped.partition("/")[0]
        if ":" in first:
            escaped = "./" + escaped
    segments = escaped.split("/")
    if len(segments) >= 3 and segments[2].startswith("%3F"):
        segments[2] = "?" + segments[2][3:]
    return "/".join(segments).replace("+", "%2B")


@dataclass
class Request:
    """One request to OSS, before and after it is prepared."""

    method: str = ""
    bucket: str = ""
    path: str = ""
    params: HeaderMap = field(default_factory=dict)
    headers: HeaderMap = field(default_factory=dict)
    baseurl: str = ""
    payload: bytes | BinaryIO | None = None
    prepared: bool = False
    timeout: float = 0.0

    def _base(self) -> SplitResult:
        try:
            return urlsplit(self.baseurl)
        except ValueError as exc:
            raise ValueError(f"bad OSS endpoint URL {self.baseurl!r}: {exc}") from exc

    def url(self) -> str:
        """Return the request's full URL: endpoint host, escaped path and query."""
        base = self._base()
        return urlunsplit(
            (
                base.scheme,
                base.netloc,
                _escape_path(self.path),
                _encode_query(self.params),
                "",
            )
        )

    def _wire_url(self) -> str:
        base = self._base()
        query = _encode_query(self.params)
        url = f"{base.scheme}://{base.netloc}{partially_escaped_path(self.path)}"
        return f"{url}?{query}" if query else url


class Connection:
    """Credentials and endpoint settings, and the machinery to send requests."""

    def __init__(
        self,
        access_key_id: str = "",
        access_key_secret: str = "",
        *,
        security_token: str = "",
        region: Region = DEFAULT_REGION,
        internal: bool = False,
        secure: bool = False,
        connect_timeout: float = 0.0,
        endpoint: str = "",
        debug: bool = False,
        session: requests.Session | None = None,
    ) -> None:
        self.access_key_id = access_key_id
        self.access_key_secret = access_key_secret
        self.security_token = security_token
        self.region = Region(region)
        self.internal = internal
        self.secure = secure
        self.connect_timeout = connect_timeout
        self.endpoint = endpoint
        self.debug = debug
        self.session = session if session is not None else requests.Session()

    def set_base_url(self, req: Request) -> None:
        """Set the request's base URL from the endpoint override or the region."""
        if self.endpoint:
            req.baseurl = f"{get_protocol(self.secure)}://{self.endpoint}"
        else:
            req.baseurl = self.region.get_endpoint(self.internal, req.bucket, self.secure)

    def prepare(self, req: Request) -> None:
        """Fill in defaults, date and signature; safe to call again before a retry."""
        headers = copy_header(req.headers)
        if self.security_token:
            _set_header(headers, "x-oss-security-token", self.security_token)
        req.params = copy_header(req.params)
        req.headers = headers

        if not req.prepared:
            req.prepared = True
            if not req.method:
                req.method = "GET"
            if not req.path.startswith("/"):
                req.path = "/" + req.path
            self.set_base_url(req)

        _set_header(req.headers, "Date", formatdate(usegmt=True))
        req.params, req.headers = sign_request(
            req.method,
            req.bucket,
            req.path,
            req.params,
            req.headers,
            self.access_key_id,
            self.access_key_secret,
        )

    def _timeout(self, req: Request) -> tuple[float | None, float | None] | None:
        connect = self.connect_timeout or None
        read = req.timeout or None
        if connect is None and read is None:
            return None
        return (connect, read)

    def run(
        self, req: Request, parse: Callable[[bytes], Any] | None = None
    ) -> tuple[requests.Response, Any]:
        """Send a prepared request and return the response with its parsed body.

        Without a parser the body is left unread and the second item is None.
        A status other than 200, 204 or 206 raises OSSError.
        """
        if self.debug:
            logger.debug("Running OSS request: %r", req)

        url = req._wire_url()
        headers = copy_header(req.headers)
        _set_header(headers, "X-SDK-Client", SDK_CLIENT)
        content_length = _get_header(headers, "Content-Length")
        _del_header(headers, "Content-Length")

        body = req.payload
        if body is None and content_length == "0" and req.method in ("PUT", "POST"):
            body = b""

        logger.info("%s %s ...", req.method, url)
        response = self.session.request(
            req.method,
            url,
            headers={key: ", ".join(values) for key, values in headers.items()},
            data=body,
            timeout=self._timeout(req),
            stream=True,
        )

        if self.debug:
            logger.debug("%s %s %d", req.method, url, response.status_code)
            content_type = response.headers.get("Content-Type", "")
            if content_type in _XML_TYPES:
                logger.debug("%s", response.content.decode("utf-8", "replace"))
            else:
                logger.debug("Response Content-Type: %s", content_type)

        if response.status_code not in _OK_STATUSES:
            raise self.build_error(response)

        result = None
        if parse is not None:
            try:
                result = parse(response.content)
            finally:
                response.close()
            if self.debug:
                logger.debug("decoded xml into %r", result)
        return response, result

    def query(self, req: Request, parse: Callable[[bytes], Any] | None = None) -> Any:
        """Prepare and send a request, returning the parsed body or None."""
        self.prepare(req)
        response, result = self.run(req, parse)
        response.close()
        return result

    def build_error(self, response: requests.Response) -> OSSError:
        """Turn an error response into an OSSError."""
        try:
            data = response.content
        finally:
            response.close()
        if self.debug:
            logger.debug("got error (status code %s)", response.status_code)
            logger.debug("\tdata:\n%s\n", data.decode("utf-8", "replace"))
        status = f"{response.status_code} {response.reason or ''}".strip()
        err = OSSError.from_xml(data, response.status_code, status)
        if self.debug:
            logger.debug("err: %r", err)
        return err