"""Errors reported by OSS and the rule for retrying failed requests."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import requests

_RETRYABLE_CODES = frozenset({"InternalError", "NoSuchUpload", "NoSuchBucket"})
_IDEMPOTENT_METHODS = frozenset({"GET", "PUT", "DELETE", "HEAD"})


class OSSError(Exception):
    """An error answer from the OSS service."""

    def __init__(
        self,
        status_code: int = 0,
        code: str = "",
        message: str = "",
        bucket_name: str = "",
        request_id: str = "",
        host_id: str = "",
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        self.bucket_name = bucket_name
        self.request_id = request_id
        self.host_id = host_id
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"Aliyun API Error: RequestId: {self.request_id} "
            f"Status Code: {self.status_code} Code: {self.code} "
            f"Message: {self.message}"
        )

    @classmethod
    def from_xml(cls, data: bytes | str, status_code: int, status: str) -> OSSError:
        """Build an error from an Error document; an unreadable body is ignored.

        When the document carries no message, the HTTP status line is used.
        """
        fields = {}
        try:
            root = ET.fromstring(data) if data else None
        except ET.ParseError:
            root = None
        if root is not None:
            for child in root:
                tag = child.tag.split("}", 1)[-1] if isinstance(child.tag, str) else ""
                fields[tag] = child.text or ""
        return cls(
            status_code=status_code,
            code=fields.get("Code", ""),
            message=fields.get("Message", "") or status,
            bucket_name=fields.get("BucketName", ""),
            request_id=fields.get("RequestId", ""),
            host_id=fields.get("HostId", ""),
        )


def _request_method(err: BaseException) -> str | None:
    request = getattr(err, "request", None)
    method = getattr(request, "method", None)
    return method.upper() if isinstance(method, str) else None


def should_retry(err: BaseException | None) -> bool:
    """Tell whether a failed request is worth sending again."""
    if err is None:
        return False
    if isinstance(err, (requests.Timeout, TimeoutError)):
        return True
    if isinstance(err, EOFError):
        return True
    if isinstance(err, OSSError):
        return err.code in _RETRYABLE_CODES
    if isinstance(err, requests.RequestException):
        method = _request_method(err)
        if method is not None and method not in _IDEMPOTENT_METHODS:
            return False
        return isinstance(
            err, (requests.ConnectionError, requests.exceptions.ChunkedEncodingError)
        )
    return isinstance(err, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError))


def has_code(err: BaseException | None, code: str) -> bool:
    """Tell whether err is an OSS error with the given code."""
    return isinstance(err, OSSError) and err.code == code