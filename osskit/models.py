"""Data types exchanged with OSS and their XML forms."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .regions import HANGZHOU

XML_HEADER = b'<?xml version="1.0" encoding="UTF-8"?>\n'
WEBSITE_NAMESPACE = "http://doc.oss-cn-hangzhou.aliyuncs.com"

Headers = MutableMapping[str, list]


class ACL(str, Enum):
    """Canned access control settings."""

    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL = "bucket-owner-full-control"


def _set_header(headers: Headers, name: str, value: str) -> None:
    for key in [k for k in headers if k.lower() == name.lower()]:
        del headers[key]
    headers[name] = [value]


def _add_header(headers: Headers, name: str, value: str) -> None:
    for key in headers:
        if key.lower() == name.lower():
            headers[key].append(value)
            return
    headers[name] = [value]


def _escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&#34;")
        .replace("'", "&#39;")
        .replace("\t", "&#x9;")
        .replace("\n", "&#xA;")
        .replace("\r", "&#xD;")
    )


def _element(name: str, text: str) -> str:
    return f"<{name}>{_escape(text)}</{name}>"


def _parse(data: bytes | str) -> ET.Element:
    root = ET.fromstring(data)
    for node in root.iter():
        if isinstance(node.tag, str) and "}" in node.tag:
            node.tag = node.tag.split("}", 1)[1]
    return root


def _text(node: ET.Element | None, path: str) -> str:
    if node is None:
        return ""
    found = node.find(path)
    return "" if found is None else (found.text or "")


def _int(text: str) -> int:
    text = text.strip()
    return int(text) if text else 0


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _bool(text: str) -> bool:
    text = text.strip()
    if not text or text in _FALSE:
        return False
    if text in _TRUE:
        return True
    raise ValueError(f"invalid boolean value {text!r}")


@dataclass
class Owner:
    """The owner of a bucket or object."""

    id: str = ""
    display_name: str = ""

    @classmethod
    def _from_element(cls, node: ET.Element | None) -> Owner:
        return cls(id=_text(node, "ID"), display_name=_text(node, "DisplayName"))


@dataclass
class Options:
    """Optional settings for storing an object."""

    server_side_encryption: bool = False
    meta: Mapping[str, str | Sequence[str]] = field(default_factory=dict)
    content_encoding: str = ""
    cache_control: str = ""
    content_md5: str = ""
    content_disposition: str = ""

    def add_headers(self, headers: Headers) -> None:
        """Write the chosen settings into headers."""
        if self.server_side_encryption:
            _set_header(headers, "x-oss-server-side-encryption", "AES256")
        if self.content_encoding:
            _set_header(headers, "Content-Encoding", self.content_encoding)
        if self.cache_control:
            _set_header(headers, "Cache-Control", self.cache_control)
        if self.content_md5:
            _set_header(headers, "Content-MD5", self.content_md5)
        if self.content_disposition:
            _set_header(headers, "Content-Disposition", self.content_disposition)
        for key, values in self.meta.items():
            for value in [values] if isinstance(values, str) else values:
                _add_header(headers, "x-oss-meta-" + key, value)


@dataclass
class CopyOptions:
    """Optional settings for a server-side copy."""

    headers: Mapping[str, Sequence[str]] | None = None
    copy_source_options: str = ""
    metadata_directive: str = ""

    def add_headers(self, headers: Headers) -> None:
        """Write the chosen settings into headers."""
        if self.metadata_directive:
            _set_header(headers, "x-oss-metadata-directive", self.metadata_directive)
        if self.copy_source_options:
            _set_header(headers, "x-oss-copy-source-range", self.copy_source_options)
        if self.headers is not None:
            for key, values in self.headers.items():
                headers[key] = list(values)


@dataclass
class CopyObjectResult:
    """The answer to a copy request."""

    etag: str = ""
    last_modified: str = ""

    @classmethod
    def from_xml(cls, data: bytes | str) -> CopyObjectResult:
        root = _parse(data)
        return cls(etag=_text(root, "ETag"), last_modified=_text(root, "LastModified"))


@dataclass
class BucketInfo:
    """Basic facts about a bucket."""

    name: str = ""
    creation_date: str = ""
    extranet_endpoint: str = ""
    intranet_endpoint: str = ""
    location: str = ""
    grant: str = ""

    @classmethod
    def _from_element(cls, node: ET.Element | None) -> BucketInfo:
        return cls(
            name=_text(node, "Name"),
            creation_date=_text(node, "CreationDate"),
            extranet_endpoint=_text(node, "ExtranetEndpoint"),
            intranet_endpoint=_text(node, "IntranetEndpoint"),
            location=_text(node, "Location"),
            grant=_text(node, "AccessControlList/Grant"),
        )

    @classmethod
    def from_xml(cls, data: bytes | str) -> BucketInfo:
        """Read the Bucket element of a bucket-info answer."""
        return cls._from_element(_parse(data).find("Bucket"))


@dataclass
class GetServiceResp:
    """The buckets owned by an account."""

    owner: Owner = field(default_factory=Owner)
    buckets: list[BucketInfo] = field(default_factory=list)

    @classmethod
    def from_xml(cls, data: bytes | str) -> GetServiceResp:
        root = _parse(data)
        return cls(
            owner=Owner._from_element(root.find("Owner")),
            buckets=[BucketInfo._from_element(n) for n in root.findall("Buckets/Bucket")],
        )


@dataclass
class Key:
    """An item stored in a bucket."""

    key: str = ""
    last_modified: str = ""
    type: str = ""
    size: int = 0
    etag: str = ""
    storage_class: str = ""
    owner: Owner = field(default_factory=Owner)

    @classmethod
    def _from_element(cls, node: ET.Element) -> Key:
        return cls(
            key=_text(node, "Key"),
            last_modified=_text(node, "LastModified"),
            type=_text(node, "Type"),
            size=_int(_text(node, "Size")),
            etag=_text(node, "ETag"),
            storage_class=_text(node, "StorageClass"),
            owner=Owner._from_element(node.find("Owner")),
        )


@dataclass
class ListResp:
    """One page of a bucket listing."""

    name: str = ""
    prefix: str = ""
    delimiter: str = ""
    marker: str = ""
    max_keys: int = 0
    is_truncated: bool = False
    contents: list[Key] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    next_marker: str = ""

    @classmethod
    def from_xml(cls, data: bytes | str) -> ListResp:
        root = _parse(data)
        return cls(
            name=_text(root, "Name"),
            prefix=_text(root, "Prefix"),
            delimiter=_text(root, "Delimiter"),
            marker=_text(root, "Marker"),
            max_keys=_int(_text(root, "MaxKeys")),
            is_truncated=_bool(_text(root, "IsTruncated")),
            contents=[Key._from_element(n) for n in root.findall("Contents")],
            common_prefixes=[n.text or "" for n in root.findall("CommonPrefixes/Prefix")],
            next_marker=_text(root, "NextMarker"),
        )


@dataclass
class AccessControlPolicy:
    """The owner and grants of a bucket."""

    owner: Owner = field(default_factory=Owner)
    grants: list[str] = field(default_factory=list)

    @classmethod
    def from_xml(cls, data: bytes | str) -> AccessControlPolicy:
        root = _parse(data)
        return cls(
            owner=Owner._from_element(root.find("Owner")),
            grants=[n.text or "" for n in root.findall("AccessControlList/Grant")],
        )


@dataclass
class Object:
    """An object named in a multiple delete."""

    key: str
    version_id: str = ""

    def _to_xml(self) -> str:
        version = _element("VersionId", self.version_id) if self.version_id else ""
        return f"<Object>{_element('Key', self.key)}{version}</Object>"


@dataclass
class Delete:
    """A request to delete several objects at once."""

    quiet: bool = False
    objects: list[Object] = field(default_factory=list)

    def to_xml(self) -> bytes:
        quiet = "<Quiet>true</Quiet>" if self.quiet else ""
        body = "".join(obj._to_xml() for obj in self.objects)
        return f"<Delete>{quiet}{body}</Delete>".encode()


@dataclass
class IndexDocument:
    suffix: str


@dataclass
class ErrorDocument:
    key: str


@dataclass
class RoutingRule:
    condition_key_prefix_equals: str = ""
    redirect_replace_key_prefix_with: str = ""
    redirect_replace_key_with: str = ""

    def _to_xml(self) -> str:
        condition = (
            f"<Condition>{_element('KeyPrefixEquals', self.condition_key_prefix_equals)}</Condition>"
        )
        redirect = ""
        if self.redirect_replace_key_prefix_with:
            redirect += _element("ReplaceKeyPrefixWith", self.redirect_replace_key_prefix_with)
        if self.redirect_replace_key_with:
            redirect += _element("ReplaceKeyWith", self.redirect_replace_key_with)
        if redirect:
            redirect = f"<Redirect>{redirect}</Redirect>"
        return f"<RoutingRule>{condition}{redirect}</RoutingRule>"


@dataclass
class RedirectAllRequestsTo:
    host_name: str
    protocol: str = ""


@dataclass
class WebsiteConfiguration:
    """Settings that serve a bucket as a website."""

    index_document: IndexDocument | None = None
    error_document: ErrorDocument | None = None
    routing_rules: list[RoutingRule] | None = None
    redirect_all_requests_to: RedirectAllRequestsTo | None = None

    def to_xml(self) -> bytes:
        parts = [f'<WebsiteConfiguration xmlns="{WEBSITE_NAMESPACE}">']
        if self.index_document is not None:
            parts.append(
                f"<IndexDocument>{_element('Suffix', self.index_document.suffix)}</IndexDocument>"
            )
        if self.error_document is not None:
            parts.append(
                f"<ErrorDocument>{_element('Key', self.error_document.key)}</ErrorDocument>"
            )
        if self.routing_rules is not None:
            rules = "".join(rule._to_xml() for rule in self.routing_rules)
            parts.append(f"<RoutingRules>{rules}</RoutingRules>")
        if self.redirect_all_requests_to is not None:
            target = self.redirect_all_requests_to
            protocol = _element("Protocol", target.protocol) if target.protocol else ""
            parts.append(
                f"<RedirectAllRequestsTo>{_element('HostName', target.host_name)}"
                f"{protocol}</RedirectAllRequestsTo>"
            )
        parts.append("</WebsiteConfiguration>")
        return "".join(parts).encode()


def make_xml_document(doc: bytes) -> bytes:
    """Prefix a serialised element with the XML declaration."""
    return XML_HEADER + doc


def parse_location(data: bytes | str) -> str:
    """Return the region named in a location answer, the default region if empty."""
    root = _parse(data)
    inner = (root.text or "") + "".join(
        ET.tostring(child, encoding="unicode") for child in root
    )
    return inner if inner else str(HANGZHOU)