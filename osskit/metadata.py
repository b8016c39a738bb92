"""Client for the instance metadata service."""

from __future__ import annotations

import time
from collections.abc import Iterator

import requests

ENDPOINT = "http://100.100.100.200"

META_VERSION_LATEST = "latest"

RS_TYPE_META_DATA = "meta-data"
RS_TYPE_USER_DATA = "user-data"

DNS_NAMESERVERS = "dns-conf/nameservers"
EIPV4 = "eipv4"
HOSTNAME = "hostname"
IMAGE_ID = "image-id"
INSTANCE_ID = "instance-id"
MAC = "mac"
NETWORK_TYPE = "network-type"
NTP_CONF_SERVERS = "ntp-conf/ntp-servers"
OWNER_ACCOUNT_ID = "owner-account-id"
PRIVATE_IPV4 = "private-ipv4"
REGION = "region-id"
SERIAL_NUMBER = "serial-number"
SOURCE_ADDRESS = "source-address"
VPC_CIDR_BLOCK = "vpc-cidr-block"
VPC_ID = "vpc-id"
VSWITCH_CIDR_BLOCK = "vswitch-cidr-block"
VSWITCH_ID = "vswitch-id"

# Transport failures that are worth another try: timeouts, DNS and
# connection problems, and bodies cut short.
_RETRYABLE = (
    requests.Timeout,
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
)


class MetaDataError(Exception):
    """Raised when the metadata service cannot answer a request."""


def _attempts(min_count: int, total: float, delay: float) -> Iterator[int]:
    """Yield attempt numbers until both the time budget and the minimum count are spent."""
    end = time.monotonic() + total
    count = 0
    while True:
        if count:
            if time.monotonic() + delay >= end and count >= min_count:
                return
            if delay > 0:
                time.sleep(delay)
        count += 1
        yield count


class MetaDataClient:
    """Builds and sends one request to the metadata service."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        min_attempts: int = 5,
        total: float = 5.0,
        delay: float = 0.2,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._min_attempts = min_attempts
        self._total = total
        self._delay = delay
        self._version = ""
        self._resource_type = ""
        self._resource = ""

    def version(self, version: str) -> MetaDataClient:
        self._version = version
        return self

    def resource_type(self, rtype: str) -> MetaDataClient:
        self._resource_type = rtype
        return self

    def resource(self, resource: str) -> MetaDataClient:
        self._resource = resource
        return self

    def url(self) -> str:
        """Return the address of the selected resource."""
        if not self._version:
            self._version = META_VERSION_LATEST
        if not self._resource_type:
            self._resource_type = RS_TYPE_META_DATA
        if not self._resource:
            raise MetaDataError("the resource you want to visit must not be empty")
        return f"{ENDPOINT}/{self._version}/{self._resource_type}/{self._resource}"

    def go(self) -> list[str]:
        """Fetch the resource, retrying transient failures, and return its lines."""
        last_error: Exception | None = None
        for _ in _attempts(self._min_attempts, self._total, self._delay):
            try:
                return self._send()
            except _RETRYABLE as exc:
                last_error = exc
        assert last_error is not None
        raise last_error

    def _send(self) -> list[str]:
        response = self._session.get(self.url())
        if response.status_code != 200:
            raise MetaDataError(
                f"metadata service answered with status {response.status_code}"
            )
        text = response.text
        if not text:
            return [""]
        return text.split("\n")


class MetaData:
    """Typed access to the common metadata entries."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        client: MetaDataClient | None = None,
    ) -> None:
        self._client = client if client is not None else MetaDataClient(session)

    def _lines(self, resource: str) -> list[str]:
        return self._client.resource(resource).go()

    def _first(self, resource: str) -> str:
        return self._lines(resource)[0]

    def host_name(self) -> str:
        return self._first(HOSTNAME)

    def image_id(self) -> str:
        return self._first(IMAGE_ID)

    def instance_id(self) -> str:
        return self._first(INSTANCE_ID)

    def mac(self) -> str:
        return self._first(MAC)

    def network_type(self) -> str:
        return self._first(NETWORK_TYPE)

    def owner_account_id(self) -> str:
        return self._first(OWNER_ACCOUNT_ID)

    def private_ipv4(self) -> str:
        return self._first(PRIVATE_IPV4)

    def region(self) -> str:
        return self._first(REGION)

    def serial_number(self) -> str:
        return self._first(SERIAL_NUMBER)

    def source_address(self) -> str:
        return self._first(SOURCE_ADDRESS)

    def vpc_cidr_block(self) -> str:
        return self._first(VPC_CIDR_BLOCK)

    def vpc_id(self) -> str:
        return self._first(VPC_ID)

    def vswitch_cidr_block(self) -> str:
        return self._first(VSWITCH_CIDR_BLOCK)

    def vswitch_id(self) -> str:
        return self._first(VSWITCH_ID)

    def eipv4(self) -> str:
        return self._first(EIPV4)

    def dns_name_servers(self) -> list[str]:
        return self._lines(DNS_NAMESERVERS)

    def ntp_config_servers(self) -> list[str]:
        return self._lines(NTP_CONF_SERVERS)