"""OSS regions and their endpoints."""

from __future__ import annotations

_SCHEMES = {True: "https", False: "http"}


def get_protocol(secure: bool) -> str:
    """Return the URL scheme for a secure or plain connection."""
    return _SCHEMES[bool(secure)]


class Region(str):
    """An OSS region identifier."""

    __slots__ = ()

    def get_endpoint(self, internal: bool, bucket: str, secure: bool) -> str:
        if internal:
            return self.get_internal_endpoint(bucket, secure)
        return self.get_internet_endpoint(bucket, secure)

    def get_internet_endpoint(self, bucket: str, secure: bool) -> str:
        protocol = get_protocol(secure)
        if not bucket:
            return f"{protocol}://oss.aliyuncs.com"
        return f"{protocol}://{bucket}.{str(self)}.aliyuncs.com"

    def get_internal_endpoint(self, bucket: str, secure: bool) -> str:
        protocol = get_protocol(secure)
        if not bucket:
            return f"{protocol}://oss-internal.aliyuncs.com"
        return f"{protocol}://{bucket}.{str(self)}-internal.aliyuncs.com"

    def get_vpc_internal_endpoint(self, bucket: str, secure: bool) -> str:
        protocol = get_protocol(secure)
        if not bucket:
            return f"{protocol}://vpc100-oss-cn-hangzhou.aliyuncs.com"
        if self == US_EAST_1:
            return self.get_internal_endpoint(bucket, secure)
        return f"{protocol}://{bucket}.vpc100-{str(self)}.aliyuncs.com"


HANGZHOU = Region("oss-cn-hangzhou")
QINGDAO = Region("oss-cn-qingdao")
BEIJING = Region("oss-cn-beijing")
HONGKONG = Region("oss-cn-hongkong")
SHENZHEN = Region("oss-cn-shenzhen")
US_WEST_1 = Region("oss-us-west-1")
US_EAST_1 = Region("oss-us-east-1")
AP_SOUTHEAST_1 = Region("oss-ap-southeast-1")
SHANGHAI = Region("oss-cn-shanghai")

DEFAULT_REGION = HANGZHOU