from dataclasses import dataclass
from urllib.parse import SplitResult, urlsplit

from browse_proxy.errors import BadEncoding, InvalidTarget, MissingTarget

from .codec import DecodeError, decode


@dataclass(frozen=True)
class Target:
    """Decoded upstream URL: forwarding destination and resolution base."""

    url: str
    parts: SplitResult

    @property
    def scheme(self) -> str:
        return self.parts.scheme

    @property
    def host(self) -> str:
        return self.parts.netloc

    def __str__(self) -> str:
        return self.url


def resolve(path_segment: str) -> Target:
    """
    Decode the first path segment of an inbound request into a Target.

    Raises:
        MissingTarget: the segment is empty
        BadEncoding: the segment is not a valid address
        InvalidTarget: the decoded text is not an absolute URL
    """
    address = path_segment.lstrip("/")
    if not address:
        raise MissingTarget()

    try:
        url = decode(address)
    except DecodeError as e:
        raise BadEncoding("Invalid base64 encoding", cause=e) from e

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError as e:
        raise InvalidTarget("Invalid upstream URL", cause=e) from e

    if not parts.scheme or not parts.netloc or not hostname:
        raise InvalidTarget("Invalid upstream URL")

    return Target(url=url, parts=parts)
