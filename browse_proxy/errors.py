"""
Error taxonomy of the proxy.

Every failure that reaches the route layer is a ``ProxyError`` carrying the
HTTP status the client should see. Client input problems map to 400, anything
that goes wrong talking to the upstream or rewriting its body maps to 500.
"""

from typing import Optional


class ProxyError(Exception):
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def detail(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class MissingTarget(ProxyError):
    status_code = 400

    def __init__(self, message: str = "Missing encoded URL"):
        super().__init__(message)


class BadEncoding(ProxyError):
    status_code = 400


class InvalidTarget(ProxyError):
    status_code = 400


class RequestConstructionFailed(ProxyError):
    status_code = 500


class UpstreamUnreachable(ProxyError):
    status_code = 500


class BodyReadFailed(ProxyError):
    status_code = 500


class RewriteError(ProxyError):
    status_code = 500


class ParseFailed(RewriteError):
    pass
