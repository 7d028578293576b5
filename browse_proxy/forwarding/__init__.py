from .emitter import emit, filter_response_headers
from .forwarder import HOP_BY_HOP_HEADERS, RequestForwarder, build_http_client, prepare_headers

__all__ = [
    "HOP_BY_HOP_HEADERS",
    "RequestForwarder",
    "build_http_client",
    "emit",
    "filter_response_headers",
    "prepare_headers",
]
