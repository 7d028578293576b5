import logging
from typing import List, Optional, Tuple

import httpx
from fastapi import Request

from browse_proxy.addressing import Target
from browse_proxy.errors import RequestConstructionFailed, UpstreamUnreachable
from browse_proxy.vars import (
    PROXY_CONNECT_TIMEOUT,
    PROXY_FOLLOW_REDIRECTS,
    PROXY_TIMEOUT,
    PROXY_VERIFY_TLS,
)

logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 7230 section 6.1)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}


def build_http_client(
    timeout: float = PROXY_TIMEOUT,
    connect_timeout: float = PROXY_CONNECT_TIMEOUT,
    follow_redirects: bool = PROXY_FOLLOW_REDIRECTS,
    verify: bool = PROXY_VERIFY_TLS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Outbound client shared by all requests of one process."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=connect_timeout),
        follow_redirects=follow_redirects,
        verify=verify,
        transport=transport,
    )


def prepare_headers(request: Request, rewrite_mode: bool) -> List[Tuple[str, str]]:
    """
    Prepare headers for forwarding to the target.

    Every inbound header is kept, repeated ones included, except Host (httpx
    derives it from the target URL) and hop-by-hop headers. In browse mode the
    client's Accept-Encoding is replaced by ``identity`` so the body arrives
    uncompressed and can be rewritten. A client that sent no Accept-Encoding
    also gets ``identity``, otherwise httpx would advertise its own default and
    the raw compressed body would reach a client that never asked for it.
    """
    headers = []
    client_accept_encoding = False
    for name, value in request.headers.items():
        name_lower = name.lower()
        if name_lower == "host" or name_lower in HOP_BY_HOP_HEADERS:
            continue
        if name_lower == "accept-encoding":
            if rewrite_mode:
                continue
            client_accept_encoding = True
        headers.append((name, value))

    if not client_accept_encoding:
        headers.append(("accept-encoding", "identity"))
    return headers


def _has_body(request: Request) -> bool:
    return (
        "content-length" in request.headers or "transfer-encoding" in request.headers
    )


class RequestForwarder:
    """Issues the outbound request for one inbound request."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    def build_request(
        self, request: Request, target: Target, rewrite_mode: bool
    ) -> httpx.Request:
        headers = prepare_headers(request, rewrite_mode)
        # Body is streamed through, read once and never buffered here
        content = request.stream() if _has_body(request) else None
        try:
            return self.client.build_request(
                method=request.method,
                url=target.url,
                headers=headers,
                content=content,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise RequestConstructionFailed(
                "Failed to create upstream request", cause=e
            ) from e

    async def forward(
        self, request: Request, target: Target, rewrite_mode: bool
    ) -> httpx.Response:
        """
        Send the inbound request to ``target`` and return the streaming response.

        The caller owns the returned response and must close it. No retry is
        attempted.

        Raises:
            RequestConstructionFailed: the outbound request could not be built
            UpstreamUnreachable: any transport failure talking to the target
        """
        outbound = self.build_request(request, target, rewrite_mode)
        logger.debug(f"[Proxy] Forwarding {request.method} -> {target.url}")
        try:
            return await self.client.send(outbound, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamUnreachable("Upstream request failed", cause=e) from e
