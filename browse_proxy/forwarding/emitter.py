"""
Turns an upstream response into the client-visible response.

Pass-through bodies are streamed raw, chunk by chunk, and never held in
memory. Bodies selected for rewriting are read completely, rewritten and only
then handed to the client, so a read or rewrite failure can still become a
clean error response.
"""

import logging
from typing import AsyncIterator, List, Tuple

import httpx
from fastapi.responses import Response, StreamingResponse

from browse_proxy.errors import BodyReadFailed, ProxyError, RewriteError
from browse_proxy.rewrite import RewriteContext, Strategy, rewrite_body
from browse_proxy.rewrite.charset import DEFAULT_ENCODING

from .forwarder import HOP_BY_HOP_HEADERS

logger = logging.getLogger("uvicorn.error")


def filter_response_headers(
    upstream_headers: httpx.Headers, strategy: Strategy, ctx: RewriteContext
) -> List[Tuple[str, str]]:
    """
    Headers to copy from the upstream response to the client.

    Hop-by-hop headers are dropped. In browse mode Content-Length is dropped
    since the body may change, and Location is pointed back at the proxy.
    Rewritten bodies were decoded by httpx, so their Content-Encoding goes too.
    """
    headers = []
    for name, value in upstream_headers.multi_items():
        name_lower = name.lower()
        if name_lower in HOP_BY_HOP_HEADERS:
            continue
        if ctx.rewrite_mode and name_lower == "content-length":
            continue
        if strategy.rewrites and name_lower == "content-encoding":
            continue
        if ctx.rewrite_mode and name_lower == "location":
            value = ctx.proxied_reference(value) or value
        headers.append((name, value))
    return headers


def _apply_headers(response: Response, headers: List[Tuple[str, str]]) -> Response:
    for name, value in headers:
        response.headers.append(name, value)
    return response


async def _stream_raw(upstream: httpx.Response, target_url: str) -> AsyncIterator[bytes]:
    try:
        if upstream.is_stream_consumed:
            # Responses built in memory arrive already read
            yield upstream.content
        else:
            async for chunk in upstream.aiter_raw():
                yield chunk
    except httpx.HTTPError as e:
        logger.error(f"[Proxy] Error streaming response from {target_url}: {e}")
        raise
    finally:
        await upstream.aclose()


async def _read_body(upstream: httpx.Response) -> bytes:
    try:
        return await upstream.aread()
    except httpx.HTTPError as e:
        raise BodyReadFailed("Failed to read upstream response", cause=e) from e
    finally:
        await upstream.aclose()


async def emit(
    upstream: httpx.Response, strategy: Strategy, ctx: RewriteContext
) -> Response:
    """
    Build the response for the client from ``upstream``.

    Raises:
        BodyReadFailed: the upstream body could not be read for rewriting
        RewriteError: the rewriter failed on the buffered body
    """
    headers = filter_response_headers(upstream.headers, strategy, ctx)

    if not strategy.rewrites:
        response = StreamingResponse(
            _stream_raw(upstream, ctx.base), status_code=upstream.status_code
        )
        return _apply_headers(response, headers)

    body = await _read_body(upstream)
    encoding = upstream.charset_encoding or DEFAULT_ENCODING
    try:
        rewritten = rewrite_body(body, strategy, ctx, encoding)
    except ProxyError:
        raise
    except Exception as e:
        raise RewriteError(f"Failed to rewrite {strategy.value} body", cause=e) from e

    logger.debug(
        f"[Rewrite] {strategy.value}: {len(body)} -> {len(rewritten)} bytes for {ctx.base}"
    )
    response = Response(content=rewritten, status_code=upstream.status_code)
    return _apply_headers(response, headers)
