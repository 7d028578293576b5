import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from opentelemetry import trace
from prometheus_client import Counter

from browse_proxy.addressing import Target, resolve
from browse_proxy.errors import ProxyError
from browse_proxy.forwarding import RequestForwarder, emit
from browse_proxy.rewrite import RewriteContext, Strategy, classify
from browse_proxy.utils import client_address, shorten
from browse_proxy.utils.exception_logging import log_exception_with_details
from browse_proxy.utils.traced_requests import traced_request
from browse_proxy.vars import BROWSE_QUERY_PARAM, PUBLIC_URL

router = APIRouter()
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

PROXIED_REQUESTS = Counter(
    "browse_proxy_requests_total",
    "Requests handled by the proxy",
    ["strategy", "outcome"],
)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Outbound client created by the application lifespan."""
    return request.app.state.http_client


def proxy_origin(request: Request) -> str:
    """Scheme and host of the proxy as seen by the client."""
    if PUBLIC_URL:
        return PUBLIC_URL
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"


def is_rewrite_mode(request: Request) -> bool:
    return bool(request.query_params.get(BROWSE_QUERY_PARAM))


def _resolution_base(upstream: httpx.Response, target: Target) -> str:
    # After followed redirects, relative links belong to the final document
    if upstream.history:
        return str(upstream.url)
    return target.url


async def proxy_request(
    request: Request, path: str, client: httpx.AsyncClient
) -> Response:
    """Resolve, forward, classify and emit one proxied request."""
    method = request.method
    remote = client_address(request)
    rewrite_mode = is_rewrite_mode(request)
    target = None
    upstream = None
    strategy = Strategy.PASS_THROUGH

    with traced_request(
        tracer,
        operation="proxy_request",
        start_message=f"[Proxy] Incoming request: {method} /{shorten(path)} from {remote}, browse={rewrite_mode}",
        extra_attrs={
            "proxy.method": method,
            "proxy.path": shorten(path, 256),
            "proxy.client": remote,
            "proxy.browse": rewrite_mode,
        },
    ) as span:
        try:
            target = resolve(path)
            span.set_attribute("proxy.target_url", target.url)
            logger.info(f"[Proxy] Proxying {method} from {remote} to {target.url}")

            upstream = await RequestForwarder(client).forward(
                request, target, rewrite_mode
            )
            strategy = classify(upstream.headers.get("content-type", ""), rewrite_mode)
            if method == "HEAD":
                # HEAD responses carry no body to rewrite
                strategy = Strategy.PASS_THROUGH
            span.set_attribute("proxy.status_code", upstream.status_code)
            span.set_attribute("proxy.strategy", strategy.value)
            logger.info(
                f"[Proxy] Upstream response: {upstream.status_code} for {target.url} ({strategy.value})"
            )

            ctx = RewriteContext(
                base=_resolution_base(upstream, target),
                origin=proxy_origin(request),
                rewrite_mode=rewrite_mode,
                query_param=BROWSE_QUERY_PARAM,
            )
            response = await emit(upstream, strategy, ctx)
            PROXIED_REQUESTS.labels(strategy=strategy.value, outcome="ok").inc()
            return response
        except ProxyError as e:
            span.set_attribute("proxy.error", type(e).__name__)
            PROXIED_REQUESTS.labels(
                strategy=strategy.value, outcome=type(e).__name__
            ).inc()
            log_exception_with_details(
                logger,
                "[Proxy]",
                e,
                level=logging.WARNING if e.status_code < 500 else logging.ERROR,
                context=f"{method} /{shorten(path)} from {remote}, target={target}",
            )
            raise HTTPException(status_code=e.status_code, detail=e.detail)
        except Exception as e:
            span.set_attribute("proxy.error", str(e))
            PROXIED_REQUESTS.labels(
                strategy=strategy.value, outcome="internal_error"
            ).inc()
            log_exception_with_details(
                logger,
                "[Proxy]",
                e,
                context=f"{method} /{shorten(path)} from {remote}, target={target}",
            )
            if upstream is not None:
                await upstream.aclose()
            raise HTTPException(status_code=500, detail="Internal server error")


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy_all(
    request: Request,
    path: str,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Catch-all route: the first path segment is the encoded target URL."""
    return await proxy_request(request, path, client)
