from unittest.mock import patch

import httpx
import pytest
from fastapi.responses import StreamingResponse

from browse_proxy.addressing import encode
from browse_proxy.errors import BodyReadFailed, RewriteError
from browse_proxy.forwarding.emitter import emit, filter_response_headers
from browse_proxy.rewrite import RewriteContext, Strategy

TARGET = "https://example.org/docs/index.html"


@pytest.fixture
def browse_context():
    return RewriteContext(base=TARGET, origin="http://proxy.local", rewrite_mode=True)


@pytest.fixture
def plain_context():
    return RewriteContext(base=TARGET, origin="http://proxy.local", rewrite_mode=False)


class FailingStream(httpx.AsyncByteStream):
    def __init__(self):
        self.closed = False

    async def __aiter__(self):
        yield b"<html>"
        raise httpx.ReadError("connection reset")

    async def aclose(self):
        self.closed = True


async def _body(response) -> bytes:
    if isinstance(response, StreamingResponse):
        return b"".join([chunk async for chunk in response.body_iterator])
    return response.body


class TestFilterResponseHeaders:
    def test_copies_all_but_hop_by_hop(self, plain_context):
        headers = httpx.Headers(
            {
                "content-type": "text/plain",
                "content-length": "12",
                "x-custom": "value",
                "connection": "keep-alive",
                "transfer-encoding": "chunked",
            }
        )
        result = dict(filter_response_headers(headers, Strategy.PASS_THROUGH, plain_context))

        assert result == {"content-type": "text/plain", "content-length": "12", "x-custom": "value"}

    def test_content_length_dropped_in_browse_mode(self, browse_context):
        headers = httpx.Headers({"content-type": "image/png", "content-length": "12"})
        result = dict(filter_response_headers(headers, Strategy.PASS_THROUGH, browse_context))
        assert "content-length" not in result

    def test_content_encoding_dropped_only_when_rewriting(self, browse_context):
        headers = httpx.Headers({"content-type": "text/html", "content-encoding": "gzip"})

        rewritten = dict(filter_response_headers(headers, Strategy.REWRITE_HTML, browse_context))
        streamed = dict(filter_response_headers(headers, Strategy.PASS_THROUGH, browse_context))

        assert "content-encoding" not in rewritten
        assert streamed["content-encoding"] == "gzip"

    def test_location_rewritten_in_browse_mode(self, browse_context, plain_context):
        headers = httpx.Headers({"location": "../login?next=/"})

        browse = dict(filter_response_headers(headers, Strategy.PASS_THROUGH, browse_context))
        plain = dict(filter_response_headers(headers, Strategy.PASS_THROUGH, plain_context))

        assert browse["location"] == browse_context.proxied("https://example.org/login?next=/")
        assert plain["location"] == "../login?next=/"

    def test_repeated_headers_preserved(self, plain_context):
        headers = httpx.Headers([("set-cookie", "a=1"), ("set-cookie", "b=2")])
        result = filter_response_headers(headers, Strategy.PASS_THROUGH, plain_context)
        assert result == [("set-cookie", "a=1"), ("set-cookie", "b=2")]


class TestPassThrough:
    @pytest.mark.asyncio
    async def test_streams_raw_chunks(self, plain_context):
        upstream = httpx.Response(
            200,
            headers={"content-type": "application/octet-stream", "content-length": "15"},
            stream=httpx.ByteStream(b"chunk" * 3),
        )

        response = await emit(upstream, Strategy.PASS_THROUGH, plain_context)

        assert isinstance(response, StreamingResponse)
        assert response.status_code == 200
        assert response.headers["content-length"] == "15"
        assert await _body(response) == b"chunk" * 3
        assert upstream.is_closed

    @pytest.mark.asyncio
    async def test_compressed_body_passed_through_untouched(self, plain_context):
        raw = b"\x1f\x8b\x08\x00not-really-gzip"
        upstream = httpx.Response(
            200,
            headers={"content-type": "text/html", "content-encoding": "gzip"},
            stream=httpx.ByteStream(raw),
        )

        response = await emit(upstream, Strategy.PASS_THROUGH, plain_context)

        assert response.headers["content-encoding"] == "gzip"
        assert await _body(response) == raw

    @pytest.mark.asyncio
    async def test_already_read_response(self, plain_context):
        upstream = httpx.Response(404, headers={"content-type": "text/plain"}, content=b"nope")

        response = await emit(upstream, Strategy.PASS_THROUGH, plain_context)

        assert response.status_code == 404
        assert await _body(response) == b"nope"

    @pytest.mark.asyncio
    async def test_stream_error_propagates_and_closes(self, plain_context):
        stream = FailingStream()
        upstream = httpx.Response(200, headers={"content-type": "video/mp4"}, stream=stream)

        response = await emit(upstream, Strategy.PASS_THROUGH, plain_context)

        with pytest.raises(httpx.ReadError):
            await _body(response)
        assert stream.closed


class TestRewrite:
    @pytest.mark.asyncio
    async def test_html_rewritten_with_fresh_content_length(self, browse_context):
        html = b'<a href="/page">x</a>'
        upstream = httpx.Response(
            200,
            headers={"content-type": "text/html; charset=utf-8"},
            content=html,
        )

        response = await emit(upstream, Strategy.REWRITE_HTML, browse_context)

        expected = f'<a href="http://proxy.local/{encode("https://example.org/page")}?browse=1">x</a>'
        assert response.body == expected.encode("utf-8")
        assert response.headers["content-length"] == str(len(response.body))
        assert response.headers["content-type"] == "text/html; charset=utf-8"
        assert upstream.is_closed

    @pytest.mark.asyncio
    async def test_status_code_passed_through(self, browse_context):
        upstream = httpx.Response(
            418, headers={"content-type": "text/css"}, content=b"a{b:url(x.png)}"
        )

        response = await emit(upstream, Strategy.REWRITE_CSS, browse_context)

        assert response.status_code == 418
        assert browse_context.proxied("https://example.org/docs/x.png").encode() in response.body

    @pytest.mark.asyncio
    async def test_charset_from_content_type(self, browse_context):
        body = 'var s = "café"; go("https://example.org/x");'.encode("latin-1")
        upstream = httpx.Response(
            200,
            headers={"content-type": "application/javascript; charset=iso-8859-1"},
            content=body,
        )

        response = await emit(upstream, Strategy.REWRITE_JS, browse_context)

        assert '"café"'.encode("latin-1") in response.body

    @pytest.mark.asyncio
    async def test_read_failure_is_body_read_failed(self, browse_context):
        stream = FailingStream()
        upstream = httpx.Response(200, headers={"content-type": "text/html"}, stream=stream)

        with pytest.raises(BodyReadFailed) as exc_info:
            await emit(upstream, Strategy.REWRITE_HTML, browse_context)

        assert exc_info.value.status_code == 500
        assert stream.closed

    @pytest.mark.asyncio
    async def test_rewrite_failure_is_rewrite_error(self, browse_context):
        upstream = httpx.Response(200, headers={"content-type": "text/html"}, content=b"<p>")

        with patch(
            "browse_proxy.forwarding.emitter.rewrite_body",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(RewriteError) as exc_info:
                await emit(upstream, Strategy.REWRITE_HTML, browse_context)

        assert exc_info.value.status_code == 500
        assert "boom" in exc_info.value.detail
