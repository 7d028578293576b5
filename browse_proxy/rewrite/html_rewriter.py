"""
HTML rewriting on a parsed document tree.

The body is parsed with BeautifulSoup's tolerant ``html.parser`` builder, so
malformed markup is accepted the way browsers accept it, and re-serialized as
well-formed markup. URL-bearing attributes are pointed back at the proxy and
inline scripts are handed to the JS rewriter.
"""

import logging

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from browse_proxy.errors import ParseFailed

from .charset import DEFAULT_ENCODING, decode_body, encode_body
from .context import RewriteContext
from .js_rewriter import rewrite_js_text

logger = logging.getLogger("uvicorn.error")

REWRITTEN_ATTRIBUTES = frozenset({"href", "src", "action", "formaction"})


def _rewrite_attributes(tag: Tag, ctx: RewriteContext) -> None:
    for name, value in list(tag.attrs.items()):
        if name.lower() not in REWRITTEN_ATTRIBUTES or not isinstance(value, str):
            continue
        # inline data URIs are never proxied
        if value.startswith("data:"):
            continue
        proxied = ctx.proxied_reference(value)
        if proxied is not None:
            tag[name] = proxied


def _has_src(tag: Tag) -> bool:
    return any(name.lower() == "src" for name in tag.attrs)


def _rewrite_inline_script(tag: Tag, ctx: RewriteContext) -> None:
    for child in list(tag.children):
        if isinstance(child, Tag):
            continue
        rewritten = rewrite_js_text(str(child), ctx)
        if rewritten != str(child):
            # keep the string subclass so script text stays unescaped
            child.replace_with(type(child)(rewritten))


def rewrite_document(soup: BeautifulSoup, ctx: RewriteContext) -> None:
    """Depth-first walk of every element with an explicit work stack."""
    stack = [soup]
    while stack:
        node = stack.pop()
        if node is not soup:
            if node.name and node.name.lower() == "script" and not _has_src(node):
                _rewrite_inline_script(node, ctx)
            _rewrite_attributes(node, ctx)
        stack.extend(
            child for child in reversed(node.contents) if isinstance(child, Tag)
        )


def rewrite_html(body: bytes, ctx: RewriteContext, encoding: str = DEFAULT_ENCODING) -> bytes:
    text = decode_body(body, encoding)
    try:
        soup = BeautifulSoup(text, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseFailed("Failed to parse HTML document", cause=e) from e

    rewrite_document(soup, ctx)
    # eventual_encoding=None keeps any declared <meta charset> as written
    return encode_body(soup.decode(eventual_encoding=None), encoding)
