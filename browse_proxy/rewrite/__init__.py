from typing import Callable, Dict

from .charset import DEFAULT_ENCODING
from .classifier import Strategy, classify
from .context import RewriteContext
from .css_rewriter import rewrite_css
from .html_rewriter import rewrite_html
from .js_rewriter import rewrite_js

Rewriter = Callable[[bytes, RewriteContext, str], bytes]

REWRITERS: Dict[Strategy, Rewriter] = {
    Strategy.REWRITE_HTML: rewrite_html,
    Strategy.REWRITE_CSS: rewrite_css,
    Strategy.REWRITE_JS: rewrite_js,
}


def rewrite_body(
    body: bytes,
    strategy: Strategy,
    ctx: RewriteContext,
    encoding: str = DEFAULT_ENCODING,
) -> bytes:
    """Apply the rewriter for ``strategy``; pass-through bodies come back as-is."""
    rewriter = REWRITERS.get(strategy)
    if rewriter is None:
        return body
    return rewriter(body, ctx, encoding)


__all__ = [
    "REWRITERS",
    "RewriteContext",
    "Strategy",
    "classify",
    "rewrite_body",
    "rewrite_css",
    "rewrite_html",
    "rewrite_js",
]
