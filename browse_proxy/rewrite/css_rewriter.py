"""
Pattern-based rewriting of ``url(...)`` and ``@import`` references in CSS.

Not a CSS parser: pathological stylesheets can be over- or under-matched.
References that cannot be resolved are left as they are.
"""

import re

from .charset import DEFAULT_ENCODING, decode_body, encode_body
from .context import RewriteContext

URL_FUNCTION = re.compile(r"""url\(\s*(["']?)([^"')]+)(["']?)\s*\)""")
IMPORT_RULE = re.compile(r"""@import\s+(["'])([^"']+)(["'])""")


def rewrite_css_text(text: str, ctx: RewriteContext) -> str:
    def url_function(match: re.Match) -> str:
        quote, value = match.group(1), match.group(2)
        if value.strip().startswith("data:"):
            return match.group(0)
        proxied = ctx.proxied_reference(value.strip())
        if proxied is None:
            return match.group(0)
        return f"url({quote}{proxied}{quote})"

    def import_rule(match: re.Match) -> str:
        quote, value = match.group(1), match.group(2)
        proxied = ctx.proxied_reference(value)
        if proxied is None:
            return match.group(0)
        return f"@import {quote}{proxied}{quote}"

    text = URL_FUNCTION.sub(url_function, text)
    text = IMPORT_RULE.sub(import_rule, text)
    return text


def rewrite_css(body: bytes, ctx: RewriteContext, encoding: str = DEFAULT_ENCODING) -> bytes:
    return encode_body(rewrite_css_text(decode_body(body, encoding), ctx), encoding)
