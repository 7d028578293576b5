"""
Pattern-based rewriting of URLs in JavaScript source.

This is textual, not an AST transform. Four passes run in order over the
evolving text, and each pass sees the output of the previous one:

1. quoted ``http://`` / ``https://`` literals
2. dynamic ``import("./x")`` / ``import("../x")`` with a relative argument
3. static ``from "./x"`` / ``from "../x"`` clauses
4. ``URL("/path")`` calls, which only get the proxy origin prepended

Output of pass 1 is always an absolute URL, which passes 2 and 3 never match.
"""

import re

from .charset import DEFAULT_ENCODING, decode_body, encode_body
from .context import RewriteContext

ABSOLUTE_LITERAL = re.compile(r"""(["'])(https?://[^"']+)(["'])""")
DYNAMIC_IMPORT = re.compile(r"""import\(\s*(["'])(\.{1,2}/[^"']+)(["'])""")
STATIC_IMPORT = re.compile(r"""from\s*(["'])(\.{1,2}/[^"']+)(["'])""")
URL_CALL = re.compile(r"""URL\(\s*(["'])(/[^"']*)(["'])\s*\)""")


def rewrite_js_text(text: str, ctx: RewriteContext) -> str:
    def absolute_literal(match: re.Match) -> str:
        open_quote, url, close_quote = match.groups()
        proxied = ctx.proxied_reference(url)
        if proxied is None:
            return match.group(0)
        return f"{open_quote}{proxied}{close_quote}"

    def dynamic_import(match: re.Match) -> str:
        open_quote, path, close_quote = match.groups()
        proxied = ctx.proxied_reference(path)
        if proxied is None:
            return match.group(0)
        # closing parenthesis is outside the match
        return f"import({open_quote}{proxied}{close_quote}"

    def static_import(match: re.Match) -> str:
        open_quote, path, close_quote = match.groups()
        proxied = ctx.proxied_reference(path)
        if proxied is None:
            return match.group(0)
        return f"from {open_quote}{proxied}{close_quote}"

    def url_call(match: re.Match) -> str:
        open_quote, path, close_quote = match.groups()
        return f"URL({open_quote}{ctx.origin}{path}{close_quote})"

    text = ABSOLUTE_LITERAL.sub(absolute_literal, text)
    text = DYNAMIC_IMPORT.sub(dynamic_import, text)
    text = STATIC_IMPORT.sub(static_import, text)
    text = URL_CALL.sub(url_call, text)
    return text


def rewrite_js(body: bytes, ctx: RewriteContext, encoding: str = DEFAULT_ENCODING) -> bytes:
    return encode_body(rewrite_js_text(decode_body(body, encoding), ctx), encoding)
