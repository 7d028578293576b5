from enum import Enum


class Strategy(str, Enum):
    PASS_THROUGH = "pass_through"
    REWRITE_HTML = "rewrite_html"
    REWRITE_CSS = "rewrite_css"
    REWRITE_JS = "rewrite_js"

    @property
    def rewrites(self) -> bool:
        return self is not Strategy.PASS_THROUGH


# Checked in order, first prefix wins
_MEDIA_TYPE_PREFIXES = (
    ("text/html", Strategy.REWRITE_HTML),
    ("text/css", Strategy.REWRITE_CSS),
    ("application/javascript", Strategy.REWRITE_JS),
    ("text/javascript", Strategy.REWRITE_JS),
)


def classify(content_type: str, rewrite_mode: bool) -> Strategy:
    """Pick a rewrite strategy from the declared Content-Type only."""
    if not rewrite_mode:
        return Strategy.PASS_THROUGH

    declared = (content_type or "").strip().lower()
    for prefix, strategy in _MEDIA_TYPE_PREFIXES:
        if declared.startswith(prefix):
            return strategy
    return Strategy.PASS_THROUGH
