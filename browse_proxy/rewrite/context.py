import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from browse_proxy.addressing import encode

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class RewriteContext:
    """Per-request, immutable input of every rewriter."""

    base: str
    origin: str
    rewrite_mode: bool
    query_param: str = "browse"

    def proxied(self, absolute_url: str) -> str:
        """Link that routes ``absolute_url`` back through this proxy."""
        return f"{self.origin}/{encode(absolute_url)}?{self.query_param}=1"

    def resolve(self, reference: str) -> Optional[str]:
        """Resolve ``reference`` against the base, None when it cannot be resolved."""
        try:
            return urljoin(self.base, reference)
        except ValueError as e:
            logger.debug(f"[Rewrite] Leaving unresolvable reference {reference!r}: {e}")
            return None

    def proxied_reference(self, reference: str) -> Optional[str]:
        resolved = self.resolve(reference)
        if resolved is None:
            return None
        return self.proxied(resolved)
