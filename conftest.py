# Ensure tests import modules from this service directory first, so
# `import browse_proxy.*` works without installing the package.
import os
import sys

import httpx
import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from browse_proxy.rewrite import RewriteContext  # noqa: E402

TEST_BASE_URL = "https://example.com/a/b"
TEST_ORIGIN = "http://proxy.local"


@pytest.fixture
def rewrite_context():
    """Browse-mode context resolving against https://example.com/a/b."""
    return RewriteContext(base=TEST_BASE_URL, origin=TEST_ORIGIN, rewrite_mode=True)


@pytest.fixture
def mock_upstream():
    """
    Build an httpx.AsyncClient whose transport calls ``handler`` instead of
    the network. Every request it receives is recorded on ``client.seen``.
    """

    def _create(handler):
        seen = []

        def _record(request: httpx.Request):
            seen.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
        client.seen = seen
        return client

    return _create
