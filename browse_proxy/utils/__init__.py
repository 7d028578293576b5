from typing import Any


def client_address(request: Any) -> str:
    """Remote address of the inbound connection, for logs and spans."""
    client = getattr(request, "client", None)
    if not client:
        return "unknown"
    port = getattr(client, "port", None)
    return f"{client.host}:{port}" if port else str(client.host)


def shorten(text: str, limit: int = 120) -> str:
    """Trim long values (encoded addresses, URLs) before they hit a log line."""
    if text is None:
        return ""
    return text if len(text) <= limit else f"{text[:limit]}...({len(text)} chars)"
