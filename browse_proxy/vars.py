import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "browse-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

# Query parameter that switches a request into browse (rewrite) mode
BROWSE_QUERY_PARAM = os.environ.get("BROWSE_QUERY_PARAM", "browse")
# Public-facing origin for rewritten links, overrides the one seen on the request
PUBLIC_URL = os.environ.get("PUBLIC_URL", "").rstrip("/")

PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "300"))
PROXY_CONNECT_TIMEOUT = float(os.environ.get("PROXY_CONNECT_TIMEOUT", "10"))
PROXY_FOLLOW_REDIRECTS = (
    os.environ.get("PROXY_FOLLOW_REDIRECTS", "false").lower() == "true"
)
PROXY_VERIFY_TLS = os.environ.get("PROXY_VERIFY_TLS", "true").lower() == "true"

ENABLE_METRICS = os.environ.get("ENABLE_METRICS", "true").lower() == "true"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
