import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "traffic-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "info").lower()

# Log streams and route artifact
LOG_DIR = os.environ.get("LOG_DIR", os.path.join(os.getcwd(), "logs"))
ROUTES_FILE = os.environ.get("ROUTES_FILE", "routes.json")

# Outbound transport timeout in seconds, the only limit on a forwarded call
PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "300"))

CORS_ORIGINS = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()
]

METRICS_ENABLED = os.getenv("METRICS_ENABLED", "true").lower() == "true"

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")

DEFAULT_QUERY_LIMIT = 100
DEFAULT_QUERY_OFFSET = 0
