import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from traffic_proxy.log_store import LogStore
from traffic_proxy.logs_api.routes import router as logs_router
from traffic_proxy.proxy import ProxyForwarder
from traffic_proxy.proxy.route import proxy_route
from traffic_proxy.routing import RouteTable
from traffic_proxy.vars import (
    CORS_ORIGINS,
    HOST,
    LOG_DIR,
    LOG_LEVEL,
    METRICS_ENABLED,
    OTLP_ENDPOINT,
    OTLP_HEADERS,
    PORT,
    PROXY_TIMEOUT,
    ROUTES_FILE,
    SERVICE_NAME,
)

logger = logging.getLogger("uvicorn.error")

trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=(
            tuple(tuple(h.split("=", 1)) for h in OTLP_HEADERS.split(",") if "=" in h)
            or None
        ),
    )
    trace.get_tracer_provider().add_span_processor(BatchSpanProcessor(otlp_exporter))

# Add app_name to the metrics
app_info = Info("traffic_proxy_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})


def create_app(
    routes_file: str = ROUTES_FILE,
    log_dir: str = LOG_DIR,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    metrics: bool = METRICS_ENABLED,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        route_table = RouteTable.load(routes_file)
        log_store = LogStore(log_dir)
        log_store.ensure_dir()
        logger.info(
            f"[Server] {len(route_table)} routes active, writing logs to {log_store.log_dir}"
        )
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(PROXY_TIMEOUT),
            follow_redirects=False,
            transport=transport,
        ) as client:
            app.state.log_store = log_store
            app.state.forwarder = ProxyForwarder(route_table, log_store, client)
            yield

    # No docs or schema routes: every path outside /logs and /metrics is proxied
    app = FastAPI(
        title=SERVICE_NAME,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if metrics:
        Instrumentator().instrument(app).expose(app)

    FastAPIInstrumentor.instrument_app(app)

    # Order matters: the proxy route catches every remaining path
    app.include_router(logs_router)
    app.router.routes.append(proxy_route)
    return app


app = create_app()


def main():
    logger.info(f"[Server] {SERVICE_NAME} listening on http://{HOST}:{PORT}")
    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL)


if __name__ == "__main__":
    main()
