import json
import logging
from typing import Dict, Iterable, List, Optional, Tuple

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, Response
from opentelemetry import trace

from traffic_proxy.log_store import (
    ErrorRecord,
    LogRecord,
    LogStore,
    RequestRecord,
    ResponseRecord,
)
from traffic_proxy.routing import RouteTable
from traffic_proxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Recomputed by the HTTP client for the outbound connection
CLIENT_MANAGED_HEADERS = {"host", "content-length"}

HeaderItems = Iterable[Tuple[str, str]]


def get_full_path(request: Request) -> str:
    """Path exactly as received (still percent-encoded) plus the query string."""
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def headers_to_dict(items: HeaderItems) -> Dict[str, str]:
    """Flatten header pairs into a mapping, joining repeated headers with ', '."""
    headers: Dict[str, str] = {}
    for name, value in items:
        if name in headers:
            headers[name] = f"{headers[name]}, {value}"
        else:
            headers[name] = value
    return headers


def prepare_headers(items: HeaderItems) -> List[Tuple[bytes, bytes]]:
    """
    Headers sent upstream: everything received except hop-by-hop and client
    managed ones. Encoded back to latin-1 bytes so obs-text values go out as
    they came in.
    """
    return [
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in items
        if name.lower() not in HOP_BY_HOP_HEADERS
        and name.lower() not in CLIENT_MANAGED_HEADERS
    ]


def build_passthrough_response(
    status_code: int, header_items: HeaderItems, content: bytes, method: str = "GET"
) -> Response:
    """Upstream status, headers and raw body returned to the caller unchanged."""
    response = Response(content=content, status_code=status_code)
    for name, value in header_items:
        name_lower = name.lower()
        if name_lower in HOP_BY_HOP_HEADERS:
            continue
        # Starlette sets content-length from the body it actually sends, except
        # for HEAD where it must stay the length of the body GET would return
        if name_lower == "content-length":
            if method.upper() == "HEAD":
                response.headers["content-length"] = value
            continue
        response.headers.append(name, value)
    return response


class ProxyForwarder:
    """
    Routes an inbound request, forwards it to the matched target and records
    the attempt and its outcome in the target's log stream.

    Flow per request: RECEIVED -> ROUTED -> DISPATCHED -> COMPLETED | FAILED,
    or RECEIVED -> UNROUTED when no rule matches.
    """

    def __init__(
        self, route_table: RouteTable, log_store: LogStore, client: httpx.AsyncClient
    ):
        self.route_table = route_table
        self.log_store = log_store
        self.client = client

    def _record(self, record: LogRecord, target: Optional[str]) -> None:
        logger.debug(
            f"[{record.kind.upper()}] {json.dumps(record.model_dump(), indent=2)}"
        )
        self.log_store.append(record.kind, record, target)

    async def _dispatch(
        self, method: str, target_url: str, header_items: HeaderItems, body: bytes
    ) -> Tuple[int, List[Tuple[str, str]], bytes]:
        forward_headers = prepare_headers(header_items)
        outbound = self.client.build_request(
            method, target_url, headers=forward_headers, content=body or None
        )
        # Drop the client's own defaults (user-agent, accept-encoding, ...) so
        # upstream sees only what the caller sent.
        sent = {
            name.decode("latin-1").lower() for name, _ in forward_headers
        } | CLIENT_MANAGED_HEADERS
        for name in list(outbound.headers.keys()):
            if name.lower() not in sent:
                del outbound.headers[name]

        upstream = await self.client.send(outbound, stream=True)
        try:
            # Raw bytes, so content-encoding stays truthful for the caller
            content = b"".join([chunk async for chunk in upstream.aiter_raw()])
        finally:
            await upstream.aclose()
        return upstream.status_code, upstream.headers.multi_items(), content

    async def forward(self, request: Request) -> Response:
        full_path = get_full_path(request)
        route = self.route_table.match(full_path)
        if route is None:
            logger.info(f"[Proxy] No matching route for {request.method} {full_path}")
            return JSONResponse(
                status_code=404,
                content={"error": "No matching route found", "path": full_path},
            )

        target_url = f"{route.target}{full_path}"
        method = request.method
        header_items = request.headers.items()
        body = await request.body()

        with tracer.start_as_current_span("proxy_request") as span:
            span.set_attribute("proxy.route.pattern", route.pattern)
            span.set_attribute("proxy.target_url", target_url)
            span.set_attribute("proxy.method", method)

            logger.debug(f"[Proxy] Proxying {method} {full_path} -> {target_url}")
            self._record(
                RequestRecord.capture(
                    method, full_path, target_url, headers_to_dict(header_items), body
                ),
                route.target,
            )

            try:
                status_code, response_headers, content = await self._dispatch(
                    method, target_url, header_items, body
                )
            except Exception as e:
                message = format_exception_message(e)
                log_exception_with_details(
                    logger, f"[Proxy] {method} {target_url} failed.", e, logging.WARNING
                )
                span.set_attribute("proxy.error", message)
                span.record_exception(e)
                self._record(
                    ErrorRecord.capture(message, full_path, target_url), route.target
                )
                return JSONResponse(
                    status_code=502,
                    content={"error": "Proxy error", "message": message},
                )

            span.set_attribute("proxy.status_code", status_code)
            self._record(
                ResponseRecord.capture(
                    status_code, full_path, headers_to_dict(response_headers), content
                ),
                route.target,
            )
            return build_passthrough_response(
                status_code, response_headers, content, method
            )
