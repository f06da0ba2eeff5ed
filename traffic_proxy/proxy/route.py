from fastapi import Request
from fastapi.responses import Response
from starlette.routing import Route

from traffic_proxy.dependencies import get_forwarder


async def proxy_all(request: Request) -> Response:
    """Catch-all endpoint that proxies every request to the first matching target."""
    return await get_forwarder(request).forward(request)


# A plain Starlette route with no method list accepts any method, WebDAV and
# custom verbs included; must be registered after every other route
proxy_route = Route("/{path:path}", endpoint=proxy_all, include_in_schema=False)
