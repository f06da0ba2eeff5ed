from .route_table import DEFAULT_ROUTES, RouteRule, RouteTable

__all__ = ["DEFAULT_ROUTES", "RouteRule", "RouteTable"]
