from fastapi import Request

from traffic_proxy.log_store import LogStore
from traffic_proxy.proxy.forwarder import ProxyForwarder


def get_log_store(request: Request) -> LogStore:
    return request.app.state.log_store


def get_forwarder(request: Request) -> ProxyForwarder:
    return request.app.state.forwarder
