import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from opentelemetry import trace

from traffic_proxy.dependencies import get_log_store
from traffic_proxy.log_store import LogQueryResult, LogStore, LogStreamList
from traffic_proxy.utils.traced_requests import traced_request
from traffic_proxy.vars import DEFAULT_QUERY_LIMIT, DEFAULT_QUERY_OFFSET

router = APIRouter(prefix="/logs")
tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

VIEWER_PAGE = os.path.join(os.path.dirname(__file__), "static", "viewer.html")


def parse_int(value: Optional[str], default: int) -> int:
    """Lenient integer parsing: absent or non-numeric values fall back to ``default``."""
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


@router.get("", response_model=LogQueryResult)
def query_logs(
    target: Optional[str] = Query(
        None, description="Target URL or stream name to restrict the query to"
    ),
    search: Optional[str] = Query(
        None, description="Case-insensitive substring filter"
    ),
    limit: Optional[str] = Query(None, description="Page size (default 100)"),
    offset: Optional[str] = Query(None, description="Entries to skip (default 0)"),
    log_store: LogStore = Depends(get_log_store),
):
    limit_value = parse_int(limit, DEFAULT_QUERY_LIMIT)
    offset_value = parse_int(offset, DEFAULT_QUERY_OFFSET)
    with traced_request(
        tracer,
        operation="query_logs",
        start_message=f"[Logs] Query target={target} search={search} limit={limit_value} offset={offset_value}",
        extra_attrs={
            "logs.target": target,
            "logs.search": search,
            "logs.limit": limit_value,
            "logs.offset": offset_value,
        },
    ) as span:
        result = log_store.query(
            target=target, search=search, limit=limit_value, offset=offset_value
        )
        span.set_attribute("logs.total", result.total)
        return result


@router.get("/files", response_model=LogStreamList)
def list_log_files(log_store: LogStore = Depends(get_log_store)):
    with traced_request(
        tracer,
        operation="list_log_files",
        start_message=f"[Logs] Listing log files in {log_store.log_dir}",
    ) as span:
        files = log_store.list_streams()
        span.set_attribute("logs.files", len(files))
        return LogStreamList(files=files)


@router.get("/view", response_class=HTMLResponse)
def view_logs():
    with open(VIEWER_PAGE, "r", encoding="utf-8") as fh:
        return HTMLResponse(fh.read())
