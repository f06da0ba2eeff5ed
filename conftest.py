# Ensure tests import the service package from this directory first.
import json
import os
import sys

import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from traffic_proxy.log_store import LogStore  # noqa: E402


@pytest.fixture
def log_dir(tmp_path):
    """Log directory that does not exist yet, so lazy creation is exercised."""
    return str(tmp_path / "logs")


@pytest.fixture
def log_store(log_dir):
    return LogStore(log_dir)


@pytest.fixture
def write_routes(tmp_path):
    """Write a route artifact and return its path."""

    def _write(routes, name="routes.json"):
        path = tmp_path / name
        if isinstance(routes, str):
            path.write_text(routes, encoding="utf-8")
        else:
            path.write_text(json.dumps(routes), encoding="utf-8")
        return str(path)

    return _write


def read_stream(path):
    """All lines of a stream, parsed."""
    with open(path, "r", encoding="utf-8") as fh:
        return [json.loads(line) for line in fh.read().splitlines() if line]


@pytest.fixture
def stream_lines():
    return read_stream
