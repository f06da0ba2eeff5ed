"""
Tests for the log query routes.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from traffic_proxy.log_store import ErrorRecord, RequestRecord
from traffic_proxy.logs_api.routes import parse_int, router


@pytest.fixture
def app(log_store):
    """Create a test FastAPI application with the logs router."""
    test_app = FastAPI()
    test_app.include_router(router)
    test_app.state.log_store = log_store
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seeded(log_store):
    for i in range(5):
        log_store.append(
            "request",
            RequestRecord(
                timestamp=f"2024-03-01T10:00:0{i}.000Z",
                method="GET",
                path=f"/api/user/{i}",
                target=f"http://localhost:3001/api/user/{i}",
                headers={"accept": "application/json"},
            ),
            "http://localhost:3001",
        )
    log_store.append(
        "error",
        ErrorRecord(
            timestamp="2024-03-01T11:00:00.000Z",
            error="Connection refused",
            path="/api/order/1",
            target="http://localhost:3002/api/order/1",
        ),
        "http://localhost:3002",
    )
    return log_store


class TestParseInt:
    @pytest.mark.parametrize(
        "value,expected",
        [(None, 7), ("12", 12), (" 3 ", 3), ("abc", 7), ("", 7), ("1.5", 7), ("-4", -4)],
    )
    def test_parse_int(self, value, expected):
        assert parse_int(value, 7) == expected


class TestQueryLogs:
    def test_returns_result_shape(self, client, seeded):
        response = client.get("/logs")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"entries", "total", "offset", "limit"}
        assert body["total"] == 6
        assert body["limit"] == 100
        assert body["offset"] == 0
        assert body["entries"][0]["error"] == "Connection refused"
        assert body["entries"][0]["_file"] == "http___localhost_3002.log"

    def test_pagination(self, client, seeded):
        body = client.get("/logs", params={"limit": 2, "offset": 1}).json()

        assert body["total"] == 6
        assert [e["path"] for e in body["entries"]] == ["/api/user/4", "/api/user/3"]

    def test_non_numeric_paging_uses_defaults(self, client, seeded):
        response = client.get("/logs", params={"limit": "lots", "offset": "x"})

        assert response.status_code == 200
        body = response.json()
        assert body["limit"] == 100
        assert body["offset"] == 0
        assert len(body["entries"]) == 6

    def test_offset_beyond_end(self, client, seeded):
        body = client.get("/logs", params={"offset": 1000}).json()

        assert body["entries"] == []
        assert body["total"] == 6

    def test_target_filter_by_stream_name(self, client, seeded):
        body = client.get("/logs", params={"target": "http___localhost_3002"}).json()

        assert body["total"] == 1

    def test_target_filter_by_url(self, client, seeded):
        body = client.get("/logs", params={"target": "http://localhost:3001"}).json()

        assert body["total"] == 5

    def test_search(self, client, seeded):
        body = client.get("/logs", params={"search": "API/USER/3"}).json()

        assert body["total"] == 1
        assert body["entries"][0]["path"] == "/api/user/3"

    def test_search_without_match(self, client, seeded):
        body = client.get("/logs", params={"search": "nothing-like-this"}).json()

        assert body == {"entries": [], "total": 0, "offset": 0, "limit": 100}

    def test_empty_store(self, client):
        body = client.get("/logs").json()

        assert body["entries"] == []
        assert body["total"] == 0


class TestListFiles:
    def test_lists_streams_with_metadata(self, client, seeded):
        response = client.get("/logs/files")

        assert response.status_code == 200
        files = response.json()["files"]
        assert [f["name"] for f in files] == [
            "http___localhost_3001.log",
            "http___localhost_3002.log",
        ]
        assert all(f["size"] > 0 for f in files)
        assert all(f["modified"] for f in files)

    def test_no_log_directory(self, client):
        assert client.get("/logs/files").json() == {"files": []}


class TestViewer:
    def test_serves_html_page(self, client):
        response = client.get("/logs/view")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "/logs/files" in response.text
