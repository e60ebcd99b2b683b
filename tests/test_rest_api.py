"""
Tests for the REST API search and CSV download endpoints.
"""

import re
import time

import pytest
from fastapi.testclient import TestClient

from query_demo.api import rest_api
from query_demo.api.rest_api import app, get_download_manager
from query_demo.errors import DownloadError
from query_demo.query.download import DownloadManager


@pytest.fixture
def client():
    rest_api._query_engine = None
    rest_api._download_manager = None
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    rest_api._query_engine = None
    rest_api._download_manager = None


class TestInfoEndpoints:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Query Demo API"

    def test_health(self, client):
        response = client.get("/health")

        assert response.json() == {"status": "healthy", "records": 10}


class TestSearchEndpoint:

    def test_search_analytics(self, client):
        response = client.get("/search", params={"q": "analytics"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "analytics"
        assert data["total_count"] == 3
        assert [item["id"] for item in data["items"]] == [1, 6, 9]
        assert 'Showing 3 result(s) for "analytics".' in data["explanation"]
        assert len(data["tips"]) == 3

    def test_search_without_query(self, client):
        data = client.get("/search").json()

        assert data["items"] == []
        assert data["explanation"] == "Type a query and press Search. Results are mocked for demo."
        assert data["tips"] == ["Filtering matches on name or category (case-insensitive)."]


class TestExportEndpoint:

    def test_filtered_export(self, client):
        response = client.get("/export", params={"q": "fintech"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv;charset=utf-8"
        disposition = response.headers["content-disposition"]
        assert re.fullmatch(r'attachment; filename="results_fintech_\d{8}-\d{6}\.csv"', disposition)

        body = response.content
        assert body.startswith(b"\xef\xbb\xbf")
        assert body.decode("utf-8-sig") == (
            "id,name,category,score\r\n"
            "2,Beacon Billing,FinTech,84\r\n"
            "7,Glint Gateway,FinTech,73"
        )

    def test_empty_query_export_uses_placeholder(self, client):
        response = client.get("/export")

        assert 'filename="results_empty_' in response.headers["content-disposition"]
        assert response.content.decode("utf-8-sig") == "id,name,category,score"

    def test_all_scope_export(self, client):
        response = client.get("/export", params={"q": "analytics", "scope": "all"})

        assert 'filename="results_all_' in response.headers["content-disposition"]
        lines = response.content.decode("utf-8-sig").split("\r\n")
        assert len(lines) == 11
        assert lines[1] == "1,Acme Analytics Suite,Analytics,92"

    def test_invalid_scope_rejected(self, client):
        response = client.get("/export", params={"scope": "some"})

        assert response.status_code == 422

    def test_handle_released_after_response(self, client):
        manager = DownloadManager(release_delay_seconds=0.0)
        app.dependency_overrides[get_download_manager] = lambda: manager
        seen = []
        original_acquire = manager.acquire

        def tracking_acquire(*args, **kwargs):
            handle = original_acquire(*args, **kwargs)
            seen.append(handle)
            return handle

        manager.acquire = tracking_acquire

        response = client.get("/export", params={"q": "docs"})

        assert response.status_code == 200
        assert len(seen) == 1
        deadline = time.time() + 5
        while not seen[0].released and time.time() < deadline:
            time.sleep(0.01)
        assert seen[0].released
        assert not seen[0].path.exists()

    def test_download_failure_returns_generic_notice(self, client):
        manager = DownloadManager()

        def refuse(payload, filename, media_type=None):
            raise DownloadError("host refused")

        manager.acquire = refuse
        app.dependency_overrides[get_download_manager] = lambda: manager

        response = client.get("/export", params={"q": "docs"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Operation failed. Please try again."

    def test_shutdown_releases_handle_never_scheduled(self):
        rest_api._download_manager = None
        with TestClient(app) as test_client:
            test_client.get("/export", params={"q": "docs"})
            manager = rest_api._download_manager
            orphan = manager.acquire(b"\xef\xbb\xbfid", "results_orphan.csv")
            assert not orphan.released

        assert orphan.released
        assert not orphan.path.exists()
        rest_api._download_manager = None
