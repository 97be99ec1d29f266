"""
HTTP transport tests

Drives the FastAPI app through TestClient, which runs the lifespan and so
opens and closes the pool around each test.
"""

import importlib
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

import transport.http
from transport.http import create_app


@pytest.fixture
def client(make_pool):
    with TestClient(create_app(make_pool(max_pool_size=2))) as client:
        yield client


class TestRoutes:

    def test_graphql_post(self, client):
        response = client.post("/graphql", json={"query": "{ apiVersion event { id title } }"})
        assert response.status_code == 200
        assert response.json() == {"data": {
            "apiVersion": "1.0",
            "event": [{"id": 10, "title": "Intro"}, {"id": 11, "title": "Standalone"}],
        }}

    def test_graphql_error_entry(self, client, fake_db):
        fake_db.fail_with = ConnectionResetError("connection reset by peer")
        body = client.post("/graphql", json={"query": "{ series { id } }"}).json()
        assert body["data"] is None
        assert body["errors"][0]["extensions"]["code"] == "QUERY_FAILED"

    def test_root_redirects_to_explorer(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code in (302, 307)
        assert response.headers["location"] == "/graphql"

    def test_explorer_served_to_browsers(self, client):
        response = client.get("/graphql", headers={"Accept": "text/html"})
        assert response.status_code == 200
        assert "graphiql" in response.text.lower()

    def test_unknown_path(self, client):
        assert client.get("/nope").status_code == 404


class TestHealth:

    def test_healthy(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["pool"]["max_size"] == 2
        assert body["pool"]["leased"] == 0

    def test_unhealthy(self, client, fake_db):
        fake_db.probe_fails = True
        response = client.get("/healthz")
        assert response.status_code == 500
        assert response.json()["status"] == "unhealthy"


class TestLogging:

    def test_import_leaves_logging_configuration_to_entry_point(self):
        with patch('logging.basicConfig') as basic_config:
            importlib.reload(transport.http)
        basic_config.assert_not_called()
