"""
web api tests.

run with: pytest test_web.py -v
"""

import pytest
from fastapi.testclient import TestClient

from refgraph.web.app import app

from conftest import OA


@pytest.fixture
def client(small_world):
    small_world.authors["A1"] = {"id": OA + "A1", "display_name": "Ada Lovelace"}
    app.state.provider = small_world.provider()
    try:
        yield TestClient(app)
    finally:
        app.state.provider = None


class TestApi:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_graph(self, client):
        resp = client.post("/api/graph", json={"source": "W100", "n_roots": 5, "n_branches": 5})

        assert resp.status_code == 200
        data = resp.json()
        assert len(data["nodes"]) == 9
        assert data["metadata"]["source_id"] == "W100"
        assert set(data["ranks"]) == {"W2", "W21"}
        assert all(e["type"] == "cites" for e in data["edges"])

    def test_graph_by_doi(self, client):
        resp = client.post("/api/graph", json={"source": "doi:10.1234/seed.2020"})
        assert resp.status_code == 200
        assert resp.json()["metadata"]["source_id"] == "W100"

    def test_graph_unknown_source(self, client):
        resp = client.post("/api/graph", json={"source": "W999"})
        assert resp.status_code == 404
        assert "W999" in resp.json()["detail"]

    def test_graph_rejects_negative_sizes(self, client):
        resp = client.post("/api/graph", json={"source": "W100", "n_roots": -1})
        assert resp.status_code == 422

    def test_author_graph(self, client):
        resp = client.post("/api/author-graph", json={"author_id": "A1"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["nodes"] == []
        assert data["metadata"]["author_name"] == "Ada Lovelace"

    def test_author_graph_unknown(self, client):
        resp = client.post("/api/author-graph", json={"author_id": "A404"})
        assert resp.status_code == 404

    def test_author_graph_unsupported_provider(self, client):
        app.state.provider.supports_authors = lambda: False
        resp = client.post("/api/author-graph", json={"author_id": "A1"})
        assert resp.status_code == 400
        assert "openalex" in resp.json()["detail"]

    def test_hydrate(self, client):
        resp = client.post("/api/hydrate", json={"ids": ["W1", "W21", "W999"]})

        assert resp.status_code == 200
        data = resp.json()
        assert set(data) == {"W1", "W21"}
        assert data["W1"]["title"] == "Paper W1"
