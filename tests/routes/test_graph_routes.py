"""
Tests for GET /api/graph/{doc_ref}.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from backoffice.auth.dependencies import require_auth
from backoffice.main import app
from backoffice.routes.context import get_search_context
from backoffice.schemas.graph import GraphData, GraphEdge, GraphNode, GraphNodeData
from backoffice.services.errors import DocumentSearchError, GraphBuildError
from backoffice.services.search_service import SearchContext


def node(letter_no, date):
    return GraphNode(
        id=letter_no,
        label=letter_no,
        data=GraphNodeData(doc_id=letter_no, letter_no=letter_no, date=date),
    )


GRAPH = GraphData(
    nodes=[node("IC-HD-2", "2024-03-01"), node("IC-HD-1", "2024-01-01"), node("IC-HD-3", "2024-05-01")],
    edges=[
        GraphEdge(id="IC-HD-2-IC-HD-1", source="IC-HD-2", target="IC-HD-1"),
        GraphEdge(id="IC-HD-3-IC-HD-2", source="IC-HD-3", target="IC-HD-2"),
    ],
)


@pytest.fixture
def search_ctx():
    return SearchContext(supabase_client=MagicMock())


@pytest.fixture
def client(auth_user, search_ctx):
    app.dependency_overrides[require_auth] = lambda: auth_user
    app.dependency_overrides[get_search_context] = lambda: search_ctx
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def built_graph():
    with patch("backoffice.routes.graph.build_document_graph", AsyncMock(return_value=GRAPH)) as mock:
        yield mock


class TestGraphEndpoint:

    def test_raw_graph_by_default(self, client, built_graph, search_ctx):
        response = client.get("/api/graph/IC-HD-2")

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "raw"
        assert body["root"] == "IC-HD-2"
        assert [n["id"] for n in body["nodes"]] == ["IC-HD-2", "IC-HD-1", "IC-HD-3"]
        assert len(body["edges"]) == 2
        built_graph.assert_awaited_once_with(search_ctx.supabase_client, "IC-HD-2", max_depth=3)

    def test_previous_mode(self, client, built_graph):
        body = client.get("/api/graph/IC-HD-2?mode=previous").json()

        assert [n["id"] for n in body["nodes"]] == ["IC-HD-1", "IC-HD-2"]
        assert body["root"] == "IC-HD-2"

    def test_next_mode(self, client, built_graph):
        body = client.get("/api/graph/IC-HD-2?mode=next").json()

        assert [n["id"] for n in body["nodes"]] == ["IC-HD-2", "IC-HD-3"]

    def test_all_mode_sorts_by_date(self, client, built_graph):
        body = client.get("/api/graph/IC-HD-2?mode=all&max_depth=5").json()

        assert [n["id"] for n in body["nodes"]] == ["IC-HD-1", "IC-HD-2", "IC-HD-3"]
        assert built_graph.call_args.kwargs["max_depth"] == 5

    def test_invalid_mode_and_depth_return_422(self, client, built_graph):
        assert client.get("/api/graph/IC-HD-2?mode=sideways").status_code == 422
        assert client.get("/api/graph/IC-HD-2?max_depth=11").status_code == 422
        built_graph.assert_not_called()

    def test_unknown_reference_returns_404(self, client):
        with patch("backoffice.routes.graph.build_document_graph",
                   AsyncMock(side_effect=GraphBuildError("not found"))):
            response = client.get("/api/graph/IC-XX-0")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_requires_authentication(self):
        app.dependency_overrides.clear()
        response = TestClient(app).get("/api/graph/IC-HD-2")

        assert response.status_code == 401

    def test_archive_failure_returns_502(self, client):
        with patch("backoffice.routes.graph.build_document_graph",
                   AsyncMock(side_effect=DocumentSearchError("Document lookup failed"))):
            response = client.get("/api/graph/IC-HD-2")

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "graph_error"
