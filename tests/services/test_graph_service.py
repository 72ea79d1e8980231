"""
Tests for the correspondence graph builder.
"""

from unittest.mock import AsyncMock, patch

import pytest

from backoffice.services import document_service, graph_service
from backoffice.services.errors import DocumentSearchError, GraphBuildError


LETTERS = {
    "L-1": {"id": 1, "letter_no": "L-1", "letter_date": "2024-01-10", "ref_letters": "L-2, L-3",
            "weburl": "https://sp.example.com/1"},
    "L-2": {"id": 2, "letter_no": "L-2", "letter_date": "2024-01-05", "ref_letters": "L-4"},
    "L-3": {"id": 3, "letter_no": "L-3", "letter_date": "2024-01-07", "ref_letters": "missing"},
    "L-4": {"id": 4, "letter_no": "L-4", "letter_date": "2023-12-01", "ref_letters": "L-1"},
}


@pytest.fixture
def archive():
    lookup = AsyncMock(side_effect=lambda client, ref: LETTERS.get(ref))
    with patch.object(document_service, "get_document_by_ref", lookup):
        yield lookup


class TestParseRefLetters:

    def test_empty_values(self):
        assert graph_service.parse_ref_letters(None) == []
        assert graph_service.parse_ref_letters("") == []
        assert graph_service.parse_ref_letters(" , ,") == []

    def test_extracts_internal_and_reply_numbers(self):
        refs = graph_service.parse_ref_letters("IC-AD-366, RE 12/2023-4, Site memo, IC-AD-366")

        assert refs == ["IC-AD-366", "RE 12/2023-4", "Site memo"]

    def test_multiple_numbers_in_one_part(self):
        assert graph_service.parse_ref_letters("see IC-HD-1 and IC-HD-2") == ["IC-HD-1", "IC-HD-2"]


class TestBuildDocumentGraph:

    @pytest.mark.asyncio
    async def test_follows_references(self, supabase_client, archive):
        graph = await graph_service.build_document_graph(supabase_client, "L-1")

        assert [n.id for n in graph.nodes] == ["L-1", "L-2", "L-3", "L-4"]
        assert {e.id for e in graph.edges} == {"L-1-L-2", "L-1-L-3", "L-2-L-4", "L-4-L-1"}

        root = graph.nodes[0]
        assert root.data.doc_id == "1"
        assert root.data.date == "2024-01-10"
        assert root.data.web_url == "https://sp.example.com/1"
        assert root.data.references == ["L-2", "L-3"]

    @pytest.mark.asyncio
    async def test_cycles_are_visited_once(self, supabase_client, archive):
        await graph_service.build_document_graph(supabase_client, "L-1")

        looked_up = [c.args[1] for c in archive.call_args_list]
        # root, L-2, L-3, L-4, missing, then L-1 again from L-4's references
        assert looked_up.count("L-1") == 2
        assert looked_up.count("L-4") == 1

    @pytest.mark.asyncio
    async def test_depth_zero_keeps_direct_references_only(self, supabase_client, archive):
        graph = await graph_service.build_document_graph(supabase_client, "L-1", max_depth=0)

        assert [n.id for n in graph.nodes] == ["L-1", "L-2", "L-3"]
        assert len(graph.edges) == 2

    @pytest.mark.asyncio
    async def test_letter_without_number_uses_id(self, supabase_client):
        doc = {"id": 9, "letter_no": None, "ref_letters": None}
        with patch.object(document_service, "get_document_by_ref", AsyncMock(return_value=doc)):
            graph = await graph_service.build_document_graph(supabase_client, "9")

        assert graph.nodes[0].id == "9"
        assert graph.nodes[0].label == "Document #9"
        assert graph.edges == []

    @pytest.mark.asyncio
    async def test_unknown_root_raises(self, supabase_client, archive):
        with pytest.raises(GraphBuildError):
            await graph_service.build_document_graph(supabase_client, "L-404")

    @pytest.mark.asyncio
    async def test_every_sibling_is_expanded_at_the_next_depth(self, supabase_client):
        letters = {
            "R": {"id": 10, "letter_no": "R", "ref_letters": "A, B"},
            "A": {"id": 11, "letter_no": "A", "ref_letters": "C"},
            "B": {"id": 12, "letter_no": "B", "ref_letters": "D"},
            "C": {"id": 13, "letter_no": "C", "ref_letters": "E"},
            "D": {"id": 14, "letter_no": "D", "ref_letters": None},
            "E": {"id": 15, "letter_no": "E", "ref_letters": None},
        }
        lookup = AsyncMock(side_effect=lambda client, ref: letters.get(ref))
        with patch.object(document_service, "get_document_by_ref", lookup):
            graph = await graph_service.build_document_graph(supabase_client, "R", max_depth=1)

        assert {e.id for e in graph.edges} == {"R-A", "R-B", "A-C", "B-D"}
        assert [n.id for n in graph.nodes] == ["R", "A", "B", "C", "D"]

    @pytest.mark.asyncio
    async def test_archive_failure_propagates(self, supabase_client):
        with patch.object(document_service, "get_document_by_ref",
                          AsyncMock(side_effect=DocumentSearchError("Document lookup failed"))):
            with pytest.raises(DocumentSearchError):
                await graph_service.build_document_graph(supabase_client, "L-1")
