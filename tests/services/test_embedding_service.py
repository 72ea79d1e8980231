"""
Tests for the OpenAI embedding and query enhancement service.

The OpenAI client is mocked; these tests never call the API.
"""

import json
from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError

from backoffice.services import embedding_service
from backoffice.services.errors import EmbeddingError, ServiceNotConfiguredError


def chat_reply(content):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def connection_error():
    return APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/embeddings"))


@pytest.fixture
def openai_client():
    client = MagicMock()
    with patch("backoffice.services.embedding_service.get_openai_client", return_value=client):
        yield client


@pytest.fixture
def no_openai_client():
    with patch("backoffice.services.embedding_service.get_openai_client", return_value=None):
        yield


class TestPrepareText:

    def test_known_turkish_terms_are_translated(self):
        assert embedding_service.prepare_text_for_embedding("Fatura ödeme") == "invoice bill payment"

    def test_unknown_words_are_kept_and_whitespace_collapsed(self):
        assert embedding_service.prepare_text_for_embedding("  IC-HD-12   inşaat\n\nraporu ") == (
            "ic-hd-12 construction building raporu"
        )

    def test_punctuation_does_not_block_translation(self):
        assert embedding_service.translate_query_terms("bütçe,") == "budget"

    def test_text_is_truncated_to_8000_characters(self):
        prepared = embedding_service.prepare_text_for_embedding("x" * 9000)
        assert len(prepared) == 8000


class TestGenerateEmbedding:

    @pytest.mark.asyncio
    async def test_returns_vector_from_api(self, openai_client):
        openai_client.embeddings.create.return_value = MagicMock(
            data=[MagicMock(embedding=[0.1, 0.2, 0.3])],
            usage=MagicMock(total_tokens=3),
        )

        embedding = await embedding_service.generate_embedding("Fatura", api_key="sk-user")

        assert embedding == [0.1, 0.2, 0.3]
        kwargs = openai_client.embeddings.create.call_args.kwargs
        assert kwargs["input"] == "invoice bill"
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["encoding_format"] == "float"

    @pytest.mark.asyncio
    async def test_missing_key_raises_not_configured(self, no_openai_client):
        with pytest.raises(ServiceNotConfiguredError):
            await embedding_service.generate_embedding("beton")

    @pytest.mark.asyncio
    async def test_api_error_raises_embedding_error(self, openai_client):
        openai_client.embeddings.create.side_effect = connection_error()

        with pytest.raises(EmbeddingError):
            await embedding_service.generate_embedding("beton", api_key="sk-user")

    @pytest.mark.asyncio
    async def test_empty_response_raises_embedding_error(self, openai_client):
        openai_client.embeddings.create.return_value = MagicMock(data=[])

        with pytest.raises(EmbeddingError):
            await embedding_service.generate_embedding("beton", api_key="sk-user")


class TestEnhanceQuery:

    @pytest.mark.asyncio
    async def test_parses_model_reply(self, openai_client):
        openai_client.chat.completions.create.return_value = chat_reply(json.dumps({
            "enhancedQuery": "beton dökümü concrete pouring",
            "searchKeywords": ["beton", "concrete"],
            "searchStrategy": "vector",
            "language": "mixed",
            "confidence": 0.9,
        }))

        result = await embedding_service.enhance_query("beton dökümü", api_key="sk-user")

        assert result.original_query == "beton dökümü"
        assert result.enhanced_query == "beton dökümü concrete pouring"
        assert result.search_keywords == ["beton", "concrete"]
        assert result.search_strategy == "vector"
        assert result.language == "mixed"
        assert result.confidence == 0.9

    @pytest.mark.asyncio
    async def test_fenced_json_and_out_of_range_values(self, openai_client):
        openai_client.chat.completions.create.return_value = chat_reply(
            '```json\n{"enhancedQuery": "x", "searchStrategy": "magic", "language": "german", "confidence": 3}\n```'
        )

        result = await embedding_service.enhance_query("kalıp", api_key="sk-user")

        assert result.search_strategy == "hybrid"
        assert result.language == "turkish"
        assert result.confidence == 1.0
        assert result.search_keywords == ["kalıp"]

    @pytest.mark.asyncio
    async def test_unparseable_reply_falls_back_to_hybrid(self, openai_client):
        openai_client.chat.completions.create.return_value = chat_reply("Sure! Here are some keywords.")

        result = await embedding_service.enhance_query("ab beton dökümü", api_key="sk-user")

        assert result.search_strategy == "hybrid"
        assert result.confidence == 0.6
        assert result.enhanced_query == "ab beton dökümü"
        assert result.search_keywords == ["beton", "dökümü"]

    @pytest.mark.asyncio
    async def test_api_failure_falls_back_to_text(self, openai_client):
        openai_client.chat.completions.create.side_effect = connection_error()

        result = await embedding_service.enhance_query("beton", api_key="sk-user")

        assert result.search_strategy == "text"
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_missing_key_falls_back_to_text(self, no_openai_client):
        result = await embedding_service.enhance_query("beton")

        assert result.search_strategy == "text"
        assert result.enhanced_query == "beton"


class TestConnection:

    @pytest.mark.asyncio
    async def test_connection_ok(self, openai_client):
        openai_client.embeddings.create.return_value = MagicMock(data=[MagicMock(embedding=[0.1])])

        assert await embedding_service.test_connection("sk-user") is True

    @pytest.mark.asyncio
    async def test_connection_without_key(self, no_openai_client):
        assert await embedding_service.test_connection() is False
