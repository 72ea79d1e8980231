"""
Embedding and query enhancement service (OpenAI).

Embeddings use text-embedding-3-small, which handles Turkish and English.
The document archive is mostly English, so common Turkish terms in a
query are translated to their English equivalents before embedding.

Functions accept an optional api_key so a user's own key (from their
UserConfig) takes precedence over the server-wide OPENAI_API_KEY.
"""

import logging
import re
from typing import List, Optional

from openai import OpenAIError

from backoffice.agents.prompts import (
    QUERY_ENHANCEMENT_SYSTEM_PROMPT,
    build_query_enhancement_prompt,
)
from backoffice.config import settings
from backoffice.schemas.documents import QueryEnhancement
from backoffice.services.errors import EmbeddingError, ServiceNotConfiguredError
from backoffice.services.llm_client import get_openai_client, parse_json_reply

logger = logging.getLogger(__name__)

MAX_EMBEDDING_CHARS = 8000

TURKISH_TO_ENGLISH = {
    # Weapons and security
    "kurşun": "bullet",
    "mermi": "bullet ammunition",
    "silah": "weapon firearm",
    "tüfek": "rifle weapon",
    "güvenlik": "security safety",
    "korunma": "protection",
    # Construction
    "inşaat": "construction building",
    "yapım": "construction",
    "bina": "building",
    "yapı": "structure building",
    "proje": "project",
    "tasarım": "design",
    "plan": "plan design",
    "çizim": "drawing plan",
    # Finance
    "fatura": "invoice bill",
    "ödeme": "payment",
    "para": "money payment",
    "bütçe": "budget",
    "maliyet": "cost",
    "finansal": "financial",
    "muhasebe": "accounting",
    # Business processes
    "toplantı": "meeting",
    "rapor": "report",
    "durum": "status situation",
    "onay": "approval",
    "talep": "request",
    "başvuru": "application request",
    "teklif": "proposal offer",
    # Technical
    "elektrik": "electrical electricity",
    "teknoloji": "technology",
    "sistem": "system",
    "ağ": "network",
    "bilgisayar": "computer",
    "yazılım": "software",
    # General
    "belge": "document",
    "dosya": "file document",
    "kayıt": "record",
    "arşiv": "archive",
    "liste": "list",
    "tablo": "table",
}

# ASCII word characters plus Turkish letters
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_çğıöşüÇĞIÖŞÜ]")
_WHITESPACE_RE = re.compile(r"\s+")

_VALID_STRATEGIES = {"vector", "text", "hybrid"}
_VALID_LANGUAGES = {"turkish", "english", "mixed"}


def translate_query_terms(text: str) -> str:
    """Replace known Turkish terms with English equivalents; other words are kept as typed."""
    translated = []
    for word in text.lower().split():
        clean = _NON_WORD_RE.sub("", word)
        translated.append(TURKISH_TO_ENGLISH.get(clean, word))

    result = " ".join(translated)
    if result != text:
        logger.debug(f"Query translated for embedding: {text!r} -> {result!r}")
    return result


def prepare_text_for_embedding(text: str) -> str:
    """Translate, normalize whitespace, truncate and lowercase."""
    prepared = _WHITESPACE_RE.sub(" ", translate_query_terms(text).strip())
    return prepared[:MAX_EMBEDDING_CHARS].lower()


def _keyword_fallback(query: str) -> List[str]:
    return [word for word in query.split(" ") if len(word) > 2]


async def generate_embedding(text: str, api_key: Optional[str] = None) -> List[float]:
    """
    Create an embedding vector for a query.

    Raises:
        ServiceNotConfiguredError: If no OpenAI key is available.
        EmbeddingError: If the API call fails or returns no vector.
    """
    client = get_openai_client(api_key or settings.OPENAI_API_KEY, settings.OPENAI_BASE_URL)
    if client is None:
        raise ServiceNotConfiguredError("OpenAI API key is not configured")

    clean_text = prepare_text_for_embedding(text)

    try:
        response = client.embeddings.create(
            input=clean_text,
            model=settings.OPENAI_EMBEDDING_MODEL,
            encoding_format="float",
        )
    except OpenAIError as e:
        logger.error(f"Embedding request failed: {e}")
        raise EmbeddingError("Failed to generate embedding") from e

    if not response.data:
        raise EmbeddingError("Failed to generate embedding")

    embedding = list(response.data[0].embedding)
    usage = getattr(response, "usage", None)
    logger.info(
        f"Embedding generated: {len(embedding)} dimensions, "
        f"{usage.total_tokens if usage else '?'} tokens"
    )
    return embedding


async def enhance_query(query: str, api_key: Optional[str] = None) -> QueryEnhancement:
    """
    Ask the chat model to expand a query with related terms.

    Never raises: an unparseable reply yields a hybrid strategy with
    confidence 0.6; an API failure yields a text strategy with confidence 0.5.
    """
    client = get_openai_client(api_key or settings.OPENAI_API_KEY, settings.OPENAI_BASE_URL)
    if client is None:
        logger.warning("Query enhancement skipped: OpenAI API key is not configured")
        return QueryEnhancement(
            original_query=query,
            enhanced_query=query,
            search_keywords=_keyword_fallback(query),
            search_strategy="text",
            confidence=0.5,
        )

    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_CHAT_MODEL,
            messages=[
                {"role": "system", "content": QUERY_ENHANCEMENT_SYSTEM_PROMPT},
                {"role": "user", "content": build_query_enhancement_prompt(query)},
            ],
            temperature=0.3,
            max_tokens=500,
        )
        content = response.choices[0].message.content
    except (OpenAIError, IndexError) as e:
        logger.error(f"Query enhancement failed: {e}")
        return QueryEnhancement(
            original_query=query,
            enhanced_query=query,
            search_keywords=_keyword_fallback(query),
            search_strategy="text",
            confidence=0.5,
        )

    try:
        data = parse_json_reply(content)
        if not isinstance(data, dict):
            raise ValueError("Enhancement reply is not a JSON object")
    except ValueError as e:
        logger.warning(f"Query enhancement reply could not be parsed, using defaults: {e}")
        return QueryEnhancement(
            original_query=query,
            enhanced_query=query,
            search_keywords=_keyword_fallback(query),
            search_strategy="hybrid",
            confidence=0.6,
        )

    strategy = data.get("searchStrategy")
    language = data.get("language")
    keywords = data.get("searchKeywords")
    try:
        confidence = float(data.get("confidence") or 0.8)
    except (TypeError, ValueError):
        confidence = 0.8

    return QueryEnhancement(
        original_query=query,
        enhanced_query=data.get("enhancedQuery") or query,
        search_keywords=[str(k) for k in keywords] if isinstance(keywords, list) and keywords else [query],
        search_strategy=strategy if strategy in _VALID_STRATEGIES else "hybrid",
        language=language if language in _VALID_LANGUAGES else "turkish",
        confidence=max(0.0, min(1.0, confidence)),
    )


async def test_connection(api_key: Optional[str] = None) -> bool:
    """Generate a tiny embedding to check the key works."""
    try:
        await generate_embedding("Test connection", api_key=api_key)
        return True
    except (ServiceNotConfiguredError, EmbeddingError) as e:
        logger.warning(f"OpenAI connection test failed: {e}")
        return False
