"""
DeepSeek search assistant.

DeepSeek speaks the OpenAI chat completions protocol, so the openai SDK is
pointed at DEEPSEEK_BASE_URL. Three helpers:

- determine_search_strategy: route a query to the correspondence graph,
  the document table, or both
- optimize_search_query: rewrite a query for one backend
- analyze_search_results: score the results and suggest next steps

None of them raise on API or parsing failures. Each falls back to a
keyword heuristic so search keeps working without DeepSeek.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAIError
from pydantic import ValidationError

from backoffice.agents.prompts import (
    CONNECTION_TEST_SYSTEM_PROMPT,
    CONNECTION_TEST_USER_PROMPT,
    build_query_optimization_system_prompt,
    build_query_optimization_user_prompt,
    build_result_analysis_system_prompt,
    build_result_analysis_user_prompt,
    build_search_strategy_system_prompt,
    build_search_strategy_user_prompt,
)
from backoffice.config import settings
from backoffice.schemas.documents import (
    OptimizedQuery,
    QueryOptimization,
    ResultAnalysis,
    SearchDecision,
)
from backoffice.services.errors import ServiceNotConfiguredError
from backoffice.services.llm_client import get_openai_client, parse_json_reply

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
MAX_TOKENS = 2000

GRAPH_KEYWORDS = ("ilişki", "bağlantı", "referans", "ağ", "network", "relation", "connection")
DATABASE_KEYWORDS = ("liste", "tablo", "rapor", "kategori", "filtre", "list", "table", "report")


def _keywords(query: str) -> List[str]:
    return [word for word in query.split(" ") if len(word) > 2]


def _chat(system_prompt: str, user_prompt: str, api_key: Optional[str]) -> str:
    """
    Run one chat completion and return the reply text.

    Raises:
        ServiceNotConfiguredError: If no DeepSeek key is available.
        OpenAIError: On API failures.
        ValueError: If the reply has no choices.
    """
    client = get_openai_client(api_key or settings.DEEPSEEK_API_KEY, settings.DEEPSEEK_BASE_URL)
    if client is None:
        raise ServiceNotConfiguredError("DeepSeek API key is not configured")

    response = client.chat.completions.create(
        model=settings.DEEPSEEK_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=TEMPERATURE,
        max_tokens=MAX_TOKENS,
    )

    if not response.choices:
        raise ValueError("DeepSeek returned no choices")

    return response.choices[0].message.content or ""


def fallback_decision(query: str) -> SearchDecision:
    """Keyword heuristic used when DeepSeek is unavailable or its reply is unusable."""
    query_lower = query.lower()
    has_graph = any(keyword in query_lower for keyword in GRAPH_KEYWORDS)
    has_database = any(keyword in query_lower for keyword in DATABASE_KEYWORDS)

    if has_graph and not has_database:
        search_type, confidence = "graph", 0.7
        reasoning = "The query asks about relations between documents; the correspondence graph fits best"
    elif has_database and not has_graph:
        search_type, confidence = "supabase", 0.7
        reasoning = "The query asks for structured data; the document table fits best"
    else:
        search_type, confidence = "both", 0.5
        reasoning = "Ambiguous query; both backends will be searched"

    return SearchDecision(
        search_type=search_type,
        reasoning=reasoning,
        confidence=confidence,
        query_optimization=QueryOptimization(
            original_query=query,
            optimized_query=query,
            keywords=_keywords(query),
        ),
    )


async def determine_search_strategy(
    query: str,
    categories: Sequence[str] = (),
    tags: Sequence[str] = (),
    file_types: Sequence[str] = (),
    api_key: Optional[str] = None,
) -> SearchDecision:
    """
    Choose the backend for a query.

    Confidence is clamped to [0, 1]. An unknown search type, invalid JSON
    or an API error returns fallback_decision(query).
    """
    try:
        reply = _chat(
            build_search_strategy_system_prompt(categories, tags, file_types),
            build_search_strategy_user_prompt(query),
            api_key,
        )
    except (ServiceNotConfiguredError, OpenAIError, ValueError) as e:
        logger.warning(f"DeepSeek routing unavailable, using heuristic: {e}")
        return fallback_decision(query)

    try:
        data = parse_json_reply(reply)
        if not isinstance(data, dict):
            raise ValueError("Routing reply is not a JSON object")
        try:
            data["confidence"] = max(0.0, min(1.0, float(data.get("confidence", 0.5))))
        except (TypeError, ValueError):
            data["confidence"] = 0.5
        return SearchDecision.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"DeepSeek routing reply could not be parsed: {e}")
        return fallback_decision(query)


async def optimize_search_query(
    query: str,
    target: str,
    api_key: Optional[str] = None,
) -> OptimizedQuery:
    """Rewrite a query for `graph` or `supabase`. Falls back to the query itself."""
    fallback = OptimizedQuery(optimized_query=query, keywords=_keywords(query), synonyms=[])

    try:
        reply = _chat(
            build_query_optimization_system_prompt(target),
            build_query_optimization_user_prompt(query, target),
            api_key,
        )
    except (ServiceNotConfiguredError, OpenAIError, ValueError) as e:
        logger.warning(f"Query optimization failed: {e}")
        return fallback

    try:
        return OptimizedQuery.model_validate(parse_json_reply(reply))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Query optimization reply could not be parsed: {e}")
        return fallback


def _fallback_analysis() -> ResultAnalysis:
    return ResultAnalysis(
        relevance_scores={"graph": 0.5, "supabase": 0.5},
        recommendations=["Try more specific keywords"],
        suggested_actions=["Adjust the filters", "Narrow the date range"],
    )


async def analyze_search_results(
    query: str,
    graph_results: List[Dict[str, Any]],
    supabase_results: List[Dict[str, Any]],
    decision: SearchDecision,
    api_key: Optional[str] = None,
) -> ResultAnalysis:
    """Score both result sets and suggest follow-ups."""
    try:
        reply = _chat(
            build_result_analysis_system_prompt(
                len(graph_results), len(supabase_results), decision.search_type, decision.confidence
            ),
            build_result_analysis_user_prompt(query, graph_results, supabase_results),
            api_key,
        )
    except (ServiceNotConfiguredError, OpenAIError, ValueError) as e:
        logger.warning(f"Result analysis failed: {e}")
        return _fallback_analysis()

    try:
        return ResultAnalysis.model_validate(parse_json_reply(reply))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Result analysis reply could not be parsed: {e}")
        return _fallback_analysis()


async def test_connection(api_key: Optional[str] = None) -> bool:
    try:
        reply = _chat(CONNECTION_TEST_SYSTEM_PROMPT, CONNECTION_TEST_USER_PROMPT, api_key)
        return len(reply) > 0
    except (ServiceNotConfiguredError, OpenAIError, ValueError) as e:
        logger.warning(f"DeepSeek connection test failed: {e}")
        return False
