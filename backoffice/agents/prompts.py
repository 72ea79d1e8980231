"""
Search Assistant Prompt Templates

System and user prompts for the two chat models used by document search:

- OpenAI (gpt-3.5-turbo): rewrites a user query for retrieval
- DeepSeek (deepseek-chat): routes a query to the correspondence graph or
  the document table, optimizes the query for the chosen backend and
  reviews the results

Every prompt asks for a bare JSON object. Callers parse the reply with
json.loads and fall back to heuristics when parsing fails, so the prompts
must never ask for prose around the JSON.

Users write queries in Turkish, English or a mix of both; the document
archive is mostly English.
"""

import json
from typing import Any, Dict, List, Sequence

# =============================================================================
# QUERY ENHANCEMENT (OpenAI)
# =============================================================================

QUERY_ENHANCEMENT_SYSTEM_PROMPT = (
    "You are a document search expert for a construction company archive. "
    "Always answer with valid JSON only."
)


def build_query_enhancement_prompt(query: str) -> str:
    return f"""<query>{query}</query>

<task>
1. Detect the language of the query (turkish, english or mixed)
2. Add closely related terms and synonyms
3. Choose a search strategy: vector, text or hybrid
4. Extract the search keywords
</task>

<output_format>
{{
  "originalQuery": "the original query",
  "enhancedQuery": "the enhanced query",
  "searchKeywords": ["keyword1", "keyword2", "keyword3"],
  "searchStrategy": "hybrid",
  "language": "turkish",
  "confidence": 0.9
}}
</output_format>"""


# =============================================================================
# SEARCH ROUTING (DeepSeek)
# =============================================================================

def build_search_strategy_system_prompt(
    categories: Sequence[str],
    tags: Sequence[str],
    file_types: Sequence[str],
) -> str:
    return f"""You are a document search strategist. Analyze the user's query and pick the best search backend.

<backends>
1. graph: the correspondence graph. Best for relations between letters, references, reply chains and networks.
2. supabase: the PostgreSQL document table. Best for content search, structured fields, categories and metadata.
</backends>

<context>
Available categories: {", ".join(categories)}
Available tags: {", ".join(tags)}
Available file types: {", ".join(file_types)}
</context>

<task>
1. Analyze the query
2. Choose the backend: graph, supabase or both
3. Explain the reasoning in the language of the query
4. Give a confidence score between 0 and 1
5. Suggest filters
6. Optimize the query
</task>

<output_format>
{{
  "searchType": "graph|supabase|both",
  "reasoning": "why this backend",
  "confidence": 0.95,
  "suggestedFilters": {{
    "dateRange": {{"from": "2024-01-01", "to": "2024-12-31"}},
    "categories": ["category1"],
    "tags": ["tag1", "tag2"],
    "fileTypes": ["pdf", "docx"]
  }},
  "queryOptimization": {{
    "originalQuery": "original query",
    "optimizedQuery": "optimized query",
    "keywords": ["keyword1", "keyword2"]
  }}
}}
</output_format>"""


def build_search_strategy_user_prompt(query: str) -> str:
    return f'User query: "{query}"\n\nAnalyze this query and choose the best search strategy.'


# =============================================================================
# QUERY OPTIMIZATION (DeepSeek)
# =============================================================================

_TARGET_FOCUS = {
    "graph": "You optimize queries for a correspondence graph. Relations, references and reply chains matter most.",
    "supabase": "You optimize queries for PostgreSQL full-text search. Content, categories and metadata matter most.",
}


def build_query_optimization_system_prompt(target: str) -> str:
    return f"""You are a search query optimization expert.

{_TARGET_FOCUS.get(target, _TARGET_FOCUS["supabase"])}

<task>
1. Optimize the query for {target}
2. Extract keywords
3. Suggest synonyms
4. Respect Turkish morphology (suffixes, dotted and dotless i)
</task>

<output_format>
{{
  "optimizedQuery": "optimized query",
  "keywords": ["keyword1", "keyword2"],
  "synonyms": ["synonym1", "synonym2"]
}}
</output_format>"""


def build_query_optimization_user_prompt(query: str, target: str) -> str:
    return f'Query to optimize: "{query}"\nTarget backend: {target}'


# =============================================================================
# RESULT ANALYSIS (DeepSeek)
# =============================================================================

def build_result_analysis_system_prompt(
    graph_count: int,
    supabase_count: int,
    search_type: str,
    confidence: float,
) -> str:
    return f"""You are a search result analyst. Evaluate the results and advise the user.

<context>
Graph result count: {graph_count}
Supabase result count: {supabase_count}
Routing decision: {search_type}
Decision confidence: {confidence}
</context>

<task>
1. Score the relevance of each backend's results (0-1)
2. Give recommendations to the user
3. Suggest next actions
</task>

<output_format>
{{
  "relevanceScores": {{"graph": 0.8, "supabase": 0.9}},
  "recommendations": ["recommendation 1", "recommendation 2"],
  "suggestedActions": ["action 1", "action 2"]
}}
</output_format>"""


def build_result_analysis_user_prompt(
    query: str,
    graph_results: List[Dict[str, Any]],
    supabase_results: List[Dict[str, Any]],
) -> str:
    # Only a sample goes to the model
    return (
        f'Query: "{query}"\n'
        f"Graph result samples: {json.dumps(graph_results[:3], default=str, ensure_ascii=False)}\n"
        f"Supabase result samples: {json.dumps(supabase_results[:3], default=str, ensure_ascii=False)}"
    )


CONNECTION_TEST_SYSTEM_PROMPT = "You are a test assistant."
CONNECTION_TEST_USER_PROMPT = "Hello, are you working?"
