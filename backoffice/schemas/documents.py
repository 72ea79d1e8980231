"""
Pydantic schemas for document search endpoints.

Documents live in the Supabase `documents` table (correspondence letters
with pgvector embeddings). Search results carry a `similarity` score and
the `search_type` that produced them.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

SortField = Literal["letter_date", "similarity", "severity_rate", "short_desc", "letter_no"]
SearchType = Literal["vector", "text", "hybrid"]
TextScoreMethod = Literal["overlap", "simple"]


class SearchFilters(BaseModel):
    """Structured filters shared by every document search mode."""
    date_from: Optional[str] = Field(None, description="Lower bound for letter_date (inclusive)")
    date_to: Optional[str] = Field(None, description="Upper bound for letter_date (inclusive)")
    type_of_corr: Optional[str] = Field(None, description="Correspondence type")
    severity_rate: Optional[str] = Field(None, description="Severity rating")
    inc_out: Optional[str] = Field(None, description="Incoming/outgoing marker")
    keywords: Optional[List[str]] = Field(None, description="Any-of keyword filter")
    internal_no: Optional[str] = Field(None, description="Substring match on internal number")
    sort_by: SortField = "letter_date"
    sort_order: Literal["asc", "desc"] = "desc"
    page: Optional[int] = Field(None, ge=0, description="Zero-based page (requires page_size)")
    page_size: Optional[int] = Field(None, ge=1, le=1000)


class DocumentResult(BaseModel):
    """
    A row from the documents table, optionally scored.

    The database column `inc-out` is exposed as `inc_out`.
    """
    model_config = ConfigDict(extra="ignore")

    id: int
    content: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    internal_no: Optional[str] = None
    letter_date: Optional[str] = None
    type_of_corr: Optional[str] = None
    short_desc: Optional[str] = None
    sp_id: Optional[str] = None
    ref_letters: Optional[str] = None
    reply_letter: Optional[str] = None
    severity_rate: Optional[str] = None
    letter_no: Optional[str] = None
    inc_out: Optional[str] = Field(
        None, validation_alias=AliasChoices("inc_out", "inc-out")
    )
    keywords: Optional[str] = None
    weburl: Optional[str] = None
    similarity: Optional[float] = None
    search_type: Optional[SearchType] = None


class QueryEnhancement(BaseModel):
    """LLM-enhanced version of a user query."""
    original_query: str
    enhanced_query: str
    search_keywords: List[str] = Field(default_factory=list)
    search_strategy: SearchType = "hybrid"
    language: Literal["turkish", "english", "mixed"] = "turkish"
    confidence: float = Field(0.5, ge=0.0, le=1.0)


class DateRange(BaseModel):
    from_: Optional[str] = Field(
        None, validation_alias=AliasChoices("from", "from_"), serialization_alias="from"
    )
    to: Optional[str] = None


class SuggestedFilters(BaseModel):
    date_range: Optional[DateRange] = Field(
        None, validation_alias=AliasChoices("date_range", "dateRange")
    )
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    file_types: Optional[List[str]] = Field(
        None, validation_alias=AliasChoices("file_types", "fileTypes")
    )


class QueryOptimization(BaseModel):
    original_query: str = Field(
        ..., validation_alias=AliasChoices("original_query", "originalQuery")
    )
    optimized_query: str = Field(
        ..., validation_alias=AliasChoices("optimized_query", "optimizedQuery")
    )
    keywords: List[str] = Field(default_factory=list)


class SearchDecision(BaseModel):
    """
    Search routing decision.

    `graph` routes to the correspondence graph, `supabase` to the
    document table, `both` to both.
    """
    search_type: Literal["graph", "supabase", "both"] = Field(
        ..., validation_alias=AliasChoices("search_type", "searchType")
    )
    reasoning: str = ""
    confidence: float = 0.5
    suggested_filters: Optional[SuggestedFilters] = Field(
        None, validation_alias=AliasChoices("suggested_filters", "suggestedFilters")
    )
    query_optimization: Optional[QueryOptimization] = Field(
        None, validation_alias=AliasChoices("query_optimization", "queryOptimization")
    )


class OptimizedQuery(BaseModel):
    optimized_query: str = Field(
        ..., validation_alias=AliasChoices("optimized_query", "optimizedQuery")
    )
    keywords: List[str] = Field(default_factory=list)
    synonyms: List[str] = Field(default_factory=list)


class ResultAnalysis(BaseModel):
    relevance_scores: Dict[str, float] = Field(
        default_factory=dict, validation_alias=AliasChoices("relevance_scores", "relevanceScores")
    )
    recommendations: List[str] = Field(default_factory=list)
    suggested_actions: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("suggested_actions", "suggestedActions")
    )


# --- Requests ---

class SearchRequest(BaseModel):
    """Request for POST /api/documents/search."""
    query: str = Field(..., description="Free-text query", examples=["beton dökümü"])
    filters: SearchFilters = Field(default_factory=SearchFilters)
    enable_ai: Optional[bool] = Field(
        None,
        description="Use embeddings + hybrid scoring. Defaults to the user's search settings."
    )


class VectorSearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    filters: SearchFilters = Field(default_factory=SearchFilters)
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    max_results: int = Field(500, ge=1, le=1000)


class AdvancedSearchRequest(BaseModel):
    """PostgreSQL full-text search through the `search_documents` RPC."""
    query: str = Field(..., min_length=1)
    search_type: Literal["plain", "phrase", "websearch"] = "websearch"
    language: Literal["turkish", "english"] = "turkish"
    similarity_threshold: float = Field(0.1, ge=0.0, le=1.0)


class AISearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    filters: SearchFilters = Field(default_factory=SearchFilters)


# --- Responses ---

class SearchResponse(BaseModel):
    results: List[DocumentResult]
    total: int
    search_method: SearchType
    query_enhancement: Optional[QueryEnhancement] = None


class DocumentListResponse(BaseModel):
    results: List[DocumentResult]
    total: int


class AISearchResponse(BaseModel):
    decision: SearchDecision
    search: SearchResponse
    analysis: ResultAnalysis


class FacetsResponse(BaseModel):
    """Distinct values available for the search filters."""
    correspondence_types: List[str]
    severity_rates: List[str]
    keywords: List[str]


class SearchStats(BaseModel):
    total_documents: int = 0
    correspondence_type_counts: Dict[str, int] = Field(default_factory=dict)
    severity_rate_counts: Dict[str, int] = Field(default_factory=dict)
    recent_documents: int = 0
    incoming_outgoing: Dict[str, int] = Field(default_factory=dict)


ConnectionState = Literal["connected", "disconnected", "error"]


class ConnectionStatusResponse(BaseModel):
    supabase: ConnectionState
    deepseek: ConnectionState
    openai: ConnectionState
    any_connected: bool


class NetworkNode(BaseModel):
    id: int
    label: str


class NetworkResponse(BaseModel):
    nodes: List[NetworkNode]
    relationships: List[Dict[str, Any]] = Field(default_factory=list)


class RelationsResponse(BaseModel):
    """letter_no -> referenced letter numbers, for the whole archive."""
    relations: Dict[str, List[str]]
    total: int
