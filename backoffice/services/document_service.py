"""
Document search service (Supabase).

Queries the `documents` table of the correspondence archive:
- keyword text search (ILIKE across six columns)
- pgvector similarity through the `match_documents_filtered` RPC, with a
  client-side cosine fallback when the RPC is missing or fails
- weighted hybrid scoring of vector and text results
- PostgreSQL full-text search through the `search_documents` RPC
- facets, statistics and similar-document lookup

Functions take the Supabase client as their first argument; callers
build it from the user's UserConfig (see db.client.get_supabase_client).

Rows are returned as plain dicts straight from PostgREST. Scored rows
carry two extra keys: `similarity` and `search_type`.
"""

import json
import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError
from supabase import Client

from backoffice.schemas.documents import SearchFilters
from backoffice.services.errors import DocumentSearchError
from backoffice.utils.constants import DOCUMENTS_TABLE, SEARCH_DEFAULTS, TEXT_SEARCH_COLUMNS

logger = logging.getLogger(__name__)

_TOKEN_STRIP_RE = re.compile(r"[^a-z0-9\s]")


# =============================================================================
# HELPERS
# =============================================================================

def _ilike_any(columns, value: str) -> str:
    """
    PostgREST `or` filter matching `value` in any of `columns`.

    The value is double quoted so commas and parentheses in user input
    stay part of the pattern.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return ",".join(f'{column}.ilike."%{escaped}%"' for column in columns)


def _apply_filters(query, filters: Optional[SearchFilters]):
    """Add SearchFilters constraints to a PostgREST query builder."""
    if filters is None:
        return query

    if filters.date_from:
        query = query.gte("letter_date", filters.date_from)
    if filters.date_to:
        query = query.lte("letter_date", filters.date_to)
    if filters.type_of_corr:
        query = query.eq("type_of_corr", filters.type_of_corr)
    if filters.severity_rate:
        query = query.eq("severity_rate", filters.severity_rate)
    if filters.inc_out:
        query = query.eq("inc-out", filters.inc_out)
    if filters.internal_no:
        query = query.ilike("internal_no", f"%{filters.internal_no}%")
    if filters.keywords:
        query = query.or_(",".join(_ilike_any(("keywords",), k) for k in filters.keywords))

    return query


def cosine_similarity(a: List[float], b: List[float]) -> float:
    """Cosine similarity; vectors of different length score 0."""
    if len(a) != len(b):
        return 0.0

    dot = sum(x * y for x, y in zip(a, b))
    magnitude_a = math.sqrt(sum(x * x for x in a))
    magnitude_b = math.sqrt(sum(y * y for y in b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot / (magnitude_a * magnitude_b)


def tokenize(text: Optional[str]) -> List[str]:
    """Lowercase ASCII alphanumeric tokens."""
    if not text:
        return []
    return _TOKEN_STRIP_RE.sub(" ", text.lower()).split()


def _parse_date(value: Any) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            pass
    return datetime.min


def _sort_rows(rows: List[Dict[str, Any]], filters: Optional[SearchFilters]) -> None:
    """In-place sort following filters.sort_by / sort_order."""
    sort_by = filters.sort_by if filters else "letter_date"
    descending = (filters.sort_order if filters else "desc") == "desc"

    if sort_by == "similarity":
        rows.sort(key=lambda r: r.get("similarity") or 0, reverse=descending)
    elif sort_by == "letter_date":
        rows.sort(key=lambda r: _parse_date(r.get("letter_date")), reverse=descending)
    else:
        rows.sort(key=lambda r: str(r.get(sort_by) or ""), reverse=descending)


def _as_text_results(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {**row, "similarity": SEARCH_DEFAULTS["TEXT_RESULT_SIMILARITY"], "search_type": "text"}
        for row in rows
    ]


# =============================================================================
# SEARCH
# =============================================================================

async def search_documents(
    supabase_client: Client,
    query: str,
    filters: Optional[SearchFilters] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Keyword search over the documents table.

    Matches `query` case-insensitively against content, short_desc,
    keywords, letter_no, internal_no and ref_letters. Pagination applies
    only when both page and page_size are set; otherwise at most 200 rows
    are returned.

    Returns:
        (rows, exact count)

    Raises:
        DocumentSearchError: If the query fails.
    """
    try:
        builder = supabase_client.table(DOCUMENTS_TABLE).select("*", count="exact")

        if query.strip():
            builder = builder.or_(_ilike_any(TEXT_SEARCH_COLUMNS, query))

        builder = _apply_filters(builder, filters)

        sort_by = filters.sort_by if filters else "letter_date"
        sort_order = filters.sort_order if filters else "desc"
        builder = builder.order(sort_by, desc=sort_order == "desc")

        if filters and filters.page is not None and filters.page_size is not None:
            start = filters.page * filters.page_size
            builder = builder.range(start, start + filters.page_size - 1)
        else:
            builder = builder.limit(SEARCH_DEFAULTS["TEXT_SEARCH_LIMIT"])

        response = builder.execute()
        rows = response.data or []
        return rows, response.count or 0

    except Exception as e:
        logger.error(f"Document text search failed: {e}")
        raise DocumentSearchError("Database search failed") from e


async def advanced_search(
    supabase_client: Client,
    query: str,
    search_type: str = "websearch",
    language: str = "turkish",
    similarity_threshold: float = 0.1,
) -> List[Dict[str, Any]]:
    """
    PostgreSQL full-text search via the `search_documents` RPC.

    Raises:
        DocumentSearchError: If the RPC fails.
    """
    try:
        response = supabase_client.rpc("search_documents", {
            "search_query": query,
            "search_type": search_type,
            "search_language": language,
            "similarity_threshold": similarity_threshold,
        }).execute()
        return response.data or []
    except Exception as e:
        logger.error(f"Advanced search failed: {e}")
        raise DocumentSearchError("Advanced search failed") from e


async def vector_search(
    supabase_client: Client,
    embedding: List[float],
    threshold: float = SEARCH_DEFAULTS["VECTOR_THRESHOLD"],
    max_results: int = SEARCH_DEFAULTS["MAX_RESULTS"],
    filters: Optional[SearchFilters] = None,
) -> List[Dict[str, Any]]:
    """
    Similarity search through the `match_documents_filtered` RPC.

    Any RPC failure switches to manual_vector_search with the same arguments.
    """
    params = {
        "query_embedding": embedding,
        "similarity_threshold": threshold,
        "match_count": max_results,
        "date_from": filters.date_from if filters else None,
        "date_to": filters.date_to if filters else None,
        "correspondence_type": filters.type_of_corr if filters else None,
        "severity_rate_filter": filters.severity_rate if filters else None,
        "inc_out_filter": filters.inc_out if filters else None,
        "internal_no_filter": filters.internal_no if filters else None,
        "keywords_filter": (filters.keywords or None) if filters else None,
        "sort_by": filters.sort_by if filters else "letter_date",
        "sort_order": filters.sort_order if filters else "desc",
    }

    try:
        response = supabase_client.rpc("match_documents_filtered", params).execute()
    except Exception as e:
        logger.warning(f"match_documents_filtered RPC failed, computing similarity locally: {e}")
        return await manual_vector_search(supabase_client, embedding, threshold, max_results, filters)

    return [
        {**row, "similarity": row.get("similarity") or 0, "search_type": "vector"}
        for row in response.data or []
    ]


async def manual_vector_search(
    supabase_client: Client,
    embedding: List[float],
    threshold: float = SEARCH_DEFAULTS["VECTOR_THRESHOLD"],
    max_results: int = SEARCH_DEFAULTS["MAX_RESULTS"],
    filters: Optional[SearchFilters] = None,
) -> List[Dict[str, Any]]:
    """
    Cosine similarity computed in Python over up to 1000 embedded rows.

    Rows whose embedding cannot be parsed are skipped. Returns [] when
    nothing reaches the threshold or the fetch fails.
    """
    try:
        builder = (
            supabase_client.table(DOCUMENTS_TABLE)
            .select("*")
            .not_.is_("embedding", "null")
            .limit(SEARCH_DEFAULTS["MANUAL_VECTOR_FETCH_LIMIT"])
        )
        response = _apply_filters(builder, filters).execute()
    except Exception as e:
        logger.error(f"Manual vector search fetch failed: {e}")
        return []

    scored: List[Dict[str, Any]] = []
    for row in response.data or []:
        raw = row.get("embedding")
        if not raw:
            continue
        try:
            doc_embedding = json.loads(raw) if isinstance(raw, str) else raw
            similarity = cosine_similarity(embedding, [float(x) for x in doc_embedding])
        except (ValueError, TypeError):
            continue
        scored.append({**row, "similarity": similarity, "search_type": "vector"})

    _sort_rows(scored, filters)

    above = [row for row in scored if row["similarity"] >= threshold]
    logger.info(f"Manual vector search: {len(above)}/{len(scored)} rows above threshold {threshold}")
    return above[:max_results]


async def hybrid_search(
    supabase_client: Client,
    query: str,
    embedding: List[float],
    vector_threshold: float = SEARCH_DEFAULTS["HYBRID_VECTOR_THRESHOLD"],
    vector_weight: float = SEARCH_DEFAULTS["HYBRID_VECTOR_WEIGHT"],
    text_weight: float = SEARCH_DEFAULTS["HYBRID_TEXT_WEIGHT"],
    max_results: int = SEARCH_DEFAULTS["MAX_RESULTS"],
    filters: Optional[SearchFilters] = None,
    text_score_method: str = "overlap",
) -> List[Dict[str, Any]]:
    """
    Merge vector and keyword results into one weighted ranking.

    Score per document:
        similarity * vector_weight            (vector hit)
      + text score                            (keyword hit)

    The text score is 0.5 * text_weight for the `simple` method. For
    `overlap` it is the share of query tokens found in the document's
    short_desc, content and keywords, times text_weight.

    If the keyword search fails, returns plain text results (similarity
    0.5, search_type text); a second failure propagates.
    """
    try:
        vector_rows = await vector_search(
            supabase_client,
            embedding,
            threshold=vector_threshold,
            max_results=int(max_results * SEARCH_DEFAULTS["HYBRID_VECTOR_SHARE"]),
            filters=filters,
        )
        text_rows, _ = await search_documents(supabase_client, query, filters)
    except DocumentSearchError as e:
        logger.warning(f"Hybrid search failed, falling back to text results: {e}")
        rows, _ = await search_documents(supabase_client, query, filters)
        return _as_text_results(rows)

    combined: Dict[Any, Dict[str, Any]] = {}

    for row in vector_rows:
        combined[row["id"]] = {
            **row,
            "similarity": (row.get("similarity") or 0) * vector_weight,
            "search_type": "hybrid",
        }

    query_tokens = tokenize(query)

    for row in text_rows:
        if text_score_method == "overlap":
            doc_tokens = set(tokenize(
                f"{row.get('short_desc') or ''} {row.get('content') or ''} {row.get('keywords') or ''}"
            ))
            if doc_tokens and query_tokens:
                overlap = sum(1 for token in query_tokens if token in doc_tokens)
                text_score = overlap / len(query_tokens) * text_weight
            else:
                text_score = 0.0
        else:
            text_score = 0.5 * text_weight

        existing = combined.get(row["id"])
        if existing is not None:
            existing["similarity"] += text_score
        else:
            combined[row["id"]] = {**row, "similarity": text_score, "search_type": "hybrid"}

    results = sorted(combined.values(), key=lambda r: r["similarity"], reverse=True)
    return results[:max_results]


# =============================================================================
# FACETS / STATS
# =============================================================================

async def _distinct_values(supabase_client: Client, column: str) -> List[str]:
    response = (
        supabase_client.table(DOCUMENTS_TABLE)
        .select(column)
        .not_.is_(column, "null")
        .execute()
    )
    return list(dict.fromkeys(row[column] for row in response.data or [] if row.get(column)))


async def get_correspondence_types(supabase_client: Client) -> List[str]:
    try:
        return await _distinct_values(supabase_client, "type_of_corr")
    except Exception as e:
        logger.warning(f"Could not load correspondence types: {e}")
        return []


async def get_severity_rates(supabase_client: Client) -> List[str]:
    try:
        return await _distinct_values(supabase_client, "severity_rate")
    except Exception as e:
        logger.warning(f"Could not load severity rates: {e}")
        return []


async def get_keywords(supabase_client: Client) -> List[str]:
    """Unique keywords; the keywords column holds comma separated values."""
    try:
        response = (
            supabase_client.table(DOCUMENTS_TABLE)
            .select("keywords")
            .not_.is_("keywords", "null")
            .execute()
        )
    except Exception as e:
        logger.warning(f"Could not load keywords: {e}")
        return []

    keywords: List[str] = []
    for row in response.data or []:
        value = row.get("keywords")
        if isinstance(value, str):
            keywords.extend(part.strip() for part in value.split(","))

    return [k for k in dict.fromkeys(keywords) if k]


async def find_similar_documents(
    supabase_client: Client,
    document_id: int,
    limit: int = SEARCH_DEFAULTS["SIMILAR_DOCUMENTS_LIMIT"],
) -> List[Dict[str, Any]]:
    try:
        response = supabase_client.rpc("find_similar_documents", {
            "target_document_id": document_id,
            "similarity_limit": limit,
        }).execute()
        return response.data or []
    except Exception as e:
        logger.warning(f"Similar document lookup failed for {document_id}: {e}")
        return []


def _count_by(rows: List[Dict[str, Any]], column: str) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for row in rows:
        value = row.get(column)
        counts[value] = counts.get(value, 0) + 1
    return counts


async def get_search_stats(
    supabase_client: Client,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Archive statistics. Zeroed stats on any failure.

    `recent_documents` counts letters dated within the last seven days.
    """
    today = today or date.today()
    week_ago = (today - timedelta(days=7)).isoformat()
    table = DOCUMENTS_TABLE

    try:
        total = supabase_client.table(table).select("id", count="exact").limit(1).execute()
        recent = (
            supabase_client.table(table)
            .select("id", count="exact")
            .gte("letter_date", week_ago)
            .limit(1)
            .execute()
        )
        types = supabase_client.table(table).select("type_of_corr").not_.is_("type_of_corr", "null").execute()
        severities = supabase_client.table(table).select("severity_rate").not_.is_("severity_rate", "null").execute()
        directions = supabase_client.table(table).select("inc-out").not_.is_("inc-out", "null").execute()
    except Exception as e:
        logger.warning(f"Could not load search stats: {e}")
        return {
            "total_documents": 0,
            "correspondence_type_counts": {},
            "severity_rate_counts": {},
            "recent_documents": 0,
            "incoming_outgoing": {},
        }

    return {
        "total_documents": total.count or 0,
        "correspondence_type_counts": _count_by(types.data or [], "type_of_corr"),
        "severity_rate_counts": _count_by(severities.data or [], "severity_rate"),
        "recent_documents": recent.count or 0,
        "incoming_outgoing": _count_by(directions.data or [], "inc-out"),
    }


# =============================================================================
# GRAPH SUPPORT
# =============================================================================

async def get_all_document_relations(supabase_client: Client) -> List[Dict[str, Any]]:
    """
    letter_no / ref_letters pairs for every document.

    Raises:
        DocumentSearchError: If the query fails.
    """
    try:
        response = supabase_client.table(DOCUMENTS_TABLE).select("letter_no, ref_letters").execute()
    except Exception as e:
        logger.error(f"Could not load document relations: {e}")
        raise DocumentSearchError("Could not load document relations") from e

    return [
        {"letter_no": row.get("letter_no"), "ref_letters": row.get("ref_letters")}
        for row in response.data or []
    ]


async def _first_match(supabase_client: Client, column: str, value: Any) -> Optional[Dict[str, Any]]:
    response = (
        supabase_client.table(DOCUMENTS_TABLE)
        .select("*")
        .eq(column, value)
        .limit(1)
        .execute()
    )
    rows = response.data or []
    return rows[0] if rows else None


async def get_document_by_ref(supabase_client: Client, doc_ref: str) -> Optional[Dict[str, Any]]:
    """
    Resolve a reference to a document.

    Tries internal_no, then letter_no, then the numeric primary key.
    PostgREST errors are logged and treated as "not found"; transport
    failures raise DocumentSearchError.
    """
    doc_ref = doc_ref.strip()
    if not doc_ref:
        return None

    try:
        for column in ("internal_no", "letter_no"):
            row = await _first_match(supabase_client, column, doc_ref)
            if row:
                return row

        if doc_ref.isdigit():
            return await _first_match(supabase_client, "id", int(doc_ref))
    except APIError as e:
        logger.warning(f"Document lookup failed for {doc_ref!r}: {e.message}")
    except Exception as e:
        logger.error(f"Document lookup failed for {doc_ref!r}: {e}")
        raise DocumentSearchError("Document lookup failed") from e

    return None


async def test_connection(supabase_client: Client) -> bool:
    try:
        supabase_client.table(DOCUMENTS_TABLE).select("id").limit(1).execute()
        return True
    except Exception as e:
        logger.warning(f"Supabase connection test failed: {e}")
        return False
