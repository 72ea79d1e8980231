"""
Correspondence graph builder.

Starting from one letter, follows the references listed in `ref_letters`
up to `max_depth` hops and returns the letters as nodes and each
reference as a directed `source-target` edge.
"""

import logging
import re
from typing import Dict, List, Optional, Set

from supabase import Client

from backoffice.schemas.graph import GraphData, GraphEdge, GraphNode, GraphNodeData
from backoffice.services import document_service
from backoffice.services.errors import GraphBuildError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3

# Internal correspondence numbers (IC-AD-366) and reply numbers (RE 12/2023-4)
_INTERNAL_REF_RE = re.compile(r"IC-[A-Z]+-\d+")
_REPLY_REF_RE = re.compile(r"RE\s*\d+/\d+(?:-\d+)?")


def parse_ref_letters(ref_letters: Optional[str]) -> List[str]:
    """
    Split a ref_letters cell into individual references.

    Each comma separated part yields every internal or reply number it
    contains, or the whole trimmed part when it contains neither.
    Duplicates are dropped, first occurrence wins.
    """
    if not ref_letters:
        return []

    refs: List[str] = []
    for part in ref_letters.split(","):
        part = part.strip()
        if not part:
            continue
        found = _INTERNAL_REF_RE.findall(part) + _REPLY_REF_RE.findall(part)
        refs.extend(found or [part])

    return list(dict.fromkeys(refs))


def node_id_for(doc: Dict) -> str:
    return doc.get("letter_no") or str(doc["id"])


def _make_node(doc: Dict) -> GraphNode:
    node_id = node_id_for(doc)
    label = doc.get("letter_no") or f"Document #{doc['id']}"
    return GraphNode(
        id=node_id,
        label=label,
        data=GraphNodeData(
            doc_id=str(doc["id"]),
            letter_no=label,
            date=doc.get("letter_date"),
            web_url=doc.get("weburl"),
            references=parse_ref_letters(doc.get("ref_letters")),
        ),
    )


async def build_document_graph(
    supabase_client: Client,
    root_ref: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> GraphData:
    """
    Build the reference graph around a letter.

    Args:
        supabase_client: Client for the user's document archive
        root_ref: internal_no, letter_no or numeric id of the root letter
        max_depth: Maximum number of reference hops from the root

    Returns:
        GraphData whose first node is the root letter.

    Raises:
        GraphBuildError: If not even the root letter could be found.
        DocumentSearchError: If the archive cannot be reached.
    """
    nodes: Dict[str, GraphNode] = {}
    edges: Dict[str, GraphEdge] = {}
    processed: Set[str] = set()

    def add_node(doc: Dict) -> str:
        node_id = node_id_for(doc)
        if node_id not in nodes:
            nodes[node_id] = _make_node(doc)
        return node_id

    async def process(doc: Dict, depth: int) -> None:
        doc_key = str(doc["id"])
        if depth > max_depth or doc_key in processed:
            return
        processed.add(doc_key)

        source_id = add_node(doc)
        targets: List[Dict] = []

        for ref in parse_ref_letters(doc.get("ref_letters")):
            target = await document_service.get_document_by_ref(supabase_client, ref)
            if target is None:
                logger.debug(f"Referenced letter not found: {ref!r}")
                continue

            target_id = add_node(target)
            edge_id = f"{source_id}-{target_id}"
            if edge_id not in edges:
                edges[edge_id] = GraphEdge(id=edge_id, source=source_id, target=target_id)
            targets.append(target)

        for target in targets:
            if str(target["id"]) not in processed:
                await process(target, depth + 1)

    root = await document_service.get_document_by_ref(supabase_client, root_ref)
    if root is not None:
        await process(root, 0)

    if not nodes:
        raise GraphBuildError(f"No document found for reference {root_ref!r}")

    logger.info(f"Graph built for {root_ref!r}: {len(nodes)} nodes, {len(edges)} edges")
    return GraphData(nodes=list(nodes.values()), edges=list(edges.values()))
