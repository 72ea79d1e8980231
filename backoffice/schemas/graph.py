"""
Pydantic schemas for the correspondence graph.

Nodes are letters; edges point from a letter to each letter listed in
its `ref_letters` column.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class GraphNodeData(BaseModel):
    doc_id: str = Field(..., description="Supabase document id")
    letter_no: str = Field(..., description="Letter number (or a placeholder label)")
    date: Optional[str] = Field(None, description="letter_date, if known")
    web_url: Optional[str] = None
    references: List[str] = Field(default_factory=list, description="Parsed ref_letters")


class GraphNode(BaseModel):
    id: str
    label: str
    type: Literal["document"] = "document"
    data: GraphNodeData


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: Literal["reference"] = "reference"


class GraphData(BaseModel):
    """Graph payload; the first node is the selected (root) document."""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)


class GraphResponse(GraphData):
    mode: Literal["all", "previous", "next", "raw"] = "raw"
    root: str
