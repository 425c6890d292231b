"""Concept map schemas."""
from pydantic import BaseModel


class ConceptNode(BaseModel):
    """Node in the concept map."""

    id: int
    label: str
    type: str
    frequency: int
    density: float


class ConceptEdge(BaseModel):
    """Directed edge aggregated over the content items a pair co-occurred in."""

    source: int
    target: int
    type: str
    strength: float
    content_ids: list[int]


class ConceptMap(BaseModel):
    """Concept graph filtered for display."""

    nodes: list[ConceptNode]
    edges: list[ConceptEdge]
    min_frequency: int
    max_frequency: int


class RelatedConcept(BaseModel):
    """Concept connected to another one."""

    id: int
    name: str
    type: str
    frequency: int
